"""Tests for build report payloads."""

import json
from datetime import UTC, datetime

import pytest
from pydantic import ValidationError

from shipline.core.outcome import Failure, Success
from shipline.report.payload import (
    BuildReport,
    BuildStatus,
    build_report,
    utc_timestamp,
)

FIXED_TIME = datetime(2024, 5, 1, 12, 30, 5, tzinfo=UTC)


def test_success_payload_literal_values():
    """Success reports carry the identifiers and no error_message."""
    report = build_report(
        Success(), "build-1", "42", "all good", now=FIXED_TIME
    )

    payload = json.loads(report.to_json())

    assert payload == {
        "status": "success",
        "job_name": "build-1",
        "build_number": "42",
        "timestamp": "2024-05-01T12:30:05Z",
        "log_excerpt": "all good",
    }
    assert "error_message" not in payload


def test_failure_payload_has_error_message():
    report = build_report(
        Failure(stage="test", reason="exit code 1"), "build-1", "42", "boom"
    )

    payload = json.loads(report.to_json())

    assert payload["status"] == "failure"
    assert payload["job_name"] == "build-1"
    assert payload["build_number"] == "42"
    assert payload["error_message"] == "Stage 'test' failed: exit code 1"


def test_failure_without_detail_still_has_message():
    report = build_report(Failure(), "build-1", "42", "")

    assert report.error_message == "Build failed"


@pytest.mark.parametrize("excerpt", [
    'He said "ship it"',
    "C:\\build\\out\\app.exe",
    "line one\nline two\r\nline three",
    "tab\there, bell\a, nul\x00, escape\x1b[31m red",
    '"}, "status": "success", "x": "',
    "ünïcödé ✓",
])
def test_awkward_excerpts_survive_serialization(excerpt):
    """Quotes, backslashes and control characters round-trip exactly."""
    report = build_report(
        Failure(stage="lint", reason='bad "quote"'), "build-1", "42", excerpt
    )

    text = report.to_json()
    payload = json.loads(text)

    assert "\n" not in text
    assert payload["log_excerpt"] == excerpt
    assert payload["error_message"] == "Stage 'lint' failed: bad \"quote\""
    assert BuildReport.model_validate_json(text) == report


def test_report_is_immutable():
    report = build_report(Success(), "build-1", "42", "")

    with pytest.raises(ValidationError):
        report.job_name = "other"


def test_success_with_error_message_rejected():
    with pytest.raises(ValidationError):
        BuildReport(
            status=BuildStatus.SUCCESS,
            job_name="build-1",
            build_number="42",
            timestamp=utc_timestamp(),
            error_message="should not be here",
            log_excerpt="",
        )


def test_failure_without_error_message_rejected():
    with pytest.raises(ValidationError):
        BuildReport(
            status=BuildStatus.FAILURE,
            job_name="build-1",
            build_number="42",
            timestamp=utc_timestamp(),
            log_excerpt="",
        )


def test_timestamp_is_utc_iso8601():
    stamp = utc_timestamp()

    parsed = datetime.strptime(stamp, "%Y-%m-%dT%H:%M:%SZ")
    assert stamp.endswith("Z")
    assert abs(
        parsed.replace(tzinfo=UTC) - datetime.now(UTC)
    ).total_seconds() < 60
