"""Build report payload."""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, model_validator

from shipline.core.outcome import Failure, PipelineOutcome


class BuildStatus(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"


class BuildReport(BaseModel):
    """Status report sent once per pipeline run.

    error_message is present exactly when the build failed. Escaping
    is left entirely to the JSON serializer, so any field content,
    including quotes, backslashes and control characters in the log
    excerpt, survives a round trip unchanged.
    """

    model_config = ConfigDict(frozen=True)

    status: BuildStatus
    job_name: str
    build_number: str
    timestamp: str
    error_message: str | None = None
    log_excerpt: str

    @model_validator(mode="after")
    def _error_message_matches_status(self) -> "BuildReport":
        if self.status is BuildStatus.FAILURE and not self.error_message:
            raise ValueError("A failure report needs an error_message")
        if self.status is BuildStatus.SUCCESS and self.error_message:
            raise ValueError("A success report cannot carry an error_message")
        return self

    def to_json(self) -> str:
        """Serialize for the webhook; absent error_message is omitted."""
        return self.model_dump_json(exclude_none=True)


def utc_timestamp(now: datetime | None = None) -> str:
    """ISO-8601 UTC timestamp with second precision, e.g.
    2024-05-01T12:00:00Z."""
    now = now or datetime.now(UTC)
    return now.astimezone(UTC).strftime("%Y-%m-%dT%H:%M:%SZ")


def build_report(
    outcome: PipelineOutcome,
    job_name: str,
    build_number: str,
    log_excerpt: str,
    now: datetime | None = None,
) -> BuildReport:
    """Create the report for a finished pipeline run."""
    if isinstance(outcome, Failure):
        return BuildReport(
            status=BuildStatus.FAILURE,
            job_name=job_name,
            build_number=build_number,
            timestamp=utc_timestamp(now),
            error_message=outcome.describe(),
            log_excerpt=log_excerpt,
        )

    return BuildReport(
        status=BuildStatus.SUCCESS,
        job_name=job_name,
        build_number=build_number,
        timestamp=utc_timestamp(now),
        log_excerpt=log_excerpt,
    )
