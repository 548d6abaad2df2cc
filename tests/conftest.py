"""Pytest configuration and fixtures for shipline tests."""

import tempfile
from pathlib import Path

import pytest

from shipline.core.log import ConsoleSink, FileSink, Logger, setup_logger


def quiet_logger() -> Logger:
    """Console-only logger that leaves httpx uninstrumented."""
    return Logger(
        level="debug",
        instrument_httpx=False,
        console=ConsoleSink(level="debug"),
        file=FileSink(enabled=False),
    )


@pytest.fixture(autouse=True, scope="session")
def configure_logging():
    """Configure console-only logging for the test session.

    Debug output shows up in failing test reports without writing
    log files or sending anything to logfire.dev.
    """
    setup_logger(
        log_root=Path(tempfile.gettempdir()) / "shipline-tests",
        job_name="test",
        console=ConsoleSink(level="debug"),
        file=FileSink(enabled=False),
        instrument_httpx=False,
    )


@pytest.fixture
def make_config(tmp_path):
    """Build a Config rooted in tmp_path.

    Section overrides are passed as dicts, e.g.
    make_config(pipeline={"commands": {"test": "true"}}).
    """
    from shipline.core.config import Config

    def _make(**sections):
        sections.setdefault("log_root", tmp_path / "logs")
        sections.setdefault("logger", quiet_logger())
        sections.setdefault("job", {"name": "build-1", "build_number": "42"})
        pipeline = dict(sections.pop("pipeline", {}))
        pipeline.setdefault("workdir", tmp_path)
        return Config(pipeline=pipeline, **sections)

    return _make


@pytest.fixture
def make_state(make_config):
    """Build a State around make_config() without parsing sys.argv."""
    from shipline.core.config import State

    def _make(**sections):
        return State(config=make_config(**sections), _cli_parse_args=False)

    return _make


@pytest.fixture
def sent_reports(monkeypatch):
    """Capture build reports instead of sending them."""
    from shipline.report.notifier import Notifier

    reports = []

    def fake_send(self, report):
        reports.append(report)
        return True

    monkeypatch.setattr(Notifier, "send", fake_send)
    return reports
