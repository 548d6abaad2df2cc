"""Test file sink level filtering and format templates."""

from pathlib import Path

import pytest

from shipline.core.log import (
    LEVELS,
    ConsoleSink,
    FileSink,
    LogfireSink,
    level_name,
    setup_logger,
)


@pytest.fixture(autouse=True)
def restore_console_logger(tmp_path):
    """Put the session's console-only logger back after each test."""
    yield
    setup_logger(
        log_root=tmp_path,
        job_name="test",
        console=ConsoleSink(level="debug"),
        file=FileSink(enabled=False),
        instrument_httpx=False,
    )


def file_logger(log_root: Path, log_file: Path, **sink):
    return setup_logger(
        log_root=log_root,
        job_name="test",
        console=ConsoleSink(enabled=False),
        file=FileSink(enabled=True, path=str(log_file), **sink),
        logfire=LogfireSink(enabled=False),
        instrument_httpx=False,
    )


def log_every_level(logger):
    logger.spew("SPEW message")
    logger.trace("TRACE message")
    logger.debug("DEBUG message")
    logger.info("INFO message")
    logger.warn("WARN message")
    logger.error("ERROR message")
    logger.close()


@pytest.mark.parametrize(
    "level,expected",
    [
        ("spew", ["SPEW", "TRACE", "DEBUG", "INFO", "WARN", "ERROR"]),
        ("trace", ["TRACE", "DEBUG", "INFO", "WARN", "ERROR"]),
        ("debug", ["DEBUG", "INFO", "WARN", "ERROR"]),
        ("info", ["INFO", "WARN", "ERROR"]),
        ("warn", ["WARN", "ERROR"]),
        ("error", ["ERROR"]),
    ],
)
def test_file_sink_level_filtering(tmp_path, level, expected):
    """Messages below the sink level are dropped."""
    log_file = tmp_path / f"{level}.log"

    log_every_level(file_logger(tmp_path, log_file, level=level))

    content = log_file.read_text()
    for name in ["SPEW", "TRACE", "DEBUG", "INFO", "WARN", "ERROR"]:
        if name in expected:
            assert f"{name} message" in content
        else:
            assert f"{name} message" not in content


def test_sink_inherits_logger_level(tmp_path):
    """A sink without its own level uses the logger's."""
    log_file = tmp_path / "inherit.log"

    logger = setup_logger(
        log_root=tmp_path,
        job_name="test",
        console=ConsoleSink(enabled=False),
        file=FileSink(enabled=True, path=str(log_file)),
        logfire=LogfireSink(enabled=False),
        level="warn",
        instrument_httpx=False,
    )
    assert logger.file.level == "warn"

    log_every_level(logger)

    content = log_file.read_text()
    assert "INFO message" not in content
    assert "WARN message" in content


def test_level_ordering():
    """Level order: spew < trace < debug < info < warn < error < fatal."""
    names = list(LEVELS)
    assert names == [
        "spew", "trace", "debug", "info", "warn", "error", "fatal"
    ]
    values = [LEVELS[name] for name in names]
    assert values == sorted(values)
    assert len(set(values)) == len(values)


def test_level_name_round_trip():
    for name, number in LEVELS.items():
        assert level_name(number) == name
    assert level_name(0) == "unknown"


def test_default_text_format(tmp_path):
    """The default file format is timestamp, level, message."""
    log_file = tmp_path / "text.log"

    logger = file_logger(tmp_path, log_file)
    logger.info("Stage {stage} passed", stage="test")
    logger.close()

    line = log_file.read_text().splitlines()[0]
    assert " info  Stage test passed" in line
    # Caller attributes follow the message
    assert "stage='test'" in line


def test_json_format(tmp_path):
    """No template writes OpenTelemetry span JSON."""
    log_file = tmp_path / "json.log"

    logger = file_logger(tmp_path, log_file, format_template=None)
    logger.info("Test message")
    logger.close()

    content = log_file.read_text()
    assert content.startswith("{")
    assert '"name": "Test message"' in content


def test_escape_special_characters(tmp_path):
    log_file = tmp_path / "escaped.log"

    logger = file_logger(
        tmp_path,
        log_file,
        format_template="{level} {message}",
        escape_special_characters=True,
    )
    logger.info("line one\nline two\ttabbed")
    logger.close()

    content = log_file.read_text()
    assert "line one\\nline two\\ttabbed" in content


def test_invalid_template_field(tmp_path):
    log_file = tmp_path / "bad.log"

    logger = file_logger(
        tmp_path, log_file, format_template="{nonexistent} {message}"
    )
    logger.info("anything")
    logger.close()

    assert "ERROR: Invalid template field" in log_file.read_text()


def test_default_path_template(tmp_path):
    """The default path puts one log per job under log_root."""
    logger = setup_logger(
        log_root=tmp_path,
        job_name="web",
        console=ConsoleSink(enabled=False),
        file=FileSink(enabled=True),
        logfire=LogfireSink(enabled=False),
        instrument_httpx=False,
    )
    logger.info("hello")
    logger.close()

    assert "hello" in (tmp_path / "web" / "shipline.log").read_text()


def test_span_is_logged(tmp_path):
    log_file = tmp_path / "span.log"

    logger = file_logger(tmp_path, log_file)
    with logger.span("Deploy {image}", image="web:42"):
        logger.info("inside the span")
    logger.close()

    content = log_file.read_text()
    assert "Deploy web:42" in content
    assert "inside the span" in content


def test_proxy_span_before_setup(monkeypatch):
    """Spans opened before configuration are no-ops."""
    from shipline.core import log

    monkeypatch.setattr(log, "_current_logger", None)

    with log.logger.span("Deploy {image}", image="web:42"):
        log.logger.info("dropped")
