"""Tests for logger cleanup cascade via BaseCloseable."""

import pytest

from shipline.core.log import (
    ConsoleSink,
    FileSink,
    Logger,
    LogfireSink,
    setup_logger,
)


@pytest.fixture(autouse=True)
def restore_console_logger(tmp_path):
    yield
    setup_logger(
        log_root=tmp_path,
        job_name="test",
        console=ConsoleSink(level="debug"),
        file=FileSink(enabled=False),
        instrument_httpx=False,
    )


def make_logger(log_file) -> Logger:
    return Logger(
        instrument_httpx=False,
        console=ConsoleSink(enabled=False),
        file=FileSink(enabled=True, path=str(log_file)),
        logfire=LogfireSink(enabled=False),
    )


def test_logger_closes_file_via_context_manager(tmp_path):
    logger = make_logger(tmp_path / "test.log")
    logger.setup(log_root=tmp_path, job_name="test")

    assert logger.file._file is not None
    assert not logger.file._file.closed

    with logger:
        logger.info("test message")

    assert logger.file._file.closed


def test_logger_closes_on_exception(tmp_path):
    logger = make_logger(tmp_path / "test.log")
    logger.setup(log_root=tmp_path, job_name="test")

    with pytest.raises(ValueError), logger:
        logger.info("before exception")
        raise ValueError("test exception")

    assert logger.file._file.closed


def test_config_cascade_closes_logger(tmp_path):
    """Config.close() closes the global logger and its own Logger."""
    from shipline.core.config import Config

    config = Config(
        log_root=tmp_path,
        logger=make_logger(tmp_path / "cascade.log"),
        job={"name": "cascade"},
    )

    # The validator built the global logger from this config
    from shipline.core import log
    active = log._current_logger
    assert active is not None
    assert active.file._file is not None
    assert not active.file._file.closed

    config.close()

    assert active.file._file.closed


def test_failing_sink_close_does_not_stop_cascade(tmp_path, capsys):
    """A sink that fails to close is reported; the others still close."""

    class BrokenSink(ConsoleSink):
        def close(self):
            raise RuntimeError("boom")

    logger = Logger(
        instrument_httpx=False,
        console=BrokenSink(enabled=False),
        file=FileSink(enabled=True, path=str(tmp_path / "broken.log")),
        logfire=LogfireSink(enabled=False),
    )
    logger.setup(log_root=tmp_path, job_name="test")

    logger.close()

    assert logger.file._file.closed
    assert "Error closing console: boom" in capsys.readouterr().err


def test_file_written_and_flushed_on_close(tmp_path):
    log_file = tmp_path / "written.log"
    logger = make_logger(log_file)
    logger.setup(log_root=tmp_path, job_name="write-test")

    with logger:
        logger.info("test message to file")

    assert "test message to file" in log_file.read_text()
