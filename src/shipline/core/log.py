"""Logger with composable output sinks, built on logfire.

Everything logs through the module-level `logger`. Config builds the
real Logger once configuration has loaded; until then, and in code
that runs without configuration, calls are dropped.

    logger.info("Running stage: {stage}", stage="test")
"""

from __future__ import annotations

import contextlib
import os
from abc import abstractmethod
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from opentelemetry.proto.logs.v1 import logs_pb2
from opentelemetry.sdk.trace import ReadableSpan
from opentelemetry.sdk.trace.export import SpanExporter, SpanExportResult
from pydantic import BaseModel, Field, PrivateAttr, model_validator

from shipline.core.base import BaseConfig

# Private storage for the configured logger instance
_current_logger: Logger | None = None

# Level names ordered from most to least verbose, mapped to
# OpenTelemetry severity numbers.
LEVELS = {
    'spew': logs_pb2.SEVERITY_NUMBER_TRACE,
    'trace': logs_pb2.SEVERITY_NUMBER_TRACE3,
    'debug': logs_pb2.SEVERITY_NUMBER_DEBUG,
    'info': logs_pb2.SEVERITY_NUMBER_INFO,
    'warn': logs_pb2.SEVERITY_NUMBER_WARN,
    'error': logs_pb2.SEVERITY_NUMBER_ERROR,
    'fatal': logs_pb2.SEVERITY_NUMBER_FATAL,
}

# Span attributes added by logfire/OpenTelemetry rather than the caller
_INTERNAL_PREFIXES = (
    'otel.', 'telemetry.', 'service.', 'process.', 'logfire.', 'code.',
)

_ESCAPES = str.maketrans({
    '\\': '\\\\',
    '\n': '\\n',
    '\r': '\\r',
    '\t': '\\t',
})


def _discard(*args, **kwargs):  # noqa: ARG001
    return None


class _LoggerProxy:
    """Stands in for the configured Logger, wherever it was imported."""

    def __getattr__(self, name):
        if _current_logger is None:
            if name == "span":
                return lambda *args, **kwargs: contextlib.nullcontext()
            return _discard
        return getattr(_current_logger, name)

    def __enter__(self):
        if _current_logger is not None:
            _current_logger.__enter__()
        return self

    def __exit__(self, *exc_info):
        if _current_logger is not None:
            _current_logger.__exit__(*exc_info)
        return False


logger = _LoggerProxy()


def level_name(level_num: int) -> str:
    """Map an OpenTelemetry severity number back to a level name."""
    for name in reversed(LEVELS):
        if level_num >= LEVELS[name]:
            return name
    return "unknown"


def _severity(span: ReadableSpan) -> int:
    return (span.attributes or {}).get(
        'logfire.level_num', logs_pb2.SEVERITY_NUMBER_INFO
    )


class LevelFilteringExporter(SpanExporter):
    """Wrap an exporter, dropping spans below `min_level`."""

    def __init__(self, exporter: SpanExporter, min_level: str):
        self._exporter = exporter
        self._min_severity = LEVELS.get(min_level.lower(), LEVELS['info'])

    def export(self, spans: list[ReadableSpan]) -> SpanExportResult:
        kept = [s for s in spans if _severity(s) >= self._min_severity]
        if not kept:
            return SpanExportResult.SUCCESS
        return self._exporter.export(kept)

    def shutdown(self) -> None:
        self._exporter.shutdown()

    def force_flush(self, timeout_millis: int = 30000) -> bool:
        return self._exporter.force_flush(timeout_millis)


class Sink(BaseConfig):
    """Base class for log output sinks.

    close() is reached through the BaseCloseable cascade when the
    owning Logger closes.
    """

    enabled: bool = Field(default=True, description="Enable this sink")
    level: str | None = Field(
        default=None,
        description=(
            "Log level for this sink. If None, inherits Logger.level. "
            "Valid: spew, trace, debug, info, warn, error, fatal"
        )
    )
    escape_special_characters: bool = Field(
        default=False,
        description="Escape newlines/tabs so each record is one line"
    )
    format_template: str | None = Field(
        default=None,
        description=(
            "Format template (None for JSON). Fields: timestamp, level, "
            "message, stage, location, filepath, lineno, function"
        )
    )

    _processor: Any = PrivateAttr(default=None)

    def _format_span(self, span: ReadableSpan) -> str:
        """Render one span as a line of text, or as JSON."""
        if not self.format_template:
            return span.to_json() + os.linesep

        attrs = dict(span.attributes or {})
        message = attrs.get("logfire.msg", span.name)
        if self.escape_special_characters:
            message = message.translate(_ESCAPES)
        filepath = attrs.get("code.filepath", "")
        lineno = attrs.get("code.lineno", "")

        try:
            line = self.format_template.format(
                timestamp=datetime.fromtimestamp(
                    span.start_time / 1e9, tz=UTC
                ),
                level=level_name(_severity(span)),
                message=message,
                stage=attrs.get("stage", ""),
                location=f"{filepath}:{lineno}" if filepath else "",
                filepath=filepath,
                lineno=lineno,
                function=attrs.get("code.function", ""),
            )
        except KeyError as e:
            return f"ERROR: Invalid template field {e}\n"

        # Caller attributes (logger.info(msg, stage=...)) follow the
        # message so a build log line carries its context
        extra = sorted(
            (key, value) for key, value in attrs.items()
            if not key.startswith(_INTERNAL_PREFIXES)
        )
        if extra:
            line += " │ " + " ".join(f"{k}={v!r}" for k, v in extra)
        return line + "\n"

    @abstractmethod
    def create_processor(self, log_root: Path, job_name: str):
        """Return an OpenTelemetry span processor, or None."""

    def close(self):
        if self._processor:
            with contextlib.suppress(Exception):
                self._processor.shutdown()


class ConsoleSink(Sink):
    """Console output, rendered by logfire itself."""

    verbose: bool = Field(
        default=False,
        description="Show full span details"
    )
    colors: str = Field(
        default="auto",
        description="Color mode: auto, always, never"
    )

    def create_processor(self, log_root: Path, job_name: str):
        return None


class FileSink(Sink):
    """One text log per job, kept beside the build logs."""

    enabled: bool = Field(
        default=False,
        description="Enable file logging"
    )
    path: str = Field(
        default="{log_root}/{job_name}/shipline.log",
        description="Log file path; {log_root} and {job_name} expand"
    )
    format_template: str | None = Field(
        default="{timestamp:%Y-%m-%d %H:%M:%S} {level:<5} {message}",
        description="Format template (None for JSON)"
    )

    _file: Any = PrivateAttr(default=None)

    def create_processor(self, log_root: Path, job_name: str):
        from opentelemetry.sdk.trace.export import (
            BatchSpanProcessor,
            ConsoleSpanExporter,
        )

        log_path = Path(
            self.path.format(log_root=log_root, job_name=job_name)
        )
        log_path.parent.mkdir(parents=True, exist_ok=True)

        # Line buffered so a killed build still leaves its log behind
        self._file = open(log_path, "a", buffering=1, encoding="utf-8")  # noqa: SIM115

        return BatchSpanProcessor(
            LevelFilteringExporter(
                ConsoleSpanExporter(out=self._file,
                                    formatter=self._format_span),
                self.level or "info",
            )
        )

    def close(self):
        """Flush pending spans, then close the file."""
        super().close()
        if self._file is None or self._file.closed:
            return
        with contextlib.suppress(OSError):
            self._file.flush()
            self._file.close()


class LogfireSink(Sink):
    """Logfire.dev cloud sink."""

    enabled: bool = Field(
        default=False,
        description="Send telemetry to logfire.dev cloud"
    )
    token: str | None = Field(
        default=None,
        description="API token (or use LOGFIRE_TOKEN env var)"
    )

    def create_processor(self, log_root: Path, job_name: str):
        """Configured globally through logfire.configure()."""
        return None


class Logger(BaseConfig):
    """Logger with console, file and logfire sinks.

    Closing the logger closes every sink through the BaseCloseable
    cascade.
    """

    level: str = Field(
        default="info",
        description=(
            "Default log level for sinks that do not set their own. "
            "Valid: spew, trace, debug, info, warn, error, fatal"
        )
    )
    instrument_httpx: bool = Field(
        default=True,
        description="Trace outgoing HTTP requests (build notifications)"
    )
    console: ConsoleSink = Field(
        default_factory=ConsoleSink,
        description="Console output"
    )
    file: FileSink = Field(
        default_factory=FileSink,
        description="Per-job log file"
    )
    logfire: LogfireSink = Field(
        default_factory=LogfireSink,
        description="Logfire.dev cloud"
    )

    @model_validator(mode='before')
    @classmethod
    def _cascade_level_to_sinks(cls, data: Any) -> Any:
        """Give sinks without their own level the logger's level."""
        if not isinstance(data, dict):
            return data

        data = dict(data)
        default_level = data.get("level", "info")
        for name in ("console", "file"):
            sink = data.get(name)
            if sink is None:
                data[name] = {"level": default_level}
            elif isinstance(sink, dict) and sink.get("level") is None:
                data[name] = {**sink, "level": default_level}
            elif isinstance(sink, BaseModel) and sink.level is None:
                data[name] = sink.model_copy(update={"level": default_level})
        return data

    def setup(self, log_root: Path, job_name: str):
        """Create sink processors and configure logfire.

        Called by setup_logger() once configuration has loaded.
        """
        import logfire
        from logfire import ConsoleOptions

        processors = []
        for sink in (self.console, self.file, self.logfire):
            if not sink.enabled:
                continue
            sink._processor = sink.create_processor(log_root, job_name)
            if sink._processor is not None:
                processors.append(sink._processor)

        console_config = False
        if self.console.enabled:
            # logfire's console has no spew level
            console_level = self.console.level or self.level
            if console_level == "spew":
                console_level = "trace"
            console_config = ConsoleOptions(
                min_log_level=console_level,
                verbose=self.console.verbose,
                colors=self.console.colors,
                include_timestamps=True,
            )

        logfire.configure(
            service_name=f"shipline-{job_name}",
            send_to_logfire=self.logfire.enabled,
            token=self.logfire.token if self.logfire.enabled else None,
            console=console_config,
            additional_span_processors=processors or None,
        )

        if self.instrument_httpx:
            logfire.instrument_httpx()

    def log(self, level: str, msg: str, **kwargs):
        """Log at a named level; kwargs fill the message template."""
        import logfire
        logfire.log(
            level=LEVELS.get(level.lower(), LEVELS['info']),
            msg_template=msg,
            attributes=kwargs or None,
        )

    def spew(self, msg: str, **kwargs):
        """Below trace: one record per line of command output."""
        self.log('spew', msg, **kwargs)

    def trace(self, msg: str, **kwargs):
        self.log('trace', msg, **kwargs)

    def debug(self, msg: str, **kwargs):
        self.log('debug', msg, **kwargs)

    def info(self, msg: str, **kwargs):
        self.log('info', msg, **kwargs)

    def warn(self, msg: str, **kwargs):
        self.log('warn', msg, **kwargs)

    warning = warn

    def error(self, msg: str, **kwargs):
        self.log('error', msg, **kwargs)

    def exception(self, msg: str, **kwargs):
        """Log an error with the active exception attached."""
        import logfire
        logfire.exception(msg, **kwargs)

    def span(self, msg: str, **kwargs):
        """Open a logfire span:

            with logger.span("Deploy to {host}", host=host):
                ...
        """
        import logfire
        return logfire.span(msg, **kwargs)


def setup_logger(
    log_root: Path,
    job_name: str,
    console: ConsoleSink | None = None,
    file: FileSink | None = None,
    logfire: LogfireSink | None = None,
    level: str = "info",
    instrument_httpx: bool = True,
) -> Logger:
    """Replace the global logger, closing the previous one.

    Args:
        log_root: Root directory for log files
        job_name: Pipeline job name (names the log file and service)
        console: Console sink (defaults if None)
        file: File sink (defaults if None)
        logfire: Logfire sink (defaults if None)
        level: Level for sinks that do not set their own
        instrument_httpx: Trace outgoing HTTP requests

    Returns:
        The new global Logger
    """
    global _current_logger

    if _current_logger is not None:
        _current_logger.close()

    _current_logger = Logger(
        level=level,
        instrument_httpx=instrument_httpx,
        console=console or ConsoleSink(),
        file=file or FileSink(),
        logfire=logfire or LogfireSink(),
    )
    _current_logger.setup(log_root, job_name)
    return _current_logger
