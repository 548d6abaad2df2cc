"""Command execution using the invoke library."""

import contextlib
import io
import os
import platform
from pathlib import Path

from invoke import Context, Result
from invoke.exceptions import CommandTimedOut

from shipline.core.log import logger


class Runner(Context):
    """invoke.Context with a single execute() entry point for stages."""

    def kill(self) -> None:
        """Kill the running subprocess.

        invoke sends signal.SIGKILL, which Windows does not define.
        os.kill() on Windows takes any integer and passes it to
        TerminateProcess(), so send 9 there instead.
        """
        if platform.system() == "Windows":
            pid = self.pid if self.using_pty else self.process.pid
            with contextlib.suppress(ProcessLookupError):
                os.kill(pid, 9)
            return

        super().kill()

    def execute(
        self,
        command: str,
        cwd: Path | None = None,
        timeout: int | None = None,
        stdin: str | None = None,
        log_file: Path | None = None,
        log_level: str | None = None,
        check: bool = True,
        env: dict[str, str] | None = None,
    ) -> Result:
        """Run a shell command.

        Args:
            command: Command string to execute
            cwd: Working directory for the command
            timeout: Maximum execution time in seconds
            stdin: Text fed to the command's stdin
            log_file: Path to write combined stdout/stderr output
            log_level: Level at which to log each output line
            check: If True, raise on non-zero exit code
            env: Extra environment variables (added to os.environ)

        Returns:
            invoke.Result; exited is -1 when the command timed out

        Raises:
            invoke.UnexpectedExit: If check=True and the command
                returns non-zero
        """
        kwargs = {
            "hide": True,
            "warn": not check,
            "in_stream": False,
        }

        if timeout:
            kwargs["timeout"] = timeout

        if stdin is not None:
            kwargs["in_stream"] = io.StringIO(stdin)

        if env:
            kwargs["env"] = env

        try:
            if cwd:
                with self.cd(str(cwd)):
                    result = self.run(command, **kwargs)
            else:
                result = self.run(command, **kwargs)
        except CommandTimedOut as e:
            result = e.result
            result.exited = -1

        if log_file:
            log_file.parent.mkdir(parents=True, exist_ok=True)
            log_file.write_text(result.stdout + result.stderr)

        if log_level:
            for line in result.stdout.splitlines():
                logger.log(log_level, _literal(line.rstrip()))
            for line in result.stderr.splitlines():
                logger.log(log_level, _literal(line.rstrip()))

        return result


def _literal(text: str) -> str:
    """Escape braces so command output is not read as a log template."""
    return text.replace("{", "{{").replace("}", "}}")
