"""Stage runner with log management."""

from datetime import datetime
from pathlib import Path

from shipline.core.result import StageResult
from shipline.core.runner import Runner


class StageRunner:
    """Execute stage commands and keep their logs.

    Each stage gets its own timestamped log file. The same output is
    appended to the build's combined build.log, which is what build
    notifications excerpt.
    """

    def __init__(self, workdir: Path, build_dir: Path):
        """Initialize stage runner.

        Args:
            workdir: Working directory for stage commands
            build_dir: Directory for this build's logs
        """
        self.workdir = workdir
        self.build_dir = build_dir
        self.runner = Runner()

    @property
    def build_log(self) -> Path:
        return self.build_dir / "build.log"

    def run(
        self,
        stage_name: str,
        command: str,
        timeout: int,
        env: dict[str, str] | None = None,
        stdin: str | None = None,
    ) -> StageResult:
        """Run a stage command and record its output.

        Args:
            stage_name: Name of the stage (used in log filename)
            command: Shell command to execute
            timeout: Timeout in seconds
            env: Extra environment variables
            stdin: Text fed to the command's stdin

        Returns:
            StageResult with success status, log file, returncode and
            timestamp
        """
        timestamp = datetime.now()
        log_file = (
            self.build_dir
            / f"{stage_name}-{timestamp.strftime('%Y%m%d-%H%M%S')}.log"
        )

        self.build_dir.mkdir(parents=True, exist_ok=True)

        result = self.runner.execute(
            command,
            cwd=self.workdir,
            timeout=timeout,
            stdin=stdin,
            log_file=log_file,
            log_level="debug",
            check=False,
            env=env,
        )

        with open(self.build_log, "a", encoding="utf-8") as f:
            f.write(f"==> {stage_name}: {command}\n")
            f.write(result.stdout)
            f.write(result.stderr)
            if result.exited == -1:
                f.write(f"==> {stage_name} timed out after {timeout}s\n")
            elif result.exited != 0:
                f.write(
                    f"==> {stage_name} failed with exit code "
                    f"{result.exited}\n"
                )

        return StageResult(
            stage_name=stage_name,
            success=(result.exited == 0),
            log_file=log_file,
            returncode=result.exited,
            timestamp=timestamp,
        )
