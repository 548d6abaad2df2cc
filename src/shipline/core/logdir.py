"""Per-build log directory management."""

from pathlib import Path


class BuildLogDir:
    """Log directory for one build of one job.

    The directory is keyed by job name and build number, so a later
    `shipline notify` for the same build finds the same build.log.
    """

    def __init__(self, base_dir: Path, job_name: str, build_number: str):
        """Create the log directory for this build.

        Args:
            base_dir: Base directory for all build logs
            job_name: Pipeline job name
            build_number: Build number within the job
        """
        self.run_dir = base_dir / job_name / f"build-{build_number}"
        self.run_dir.mkdir(parents=True, exist_ok=True)
        self.log_file = self.run_dir / "build.log"

    def reset(self) -> None:
        """Start a fresh combined build log."""
        self.log_file.write_text("", encoding="utf-8")
