"""Notify command - send a build report on its own."""

from pydantic import BaseModel, Field

from shipline.core.outcome import Failure, Success
from shipline.report.payload import BuildStatus


class NotifyCommand(BaseModel):
    """Send a build report for the configured job and build number.

    Meant as a post-build hook for pipelines driven by another CI
    system. Always exits 0: a failed delivery must not turn a
    finished build into a failed one.
    """

    status: BuildStatus = Field(
        description="Build outcome to report: success or failure",
    )
    message: str | None = Field(
        default=None,
        description="Failure detail (ignored for success)",
    )
    stage: str | None = Field(
        default=None,
        description="Stage that failed (ignored for success)",
    )

    async def run_workflow(self, state: "State") -> int:
        from shipline.core.logdir import BuildLogDir
        from shipline.report.notifier import report_outcome

        config = state.config
        if self.status is BuildStatus.SUCCESS:
            outcome = Success()
        else:
            outcome = Failure(stage=self.stage, reason=self.message)

        log_dir = BuildLogDir(
            config.log_root, config.job.name, config.job.build_number
        )
        report_outcome(config, outcome, log_dir.log_file)
        return 0
