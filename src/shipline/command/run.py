"""Run command - the full build and deploy pipeline."""

from pydantic import BaseModel, Field

from shipline.core.log import logger
from shipline.core.outcome import Success


class RunCommand(BaseModel):
    """Run every stage in order, deploy on success, then report.

    Stages: checkout, setup, install, migrate, test, lint,
    collectstatic, image build/push, remote deploy. The first failing
    stage stops the pipeline and skips the deploy. A build report is
    sent either way.
    """

    clean: bool = Field(
        default=True,
        description="Start a fresh build.log for this build number",
    )

    async def run_workflow(self, state: "State") -> int:
        """Run the pipeline workflow.

        Args:
            state: State instance

        Returns:
            Exit code (0=success, 1=failure)
        """
        from shipline.workflow.graph import create_workflow, prepare_build
        from shipline.workflow.nodes.stage import RunStage

        prepare_build(state, clean=self.clean)

        workflow = create_workflow()
        result = await workflow.run(RunStage(), state=state)
        outcome = result.output

        if isinstance(outcome, Success):
            logger.info("Build succeeded")
            return 0

        logger.error("Build failed: {message}", message=outcome.describe())
        return 1
