"""Deploy command - deploy an already-built image and report."""

from pydantic import BaseModel

from shipline.core.log import logger
from shipline.core.outcome import Success


class DeployCommand(BaseModel):
    """Deploy the configured image to the remote host, then report.

    Skips checkout, tests and the image build; use it to redeploy an
    image that is already in the registry.
    """

    async def run_workflow(self, state: "State") -> int:
        """Run the deploy and report nodes only.

        Returns:
            Exit code (0=success, 1=failure)
        """
        from shipline.workflow.graph import create_workflow, prepare_build
        from shipline.workflow.nodes.deploy import Deploy

        prepare_build(state, clean=False)

        workflow = create_workflow()
        result = await workflow.run(Deploy(), state=state)

        if isinstance(result.output, Success):
            logger.info("Deploy complete")
            return 0
        return 1
