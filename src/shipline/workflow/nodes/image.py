"""BuildImage node - build and push the container image."""

from __future__ import annotations

from dataclasses import dataclass

from pydantic_graph import BaseNode, GraphRunContext

from shipline.core.config import State
from shipline.core.log import logger
from shipline.core.outcome import Failure, Success
from shipline.deploy.remote import build_image_commands
from shipline.workflow.nodes.stage import execute_stage


@dataclass
class BuildImage(BaseNode[State]):
    """Build the application image and push it to its registry."""

    async def run(self, ctx: GraphRunContext[State]) -> Deploy | Report:
        from shipline.workflow.nodes.deploy import Deploy
        from shipline.workflow.nodes.report import Report

        image = ctx.state.config.image
        if not image.reference:
            logger.error("No image reference configured")
            return Report(
                Failure(stage="build", reason="image.reference is not set")
            )

        for stage_name, command in build_image_commands(image):
            failure = execute_stage(
                ctx.state,
                stage_name,
                command,
                image.timeout,
                env=ctx.state.config.pipeline.env,
            )
            if failure is not None:
                return Report(failure)

        logger.info("Image ready: {image}", image=image.reference)
        return Deploy(previous=Success())
