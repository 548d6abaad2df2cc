"""Deploy node - replace the running container on the remote host."""

from __future__ import annotations

from dataclasses import dataclass

from pydantic_graph import BaseNode, GraphRunContext

from shipline.core.config import State
from shipline.core.log import logger
from shipline.core.outcome import Failure, PipelineOutcome, Success, should_deploy
from shipline.deploy.remote import build_ssh_command, render_deploy_script
from shipline.workflow.nodes.stage import execute_stage


@dataclass
class Deploy(BaseNode[State]):
    """Deploy the built image over SSH.

    Runs only while the previous result is unset or a success;
    otherwise the previous outcome is passed on untouched.
    """

    previous: PipelineOutcome | None = None

    async def run(self, ctx: GraphRunContext[State]) -> Report:
        from shipline.workflow.nodes.report import Report

        previous_result = self.previous.result if self.previous else None
        if not should_deploy(previous_result):
            logger.warn(
                "Skipping deploy: previous result is {result}",
                result=previous_result,
            )
            return Report(self.previous)

        config = ctx.state.config
        deploy = config.deploy
        if not deploy.enabled:
            logger.info("Deploy disabled; skipping")
            return Report(Success())

        if not deploy.host or not deploy.user:
            return Report(Failure(
                stage="deploy",
                reason="deploy.host and deploy.user must both be set",
            ))
        if not config.image.reference:
            return Report(Failure(
                stage="deploy", reason="image.reference is not set"
            ))

        with logger.span(
            "Deploy {image} to {host}",
            image=config.image.reference,
            host=deploy.host,
        ):
            failure = execute_stage(
                ctx.state,
                "deploy",
                build_ssh_command(deploy),
                deploy.timeout,
                stdin=render_deploy_script(deploy, config.image.reference),
            )
        return Report(failure or Success())
