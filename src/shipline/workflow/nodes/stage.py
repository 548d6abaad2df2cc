"""RunStage node - run the local stages in order."""

from __future__ import annotations

from dataclasses import dataclass

from pydantic_graph import BaseNode, GraphRunContext

from shipline.core.config import LOCAL_STAGES, State
from shipline.core.log import logger
from shipline.core.outcome import Failure


def execute_stage(
    state: State,
    stage_name: str,
    command: str,
    timeout: int,
    env: dict[str, str] | None = None,
    stdin: str | None = None,
) -> Failure | None:
    """Run one stage command through the build's StageRunner.

    Returns:
        None if the stage succeeded, otherwise the Failure to report
    """
    runner = state.runtime.pipeline.stage_runner
    if runner is None:
        raise RuntimeError("No stage runner; call prepare_build() first")

    logger.info("Running stage: {stage}", stage=stage_name)
    try:
        result = runner.run(
            stage_name, command, timeout, env=env or None, stdin=stdin
        )
    except Exception as e:
        logger.exception("Stage {stage} could not run", stage=stage_name)
        return Failure(stage=stage_name, reason=str(e) or type(e).__name__)

    state.runtime.pipeline.stage_results.append(result)

    if result.success:
        return None

    if result.timed_out:
        reason = f"timed out after {timeout}s"
    else:
        reason = f"exit code {result.returncode}"
    logger.error(
        "Stage {stage} failed: {reason}",
        stage=stage_name,
        reason=reason,
        log_file=str(result.log_file),
    )
    return Failure(stage=stage_name, reason=reason)


@dataclass
class RunStage(BaseNode[State]):
    """Run the local stage at `index`, then move to the next one."""

    index: int = 0

    async def run(
        self, ctx: GraphRunContext[State]
    ) -> RunStage | BuildImage | Report:
        """Run one local stage and route on its result.

        Returns:
            RunStage: The next local stage
            BuildImage: After the last local stage
            Report: As soon as a stage fails
        """
        if self.index >= len(LOCAL_STAGES):
            from shipline.workflow.nodes.image import BuildImage
            return BuildImage()

        pipeline = ctx.state.config.pipeline
        stage_name = LOCAL_STAGES[self.index]
        command = pipeline.commands.get(stage_name)

        if not command:
            logger.info("Skipping stage {stage}: no command", stage=stage_name)
            return RunStage(self.index + 1)

        failure = execute_stage(
            ctx.state,
            stage_name,
            command,
            pipeline.timeout,
            env=pipeline.env,
        )
        if failure is not None:
            from shipline.workflow.nodes.report import Report
            return Report(failure)

        return RunStage(self.index + 1)
