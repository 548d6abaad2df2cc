"""Report node - the post hook that sends the build report."""

from __future__ import annotations

from dataclasses import dataclass

from pydantic_graph import BaseNode, End, GraphRunContext

from shipline.core.config import State
from shipline.core.log import logger
from shipline.core.outcome import PipelineOutcome
from shipline.report.notifier import report_outcome


@dataclass
class Report(BaseNode[State, None, PipelineOutcome]):
    """Send the build report for the final outcome and end the run."""

    outcome: PipelineOutcome

    async def run(
        self, ctx: GraphRunContext[State]
    ) -> End[PipelineOutcome]:
        """Report the outcome; delivery failures do not change it.

        Returns:
            End: The pipeline outcome
        """
        report_outcome(
            ctx.state.config,
            self.outcome,
            ctx.state.runtime.pipeline.build_log,
        )
        logger.info("Pipeline finished: {result}", result=self.outcome.result)
        return End(self.outcome)
