"""Workflow nodes for the pipeline state machine."""

from shipline.workflow.nodes.deploy import Deploy
from shipline.workflow.nodes.image import BuildImage
from shipline.workflow.nodes.report import Report
from shipline.workflow.nodes.stage import RunStage

__all__ = [
    "RunStage",
    "BuildImage",
    "Deploy",
    "Report",
]
