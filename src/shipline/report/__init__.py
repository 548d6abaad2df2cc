"""Build outcome reporting: log excerpt, payload and webhook delivery."""

from shipline.report.logtail import PLACEHOLDER, tail_log
from shipline.report.notifier import Notifier, report_outcome
from shipline.report.payload import BuildReport, BuildStatus, build_report

__all__ = [
    "PLACEHOLDER",
    "BuildReport",
    "BuildStatus",
    "Notifier",
    "build_report",
    "report_outcome",
    "tail_log",
]
