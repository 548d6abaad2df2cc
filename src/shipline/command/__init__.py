"""CLI command modules for shipline."""

from shipline.command.deploy import DeployCommand
from shipline.command.notify import NotifyCommand
from shipline.command.run import RunCommand

__all__ = ["DeployCommand", "NotifyCommand", "RunCommand"]
