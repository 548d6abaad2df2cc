#!/usr/bin/env python3
"""Shipline CLI - build, deploy and report a web application."""

import asyncio
import sys

from pydantic_settings import CliApp, CliSubCommand, get_subcommand

from shipline.command.deploy import DeployCommand
from shipline.command.notify import NotifyCommand
from shipline.command.run import RunCommand
from shipline.core.config import State
from shipline.core.log import logger


class CliState(State):
    """Build, test, containerise and deploy a web application, then
    report the outcome to a webhook.

    Configuration sources (in priority order):
    1. Command-line arguments (--config.deploy.host value)
    2. Environment variables
       (SHIPLINE_CONFIG__NOTIFY__TOKEN=value)
    3. .env file for secrets
    4. shipline.yaml in the current directory (and --include files)

    The [JSON] options set several values at once:
      --config.deploy '{"host": "app.example.com", "user": "deploy"}'
    """

    run: CliSubCommand[RunCommand]
    deploy: CliSubCommand[DeployCommand]
    notify: CliSubCommand[NotifyCommand]

    def cli_cmd(self):
        """Dispatch to the active subcommand, or show help."""
        subcommand = get_subcommand(self, is_required=False)

        if subcommand is None:
            CliApp.run(CliState, cli_args=['--help'])
            sys.exit(1)

        # Close log sinks on the way out, whatever the outcome
        with logger:
            exit_code = asyncio.run(subcommand.run_workflow(self))
            raise SystemExit(exit_code)


def main():
    """Main entry point for CLI."""
    CliApp.run(CliState)


if __name__ == "__main__":
    main()
