"""CLI subcommand registration."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import click


def register_commands(cli: click.Group) -> None:
    """Register all subcommands on the CLI group."""
    from agentctl.cli_commands.agent import agent
    from agentctl.cli_commands.policy import policy

    cli.add_command(agent)
    cli.add_command(policy)
