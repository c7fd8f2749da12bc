"""``agentctl policy`` — dry-run paths and commands against the workspace policy."""

from __future__ import annotations

import sys
from typing import TYPE_CHECKING

import click

from agentctl.cli_commands._output import console, print_validation_table

if TYPE_CHECKING:
    from agentctl.config import RuntimeSettings
    from agentctl.runtime.workspace.guard import WorkspaceGuard


def _guard(settings: RuntimeSettings, workspace: str) -> WorkspaceGuard:
    from agentctl.agents.adapter import BASELINE_POLICY
    from agentctl.runtime.workspace.guard import WorkspaceGuard

    return WorkspaceGuard(workspace, BASELINE_POLICY.merged_with(settings.policy))


@click.group()
def policy() -> None:
    """Inspect the effective workspace policy."""


@policy.command("check-path")
@click.argument("paths", nargs=-1, required=True)
@click.option(
    "--workspace",
    type=click.Path(file_okay=False),
    default=".",
    help="Workspace root directory.",
)
@click.option(
    "--op",
    "operation",
    type=click.Choice(["read", "write", "delete"]),
    default="read",
    help="File operation being checked.",
)
@click.pass_obj
def check_path(settings: RuntimeSettings, paths: tuple[str, ...], workspace: str, operation: str) -> None:
    """Check PATHS against the policy; exit 1 if any is denied."""
    from agentctl.runtime.workspace.models import FileOperation

    guard = _guard(settings, workspace)
    op = FileOperation(operation)

    rows = [(path, guard.validate_path(path, op)) for path in paths]
    print_validation_table(f"Paths ({op.value}) in {guard.root}", rows)

    batch = guard.validate_paths(list(paths), op)
    if not batch.allowed:
        if all(result.allowed for _, result in rows):
            console.print(f"[red]{batch.reason}[/red]")
        sys.exit(1)


@policy.command("check-command")
@click.argument("command")
@click.pass_obj
def check_command(settings: RuntimeSettings, command: str) -> None:
    """Check a shell COMMAND against the policy; exit 1 if denied."""
    result = _guard(settings, ".").validate_command(command)
    print_validation_table("Command", [(command, result)])
    if not result.allowed:
        sys.exit(1)
