"""agentctl CLI entrypoint."""

from __future__ import annotations

import logging
import sys

import click

from agentctl import __version__
from agentctl.config import ConfigError, load_settings

_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


@click.group()
@click.version_option(version=__version__, prog_name="agentctl")
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False),
    default=None,
    help="Settings file (defaults to ./agentctl.yaml when present).",
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"], case_sensitive=False),
    default=None,
    help="Override the configured log level.",
)
@click.pass_context
def main(ctx: click.Context, config_path: str | None, log_level: str | None) -> None:
    """agentctl — run autonomous coding agents under workspace controls."""
    from agentctl.cli_commands._output import console

    try:
        settings = load_settings(config_path)
    except ConfigError as exc:
        console.print(f"[red]Configuration error:[/red] {exc}")
        sys.exit(1)

    logging.basicConfig(level=(log_level or settings.log_level).upper(), format=_LOG_FORMAT)

    if settings.telemetry.enabled:
        from agentctl.utils.telemetry import configure_from_settings

        try:
            configure_from_settings(settings.telemetry)
        except ImportError as exc:
            console.print(f"[yellow]Telemetry disabled:[/yellow] {exc}")

    ctx.obj = settings


# Register subcommands
from agentctl.cli_commands import register_commands  # noqa: E402

register_commands(main)

if __name__ == "__main__":
    main()
