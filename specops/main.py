"""
SpecOps — CLI entrypoint.

Usage:
    python -m specops.main --help
    python -m specops.main openspec status
    python -m specops.main openspec init . --tools claude,cursor
"""

from __future__ import annotations

import json
import os
import sys
from pathlib import Path

import click

from specops.core.observability.logging_config import resolve_level, setup_logging

from specops import __version__


@click.group()
@click.version_option(version=__version__, prog_name="specops")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False),
    default=None,
    help="Path to specops.yml (default: auto-detect).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config_path: str | None,
) -> None:
    """SpecOps — set up and drive the OpenSpec CLI."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["debug"] = debug
    ctx.obj["config_path"] = Path(config_path) if config_path else None

    # ── Logging setup (once, at process start) ──────────────────
    level = resolve_level(
        debug=debug,
        verbose=verbose,
        quiet=quiet,
        env_level=os.environ.get("SPECOPS_LOG_LEVEL"),
    )
    setup_logging(
        level=level,
        log_file=os.environ.get("SPECOPS_LOG_FILE"),
        log_file_level=os.environ.get("SPECOPS_LOG_FILE_LEVEL"),
        quiet_third_party=not debug,
    )


@cli.group()
def config() -> None:
    """Engine configuration commands."""


@config.command("show")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def config_show(ctx: click.Context, as_json: bool) -> None:
    """Show the effective engine configuration."""
    from specops.core.config.loader import ConfigError, load_engine_config

    try:
        engine_config = load_engine_config(ctx.obj.get("config_path"))
    except ConfigError as e:
        click.secho(f"❌ {e}", fg="red")
        sys.exit(1)

    if as_json:
        click.echo(json.dumps(engine_config.model_dump(mode="json"), indent=2))
        return

    click.secho("\n⚙️  Engine configuration", fg="cyan", bold=True)
    click.echo(f"   CLI:      {engine_config.cli_command}")
    click.echo(f"   Package:  {engine_config.package}")
    click.echo(
        f"   Timeouts: probe {engine_config.probe_timeout:g}s, "
        f"detect {engine_config.detect_timeout:g}s, "
        f"list {engine_config.list_timeout:g}s"
    )
    if engine_config.env:
        env_str = ", ".join(f"{k}={v}" for k, v in sorted(engine_config.env.items()))
        click.echo(f"   Env:      {env_str}")
    click.echo()


# ── Sub-command groups ──────────────────────────────────────────

from specops.ui.cli.openspec import openspec

cli.add_command(openspec)


if __name__ == "__main__":
    cli()
