"""
CLI commands for the OpenSpec CLI — status, install, and project init.

Thin wrappers over ``specops.core.services.openspec``.  This module is
the error boundary: engine errors become a red message and exit 1.
"""

from __future__ import annotations

import asyncio
import json
import sys
from pathlib import Path
from typing import TYPE_CHECKING

import click

from specops.core.models.openspec import (
    InstallerName,
    OperationKind,
    OutputLine,
    OutputStream,
    ToolSelectionMode,
)

if TYPE_CHECKING:
    from specops.core.services.openspec.session import OpenSpecSession


def _toolchain(ctx: click.Context):
    """Build a toolchain from the resolved engine config."""
    from specops.core.config.loader import ConfigError, load_engine_config
    from specops.core.services.openspec import OpenSpecToolchain

    try:
        engine_config = load_engine_config(ctx.obj.get("config_path"))
    except ConfigError as e:
        click.secho(f"❌ {e}", fg="red")
        sys.exit(1)
    return OpenSpecToolchain(config=engine_config)


def _echo_line(line: OutputLine) -> None:
    if line.stream == OutputStream.STDERR:
        click.secho(f"   {line.text}", fg="red")
    else:
        click.echo(f"   {line.text}")


def _fail(message: str) -> None:
    click.secho(f"❌ {message}", fg="red")
    sys.exit(1)


@click.group()
def openspec() -> None:
    """OpenSpec CLI — availability, install, tools, project init."""


# ── Detection ───────────────────────────────────────────────────

@openspec.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def status(ctx: click.Context, as_json: bool) -> None:
    """Check whether the OpenSpec CLI is installed."""
    toolchain = _toolchain(ctx)
    availability = asyncio.run(toolchain.get_availability())

    if as_json:
        click.echo(json.dumps(availability.model_dump(mode="json"), indent=2))
        return

    if availability.available:
        click.secho(f"✅ OpenSpec CLI {availability.version or '(unknown version)'}", fg="green")
    else:
        click.secho("❌ OpenSpec CLI not found", fg="red")
        click.echo("   Install it with: specops openspec install")
        sys.exit(1)


@openspec.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def installers(ctx: click.Context, as_json: bool) -> None:
    """List package managers that can install the OpenSpec CLI."""
    toolchain = _toolchain(ctx)
    descriptors = asyncio.run(toolchain.detect_installers())

    if as_json:
        click.echo(json.dumps([d.model_dump(mode="json") for d in descriptors], indent=2))
        return

    for d in descriptors:
        if d.installed:
            click.secho(f"  ✅ {d.name.value:<5}", fg="green", nl=False)
            click.echo(f" {d.version or ''}")
        else:
            click.secho(f"  ❌ {d.name.value:<5} not installed", fg="yellow")

    if not any(d.installed for d in descriptors):
        click.echo("\n   Install npm, bun, yarn, or pnpm to continue.")


@openspec.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def tools(ctx: click.Context, as_json: bool) -> None:
    """List the AI tools the installed OpenSpec CLI supports."""
    from specops.core.services.openspec import ListingFailed

    toolchain = _toolchain(ctx)
    try:
        names = asyncio.run(toolchain.list_capabilities())
    except ListingFailed as e:
        _fail(str(e))

    if as_json:
        click.echo(json.dumps(names, indent=2))
        return

    if not names:
        click.secho("The OpenSpec CLI reported no tools.", fg="yellow")
        return
    for name in names:
        click.echo(f"  • {name}")


# ── Install ─────────────────────────────────────────────────────

@openspec.command()
@click.option(
    "--manager",
    "-m",
    type=click.Choice([n.value for n in InstallerName]),
    default=None,
    help="Package manager to use (default: first one installed).",
)
@click.pass_context
def install(ctx: click.Context, manager: str | None) -> None:
    """Install the OpenSpec CLI globally."""
    from specops.core.models.session import SessionPhase, SubFlowStatus
    from specops.core.services.openspec import OrchestrationError, SessionManager

    toolchain = _toolchain(ctx)

    async def _run() -> str | None:
        sessions = SessionManager(toolchain)
        try:
            session = await sessions.open(Path.cwd())
            if session.state.phase == SessionPhase.AVAILABLE:
                version = session.state.availability.version or "unknown version"
                click.secho(f"✅ OpenSpec CLI already installed ({version})", fg="green")
                return None

            chosen = session.check_install(manager)
            click.secho(f"📦 Installing OpenSpec CLI with {chosen.value}...", fg="cyan")
            with toolchain.bus.subscribe(_echo_line, operation=OperationKind.INSTALL):
                await session.install(chosen)

            record = session.state.install
            if record.status != SubFlowStatus.SUCCESS:
                return record.error or "Install failed."
            version = session.state.availability.version or "unknown version"
            click.secho(f"✅ OpenSpec CLI installed ({version})", fg="green")
            return None
        finally:
            sessions.close_all()

    try:
        error = asyncio.run(_run())
    except OrchestrationError as e:
        error = str(e)
    if error:
        _fail(error)


# ── Init ────────────────────────────────────────────────────────

def _apply_tools_option(session: OpenSpecSession, tools_opt: str) -> None:
    value = tools_opt.strip()
    if value in (ToolSelectionMode.ALL, ToolSelectionMode.NONE):
        session.set_mode(value)
        return
    names = [n.strip() for n in value.split(",") if n.strip()]
    session.select_capabilities(names)


@openspec.command()
@click.argument("path", type=click.Path(file_okay=False), default=".")
@click.option(
    "--tools",
    "tools_opt",
    default=ToolSelectionMode.NONE.value,
    show_default=True,
    help='"all", "none", or a comma-separated list of tool names.',
)
@click.pass_context
def init(ctx: click.Context, path: str, tools_opt: str) -> None:
    """Initialize OpenSpec in the project at PATH."""
    from specops.core.models.session import SessionPhase, SubFlowStatus
    from specops.core.services.openspec import OrchestrationError, SessionManager
    from specops.core.services.project_discovery import DiscoveryError, discover_project

    toolchain = _toolchain(ctx)
    target = Path(path).resolve()

    async def _run() -> str | None:
        sessions = SessionManager(toolchain)
        try:
            session = await sessions.open(target)
            if session.state.phase != SessionPhase.AVAILABLE:
                return "OpenSpec CLI is not installed. Run 'specops openspec install' first."
            if session.state.capabilities_error:
                return session.state.capabilities_error

            _apply_tools_option(session, tools_opt)
            click.secho(f"🚀 Initializing OpenSpec in {target}", fg="cyan")
            with toolchain.bus.subscribe(_echo_line, operation=OperationKind.INIT):
                await session.invoke()

            record = session.state.init
            if record.status != SubFlowStatus.SUCCESS:
                return record.error or "OpenSpec init failed."
            return None
        finally:
            sessions.close_all()

    try:
        error = asyncio.run(_run())
    except OrchestrationError as e:
        error = str(e)
    if error:
        _fail(error)

    try:
        discovery = discover_project(target)
    except DiscoveryError as e:
        click.secho(f"⚠️  Initialized, but project discovery failed: {e.message}", fg="yellow")
        return

    marker = "present" if discovery.openspec_present else "missing"
    color = "green" if discovery.openspec_present else "yellow"
    click.secho(f"✅ {discovery.repo_name}: openspec/ {marker}", fg=color)
