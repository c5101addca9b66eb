"""
OpenSpec CLI orchestration — detect, install, and run ``openspec``.

Layers (leaves first):
    runner       — spawn a process, stream lines, report the exit
    prober       — ``openspec --version`` → ToolAvailability
    installers   — package manager catalog + global install
    tools        — ``openspec init --help`` → capability names
    init         — ``openspec init --tools ...`` in a project
    output_bus   — fan-out of tagged output lines
    toolchain    — the operation surface bundling the above
    session      — per-path state machine sequencing everything

Usage::

    from specops.core.services.openspec import SessionManager

    manager = SessionManager()
    session = await manager.open("/path/to/repo")
    if session.state.phase == SessionPhase.AVAILABLE:
        session.set_mode(ToolSelectionMode.ALL)
        await session.invoke()
"""

from specops.core.services.openspec.errors import (
    LaunchError,
    ListingFailed,
    OrchestrationError,
    PreconditionViolation,
    ProbeInconclusive,
)
from specops.core.services.openspec.output_bus import OutputBus, Subscription, output_bus
from specops.core.services.openspec.runner import ProcessRunner
from specops.core.services.openspec.session import OpenSpecSession, SessionManager
from specops.core.services.openspec.toolchain import OpenSpecToolchain

__all__ = [
    "LaunchError",
    "ListingFailed",
    "OpenSpecSession",
    "OpenSpecToolchain",
    "OrchestrationError",
    "OutputBus",
    "PreconditionViolation",
    "ProbeInconclusive",
    "ProcessRunner",
    "SessionManager",
    "Subscription",
    "output_bus",
]
