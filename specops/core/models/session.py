"""
Session state — the aggregate owned by one OpenSpec session.

One ``SessionState`` exists per target path. Only the session state
machine mutates it; everything else returns values that get folded in.

Phase machine:
    UNKNOWN → PROBING → AVAILABLE | MISSING

Sub-flows (install, init), independently:
    IDLE → RUNNING → SUCCESS | FAILED
    SUCCESS | FAILED → RUNNING   (explicit re-invocation only)
"""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, Field

from specops.core.models.openspec import (
    InstallerDescriptor,
    InstallerName,
    OperationOutcome,
    OutputLine,
    ToolAvailability,
    ToolSelectionMode,
)


class SessionPhase(StrEnum):
    """Coarse availability phase of the OpenSpec CLI."""

    UNKNOWN = "unknown"
    PROBING = "probing"
    AVAILABLE = "available"
    MISSING = "missing"


class SubFlowStatus(StrEnum):
    IDLE = "idle"
    RUNNING = "running"
    SUCCESS = "success"
    FAILED = "failed"


class FailureKind(StrEnum):
    """Why a sub-flow ended in FAILED."""

    LAUNCH_ERROR = "launch_error"
    NON_ZERO_EXIT = "non_zero_exit"
    STILL_UNAVAILABLE = "still_unavailable"
    INTERRUPTED = "interrupted"


class SubFlowRecord(BaseModel):
    """In-flight / error / log record of one sub-flow."""

    status: SubFlowStatus = SubFlowStatus.IDLE
    run_id: str | None = None   # set when the run starts
    error: str | None = None
    failure: FailureKind | None = None
    log: list[OutputLine] = Field(default_factory=list)
    outcome: OperationOutcome | None = None

    @property
    def running(self) -> bool:
        return self.status == SubFlowStatus.RUNNING

    @property
    def accepts_run(self) -> bool:
        """Idle or terminal — a new run may start."""
        return self.status != SubFlowStatus.RUNNING


class SessionState(BaseModel):
    """Everything the orchestrator knows about one target path."""

    target_path: str

    # ── Availability ─────────────────────────────────────────────
    phase: SessionPhase = SessionPhase.UNKNOWN
    availability: ToolAvailability | None = None   # None = unknown / probing

    # ── Installers ───────────────────────────────────────────────
    installers: list[InstallerDescriptor] = Field(default_factory=list)
    selected_installer: InstallerName | None = None
    installers_error: str | None = None

    # ── Capabilities ─────────────────────────────────────────────
    capabilities: list[str] = Field(default_factory=list)
    capabilities_loading: bool = False
    capabilities_error: str | None = None
    mode: ToolSelectionMode = ToolSelectionMode.NONE
    selected: list[str] = Field(default_factory=list)

    # ── Sub-flows ────────────────────────────────────────────────
    install: SubFlowRecord = Field(default_factory=SubFlowRecord)
    init: SubFlowRecord = Field(default_factory=SubFlowRecord)

    def installer(self, name: InstallerName) -> InstallerDescriptor | None:
        """Return the detected descriptor for *name*, if detection ran."""
        for descriptor in self.installers:
            if descriptor.name == name:
                return descriptor
        return None

    @property
    def installed_installers(self) -> list[InstallerDescriptor]:
        return [d for d in self.installers if d.installed]
