"""
OpenSpec models — value types exchanged with the OpenSpec CLI.

These are immutable snapshots: every probe, detection, or process run
produces a new instance and never mutates an old one.
"""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, ConfigDict


class InstallerName(StrEnum):
    """Package managers able to install the OpenSpec CLI globally."""

    NPM = "npm"
    BUN = "bun"
    YARN = "yarn"
    PNPM = "pnpm"


class ToolSelectionMode(StrEnum):
    """How the selected capability names map to ``openspec init --tools``."""

    ALL = "all"
    NONE = "none"
    CUSTOM = "custom"


class OperationKind(StrEnum):
    """Long-running operations whose output is streamed."""

    INSTALL = "install"
    INIT = "init"


class OutputStream(StrEnum):
    STDOUT = "stdout"
    STDERR = "stderr"


class ToolAvailability(BaseModel):
    """Result of probing ``openspec --version``."""

    model_config = ConfigDict(frozen=True)

    available: bool
    version: str | None = None


class InstallerDescriptor(BaseModel):
    """Presence of one package manager on the host."""

    model_config = ConfigDict(frozen=True)

    name: InstallerName
    installed: bool = False
    version: str | None = None


class OutputLine(BaseModel):
    """A single line of live output, tagged with its origin.

    ``operation`` + ``stream`` is the tag. ``target`` is the session's
    target path so that several sessions can share one broadcaster;
    ``run_id`` identifies the individual install or init run.
    """

    model_config = ConfigDict(frozen=True)

    operation: OperationKind
    stream: OutputStream
    text: str
    target: str | None = None
    run_id: str | None = None


class OperationOutcome(BaseModel):
    """Terminal summary of a finished process."""

    model_config = ConfigDict(frozen=True)

    exit_code: int
    stdout: str = ""
    stderr: str = ""
    command: tuple[str, ...] = ()

    @property
    def ok(self) -> bool:
        """Whether the process exited with status 0."""
        return self.exit_code == 0
