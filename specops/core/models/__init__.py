"""
Domain models — Pydantic types for the orchestration engine.

All models are re-exported here for convenient access:

    from specops.core.models import ToolAvailability, SessionState
"""

from specops.core.models.openspec import (
    InstallerDescriptor,
    InstallerName,
    OperationKind,
    OperationOutcome,
    OutputLine,
    OutputStream,
    ToolAvailability,
    ToolSelectionMode,
)
from specops.core.models.session import (
    FailureKind,
    SessionPhase,
    SessionState,
    SubFlowRecord,
    SubFlowStatus,
)

__all__ = [
    # openspec.py
    "InstallerDescriptor",
    "InstallerName",
    "OperationKind",
    "OperationOutcome",
    "OutputLine",
    "OutputStream",
    "ToolAvailability",
    "ToolSelectionMode",
    # session.py
    "FailureKind",
    "SessionPhase",
    "SessionState",
    "SubFlowRecord",
    "SubFlowStatus",
]
