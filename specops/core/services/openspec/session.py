"""
OpenSpec session — the state machine behind "set up OpenSpec in this repo".

One session per target path owns a :class:`SessionState` and is the
only thing that mutates it.  Leaf operations (probe, detect, list,
install, init) live on the toolchain and return values; this module
sequences them and folds their results into state.

Phase (availability of the CLI):
    UNKNOWN → PROBING → AVAILABLE | MISSING
    entering AVAILABLE  → capability list is fetched automatically
    entering MISSING    → package managers are detected automatically

Sub-flows (install, init), independently:
    IDLE → RUNNING → SUCCESS | FAILED,  terminal → RUNNING on request

Install is only offered while MISSING and init only while AVAILABLE,
so the two never run at the same time.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable, Iterable
from pathlib import Path

from specops.core.models.openspec import (
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
from specops.core.services.openspec.errors import (
    LaunchError,
    ListingFailed,
    OrchestrationError,
    PreconditionViolation,
)
from specops.core.services.openspec.installers import INSTALLER_ORDER, coerce_installer
from specops.core.services.openspec.output_bus import Subscription
from specops.core.services.openspec.toolchain import OpenSpecToolchain

logger = logging.getLogger(__name__)

STILL_UNAVAILABLE_MESSAGE = (
    "OpenSpec CLI is still unavailable after install. Check the global PATH."
)
INIT_FAILED_MESSAGE = "OpenSpec init failed. Review the output and try again."
DETECT_FAILED_MESSAGE = "Unable to detect package managers."
INTERRUPTED_MESSAGE = "OpenSpec {} was interrupted before it finished."

SessionListener = Callable[["OpenSpecSession"], None]


class OpenSpecSession:
    """Orchestrates detection, install, and init for one target path.

    Args:
        target_path: Project directory ``openspec init`` runs in.
        toolchain: Leaf operations and the output bus.
        on_change: Called with the session after every state change.
    """

    def __init__(
        self,
        target_path: str | Path,
        toolchain: OpenSpecToolchain,
        *,
        on_change: SessionListener | None = None,
    ) -> None:
        self.target_path = str(target_path)
        self.toolchain = toolchain
        self._on_change = on_change
        self._subscription: Subscription | None = None
        self.state = SessionState(target_path=self.target_path)

    # ── Lifecycle ───────────────────────────────────────────────

    async def open(self) -> SessionState:
        """Reset to initial state, start buffering output, and probe the CLI."""
        self.state = SessionState(target_path=self.target_path)
        if self._subscription is None:
            self._subscription = self.toolchain.bus.subscribe(
                self._record_line, target=self.target_path,
            )
        self._changed()
        await self.refresh_availability()
        return self.state

    def close(self) -> None:
        """Stop buffering output.  The session must not be used afterwards."""
        if self._subscription is not None:
            self._subscription.release()
            self._subscription = None
        logger.debug("Session closed for %s", self.target_path)

    @property
    def is_open(self) -> bool:
        return self._subscription is not None

    # ── Availability ────────────────────────────────────────────

    async def refresh_availability(self) -> ToolAvailability:
        """Probe the CLI and move to AVAILABLE or MISSING."""
        self.state.phase = SessionPhase.PROBING
        self.state.availability = None
        self._changed()

        availability = await self.toolchain.get_availability()
        await self._apply_availability(availability)
        return availability

    async def _apply_availability(self, availability: ToolAvailability) -> None:
        previous = self.state.phase
        phase = SessionPhase.AVAILABLE if availability.available else SessionPhase.MISSING
        self.state.availability = availability
        self.state.phase = phase
        logger.debug("Session %s: phase %s → %s", self.target_path, previous, phase)
        self._changed()

        if phase == previous:
            return
        if phase == SessionPhase.AVAILABLE:
            await self.load_capabilities()
        else:
            await self.detect_installers()

    # ── Installers ──────────────────────────────────────────────

    async def detect_installers(self) -> None:
        """Detect package managers and preselect the first installed one."""
        self.state.installers_error = None
        try:
            descriptors = await self.toolchain.detect_installers()
        except OrchestrationError as e:
            logger.warning("Package manager detection failed: %s", e)
            self.state.installers_error = DETECT_FAILED_MESSAGE
            self._changed()
            return

        self.state.installers = descriptors
        first = next((d.name for d in descriptors if d.installed), None)
        self.state.selected_installer = first
        self._changed()

    def select_installer(self, name: str | InstallerName) -> None:
        """Choose the package manager used by :meth:`install`."""
        manager = coerce_installer(name)
        descriptor = self.state.installer(manager)
        if descriptor is None or not descriptor.installed:
            raise PreconditionViolation(f"{manager.value} is not installed on this machine")
        self.state.selected_installer = manager
        self._changed()

    # ── Capabilities ────────────────────────────────────────────

    async def load_capabilities(self) -> list[str]:
        """Re-fetch the capability list; failures land in ``capabilities_error``."""
        self.state.capabilities_loading = True
        self.state.capabilities_error = None
        self._changed()

        try:
            capabilities = await self.toolchain.list_capabilities()
        except ListingFailed as e:
            logger.warning("Listing OpenSpec tools failed: %s", e)
            self.state.capabilities_error = str(e)
        else:
            self.state.capabilities = capabilities
            self.state.selected = []
        finally:
            self.state.capabilities_loading = False

        self._changed()
        return self.state.capabilities

    def set_mode(self, mode: str | ToolSelectionMode) -> None:
        """Switch selection mode; ALL and NONE clear the selected names."""
        mode = ToolSelectionMode(mode)
        self.state.mode = mode
        if mode != ToolSelectionMode.CUSTOM:
            self.state.selected = []
        self._changed()

    def toggle_capability(self, name: str) -> None:
        """Add or remove *name* from the selection (switches to CUSTOM)."""
        self._require_known([name])
        chosen = set(self.state.selected)
        chosen.symmetric_difference_update({name})
        self._set_custom(chosen)

    def select_capabilities(self, names: Iterable[str]) -> None:
        """Replace the selection with *names* (switches to CUSTOM)."""
        names = list(names)
        self._require_known(names)
        self._set_custom(set(names))

    def _require_known(self, names: list[str]) -> None:
        unknown = [n for n in names if n not in self.state.capabilities]
        if unknown:
            raise PreconditionViolation(f"Unknown tool(s): {', '.join(unknown)}")

    def _set_custom(self, chosen: set[str]) -> None:
        # Keep the CLI's listing order: stable and deduplicated
        self.state.mode = ToolSelectionMode.CUSTOM
        self.state.selected = [c for c in self.state.capabilities if c in chosen]
        self._changed()

    # ── Install sub-flow ────────────────────────────────────────

    def check_install(self, installer: str | InstallerName | None = None) -> InstallerName:
        """Validate an install request and return the manager it would use.

        Raises:
            PreconditionViolation: The request is not allowed right now.
        """
        if not self.state.install.accepts_run:
            raise PreconditionViolation("An install is already running")
        if self.state.phase != SessionPhase.MISSING:
            raise PreconditionViolation(
                f"Install is only offered while the OpenSpec CLI is missing "
                f"(currently {self.state.phase})"
            )

        name = installer if installer is not None else self.state.selected_installer
        if name is None:
            if not self.state.installed_installers:
                managers = ", ".join(n.value for n in INSTALLER_ORDER)
                raise PreconditionViolation(f"Install {managers} to continue.")
            raise PreconditionViolation("No package manager selected")

        manager = coerce_installer(name)
        descriptor = self.state.installer(manager)
        if descriptor is None or not descriptor.installed:
            raise PreconditionViolation(f"{manager.value} is not installed on this machine")
        return manager

    async def install(self, installer: str | InstallerName | None = None) -> OperationOutcome:
        """Install the CLI globally, then re-probe availability.

        A zero exit is not proof the CLI is usable (the global bin
        directory may be missing from PATH), so the sub-flow only
        succeeds when the follow-up probe finds the CLI.

        Raises:
            PreconditionViolation: See :meth:`check_install`.
            LaunchError: The package manager could not be started (the
                sub-flow is left FAILED).
        """
        manager = self.check_install(installer)
        operation = OperationKind.INSTALL
        record = self._start(operation)

        try:
            outcome = await self.toolchain.install(
                manager,
                self.state.installers,
                target=self.target_path,
                run_id=record.run_id,
            )
            record.outcome = outcome
            availability = await self.toolchain.get_availability()
        except LaunchError as e:
            self._fail(record, operation, FailureKind.LAUNCH_ERROR, str(e))
            raise
        except BaseException:
            # Cancelled or interrupted: the run must not stay RUNNING
            self._fail(
                record, operation, FailureKind.INTERRUPTED,
                INTERRUPTED_MESSAGE.format(operation),
            )
            raise

        if not outcome.ok:
            self._fail(
                record,
                operation,
                FailureKind.NON_ZERO_EXIT,
                f"Install failed: {manager.value} exited with {outcome.exit_code}.",
            )
        elif not availability.available:
            self._fail(record, operation, FailureKind.STILL_UNAVAILABLE, STILL_UNAVAILABLE_MESSAGE)
        else:
            self._succeed(record, operation)

        # A reopen during the run reset the state; leave the new state alone
        if self._is_current(record):
            await self._apply_availability(availability)
        return outcome

    # ── Init sub-flow ───────────────────────────────────────────

    def check_invoke(self) -> None:
        """Validate an init request against the current state.

        Raises:
            PreconditionViolation: The request is not allowed right now.
        """
        if not self.state.init.accepts_run:
            raise PreconditionViolation("OpenSpec init is already running")
        if self.state.phase != SessionPhase.AVAILABLE:
            raise PreconditionViolation(
                f"OpenSpec init needs the CLI to be available (currently {self.state.phase})"
            )
        if self.state.capabilities_loading:
            raise PreconditionViolation("Tools are still loading")
        if not self.state.capabilities:
            raise PreconditionViolation("The OpenSpec CLI reported no tools")
        if self.state.mode == ToolSelectionMode.CUSTOM and not self.state.selected:
            raise PreconditionViolation("Select at least one tool to continue.")

    async def invoke(self) -> OperationOutcome:
        """Run ``openspec init`` in the target path with the current selection.

        Raises:
            PreconditionViolation: See :meth:`check_invoke`.
            LaunchError: The CLI could not be started (the sub-flow is
                left FAILED).
        """
        self.check_invoke()
        operation = OperationKind.INIT
        record = self._start(operation)

        try:
            outcome = await self.toolchain.invoke(
                self.target_path,
                self.state.mode,
                list(self.state.selected),
                run_id=record.run_id,
            )
        except LaunchError as e:
            self._fail(record, operation, FailureKind.LAUNCH_ERROR, str(e))
            raise
        except BaseException:
            self._fail(
                record, operation, FailureKind.INTERRUPTED,
                INTERRUPTED_MESSAGE.format(operation),
            )
            raise

        record.outcome = outcome
        if outcome.ok:
            self._succeed(record, operation)
        else:
            self._fail(record, operation, FailureKind.NON_ZERO_EXIT, INIT_FAILED_MESSAGE)
        return outcome

    # ── Sub-flow bookkeeping ────────────────────────────────────

    def _record(self, operation: OperationKind) -> SubFlowRecord:
        return self.state.install if operation == OperationKind.INSTALL else self.state.init

    def _is_current(self, record: SubFlowRecord) -> bool:
        return record is self.state.install or record is self.state.init

    def _start(self, operation: OperationKind) -> SubFlowRecord:
        record = SubFlowRecord(status=SubFlowStatus.RUNNING, run_id=uuid.uuid4().hex)
        if operation == OperationKind.INSTALL:
            self.state.install = record
        else:
            self.state.init = record
        logger.debug("Session %s: %s running (run=%s)", self.target_path, operation, record.run_id)
        self._changed()
        return record

    def _succeed(self, record: SubFlowRecord, operation: OperationKind) -> None:
        record.status = SubFlowStatus.SUCCESS
        logger.info("OpenSpec %s succeeded for %s", operation, self.target_path)
        self._changed()

    def _fail(
        self,
        record: SubFlowRecord,
        operation: OperationKind,
        kind: FailureKind,
        message: str,
    ) -> None:
        record.status = SubFlowStatus.FAILED
        record.failure = kind
        record.error = message
        if not record.log:
            # Surface the reason where observers read the output history
            record.log.append(
                OutputLine(
                    operation=operation,
                    stream=OutputStream.STDERR,
                    text=message,
                    target=self.target_path,
                    run_id=record.run_id,
                )
            )
        logger.warning("OpenSpec %s failed for %s: %s", operation, self.target_path, message)
        self._changed()

    def _record_line(self, line: OutputLine) -> None:
        record = self._record(line.operation)
        # Only the run this state is tracking; stale runs survive a reopen
        if not record.running or line.run_id != record.run_id:
            return
        record.log.append(line)

    def _changed(self) -> None:
        if self._on_change is None:
            return
        try:
            self._on_change(self)
        except Exception:
            logger.exception("Session change listener failed for %s", self.target_path)


class SessionManager:
    """Factory and registry of sessions, one per target path.

    Opening a path always yields a fresh session; reopening the same
    path discards the previous one.
    """

    def __init__(
        self,
        toolchain: OpenSpecToolchain | None = None,
        *,
        on_change: SessionListener | None = None,
    ) -> None:
        self.toolchain = toolchain or OpenSpecToolchain()
        self._on_change = on_change
        self._sessions: dict[str, OpenSpecSession] = {}

    async def open(self, target_path: str | Path) -> OpenSpecSession:
        key = str(target_path)
        self.close(key)
        session = OpenSpecSession(key, self.toolchain, on_change=self._on_change)
        self._sessions[key] = session
        await session.open()
        return session

    def get(self, target_path: str | Path) -> OpenSpecSession | None:
        return self._sessions.get(str(target_path))

    def close(self, target_path: str | Path) -> None:
        session = self._sessions.pop(str(target_path), None)
        if session is not None:
            session.close()

    def close_all(self) -> None:
        for key in list(self._sessions):
            self.close(key)

    @property
    def sessions(self) -> list[OpenSpecSession]:
        return list(self._sessions.values())
