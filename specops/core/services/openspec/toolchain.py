"""
OpenSpec toolchain — the operation surface offered to callers.

Bundles a runner, an output bus, and the engine config, and exposes
the five OpenSpec operations.  Holds no session state: every call
returns a value the caller folds in, so one toolchain can serve any
number of sessions concurrently.
"""

from __future__ import annotations

from collections.abc import Sequence

from specops.core.config.loader import EngineConfig
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
from specops.core.services.openspec import init as init_op
from specops.core.services.openspec import installers as installers_op
from specops.core.services.openspec.output_bus import OutputBus, output_bus
from specops.core.services.openspec.prober import probe_cli
from specops.core.services.openspec.runner import LineCallback, ProcessRunner, Runner
from specops.core.services.openspec.tools import list_tools


class OpenSpecToolchain:
    """Detect, install, and drive the OpenSpec CLI.

    Args:
        config: Engine settings (defaults when omitted).
        runner: Process runner; a :class:`ProcessRunner` using
            ``config.env`` when omitted.
        bus: Where install/init output is published; the process-wide
            ``output_bus`` when omitted.
    """

    def __init__(
        self,
        *,
        config: EngineConfig | None = None,
        runner: Runner | None = None,
        bus: OutputBus | None = None,
    ) -> None:
        self.config = config or EngineConfig()
        self.runner = runner or ProcessRunner(env=self.config.env)
        self.bus = bus or output_bus

    async def get_availability(self) -> ToolAvailability:
        return await probe_cli(self.runner, self.config)

    async def detect_installers(self) -> list[InstallerDescriptor]:
        return await installers_op.detect_installers(self.runner, self.config)

    async def list_capabilities(self) -> list[str]:
        """Raises :class:`ListingFailed` when the list cannot be determined."""
        return await list_tools(self.runner, self.config)

    async def install(
        self,
        installer: str | InstallerName,
        installers: Sequence[InstallerDescriptor],
        *,
        target: str | None = None,
        run_id: str | None = None,
    ) -> OperationOutcome:
        """Globally install the CLI; output is published as INSTALL lines."""
        return await installers_op.install_cli(
            installer,
            installers,
            runner=self.runner,
            config=self.config,
            on_line=self.publisher(OperationKind.INSTALL, target, run_id),
        )

    async def invoke(
        self,
        target_path: str,
        mode: ToolSelectionMode,
        selected: Sequence[str],
        *,
        run_id: str | None = None,
    ) -> OperationOutcome:
        """Run ``openspec init`` in *target_path*; output is published as INIT lines."""
        return await init_op.run_init(
            target_path,
            mode,
            selected,
            runner=self.runner,
            config=self.config,
            on_line=self.publisher(OperationKind.INIT, target_path, run_id),
        )

    def publisher(
        self,
        operation: OperationKind,
        target: str | None,
        run_id: str | None = None,
    ) -> LineCallback:
        """Build an ``on_line`` callback that tags and publishes each line."""

        def _publish(stream: OutputStream, text: str) -> None:
            self.bus.publish(
                OutputLine(
                    operation=operation, stream=stream, text=text,
                    target=target, run_id=run_id,
                )
            )

        return _publish
