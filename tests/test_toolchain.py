"""
Tests for the toolchain facade — output publishing and shared use.
"""

import pytest

from specops.core.models import InstallerDescriptor, OperationKind, OutputStream, ToolSelectionMode


class TestPublishing:
    @pytest.mark.asyncio
    async def test_install_lines_tagged(self, toolchain, mock_runner, bus):
        mock_runner.set_response(("pnpm", "add"), stdout=["ok"], stderr=["warn"])
        received = []
        bus.subscribe(received.append)

        await toolchain.install(
            "pnpm",
            [InstallerDescriptor(name="pnpm", installed=True)],
            target="/repo/a",
        )

        assert [(line.operation, line.stream, line.text, line.target) for line in received] == [
            (OperationKind.INSTALL, OutputStream.STDOUT, "ok", "/repo/a"),
            (OperationKind.INSTALL, OutputStream.STDERR, "warn", "/repo/a"),
        ]

    @pytest.mark.asyncio
    async def test_init_lines_tagged_with_target(self, toolchain, mock_runner, bus, tmp_path):
        mock_runner.set_response(("openspec", "init"), stdout=["created openspec/"])
        received = []
        bus.subscribe(received.append, operation=OperationKind.INIT)

        await toolchain.invoke(str(tmp_path), ToolSelectionMode.NONE, [])

        assert len(received) == 1
        assert received[0].target == str(tmp_path)

    @pytest.mark.asyncio
    async def test_probe_publishes_nothing(self, toolchain, bus, script_cli):
        script_cli()
        await toolchain.get_availability()
        await toolchain.list_capabilities()
        assert bus.seq == 0


class TestDefaults:
    def test_default_runner_and_bus(self):
        from specops.core.services.openspec import OpenSpecToolchain, ProcessRunner, output_bus

        toolchain = OpenSpecToolchain()
        assert isinstance(toolchain.runner, ProcessRunner)
        assert toolchain.bus is output_bus
        assert toolchain.config.cli_command == "openspec"


class TestRunTagging:
    @pytest.mark.asyncio
    async def test_run_id_carried_on_lines(self, toolchain, mock_runner, bus, tmp_path):
        mock_runner.set_response(("openspec", "init"), stdout=["one", "two"])
        received = []
        bus.subscribe(received.append)

        await toolchain.invoke(str(tmp_path), ToolSelectionMode.ALL, [], run_id="run-1")

        assert [line.run_id for line in received] == ["run-1", "run-1"]
