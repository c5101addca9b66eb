"""
Shared test fixtures and configuration.
"""

from collections.abc import Callable, Sequence
from pathlib import Path

import pytest

from specops.core.config.loader import EngineConfig
from specops.core.services.openspec.mock_runner import MockProcessRunner
from specops.core.services.openspec.output_bus import OutputBus
from specops.core.services.openspec.toolchain import OpenSpecToolchain


def render_init_help(tools: Sequence[str]) -> list[str]:
    """Lines of ``openspec init --help`` as the real CLI prints them."""
    return [
        "Usage: openspec init [options] [path]",
        "",
        "Initialize OpenSpec in your project",
        "",
        "Options:",
        '  --tools <tools>  Configure AI tools non-interactively. Use "all", "none", or a',
        f"                   comma-separated list of: {', '.join(tools)}",
        "  -h, --help       display help for command",
    ]


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def engine_config() -> EngineConfig:
    return EngineConfig()


@pytest.fixture
def mock_runner() -> MockProcessRunner:
    return MockProcessRunner()


@pytest.fixture
def bus() -> OutputBus:
    """A private bus so tests never share subscribers."""
    return OutputBus()


@pytest.fixture
def toolchain(
    engine_config: EngineConfig,
    mock_runner: MockProcessRunner,
    bus: OutputBus,
) -> OpenSpecToolchain:
    return OpenSpecToolchain(config=engine_config, runner=mock_runner, bus=bus)


@pytest.fixture
def script_cli(mock_runner: MockProcessRunner) -> Callable[..., None]:
    """Script the OpenSpec CLI as installed, with the given version and tools."""

    def _script(version: str = "1.2.3", tools: Sequence[str] = ("claude", "cursor")) -> None:
        mock_runner.set_response(("openspec", "--version"), stdout=[version])
        mock_runner.set_response(("openspec", "init", "--help"), stdout=render_init_help(tools))

    return _script


@pytest.fixture
def script_installers(mock_runner: MockProcessRunner) -> Callable[..., None]:
    """Script which package managers exist: ``script_installers(bun="1.1.0")``."""

    def _script(**versions: str) -> None:
        for name, version in versions.items():
            mock_runner.set_response((name, "--version"), stdout=[version])

    return _script


@pytest.fixture
def init_help() -> Callable[[Sequence[str]], str]:
    """Render ``openspec init --help`` text for a tool list."""

    def _render(tools: Sequence[str]) -> str:
        return "\n".join(render_init_help(tools))

    return _render
