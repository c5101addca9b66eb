"""
OpenSpec init — builds ``openspec init --tools ...`` and runs it in a project.

Argument rules by selection mode:
    ALL     → --tools all
    NONE    → --tools none
    CUSTOM  → --tools a,b      (caller order, no dedup, no sort)
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from specops.core.config.loader import EngineConfig
from specops.core.models.openspec import OperationOutcome, ToolSelectionMode
from specops.core.services.openspec.errors import PreconditionViolation
from specops.core.services.openspec.runner import LineCallback, Runner

logger = logging.getLogger(__name__)

TOOLS_FLAG = "--tools"
ALL_TOOLS = "all"
NO_TOOLS = "none"
TOOLS_DELIMITER = ","


def build_tools_args(mode: ToolSelectionMode, selected: Sequence[str]) -> list[str]:
    """Return the ``--tools`` flag and its value for *mode*.

    *selected* is ignored unless mode is CUSTOM.

    Raises:
        PreconditionViolation: CUSTOM with nothing selected.
    """
    if mode == ToolSelectionMode.ALL:
        return [TOOLS_FLAG, ALL_TOOLS]
    if mode == ToolSelectionMode.NONE:
        return [TOOLS_FLAG, NO_TOOLS]
    if not selected:
        raise PreconditionViolation("Select at least one tool to continue.")
    return [TOOLS_FLAG, TOOLS_DELIMITER.join(selected)]


def build_init_args(mode: ToolSelectionMode, selected: Sequence[str]) -> list[str]:
    """Full argument list after the CLI executable."""
    return ["init", *build_tools_args(mode, selected)]


async def run_init(
    target_path: str,
    mode: ToolSelectionMode,
    selected: Sequence[str],
    *,
    runner: Runner,
    config: EngineConfig,
    on_line: LineCallback | None = None,
) -> OperationOutcome:
    """Run ``openspec init`` with *target_path* as the working directory.

    Does not verify what the CLI wrote to disk; callers re-run project
    discovery after a successful run.

    Raises:
        PreconditionViolation: CUSTOM with nothing selected.
        LaunchError: The CLI could not be started.
    """
    args = build_init_args(mode, selected)
    logger.info("Running %s %s in %s", config.cli_command, " ".join(args), target_path)
    outcome = await runner.run(config.cli_command, args, cwd=target_path, on_line=on_line)

    if outcome.ok:
        logger.info("OpenSpec init finished in %s", target_path)
    else:
        logger.warning("OpenSpec init failed in %s (exit %d)", target_path, outcome.exit_code)
    return outcome
