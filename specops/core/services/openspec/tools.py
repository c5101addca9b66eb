"""
Capability listing — asks the OpenSpec CLI which AI tools it supports.

The list comes from ``openspec init --help``: the ``--tools`` option
enumerates the accepted names after "comma-separated list of:".  It is
never cached; each call re-runs the CLI because the installed version
(and so its tool set) can change between runs.
"""

from __future__ import annotations

import logging
import re

from specops.core.config.loader import EngineConfig
from specops.core.services.openspec.errors import (
    LaunchError,
    ListingFailed,
    ProbeInconclusive,
)
from specops.core.services.openspec.runner import Runner

logger = logging.getLogger(__name__)

_ANSI_RE = re.compile(r"\x1b\[[0-9;]*[A-Za-z]")
_LIST_INTRO_RE = re.compile(r"(?:list\s+of|one\s+or\s+more\s+of)\s*:?", re.IGNORECASE)
_NAME_RE = re.compile(r"^[a-z0-9][a-z0-9._-]*$")
_RESERVED = frozenset({"all", "none"})
_PUNCT = ".,;()[]\"'`"


def _option_block(lines: list[str], start: int) -> str:
    """Join the ``--tools`` line with its wrapped continuation lines."""
    block = [lines[start].strip()]
    for line in lines[start + 1:]:
        stripped = line.strip()
        if not stripped or stripped.startswith("-"):
            break
        block.append(stripped)
    return " ".join(block)


def parse_tools_help(text: str) -> list[str]:
    """Extract capability names from ``openspec init --help`` output.

    Returns:
        Names in the order the CLI lists them, deduplicated.  Empty when
        the CLI lists no names.

    Raises:
        ListingFailed: No ``--tools`` option, or no recognizable list.
    """
    lines = _ANSI_RE.sub("", text).splitlines()
    starts = [i for i, line in enumerate(lines) if "--tools" in line]
    if not starts:
        raise ListingFailed("OpenSpec CLI help does not describe a --tools option")

    # Usage or example lines may mention --tools too; take the first
    # occurrence that actually carries the list
    for start in starts:
        block = _option_block(lines, start)
        intro = _LIST_INTRO_RE.search(block)
        if intro is not None:
            break
    else:
        raise ListingFailed("Unable to read the tool list from OpenSpec CLI help")

    names: list[str] = []
    for piece in block[intro.end():].split(","):
        words = piece.split()
        if not words:
            continue
        name = words[0].strip(_PUNCT)
        if not _NAME_RE.match(name):
            break
        if name not in _RESERVED and name not in names:
            names.append(name)
        if len(words) > 1:
            break  # prose after the last name
    return names


async def list_tools(runner: Runner, config: EngineConfig) -> list[str]:
    """Fetch the current capability list from the OpenSpec CLI.

    Raises:
        ListingFailed: The CLI could not be run, failed, or its help
            could not be parsed.
    """
    try:
        outcome = await runner.run(
            config.cli_command, ["init", "--help"], timeout=config.list_timeout,
        )
    except (LaunchError, ProbeInconclusive) as e:
        raise ListingFailed(f"Unable to load tools: {e}") from e

    if not outcome.ok:
        raise ListingFailed(
            f"Unable to load tools: '{config.cli_command} init --help' "
            f"exited with {outcome.exit_code}"
        )

    names = parse_tools_help(outcome.stdout + "\n" + outcome.stderr)
    logger.info("OpenSpec CLI lists %d tools", len(names))
    return names
