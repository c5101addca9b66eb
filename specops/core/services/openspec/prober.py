"""
Availability probe — runs ``openspec --version`` and classifies the result.

Read-only and stateless.  A missing, failing, or hanging CLI is a
normal ``available=False`` result, never an exception.
"""

from __future__ import annotations

import logging
import re

from specops.core.config.loader import EngineConfig
from specops.core.models.openspec import ToolAvailability
from specops.core.services.openspec.errors import LaunchError, ProbeInconclusive
from specops.core.services.openspec.runner import Runner

logger = logging.getLogger(__name__)

_VERSION_RE = re.compile(r"v?(\d+\.\d+\.\d+(?:-[0-9A-Za-z.]+)?)")


def parse_version(output: str) -> str | None:
    """Extract the first semver-looking token from *output*."""
    match = _VERSION_RE.search(output)
    return match.group(1) if match else None


async def probe_cli(runner: Runner, config: EngineConfig) -> ToolAvailability:
    """Check whether the OpenSpec CLI runs on this host."""
    try:
        outcome = await runner.run(
            config.cli_command, ["--version"], timeout=config.probe_timeout,
        )
    except LaunchError as e:
        logger.debug("OpenSpec CLI not found: %s", e)
        return ToolAvailability(available=False)
    except ProbeInconclusive as e:
        logger.warning("OpenSpec CLI probe inconclusive, treating as missing: %s", e)
        return ToolAvailability(available=False)

    if not outcome.ok:
        logger.debug("OpenSpec CLI --version exited %d", outcome.exit_code)
        return ToolAvailability(available=False)

    # Some CLIs print their version on stderr
    version = parse_version(outcome.stdout) or parse_version(outcome.stderr)
    logger.info("OpenSpec CLI available (version=%s)", version or "unknown")
    return ToolAvailability(available=True, version=version)
