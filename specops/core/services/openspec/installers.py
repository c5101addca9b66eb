"""
Installer catalog and global install of the OpenSpec CLI.

The catalog always reports every known package manager; absence is
data (``installed=False``), not a missing entry.  Presence checks are
independent and run concurrently.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence

from specops.core.config.loader import EngineConfig
from specops.core.models.openspec import (
    InstallerDescriptor,
    InstallerName,
    OperationOutcome,
)
from specops.core.services.openspec.errors import (
    LaunchError,
    PreconditionViolation,
    ProbeInconclusive,
)
from specops.core.services.openspec.prober import parse_version
from specops.core.services.openspec.runner import LineCallback, Runner

logger = logging.getLogger(__name__)

# Catalog order: also the order of preference for the default selection
INSTALLER_ORDER: tuple[InstallerName, ...] = (
    InstallerName.NPM,
    InstallerName.BUN,
    InstallerName.YARN,
    InstallerName.PNPM,
)

# Global-install verb per manager; the package spec is appended
_GLOBAL_INSTALL_ARGS: dict[InstallerName, tuple[str, ...]] = {
    InstallerName.NPM: ("install", "-g"),
    InstallerName.BUN: ("add", "-g"),
    InstallerName.YARN: ("global", "add"),
    InstallerName.PNPM: ("add", "-g"),
}


def coerce_installer(name: str | InstallerName) -> InstallerName:
    """Turn *name* into an :class:`InstallerName` or reject it."""
    try:
        return InstallerName(name)
    except ValueError:
        valid = ", ".join(n.value for n in INSTALLER_ORDER)
        raise PreconditionViolation(
            f"Unknown package manager: {name}. Valid managers: {valid}"
        ) from None


def install_args(name: InstallerName, package: str) -> list[str]:
    """Arguments (after the manager executable) for a global install."""
    return [*_GLOBAL_INSTALL_ARGS[name], package]


# ── Detection ───────────────────────────────────────────────────

async def _check_installer(
    name: InstallerName,
    runner: Runner,
    config: EngineConfig,
) -> InstallerDescriptor:
    try:
        outcome = await runner.run(name.value, ["--version"], timeout=config.detect_timeout)
    except (LaunchError, ProbeInconclusive) as e:
        logger.debug("%s not detected: %s", name.value, e)
        return InstallerDescriptor(name=name, installed=False)

    if not outcome.ok:
        logger.debug("%s --version exited %d", name.value, outcome.exit_code)
        return InstallerDescriptor(name=name, installed=False)

    return InstallerDescriptor(
        name=name,
        installed=True,
        version=parse_version(outcome.stdout) or parse_version(outcome.stderr),
    )


async def detect_installers(
    runner: Runner,
    config: EngineConfig,
) -> list[InstallerDescriptor]:
    """Report presence of every known package manager, in catalog order."""
    results = await asyncio.gather(
        *(_check_installer(name, runner, config) for name in INSTALLER_ORDER)
    )
    found = [d.name.value for d in results if d.installed]
    logger.info("Package managers detected: %s", ", ".join(found) or "none")
    return list(results)


# ── Installation ────────────────────────────────────────────────

async def install_cli(
    name: str | InstallerName,
    installers: Sequence[InstallerDescriptor],
    *,
    runner: Runner,
    config: EngineConfig,
    on_line: LineCallback | None = None,
) -> OperationOutcome:
    """Install the OpenSpec CLI globally with the manager *name*.

    *installers* is a prior detection result; the manager must appear
    there as installed.  Output lines are forwarded to *on_line*.

    Raises:
        PreconditionViolation: Unknown or not-installed manager (no
            process is launched).
        LaunchError: The manager could not be started.
    """
    manager = coerce_installer(name)
    descriptor = next((d for d in installers if d.name == manager), None)
    if descriptor is None or not descriptor.installed:
        raise PreconditionViolation(f"{manager.value} is not installed on this machine")

    args = install_args(manager, config.package)
    logger.info("Installing %s via %s", config.package, manager.value)
    outcome = await runner.run(manager.value, args, on_line=on_line)

    if outcome.ok:
        logger.info("%s install finished", manager.value)
    else:
        logger.warning("%s install failed (exit %d)", manager.value, outcome.exit_code)
    return outcome
