"""
Project discovery — resolve a path to its git repository root.

Answers "is this a usable project, and is OpenSpec set up in it?"
by asking git for the work-tree root and checking for an ``openspec/``
directory there.
"""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path

from pydantic import BaseModel

logger = logging.getLogger(__name__)

OPENSPEC_DIR = "openspec"


class ProjectDiscovery(BaseModel):
    """Where a project lives and whether OpenSpec is initialized in it."""

    repo_path: str
    repo_name: str
    openspec_present: bool


class DiscoveryError(Exception):
    """Raised when a path is not a usable project root.

    ``code`` is a stable identifier callers may branch on.
    """

    def __init__(self, code: str, message: str) -> None:
        super().__init__(message)
        self.code = code
        self.message = message


def discover_project(path: str | Path) -> ProjectDiscovery:
    """Validate *path* and describe the repository containing it.

    Raises:
        DiscoveryError: ``path_not_found``, ``path_not_directory``,
            ``git_unavailable``, ``not_git_work_tree`` or
            ``repo_root_unavailable``.
    """
    path = Path(path)
    if not path.exists():
        raise DiscoveryError("path_not_found", "Path does not exist")
    if not path.is_dir():
        raise DiscoveryError("path_not_directory", "Path is not a directory")

    try:
        result = subprocess.run(
            ["git", "-C", str(path), "rev-parse", "--show-toplevel"],
            capture_output=True, text=True, timeout=10,
        )
    except (OSError, subprocess.TimeoutExpired) as e:
        logger.debug("git rev-parse failed for %s: %s", path, e)
        raise DiscoveryError("git_unavailable", "Git is not available") from e

    if result.returncode != 0:
        raise DiscoveryError("not_git_work_tree", "Path is not a git work tree")

    root_str = result.stdout.strip()
    if not root_str:
        raise DiscoveryError("repo_root_unavailable", "Could not resolve repository root")

    repo_root = Path(root_str)
    discovery = ProjectDiscovery(
        repo_path=str(repo_root),
        repo_name=repo_root.name or root_str,
        openspec_present=(repo_root / OPENSPEC_DIR).is_dir(),
    )
    logger.debug(
        "Discovered %s at %s (openspec=%s)",
        discovery.repo_name, discovery.repo_path, discovery.openspec_present,
    )
    return discovery
