"""Project root discovery by bounded upward search.

A project (or package) root is the nearest directory, starting from a
given path and walking toward the filesystem root, that contains the
marker directory (``.claude`` by default). The search is read-only and
bounded; when nothing is found the starting directory is used.
"""

from __future__ import annotations

import logging
from pathlib import Path

from esmcguard.config import MARKER_DIR, MAX_ROOT_HOPS

logger = logging.getLogger(__name__)


def find_project_root(
    start: Path,
    marker: str = MARKER_DIR,
    max_hops: int = MAX_ROOT_HOPS,
) -> Path:
    """Walk up from *start* to find the directory holding *marker*.

    Args:
        start: Directory (or file) to begin the search from.
        marker: Name of the subdirectory that identifies a root.
        max_hops: Maximum number of parent directories to visit after
            *start* itself.

    Returns:
        The first directory containing *marker*, or *start* (resolved to
        a directory) when none is found within *max_hops*.
    """
    origin = start.resolve()
    if origin.is_file():
        origin = origin.parent

    current = origin
    for _ in range(max_hops + 1):
        if (current / marker).is_dir():
            return current
        if current.parent == current:
            break
        current = current.parent

    logger.debug("No %s directory above %s; using it as root", marker, origin)
    return origin


def resolve_root(root_hint: Path | None, cwd: Path | None = None) -> Path:
    """Return *root_hint* if given, otherwise discover a root from *cwd*."""
    if root_hint is not None:
        return root_hint
    return find_project_root(cwd if cwd is not None else Path.cwd())
