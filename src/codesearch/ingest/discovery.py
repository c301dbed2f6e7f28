"""Recursive file discovery under a project root."""

from __future__ import annotations

import os
from collections.abc import Sequence
from typing import Any

from codesearch.ingest.patterns import matches_any
from codesearch.logging import get_logger


def discover_files(
    root: str,
    include_patterns: Sequence[str],
    exclude_patterns: Sequence[str],
    logger: Any = None,
) -> list[str]:
    """Walk *root* depth-first and return absolute paths of files to index.

    Directories whose relative path matches an exclude pattern are pruned
    without being read. A file is kept when it matches an include pattern
    (or *include_patterns* is empty) and matches no exclude pattern.

    Order follows directory enumeration order, which is filesystem dependent.
    Symlinked directories are not followed. An unreadable directory is logged
    and its subtree skipped.
    """
    log = logger or get_logger("ingest.discovery")
    include = tuple(include_patterns)
    exclude = tuple(exclude_patterns)
    root = os.path.abspath(root)
    found: list[str] = []

    def _walk(directory: str) -> None:
        try:
            with os.scandir(directory) as it:
                entries = list(it)
        except OSError as exc:
            log.warning("directory_read_failed", directory=directory, error=str(exc))
            return

        for entry in entries:
            relative = _relative(root, entry.path)
            try:
                is_dir = entry.is_dir(follow_symlinks=False)
                is_file = not is_dir and entry.is_file()
            except OSError as exc:
                log.warning("entry_stat_failed", path=entry.path, error=str(exc))
                continue

            if is_dir:
                if not matches_any(relative, exclude):
                    _walk(entry.path)
            elif is_file:
                included = not include or matches_any(relative, include)
                if included and not matches_any(relative, exclude):
                    found.append(entry.path)

    _walk(root)
    log.debug("files_discovered", root=root, count=len(found))
    return found


def _relative(root: str, path: str) -> str:
    return os.path.relpath(path, root).replace(os.sep, "/")
