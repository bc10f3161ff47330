# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/setmeup/sources/locator.py

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Iterator, List

from ..errors import ProcessError, SourceError
from ..utils.process import shell
from .models import Source

log = logging.getLogger("setmeup")


def _walk(root: Path, max_depth: int | None, depth: int = 1) -> Iterator[Path]:
    """Depth-first walk below ``root``; unreadable directories are skipped."""
    try:
        with os.scandir(root) as it:
            entries = sorted(it, key=lambda e: e.name)
    except OSError:
        return

    for entry in entries:
        path = Path(entry.path)
        yield path
        if max_depth is not None and depth >= max_depth:
            continue
        try:
            is_dir = entry.is_dir(follow_symlinks=False)
        except OSError:
            continue
        if is_dir:
            yield from _walk(path, max_depth, depth + 1)


def explore(source: Source) -> List[Path]:
    """
    Playbook paths of ``source``, relative to its root.

    Without ``recurse`` only the immediate children are visited. Every
    visited entry is matched against ``playbook_match`` on its full path.
    """
    max_depth = None if source.recurse else 1
    playbooks = [
        path.relative_to(source.path)
        for path in _walk(source.path, max_depth)
        if source.playbook_match.search(str(path))
    ]
    log.debug("Found %d playbook(s) in %s", len(playbooks), source.path)
    return playbooks


def update(source: Source) -> None:
    """Run the source's ``pre_provision`` hook, if any, inside its directory."""
    if source.pre_provision is None:
        return

    log.info("Running pre-provision hook for source %s", source.name)
    try:
        shell(source.pre_provision, cwd=source.path)
    except ProcessError as e:
        raise SourceError(f"pre-provision hook failed for source '{source.name}': {e}") from e
