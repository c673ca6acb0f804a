"""Filename index for title-style link resolution.

Enables resolution of ``[[Note Title]]`` links to ``Some/Folder/Note Title.md``
anywhere in the vault, the way note-taking apps resolve bare titles.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Iterator, Mapping

log = logging.getLogger(__name__)


class BasenameIndex:
    """Mapping of lowercase ``<name>.md`` to vault-relative paths.

    Built once per traversal and passed explicitly; tests can construct one
    from a plain dict.
    """

    def __init__(self, mapping: Mapping[str, list[str]] | None = None) -> None:
        self._paths: dict[str, tuple[str, ...]] = {
            key.lower(): tuple(paths) for key, paths in (mapping or {}).items()
        }

    def lookup(self, filename: str) -> tuple[str, ...]:
        """Paths whose filename equals ``filename`` case-insensitively."""
        return self._paths.get(filename.lower(), ())

    def __contains__(self, filename: object) -> bool:
        return isinstance(filename, str) and filename.lower() in self._paths

    def __len__(self) -> int:
        return len(self._paths)

    def __iter__(self) -> Iterator[str]:
        return iter(self._paths)


def _walk_markdown(vault_root: Path, rel_dir: str = "") -> Iterator[str]:
    abs_dir = vault_root / rel_dir if rel_dir else vault_root
    try:
        with os.scandir(abs_dir) as it:
            entries = sorted(it, key=lambda e: e.name)
    except OSError as e:
        log.debug("Skipping unreadable directory %s: %s", abs_dir, e)
        return

    for entry in entries:
        if entry.is_symlink():
            continue
        rel_path = f"{rel_dir}/{entry.name}" if rel_dir else entry.name
        if entry.is_dir():
            if entry.name.startswith("."):
                continue
            yield from _walk_markdown(vault_root, rel_path)
        elif entry.is_file() and entry.name.lower().endswith(".md"):
            yield rel_path


def build_basename_index(vault_root: Path) -> BasenameIndex:
    """Index every markdown file in the vault by lowercase filename.

    Symbolic links and dot-directories are skipped.

    Args:
        vault_root: Root directory of the vault.

    Returns:
        BasenameIndex with paths in sorted walk order.
    """
    if not vault_root.is_dir():
        return BasenameIndex()

    index: dict[str, list[str]] = {}
    for rel_path in _walk_markdown(vault_root):
        key = rel_path.rsplit("/", 1)[-1].lower()
        index.setdefault(key, []).append(rel_path)
    return BasenameIndex(index)
