"""Resolution of reference targets to vault documents."""

from __future__ import annotations

import posixpath
from typing import NamedTuple, Protocol

from .basename_index import BasenameIndex
from .references import sanitize_local_target


class DocumentExistence(Protocol):
    def exists(self, relative_path: str) -> bool: ...


class ResolvedTarget(NamedTuple):
    """Outcome of resolving one reference target."""

    resolved_path: str | None
    exists: bool


UNRESOLVED = ResolvedTarget(None, False)


class LinkResolver:
    """Resolve raw link targets relative to the referencing document.

    Attempts resolution in order:
    1. Exact path, relative to the source directory (or to the vault root
       for targets starting with ``/``), with ``.md`` appended when the
       target has no extension
    2. Filename lookup in the basename index, for bare titles only
    """

    def __init__(self, store: DocumentExistence, basename_index: BasenameIndex | None = None) -> None:
        self.store = store
        self.basename_index = basename_index or BasenameIndex()

    def candidates(self, source_path: str, raw_target: str) -> list[str]:
        """Candidate vault-relative paths for ``raw_target``, in priority order."""
        sanitized = sanitize_local_target(raw_target)
        if not sanitized:
            return []

        has_ext = posixpath.splitext(sanitized)[1] != ""
        if sanitized.startswith("/"):
            base = posixpath.normpath(sanitized.lstrip("/"))
        else:
            base = posixpath.normpath(posixpath.join(posixpath.dirname(source_path), sanitized))

        candidates = [base if has_ext else f"{base}.md"]

        if "/" not in sanitized and not has_ext:
            for rel_path in self.basename_index.lookup(f"{sanitized}.md"):
                if rel_path not in candidates:
                    candidates.append(rel_path)

        return candidates

    def resolve(self, source_path: str, raw_target: str) -> ResolvedTarget:
        """Resolve to the first candidate that exists in the store."""
        for candidate in self.candidates(source_path, raw_target):
            if self.store.exists(candidate):
                return ResolvedTarget(candidate, True)
        return UNRESOLVED
