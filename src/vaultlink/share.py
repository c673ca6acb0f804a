"""Share payload building by bounded traversal of note references.

Starting from a root note, references are followed breadth-first. Each
reference is resolved, checked against the share mode, deduplicated against
documents already bundled and checked against the payload byte ceiling. Every
decision is recorded on the reference and summarized in a ShareGraph so that
exclusions can be audited.
"""

from __future__ import annotations

import logging
import posixpath
from collections import Counter, deque
from pathlib import Path
from typing import NamedTuple

from .config import (
    DEFAULT_CONTEXT_DEPTH_CONTEXT_PACK,
    DEFAULT_CONTEXT_DEPTH_OTHER,
    DEFAULT_OPTIONAL_LIMIT,
    MAX_CONTEXT_DEPTH,
    ShareConfig,
    get_vault_root,
)
from .models import (
    DependencyDoc,
    NodeRole,
    ShareGraph,
    ShareGraphEdge,
    ShareGraphNode,
    ShareMode,
    SharePayload,
    ShareReference,
    ShareSummary,
)
from .parser.basename_index import BasenameIndex, build_basename_index
from .parser.link_resolver import LinkResolver
from .parser.references import extract_references
from .store import DocumentNotFoundError, VaultDocumentStore, note_rid

log = logging.getLogger(__name__)

# Inclusion reasons
REASON_REQUIRED = "required_reference"
REASON_OPTIONAL = "context_pack_optional"
REASON_DEDUP = "dedup"

# Exclusion reasons
SKIP_UNRESOLVED = "unresolved"
SKIP_MODE = "mode"
SKIP_OPTIONAL_LIMIT = "optional_limit"
SKIP_PAYLOAD_LIMIT = "payload_limit"
SKIP_READ_FAILED = "read_failed"


class ShareParameterError(ValueError):
    """Raised for invalid share parameters, before any traversal."""


def parse_share_mode(raw: str | ShareMode | None) -> ShareMode:
    """Parse a share mode name; None means root_plus_required."""
    if isinstance(raw, ShareMode):
        return raw
    value = (raw or ShareMode.ROOT_PLUS_REQUIRED.value).strip().lower()
    try:
        return ShareMode(value)
    except ValueError:
        valid = ", ".join(mode.value for mode in ShareMode)
        raise ShareParameterError(f"Invalid mode '{value}'. Valid modes: {valid}") from None


def parse_context_depth(
    raw: int | None,
    mode: ShareMode,
    max_depth: int = MAX_CONTEXT_DEPTH,
) -> int:
    """Validate a traversal depth, defaulting by mode when None."""
    if raw is None:
        if mode is ShareMode.CONTEXT_PACK:
            return DEFAULT_CONTEXT_DEPTH_CONTEXT_PACK
        return DEFAULT_CONTEXT_DEPTH_OTHER
    if isinstance(raw, bool) or not isinstance(raw, int):
        raise ShareParameterError(f"context_depth must be an integer between 1 and {max_depth}")
    if raw < 1 or raw > max_depth:
        raise ShareParameterError(f"context_depth must be between 1 and {max_depth}")
    return raw


def parse_optional_limit(raw: int | None, default: int = DEFAULT_OPTIONAL_LIMIT) -> int:
    """Validate the optional-reference budget; negative values clamp to 0."""
    if raw is None:
        return default
    if isinstance(raw, bool) or not isinstance(raw, int):
        raise ShareParameterError("optional_limit must be a non-negative integer")
    return max(0, raw)


def normalize_root_path(raw: str) -> str:
    """Vault-relative form of a root path, matching resolved link targets.

    ``./A.md``, ``/A.md`` and ``A.md`` all become ``A.md`` so the root is
    recognized when a dependency links back to it.
    """
    return posixpath.normpath(raw.replace("\\", "/")).lstrip("/")


class _QueuedDoc(NamedTuple):
    path: str
    depth: int


class _Traversal:
    """Mutable state of one share traversal."""

    def __init__(self, root_path: str, root_content: str) -> None:
        self.root_path = root_path
        self.nodes: dict[str, ShareGraphNode] = {
            root_path: ShareGraphNode(
                rid=note_rid(root_path),
                vault_path=root_path,
                depth=0,
                included=True,
                role=NodeRole.ROOT,
            )
        }
        self.references: list[ShareReference] = []
        self.dependencies: list[DependencyDoc] = []
        self.included_paths: set[str] = {root_path}
        self.processed_paths: set[str] = set()
        self.queued_paths: set[str] = {root_path}
        self.queue: deque[_QueuedDoc] = deque([_QueuedDoc(root_path, 0)])
        self.optional_included = 0
        self.current_bytes = len(root_content.encode("utf-8"))
        self.max_depth_reached = 0

    def add_node(self, path: str, depth: int, included: bool) -> None:
        existing = self.nodes.get(path)
        if existing is None:
            self.nodes[path] = ShareGraphNode(
                rid=note_rid(path),
                vault_path=path,
                depth=depth,
                included=included,
                role=NodeRole.ROOT if path == self.root_path else NodeRole.DEPENDENCY,
            )
            return
        if depth < existing.depth:
            existing.depth = depth
        if included:
            existing.included = True

    def enqueue(self, path: str, depth: int) -> None:
        if path in self.queued_paths:
            return
        self.queued_paths.add(path)
        self.queue.append(_QueuedDoc(path, depth))


class ShareGraphBuilder:
    """Build share payloads from a vault.

    Args:
        store: Document content provider.
        basename_index: Filename index for bare-title links.
        config: Payload and depth limits.
    """

    def __init__(
        self,
        store: VaultDocumentStore,
        basename_index: BasenameIndex | None = None,
        config: ShareConfig | None = None,
    ) -> None:
        self.store = store
        self.config = config or ShareConfig()
        self.link_resolver = LinkResolver(store, basename_index)

    def build(
        self,
        root_path: str,
        mode: ShareMode | str = ShareMode.ROOT_PLUS_REQUIRED,
        optional_limit: int | None = None,
        context_depth: int | None = None,
    ) -> SharePayload:
        """Build the payload for ``root_path``.

        Raises:
            ShareParameterError: For an invalid mode, depth or optional limit.
            DocumentNotFoundError: If the root document cannot be read.
        """
        mode = parse_share_mode(mode)
        depth_limit = parse_context_depth(context_depth, mode, self.config.max_context_depth)
        optional_limit = parse_optional_limit(optional_limit, self.config.default_optional_limit)

        root_path = normalize_root_path(root_path)
        root_content = self.store.read(root_path)
        state = _Traversal(root_path, root_content)

        while state.queue:
            current = state.queue.popleft()
            if current.path in state.processed_paths:
                continue
            state.processed_paths.add(current.path)
            state.max_depth_reached = max(state.max_depth_reached, current.depth)

            try:
                source = self.store.read(current.path)
            except DocumentNotFoundError as e:
                log.debug("Skipping unreadable document during share traversal: %s", e)
                continue

            for ref in extract_references(current.path, current.depth, source):
                self._evaluate(ref, current, state, mode, optional_limit, depth_limit)
                state.references.append(ref)

        graph = _finalize_graph(state, depth_limit)
        log.info(
            "Built share payload for %s: %d dependencies, %d references, %d missing",
            root_path,
            len(state.dependencies),
            graph.summary.total_references,
            graph.summary.missing_references,
        )
        return SharePayload(
            root_path=root_path,
            root_rid=note_rid(root_path),
            root_content=root_content,
            share_mode=mode,
            context_depth=depth_limit,
            references=state.references,
            dependencies=state.dependencies,
            dependency_graph=graph,
        )

    def _evaluate(
        self,
        ref: ShareReference,
        current: _QueuedDoc,
        state: _Traversal,
        mode: ShareMode,
        optional_limit: int,
        depth_limit: int,
    ) -> None:
        resolved = self.link_resolver.resolve(current.path, ref.raw_target)
        target = resolved.resolved_path
        # Only markdown notes are traversable dependencies
        if not resolved.exists or target is None or not target.lower().endswith(".md"):
            ref.exists = False
            ref.included = False
            ref.skip_reason = SKIP_UNRESOLVED
            return

        ref.exists = True
        ref.resolved_path = target
        ref.ref_rid = note_rid(target)
        ref.target_depth = current.depth + 1
        state.add_node(target, current.depth + 1, False)

        if not _mode_allows(mode, ref.required, state.optional_included, optional_limit):
            ref.included = False
            ref.skip_reason = (
                SKIP_OPTIONAL_LIMIT
                if mode is ShareMode.CONTEXT_PACK and not ref.required
                else SKIP_MODE
            )
            return

        if target in state.included_paths:
            ref.included = True
            ref.include_reason = REASON_DEDUP
            return

        try:
            content = self.store.read(target)
        except DocumentNotFoundError as e:
            log.debug("Dependency vanished during share traversal: %s", e)
            ref.included = False
            ref.skip_reason = SKIP_READ_FAILED
            return

        size = len(content.encode("utf-8"))
        if state.current_bytes + size > self.config.max_payload_bytes:
            ref.included = False
            ref.skip_reason = SKIP_PAYLOAD_LIMIT
            return

        state.current_bytes += size
        state.included_paths.add(target)
        if not ref.required:
            state.optional_included += 1

        state.dependencies.append(
            DependencyDoc(
                rid=ref.ref_rid,
                vault_path=target,
                content=content,
                depth=current.depth + 1,
                required=ref.required,
                parent_rid=ref.source_rid,
                parent_path=ref.source_path,
            )
        )
        ref.included = True
        ref.include_reason = REASON_REQUIRED if ref.required else REASON_OPTIONAL
        state.add_node(target, current.depth + 1, True)

        if depth_limit > current.depth + 1:
            state.enqueue(target, current.depth + 1)


def _mode_allows(mode: ShareMode, required: bool, optional_included: int, optional_limit: int) -> bool:
    if mode is ShareMode.ROOT_ONLY:
        return False
    if mode is ShareMode.ROOT_PLUS_REQUIRED:
        return required
    return required or optional_included < optional_limit


def _finalize_graph(state: _Traversal, depth_limit: int) -> ShareGraph:
    edges = [ShareGraphEdge.from_reference(ref) for ref in state.references]
    missing = [edge for edge in edges if not edge.exists or not edge.included]

    excluded_by_reason: Counter[str] = Counter(
        edge.skip_reason or (SKIP_UNRESOLVED if not edge.exists else "excluded")
        for edge in missing
    )

    summary = ShareSummary(
        total_references=len(edges),
        resolved_references=sum(1 for edge in edges if edge.exists),
        unresolved_references=sum(1 for edge in edges if not edge.exists),
        included_references=sum(1 for edge in edges if edge.included),
        missing_references=len(missing),
        required_missing=sum(1 for edge in missing if edge.required),
        optional_missing=sum(1 for edge in missing if not edge.required),
        excluded_by_reason=dict(excluded_by_reason),
    )

    return ShareGraph(
        max_depth_requested=depth_limit,
        max_depth_reached=state.max_depth_reached,
        nodes=sorted(state.nodes.values(), key=lambda node: (node.depth, node.vault_path)),
        edges=edges,
        missing_references=missing,
        summary=summary,
    )


def build_share_payload(
    root_path: str,
    mode: ShareMode | str | None = None,
    optional_limit: int | None = None,
    context_depth: int | None = None,
    *,
    vault_root: Path | None = None,
    config: ShareConfig | None = None,
) -> SharePayload:
    """Build a share payload for a note in the configured vault.

    Parameters are validated before the vault is touched.

    Args:
        root_path: Vault-relative path of the note to share.
        mode: root_only, root_plus_required (default) or context_pack.
        optional_limit: Optional references allowed in context_pack mode.
        context_depth: Maximum traversal depth (1-4).
        vault_root: Vault directory; defaults to VAULTLINK_VAULT_ROOT.
        config: Payload and depth limits.

    Returns:
        SharePayload with the root, bundled dependencies and graph report.
    """
    config = config or ShareConfig()
    share_mode = parse_share_mode(mode)
    depth = parse_context_depth(context_depth, share_mode, config.max_context_depth)
    limit = parse_optional_limit(optional_limit, config.default_optional_limit)

    root = vault_root or get_vault_root()
    builder = ShareGraphBuilder(
        VaultDocumentStore(root),
        build_basename_index(Path(root)),
        config,
    )
    return builder.build(root_path, share_mode, limit, depth)
