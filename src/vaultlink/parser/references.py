"""Outgoing reference extraction for share payloads.

A note references other notes through four body syntaxes and through
path-like strings in its frontmatter:

- ``![[target]]``     embed, content is required when sharing
- ``[[target]]``      wikilink, optional
- ``![label](path)``  markdown embed, required
- ``[label](path)``   markdown link, optional
- frontmatter values containing ``[[target]]``, ending in ``.md`` or
  containing ``/``, optional
"""

from __future__ import annotations

import re
from typing import Any
from urllib.parse import unquote

from ..models import LinkKind, ShareReference
from ..store import note_rid
from .frontmatter import split_frontmatter

EMBED_PATTERN = re.compile(r"!\[\[([^\]]+)\]\]")
WIKILINK_PATTERN = re.compile(r"\[\[([^\]]+)\]\]")
MARKDOWN_LINK_PATTERN = re.compile(r"(!?)\[[^\]]*\]\(([^)]+)\)")
URL_SCHEME_PATTERN = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.-]*:")


def normalize_wiki_target(raw: str) -> str:
    """Strip the ``|display`` alias and ``#anchor`` from a wikilink target."""
    target = raw.split("|", 1)[0]
    target = target.split("#", 1)[0]
    return target.strip()


def sanitize_local_target(raw: str) -> str | None:
    """Reduce a link target to a local path, or None if it is not local.

    Removes surrounding angle brackets, percent-decodes, drops external URLs
    (anything with a scheme) and same-document anchors, strips ``#anchor``
    and ``?query`` suffixes and converts backslashes to forward slashes.
    """
    target = raw.strip()
    if not target:
        return None

    if target.startswith("<") and target.endswith(">") and len(target) > 2:
        target = target[1:-1].strip()

    target = unquote(target)

    if URL_SCHEME_PATTERN.match(target) or target.startswith("#"):
        return None

    target = target.split("#", 1)[0].split("?", 1)[0].strip()
    if not target:
        return None

    return target.replace("\\", "/")


def collect_frontmatter_refs(value: Any, out: list[str] | None = None) -> list[str]:
    """Collect reference-like string leaves from a parsed frontmatter value.

    A string containing wikilinks contributes each wikilink target; otherwise
    a string ending in ``.md`` or containing ``/`` is taken whole.
    """
    refs = out if out is not None else []

    if isinstance(value, str):
        trimmed = value.strip()
        if not trimmed:
            return refs
        wiki_targets = WIKILINK_PATTERN.findall(trimmed)
        if wiki_targets:
            for raw in wiki_targets:
                target = normalize_wiki_target(raw)
                if target:
                    refs.append(target)
            return refs
        if trimmed.endswith(".md") or "/" in trimmed:
            refs.append(trimmed)
        return refs

    if isinstance(value, dict):
        for item in value.values():
            collect_frontmatter_refs(item, refs)
    elif isinstance(value, (list, tuple)):
        for item in value:
            collect_frontmatter_refs(item, refs)

    return refs


def extract_references(source_path: str, source_depth: int, text: str) -> list[ShareReference]:
    """Extract deduplicated outgoing references from a note.

    Args:
        source_path: Vault-relative path of the note.
        source_depth: Traversal depth of the note.
        text: Raw note content, frontmatter included.

    Returns:
        References in discovery order (embeds, wikilinks, markdown links,
        frontmatter). Duplicates by (source, kind, target) are merged with
        their ``required`` flags OR'd together.
    """
    metadata, body = split_frontmatter(text)
    source_rid = note_rid(source_path)
    refs: list[ShareReference] = []

    def append(target: str | None, kind: LinkKind, required: bool) -> None:
        if not target:
            return
        refs.append(
            ShareReference(
                raw_target=target,
                link_type=kind,
                required=required,
                source_path=source_path,
                source_rid=source_rid,
                source_depth=source_depth,
            )
        )

    for match in EMBED_PATTERN.finditer(body):
        append(normalize_wiki_target(match.group(1)), LinkKind.EMBED, True)

    for match in WIKILINK_PATTERN.finditer(body):
        start = match.start()
        if start > 0 and body[start - 1] == "!":
            continue
        append(normalize_wiki_target(match.group(1)), LinkKind.WIKILINK, False)

    for match in MARKDOWN_LINK_PATTERN.finditer(body):
        is_embed = match.group(1) == "!"
        append(
            sanitize_local_target(match.group(2)),
            LinkKind.MARKDOWN_EMBED if is_embed else LinkKind.MARKDOWN_LINK,
            is_embed,
        )

    if metadata:
        for target in collect_frontmatter_refs(metadata):
            append(target, LinkKind.FRONTMATTER, False)

    deduped: dict[tuple[str, LinkKind, str], ShareReference] = {}
    for ref in refs:
        key = (ref.source_path.lower(), ref.link_type, ref.raw_target.lower())
        existing = deduped.get(key)
        if existing is None:
            deduped[key] = ref
        elif ref.required:
            existing.required = True

    return list(deduped.values())
