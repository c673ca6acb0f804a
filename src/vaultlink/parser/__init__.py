"""Markdown parsing: frontmatter, outgoing references and link resolution."""

from .basename_index import BasenameIndex, build_basename_index
from .frontmatter import split_frontmatter
from .link_resolver import LinkResolver, ResolvedTarget
from .references import (
    collect_frontmatter_refs,
    extract_references,
    normalize_wiki_target,
    sanitize_local_target,
)

__all__ = [
    "BasenameIndex",
    "build_basename_index",
    "split_frontmatter",
    "LinkResolver",
    "ResolvedTarget",
    "collect_frontmatter_refs",
    "extract_references",
    "normalize_wiki_target",
    "sanitize_local_target",
]
