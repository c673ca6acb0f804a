"""YAML frontmatter splitting for vault notes."""

from __future__ import annotations

import logging
import re
from typing import Any

import yaml
from frontmatter import YAMLHandler

log = logging.getLogger(__name__)

# "@type:" style keys are common in vault notes but '@' cannot start a
# plain YAML scalar, so they are quoted before parsing.
_AT_KEY = re.compile(r"^(\s*)(@\w+)(\s*:)", re.MULTILINE)


class VaultYAMLHandler(YAMLHandler):
    """YAML frontmatter handler that accepts ``@``-prefixed keys."""

    def load(self, fm: str, **kwargs: Any) -> Any:
        return super().load(_AT_KEY.sub(r'\1"\2"\3', fm), **kwargs)


_handler = VaultYAMLHandler()


def split_frontmatter(text: str) -> tuple[dict[str, Any] | None, str]:
    """Split a note into its frontmatter mapping and body.

    Args:
        text: Raw note content.

    Returns:
        Tuple of (metadata, body). Metadata is None when the note has no
        frontmatter block, or when the block is not a YAML mapping; the
        block is still removed from the body in the latter case.
    """
    if not _handler.detect(text):
        return None, text

    try:
        fm, body = _handler.split(text)
    except ValueError:
        # Opening delimiter without a closing one
        return None, text

    try:
        metadata = _handler.load(fm)
    except yaml.YAMLError as e:
        log.debug("Ignoring malformed frontmatter: %s", e)
        return None, body

    if not isinstance(metadata, dict):
        return None, body
    return metadata, body
