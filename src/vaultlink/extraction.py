"""Entity extraction helpers.

The extraction itself is done by an external language model; this module
builds the prompt, parses the model's JSON answer, locates mentions in the
document and turns resolved entities into wikilink and frontmatter
suggestions.
"""

from __future__ import annotations

import json
import re
from typing import Any, Iterable, Mapping

from .config import (
    FRONTMATTER_MENTION_MIN_CONFIDENCE,
    PROMPT_MAX_NAMES_PER_TYPE,
    UNRESOLVED_WIKILINK_WEIGHT,
)
from .models import ExtractedEntity, KnownEntity, Mention, SuggestedWikilink
from .resolver import DEFAULT_NEW_ENTITY_FOLDER, NEW_ENTITY_FOLDERS

_FENCED_JSON = re.compile(r"```(?:json)?\s*([\s\S]*?)```")
_BARE_OBJECT = re.compile(r"\{[\s\S]*\}")

# Frontmatter "mentions" are grouped in this order; concepts are left out.
_MENTION_TYPES = ("Person", "Organization", "Location", "Project")


class ExtractionParseError(ValueError):
    """Raised when an extraction response cannot be parsed."""


def build_extraction_prompt(document_content: str, existing_entities: Iterable[KnownEntity]) -> str:
    """Build the extraction prompt, listing known vault entities by type."""
    groups: dict[str, list[str]] = {}
    for entity in existing_entities:
        names = [name for name in [entity.name, *entity.aliases] if name]
        groups.setdefault(entity.type or "Unknown", []).append(" / ".join(names))

    entity_context = ""
    if groups:
        lines = ["", "## Existing Vault Entities (prefer matching these):"]
        for entity_type, names in groups.items():
            lines.append("")
            lines.append(f"### {entity_type}s:")
            lines.extend(f"- {name}" for name in names[:PROMPT_MAX_NAMES_PER_TYPE])
            if len(names) > PROMPT_MAX_NAMES_PER_TYPE:
                lines.append(f"- ... and {len(names) - PROMPT_MAX_NAMES_PER_TYPE} more")
        entity_context = "\n".join(lines) + "\n"

    return f"""Extract entities from the following document. Identify:

1. **People** - Named individuals (authors, researchers, experts, officials)
2. **Organizations** - Companies, government agencies, NGOs, universities
3. **Locations** - Geographic places, bodies of water, regions
4. **Projects** - Named initiatives, programs, or research projects
5. **Concepts** - Key topics, technical terms, or themes central to the document

For each entity:
- Provide the canonical name (normalized form)
- List all mentions/variations found in the text
- Rate confidence (0-1) based on clarity of identification
- Provide brief context about the entity's role in the document
{entity_context}
## Important Guidelines:
- Match existing vault entities when possible (prefer exact/close matches)
- For organizations, use full formal names
- Include common abbreviations as mentions
- Skip generic/common terms unless they're central themes
- Focus on entities that would benefit from linking (named, specific, referenceable)

## Document Content:

{document_content}

## Response Format (JSON):

```json
{{
  "entities": [
    {{
      "name": "Canonical Name",
      "type": "Person|Organization|Location|Project|Concept",
      "mentions": ["mention1", "mention2"],
      "confidence": 0.95,
      "context": "Brief description of role in document"
    }}
  ],
  "topics": ["topic1", "topic2"],
  "documentType": "Article|Report|Meeting Notes|Research Paper|Other"
}}
```"""


def parse_extraction_response(response: str) -> dict[str, Any] | None:
    """Parse the model's JSON answer.

    Accepts a fenced ```json block, bare JSON, or JSON embedded in prose.
    Returns None when nothing parses to an object.
    """
    fenced = _FENCED_JSON.search(response)
    candidate = fenced.group(1).strip() if fenced else response.strip()

    try:
        parsed = json.loads(candidate)
    except json.JSONDecodeError:
        match = _BARE_OBJECT.search(response)
        if not match:
            return None
        try:
            parsed = json.loads(match.group(0))
        except json.JSONDecodeError:
            return None

    return parsed if isinstance(parsed, dict) else None


def find_mention_offsets(content: str, mentions: Iterable[str]) -> list[Mention]:
    """Locate non-overlapping, case-insensitive, word-bounded mentions.

    Longer mentions claim their spans first, so "Fisheries and Oceans Canada"
    wins over "Canada" inside it.
    """
    results: list[Mention] = []
    claimed: list[tuple[int, int]] = []

    for mention in sorted((m for m in mentions if m), key=len, reverse=True):
        pattern = re.compile(rf"\b{re.escape(mention)}\b", re.IGNORECASE)
        for match in pattern.finditer(content):
            start, end = match.span()
            if any(start < claimed_end and end > claimed_start for claimed_start, claimed_end in claimed):
                continue
            results.append(Mention(text=match.group(0), start_offset=start, end_offset=end))
            claimed.append((start, end))

    return sorted(results, key=lambda m: m.start_offset)


def generate_suggested_frontmatter(
    entities: Iterable[ExtractedEntity],
    topics: list[str],
    document_type: str | None = None,
) -> dict[str, Any]:
    """Suggest frontmatter: document type, topics and wikilinked mentions."""
    frontmatter: dict[str, Any] = {}

    if document_type:
        frontmatter["@type"] = document_type
    if topics:
        frontmatter["topics"] = list(topics)

    by_type: dict[str, list[str]] = {}
    for entity in entities:
        if entity.confidence >= FRONTMATTER_MENTION_MIN_CONFIDENCE:
            by_type.setdefault(entity.type, []).append(entity.name)

    mentions = [
        f"[[{NEW_ENTITY_FOLDERS[entity_type]}/{name}]]"
        for entity_type in _MENTION_TYPES
        for name in by_type.get(entity_type, [])
    ]
    if mentions:
        frontmatter["mentions"] = mentions

    return frontmatter


def generate_suggested_wikilinks(
    entities: Iterable[ExtractedEntity],
    resolved: Mapping[str, tuple[str, float] | None],
) -> list[SuggestedWikilink]:
    """Turn entity mentions into wikilink replacements.

    Args:
        entities: Extracted entities with mention offsets.
        resolved: Entity name to (note path, resolution confidence), or None
            when the entity did not resolve.

    Returns:
        Suggestions sorted by start offset, last first, so they can be
        applied in order without shifting earlier offsets.
    """
    wikilinks: list[SuggestedWikilink] = []

    for entity in entities:
        match = resolved.get(entity.name)
        folder = NEW_ENTITY_FOLDERS.get(entity.type, DEFAULT_NEW_ENTITY_FOLDER)
        note_path = match[0] if match else f"{folder}/{entity.name}"
        weight = match[1] if match else UNRESOLVED_WIKILINK_WEIGHT

        for mention in entity.mentions:
            if mention.text != entity.name:
                replacement = f"[[{note_path}|{mention.text}]]"
            else:
                replacement = f"[[{note_path}]]"
            wikilinks.append(
                SuggestedWikilink(
                    original_text=mention.text,
                    replacement=replacement,
                    existing_note=match[0] if match else None,
                    entity_type=entity.type,
                    confidence=entity.confidence * weight,
                    start_offset=mention.start_offset,
                    end_offset=mention.end_offset,
                )
            )

    return sorted(wikilinks, key=lambda w: w.start_offset, reverse=True)
