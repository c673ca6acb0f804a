"""Document processing: extraction output -> resolution -> link suggestions.

Workflow:
1. Parse the extraction response for a document
2. Locate each entity's mentions in the document
3. Resolve entities against the loaded vault entities
4. Suggest wikilinks, frontmatter and new entity notes
"""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from typing import Any, Iterable

from .config import ProcessingOptions
from .extraction import (
    ExtractionParseError,
    build_extraction_prompt,
    find_mention_offsets,
    generate_suggested_frontmatter,
    generate_suggested_wikilinks,
    parse_extraction_response,
)
from .models import (
    ExtractedEntity,
    KnownEntity,
    MatchType,
    NewEntityFile,
    ProcessingResult,
    ProcessingStats,
    SuggestedWikilink,
)
from .resolver import EntityResolver

log = logging.getLogger(__name__)

# Wikilink previews shown in a result summary
SUMMARY_MAX_WIKILINKS = 10

_STATUS_LABELS = {
    MatchType.NEW: "NEW",
    MatchType.EXACT: "EXACT",
    MatchType.ALIAS: "ALIAS",
}


def _string_list(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, str)]


def _as_confidence(value: Any) -> float:
    """Confidence in [0, 1]; anything non-numeric counts as 0."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0.0
    return min(max(float(value), 0.0), 1.0)


class DocumentProcessor:
    """Orchestrates entity linking for one document at a time."""

    def __init__(
        self,
        options: ProcessingOptions | None = None,
        resolver: EntityResolver | None = None,
    ) -> None:
        self.options = options or ProcessingOptions()
        self.resolver = resolver or EntityResolver()
        self._vault_entities: list[KnownEntity] = []

    def load_vault_entities(self, entities: Iterable[KnownEntity]) -> None:
        self._vault_entities = list(entities)
        self.resolver.load_entities(self._vault_entities)

    def build_prompt(self, document_content: str) -> str:
        return build_extraction_prompt(document_content, self._vault_entities)

    def process_document(
        self,
        document_path: str,
        document_content: str,
        extraction_response: str,
    ) -> ProcessingResult:
        """Process a document given the model's extraction response.

        Raises:
            ExtractionParseError: If the response contains no JSON object.
            ResolverNotInitializedError: If no vault entities were loaded.
        """
        parsed = parse_extraction_response(extraction_response)
        if parsed is None:
            raise ExtractionParseError("Failed to parse entity extraction response")

        entities: list[ExtractedEntity] = []
        raw_entities = parsed.get("entities")
        for raw in raw_entities if isinstance(raw_entities, list) else []:
            if not isinstance(raw, dict) or not isinstance(raw.get("name"), str) or not raw["name"]:
                continue
            if raw.get("type") not in self.options.entity_types:
                continue
            entities.append(
                ExtractedEntity(
                    name=raw["name"],
                    type=raw["type"],
                    mentions=find_mention_offsets(document_content, _string_list(raw.get("mentions"))),
                    confidence=_as_confidence(raw.get("confidence")),
                    context=raw["context"] if isinstance(raw.get("context"), str) else None,
                )
            )

        resolutions = self.resolver.resolve_all({"name": e.name, "type": e.type} for e in entities)

        resolved = {
            name: (decision.matched_target, decision.confidence) if decision.matched_target else None
            for name, decision in resolutions.items()
        }
        wikilinks = [
            wikilink
            for wikilink in generate_suggested_wikilinks(entities, resolved)
            if wikilink.confidence >= self.options.min_wikilink_confidence
        ]

        frontmatter = generate_suggested_frontmatter(
            entities,
            _string_list(parsed.get("topics")),
            parsed.get("documentType") if isinstance(parsed.get("documentType"), str) else None,
        )

        new_entities: list[NewEntityFile] = []
        if self.options.create_entities and self.resolver.config.allow_new_entities:
            by_name = {entity.name: entity for entity in entities}
            for name, decision in resolutions.items():
                if decision.match_type is not MatchType.NEW or name not in by_name:
                    continue
                context = by_name[name].context or ""
                new_entities.append(
                    NewEntityFile(
                        path=self.resolver.get_suggested_path(name, decision.queried_type),
                        name=name,
                        type=decision.queried_type,
                        frontmatter={
                            "@type": f"schema:{decision.queried_type}",
                            "name": name,
                            "created": datetime.now(UTC).isoformat(),
                        },
                        content=f"# {name}\n\n{context}",
                        context=context,
                    )
                )

        modified_content = None
        if not self.options.preview:
            modified_content = self.apply_wikilinks(document_content, wikilinks)

        stats = ProcessingStats(
            entities_extracted=len(entities),
            entities_resolved=sum(1 for d in resolutions.values() if d.match_type is not MatchType.NEW),
            new_entities_suggested=sum(1 for d in resolutions.values() if d.match_type is MatchType.NEW),
            wikilinks_added=len(wikilinks),
        )
        log.info(
            "Processed %s: %d entities, %d resolved, %d wikilinks",
            document_path,
            stats.entities_extracted,
            stats.entities_resolved,
            stats.wikilinks_added,
        )

        return ProcessingResult(
            document_path=document_path,
            entities=entities,
            resolutions=resolutions,
            wikilinks=wikilinks,
            frontmatter=frontmatter,
            new_entities=new_entities,
            modified_content=modified_content,
            stats=stats,
        )

    def apply_wikilinks(self, content: str, wikilinks: list[SuggestedWikilink]) -> str:
        """Apply wikilink replacements, last offset first.

        A replacement is skipped when the text at its offsets no longer
        matches the original mention.
        """
        result = content
        for wikilink in sorted(wikilinks, key=lambda w: w.start_offset, reverse=True):
            current = result[wikilink.start_offset:wikilink.end_offset]
            if current.lower() != wikilink.original_text.lower():
                log.debug("Skipping stale wikilink at %d: %r", wikilink.start_offset, current)
                continue
            result = result[:wikilink.start_offset] + wikilink.replacement + result[wikilink.end_offset:]
        return result

    def format_result_summary(self, result: ProcessingResult) -> str:
        """Render a processing result as markdown for review."""
        lines = [
            f"## Processing Result: {result.document_path}",
            "",
            "### Statistics",
            f"- Entities extracted: {result.stats.entities_extracted}",
            f"- Entities resolved: {result.stats.entities_resolved}",
            f"- New entities suggested: {result.stats.new_entities_suggested}",
            f"- Wikilinks to add: {result.stats.wikilinks_added}",
            "",
            "### Extracted Entities",
        ]

        by_type: dict[str, list[ExtractedEntity]] = {}
        for entity in result.entities:
            by_type.setdefault(entity.type, []).append(entity)

        for entity_type, group in by_type.items():
            lines.append(f"\n**{entity_type}s:**")
            for entity in group:
                decision = result.resolutions.get(entity.name)
                if decision is None:
                    status = "?"
                elif decision.match_type is MatchType.FUZZY:
                    status = f"FUZZY ({decision.confidence * 100:.0f}%)"
                else:
                    status = _STATUS_LABELS[decision.match_type]
                target = (decision.matched_target if decision else None) or f"{entity_type}s/{entity.name}"
                lines.append(f"- {entity.name} -> {status} -> [[{target}]]")

        if result.frontmatter:
            lines.extend(["", "### Suggested Frontmatter", "```yaml"])
            for key, value in result.frontmatter.items():
                if isinstance(value, list):
                    lines.append(f"{key}:")
                    lines.extend(f"  - {json.dumps(item)}" for item in value)
                else:
                    lines.append(f"{key}: {json.dumps(value)}")
            lines.append("```")

        if result.new_entities:
            lines.extend(["", "### New Entity Files to Create"])
            for new_entity in result.new_entities:
                lines.append(f"- **{new_entity.path}.md** ({new_entity.type})")
                if new_entity.context:
                    lines.append(f"  > {new_entity.context}")

        if result.wikilinks:
            lines.extend(["", f"### Wikilinks to Insert ({len(result.wikilinks)})"])
            for wikilink in result.wikilinks[:SUMMARY_MAX_WIKILINKS]:
                lines.append(f'- "{wikilink.original_text}" -> {wikilink.replacement}')
            if len(result.wikilinks) > SUMMARY_MAX_WIKILINKS:
                lines.append(f"- ... and {len(result.wikilinks) - SUMMARY_MAX_WIKILINKS} more")

        return "\n".join(lines)
