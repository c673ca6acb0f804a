"""Multi-tier entity resolution.

Names are matched against the known entities in three tiers:

1. Exact: normalized name equals a known entity's normalized name.
2. Alias: normalized name equals one of a known entity's normalized aliases.
3. Fuzzy: Jaro-Winkler similarity against names and aliases, scoped to
   entities of the same type when any exist, accepted above a per-type
   threshold.

Anything else is reported as ``new`` together with the near misses that
cleared the global confidence floor.
"""

from __future__ import annotations

import logging
import re
from typing import Iterable, Mapping

from .config import ALIAS_MATCH_CONFIDENCE, MAX_SUGGESTIONS, ResolverConfig
from .entity_index import EntityIndex, build_entity_lookup
from .models import KnownEntity, MatchType, ResolutionDecision, Suggestion
from .similarity import jaro_winkler, normalize

log = logging.getLogger(__name__)

# Folder used for new entity notes, by type. Unknown types land in Concepts.
NEW_ENTITY_FOLDERS = {
    "Person": "People",
    "Organization": "Organizations",
    "Location": "Locations",
    "Project": "Projects",
}
DEFAULT_NEW_ENTITY_FOLDER = "Concepts"

_UNSAFE_FILENAME_CHARS = re.compile(r'[<>:"/\\|?*]')
_WHITESPACE = re.compile(r"\s+")


class ResolverNotInitializedError(RuntimeError):
    """Raised when resolving before any entities were loaded."""

    def __init__(self) -> None:
        super().__init__("Resolver not initialized. Call load_entities() first.")


class EntityResolver:
    """Resolve entity mentions against a loaded EntityIndex.

    ``load_entities`` builds a complete index before publishing it with a
    single attribute assignment, so a ``resolve`` running concurrently sees
    either the old index or the new one.
    """

    def __init__(self, config: ResolverConfig | None = None) -> None:
        self.config = config or ResolverConfig()
        self._index: EntityIndex | None = None

    @property
    def is_loaded(self) -> bool:
        return self._index is not None

    @property
    def entity_count(self) -> int:
        index = self._index
        return len(index) if index is not None else 0

    def load_entities(self, entities: Iterable[KnownEntity]) -> None:
        """Replace the entity index with one built from ``entities``."""
        index = build_entity_lookup(entities)
        self._index = index
        log.info("Loaded %d entities for resolution", len(index))

    def _require_index(self) -> EntityIndex:
        index = self._index
        if index is None:
            raise ResolverNotInitializedError()
        return index

    def resolve(self, name: str, entity_type: str) -> ResolutionDecision:
        """Resolve a single entity name.

        Args:
            name: Name as written in the document.
            entity_type: Type tag from extraction (open string).

        Returns:
            ResolutionDecision for the name.

        Raises:
            ResolverNotInitializedError: If load_entities() was never called.
        """
        index = self._require_index()
        query = normalize(name)

        exact = index.by_name.get(query)
        if exact is not None:
            return ResolutionDecision(
                queried_name=name,
                queried_type=entity_type,
                match_type=MatchType.EXACT,
                confidence=1.0,
                matched_target=exact.path,
            )

        alias = index.by_alias.get(query)
        if alias is not None:
            return ResolutionDecision(
                queried_name=name,
                queried_type=entity_type,
                match_type=MatchType.ALIAS,
                confidence=ALIAS_MATCH_CONFIDENCE,
                matched_target=alias.path,
            )

        threshold = self.config.threshold_for(entity_type)
        best: KnownEntity | None = None
        best_score = 0.0
        suggestions: list[Suggestion] = []

        for candidate in index.candidates_for(entity_type):
            score = jaro_winkler(query, normalize(candidate.name))
            for candidate_alias in candidate.aliases:
                score = max(score, jaro_winkler(query, normalize(candidate_alias)))

            if score >= threshold and (best is None or score > best_score):
                best = candidate
                best_score = score

            if score >= self.config.min_confidence:
                suggestions.append(Suggestion(path=candidate.path, confidence=score))

        suggestions.sort(key=lambda s: s.confidence, reverse=True)
        suggestions = suggestions[:MAX_SUGGESTIONS]

        if best is not None:
            return ResolutionDecision(
                queried_name=name,
                queried_type=entity_type,
                match_type=MatchType.FUZZY,
                confidence=best_score,
                matched_target=best.path,
                suggestions=suggestions,
            )

        return ResolutionDecision(
            queried_name=name,
            queried_type=entity_type,
            match_type=MatchType.NEW,
            confidence=0.0,
            matched_target=None,
            suggestions=suggestions,
        )

    def resolve_all(self, entries: Iterable[Mapping[str, str]]) -> dict[str, ResolutionDecision]:
        """Resolve ``{"name", "type"}`` entries; a repeated name keeps the last result."""
        results: dict[str, ResolutionDecision] = {}
        for entry in entries:
            results[entry["name"]] = self.resolve(entry["name"], entry["type"])
        return results

    def get_suggested_path(self, name: str, entity_type: str) -> str:
        """Vault path (without .md) for a new note about ``name``."""
        folder = NEW_ENTITY_FOLDERS.get(entity_type, DEFAULT_NEW_ENTITY_FOLDER)
        safe_name = _UNSAFE_FILENAME_CHARS.sub("", name)
        safe_name = _WHITESPACE.sub(" ", safe_name).strip()
        return f"{folder}/{safe_name}"
