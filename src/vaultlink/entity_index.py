"""Lookup structures over the known entities of a vault."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Iterable, Mapping

from .models import KnownEntity
from .similarity import normalize

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class EntityIndex:
    """Read-only view over a collection of known entities.

    Keys of ``by_name`` and ``by_alias`` are normalized with
    :func:`vaultlink.similarity.normalize`. ``by_type`` keeps the input order.
    """

    by_name: Mapping[str, KnownEntity] = field(default_factory=dict)
    by_alias: Mapping[str, KnownEntity] = field(default_factory=dict)
    by_type: Mapping[str, tuple[KnownEntity, ...]] = field(default_factory=dict)
    all: tuple[KnownEntity, ...] = ()

    def __len__(self) -> int:
        return len(self.all)

    def candidates_for(self, entity_type: str) -> tuple[KnownEntity, ...]:
        """Entities of ``entity_type``, or the whole corpus if there are none."""
        same_type = self.by_type.get(entity_type, ())
        return same_type if same_type else self.all


def _insert(
    slots: dict[str, KnownEntity],
    key: str,
    entity: KnownEntity,
    kind: str,
) -> None:
    # Last write wins; a collision between two different notes is surfaced.
    existing = slots.get(key)
    if existing is not None and existing.path != entity.path:
        log.warning(
            "Entity %s collision on %r: %s replaces %s",
            kind,
            key,
            entity.path,
            existing.path,
        )
    slots[key] = entity


def build_entity_lookup(entities: Iterable[KnownEntity]) -> EntityIndex:
    """Build an index keyed by normalized name, normalized alias and type.

    Args:
        entities: Known entities, in load order.

    Returns:
        A fully populated EntityIndex. Later entities overwrite earlier ones
        on colliding name or alias keys.
    """
    all_entities = tuple(entities)
    by_name: dict[str, KnownEntity] = {}
    by_alias: dict[str, KnownEntity] = {}
    by_type: dict[str, list[KnownEntity]] = {}

    for entity in all_entities:
        _insert(by_name, normalize(entity.name), entity, "name")
        for alias in entity.aliases:
            _insert(by_alias, normalize(alias), entity, "alias")
        by_type.setdefault(entity.type, []).append(entity)

    return EntityIndex(
        by_name=MappingProxyType(by_name),
        by_alias=MappingProxyType(by_alias),
        by_type=MappingProxyType({key: tuple(group) for key, group in by_type.items()}),
        all=all_entities,
    )
