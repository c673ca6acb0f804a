"""Entity type schema registry.

Entity types and their vault folders come from an external schema source.
The registry caches the loaded schema for ``ttl_seconds`` and falls back to
built-in defaults when the source cannot be read.
"""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Callable

import yaml
from pydantic import ValidationError

from .models import EntityTypeConfig, EntityTypeSchema

log = logging.getLogger(__name__)

DEFAULT_SCHEMA_VERSION = "defaults"

# Schema cache lifetime. Five minutes keeps folder lookups cheap during a
# scan while still picking up ontology edits in a long-running process.
DEFAULT_SCHEMA_TTL_SECONDS = 300.0

DEFAULT_ENTITY_TYPES: tuple[EntityTypeConfig, ...] = (
    EntityTypeConfig(
        type_key="Person",
        label="Person",
        folder="People",
        phonetic_matching=True,
        similarity_threshold=0.92,
        semantic_threshold=0.92,
    ),
    EntityTypeConfig(
        type_key="Organization",
        label="Organization",
        folder="Organizations",
        phonetic_matching=True,
        similarity_threshold=0.85,
        semantic_threshold=0.95,
        require_token_overlap=True,
    ),
    EntityTypeConfig(
        type_key="Project",
        label="Project",
        folder="Projects",
        phonetic_matching=True,
        similarity_threshold=0.85,
        semantic_threshold=0.93,
        require_token_overlap=True,
    ),
    EntityTypeConfig(
        type_key="Location",
        label="Location",
        folder="Locations",
        similarity_threshold=0.90,
        semantic_threshold=0.95,
        require_token_overlap=True,
    ),
    EntityTypeConfig(
        type_key="Concept",
        label="Concept",
        folder="Concepts",
        similarity_threshold=0.75,
        semantic_threshold=0.88,
    ),
    EntityTypeConfig(
        type_key="Meeting",
        label="Meeting",
        folder="Meetings",
        similarity_threshold=0.90,
        semantic_threshold=0.92,
        require_token_overlap=True,
    ),
)

SchemaLoader = Callable[[], EntityTypeSchema]


class SchemaLoadError(Exception):
    """Raised by a schema loader when its source cannot be read."""


def load_schema_file(path: Path) -> EntityTypeSchema:
    """Load an entity type schema from a YAML file.

    Expected layout::

        version: "2024-06-01"
        types:
          - type_key: Person
            label: Person
            folder: People

    Raises:
        SchemaLoadError: If the file is missing, not YAML, or fails validation.
    """
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except (OSError, yaml.YAMLError) as e:
        raise SchemaLoadError(f"Cannot read schema file {path}: {e}") from e

    try:
        return EntityTypeSchema.model_validate(data)
    except ValidationError as e:
        raise SchemaLoadError(f"Invalid schema file {path}: {e}") from e


class EntityTypeRegistry:
    """Cached view of the entity type schema.

    Args:
        loader: Callable returning an EntityTypeSchema. ``None`` means the
            built-in defaults are the schema.
        ttl_seconds: How long a loaded schema is served before reloading.
        clock: Monotonic time source, injectable for tests.
    """

    def __init__(
        self,
        loader: SchemaLoader | None = None,
        *,
        ttl_seconds: float = DEFAULT_SCHEMA_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._loader = loader
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._types: tuple[EntityTypeConfig, ...] | None = None
        self._version: str | None = None
        self._loaded_at = 0.0
        self._type_to_folder: dict[str, str] | None = None
        self._folder_to_type: dict[str, str] | None = None

    @property
    def version(self) -> str:
        self.get_types()
        return self._version or DEFAULT_SCHEMA_VERSION

    def _is_fresh(self) -> bool:
        return self._types is not None and self._clock() - self._loaded_at < self.ttl_seconds

    def get_types(self) -> tuple[EntityTypeConfig, ...]:
        """Return the entity types, reloading if the cache has expired."""
        if self._is_fresh():
            return self._types  # type: ignore[return-value]

        if self._loader is None:
            self._set_types(DEFAULT_SCHEMA_VERSION, DEFAULT_ENTITY_TYPES)
            return self._types  # type: ignore[return-value]

        try:
            schema = self._loader()
        except SchemaLoadError as e:
            log.warning("Entity schema unavailable, using %s: %s",
                        "cached types" if self._types else "defaults", e)
            if self._types is None:
                self._set_types(None, DEFAULT_ENTITY_TYPES)
            else:
                self._loaded_at = self._clock()
            return self._types  # type: ignore[return-value]

        if schema.version != self._version:
            self._set_types(schema.version, tuple(schema.types))
        else:
            self._loaded_at = self._clock()
        return self._types  # type: ignore[return-value]

    def _set_types(self, version: str | None, types: tuple[EntityTypeConfig, ...]) -> None:
        self._types = types
        self._version = version
        self._loaded_at = self._clock()
        self._type_to_folder = None
        self._folder_to_type = None

    def invalidate(self) -> None:
        """Drop the cached schema so the next lookup reloads it."""
        self._types = None
        self._version = None
        self._loaded_at = 0.0
        self._type_to_folder = None
        self._folder_to_type = None

    def _maps(self) -> tuple[dict[str, str], dict[str, str]]:
        types = self.get_types()
        if self._type_to_folder is None or self._folder_to_type is None:
            self._type_to_folder = {t.type_key.lower(): t.folder for t in types}
            self._folder_to_type = {t.folder.lower(): t.type_key for t in types}
        return self._type_to_folder, self._folder_to_type

    def type_to_folder(self, type_key: str) -> str:
        type_to_folder, _ = self._maps()
        return type_to_folder.get(type_key.lower(), f"{type_key}s")

    def folder_to_type(self, folder: str) -> str | None:
        _, folder_to_type = self._maps()
        return folder_to_type.get(folder.lower())

    def get_type(self, type_key: str) -> EntityTypeConfig | None:
        for entity_type in self.get_types():
            if entity_type.type_key.lower() == type_key.lower():
                return entity_type
        return None

    def entity_folders(self) -> list[str]:
        return [t.folder for t in self.get_types()]
