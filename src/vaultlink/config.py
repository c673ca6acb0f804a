"""Configuration management for vaultlink.

This module contains all configurable constants plus the validated option
models consumed by the resolver, the share graph builder and the document
processor. Magic numbers are documented here rather than scattered throughout
the codebase.
"""

import os
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ConfigurationError(Exception):
    """Raised when required configuration is missing."""

    pass


def get_vault_root() -> Path:
    """Get the vault root directory.

    Discovery order:
    1. VAULTLINK_VAULT_ROOT environment variable
    2. Error with helpful message

    Raises:
        ConfigurationError: If the variable is unset or not a directory.
    """
    root = os.environ.get("VAULTLINK_VAULT_ROOT")
    if not root:
        raise ConfigurationError(
            "No vault configured. Set VAULTLINK_VAULT_ROOT to the vault directory "
            "or pass --vault on the command line."
        )

    path = Path(root).expanduser()
    if not path.is_dir():
        raise ConfigurationError(f"VAULTLINK_VAULT_ROOT is not a directory: {path}")
    return path


# =============================================================================
# Entity Resolution
# =============================================================================

# Fuzzy (Jaro-Winkler) thresholds per entity type. People need the strictest
# match because short personal names collide easily; concepts are phrased
# loosely and tolerate more drift.
DEFAULT_TYPE_THRESHOLDS: dict[str, float] = {
    "Person": 0.90,
    "Organization": 0.85,
    "Location": 0.80,
    "Project": 0.80,
    "Concept": 0.75,
}

# Floor for fuzzy suggestions, and the threshold used for unknown types.
DEFAULT_MIN_CONFIDENCE = 0.6

# Confidence reported for a hit in the alias map.
ALIAS_MATCH_CONFIDENCE = 0.95

# Maximum suggestions attached to a resolution decision.
MAX_SUGGESTIONS = 5

# Jaro-Winkler prefix boost: scale per shared character, capped prefix length.
JARO_WINKLER_PREFIX_SCALE = 0.1
JARO_WINKLER_MAX_PREFIX = 4


# =============================================================================
# Share Payloads
# =============================================================================

# Hard ceiling on root + dependency bytes in one share payload.
MAX_SHARE_PAYLOAD_BYTES = 2 * 1024 * 1024

# Optional references included by context_pack when no limit is given.
DEFAULT_OPTIONAL_LIMIT = 12

# Traversal depth defaults. Depth 1 means "the root's direct references".
DEFAULT_CONTEXT_DEPTH_CONTEXT_PACK = 2
DEFAULT_CONTEXT_DEPTH_OTHER = 1
MAX_CONTEXT_DEPTH = 4


# =============================================================================
# Document Processing
# =============================================================================

# Suggested wikilinks below this confidence are dropped.
MIN_WIKILINK_CONFIDENCE = 0.7

# Extracted entities below this confidence stay out of suggested frontmatter.
FRONTMATTER_MENTION_MIN_CONFIDENCE = 0.7

# Resolution confidence assumed for entities that did not resolve.
UNRESOLVED_WIKILINK_WEIGHT = 0.5

DEFAULT_ENTITY_TYPES = ["Person", "Organization", "Location", "Project", "Concept"]

# Names listed per type in the extraction prompt.
PROMPT_MAX_NAMES_PER_TYPE = 50


class ResolverConfig(BaseModel):
    """Options for EntityResolver."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    thresholds: dict[str, float] = Field(default_factory=lambda: dict(DEFAULT_TYPE_THRESHOLDS))
    min_confidence: float = Field(default=DEFAULT_MIN_CONFIDENCE, ge=0.0, le=1.0)
    allow_new_entities: bool = True

    @field_validator("thresholds")
    @classmethod
    def _thresholds_in_range(cls, value: dict[str, float]) -> dict[str, float]:
        for type_key, threshold in value.items():
            if not 0.0 <= threshold <= 1.0:
                raise ValueError(f"threshold for {type_key!r} must be between 0 and 1")
        return value

    def threshold_for(self, entity_type: str) -> float:
        return self.thresholds.get(entity_type, self.min_confidence)


class ShareConfig(BaseModel):
    """Limits applied while building share payloads."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    max_payload_bytes: int = Field(default=MAX_SHARE_PAYLOAD_BYTES, ge=0)
    default_optional_limit: int = Field(default=DEFAULT_OPTIONAL_LIMIT, ge=0)
    max_context_depth: int = Field(default=MAX_CONTEXT_DEPTH, ge=1)


class ProcessingOptions(BaseModel):
    """Options for DocumentProcessor."""

    model_config = ConfigDict(extra="forbid")

    create_entities: bool = False
    preview: bool = True
    min_wikilink_confidence: float = Field(default=MIN_WIKILINK_CONFIDENCE, ge=0.0, le=1.0)
    entity_types: list[str] = Field(default_factory=lambda: list(DEFAULT_ENTITY_TYPES))
