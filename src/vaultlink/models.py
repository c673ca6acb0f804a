"""Pydantic models for entity resolution and share payloads."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# Entities and resolution
# =============================================================================


class MatchType(str, Enum):
    """How a queried name was matched against the known entities."""

    EXACT = "exact"
    ALIAS = "alias"
    FUZZY = "fuzzy"
    NEW = "new"


class KnownEntity(BaseModel):
    """A canonical entity note already present in the vault."""

    model_config = ConfigDict(frozen=True)

    name: str
    type: str  # Open type key (Person, Organization, ...) from the schema registry
    path: str  # Vault-relative note path without .md, e.g. "People/Clare Attwell"
    aliases: list[str] = Field(default_factory=list)


class Suggestion(BaseModel):
    """A near-miss candidate surfaced alongside a resolution decision."""

    path: str
    confidence: float
    match_type: MatchType = MatchType.FUZZY


class ResolutionDecision(BaseModel):
    """Result of resolving one name against the entity index."""

    queried_name: str
    queried_type: str
    match_type: MatchType
    confidence: float = Field(ge=0.0)
    matched_target: str | None = None
    suggestions: list[Suggestion] = Field(default_factory=list)

    @property
    def is_resolved(self) -> bool:
        return self.match_type is not MatchType.NEW


class EntityTypeConfig(BaseModel):
    """Schema entry describing one entity type and its vault folder."""

    type_key: str
    label: str
    folder: str
    phonetic_matching: bool = False
    similarity_threshold: float = Field(default=0.85, ge=0.0, le=1.0)
    semantic_threshold: float = Field(default=0.9, ge=0.0, le=1.0)
    require_token_overlap: bool = False


class EntityTypeSchema(BaseModel):
    """A versioned set of entity types, as stored in a schema file."""

    version: str
    types: list[EntityTypeConfig]


# =============================================================================
# Vault scanning
# =============================================================================


class ScannedEntity(BaseModel):
    """An entity note discovered while scanning the vault."""

    relative_path: str  # With .md
    entity_type: str
    name: str
    aliases: list[str] = Field(default_factory=list)
    frontmatter: dict[str, Any] = Field(default_factory=dict)
    has_explicit_type: bool = False

    def to_known_entity(self) -> KnownEntity:
        path = self.relative_path[:-3] if self.relative_path.endswith(".md") else self.relative_path
        return KnownEntity(name=self.name, type=self.entity_type, path=path, aliases=self.aliases)


class ScanError(BaseModel):
    path: str
    error: str


class ScanStats(BaseModel):
    total_files: int = 0
    scanned_files: int = 0
    with_frontmatter: int = 0
    with_type: int = 0
    by_type: dict[str, int] = Field(default_factory=dict)


class ScanResult(BaseModel):
    """Entities found by a vault scan plus per-file failures."""

    entities: list[ScannedEntity] = Field(default_factory=list)
    errors: list[ScanError] = Field(default_factory=list)
    stats: ScanStats = Field(default_factory=ScanStats)

    def known_entities(self) -> list[KnownEntity]:
        return [entity.to_known_entity() for entity in self.entities]


# =============================================================================
# Share payloads
# =============================================================================


class LinkKind(str, Enum):
    """Syntax a reference was written in."""

    EMBED = "embed"  # ![[target]]
    WIKILINK = "wikilink"  # [[target]]
    MARKDOWN_EMBED = "markdown_embed"  # ![label](target)
    MARKDOWN_LINK = "markdown_link"  # [label](target)
    FRONTMATTER = "frontmatter"  # string leaf in the YAML frontmatter


class ShareMode(str, Enum):
    """Which references a share payload pulls in."""

    ROOT_ONLY = "root_only"
    ROOT_PLUS_REQUIRED = "root_plus_required"
    CONTEXT_PACK = "context_pack"


class NodeRole(str, Enum):
    ROOT = "root"
    DEPENDENCY = "dependency"


class ShareReference(BaseModel):
    """An outgoing reference from a document, annotated during traversal."""

    raw_target: str
    link_type: LinkKind
    required: bool
    source_path: str
    source_rid: str
    source_depth: int
    resolved_path: str | None = None
    ref_rid: str | None = None
    target_depth: int | None = None
    exists: bool = False
    included: bool = False
    include_reason: str | None = None
    skip_reason: str | None = None


class DependencyDoc(BaseModel):
    """A referenced document bundled into a share payload."""

    rid: str
    vault_path: str
    content: str
    content_type: str = "text/markdown"
    depth: int
    required: bool
    parent_rid: str | None = None
    parent_path: str | None = None


class ShareGraphNode(BaseModel):
    rid: str
    vault_path: str
    depth: int
    included: bool
    role: NodeRole


class ShareGraphEdge(BaseModel):
    source_rid: str
    source_path: str
    source_depth: int
    raw_target: str
    link_type: LinkKind
    required: bool
    target_rid: str | None = None
    target_path: str | None = None
    target_depth: int | None = None
    exists: bool
    included: bool
    include_reason: str | None = None
    skip_reason: str | None = None

    @classmethod
    def from_reference(cls, ref: ShareReference) -> ShareGraphEdge:
        return cls(
            source_rid=ref.source_rid,
            source_path=ref.source_path,
            source_depth=ref.source_depth,
            raw_target=ref.raw_target,
            link_type=ref.link_type,
            required=ref.required,
            target_rid=ref.ref_rid,
            target_path=ref.resolved_path,
            target_depth=ref.target_depth,
            exists=ref.exists,
            included=ref.included,
            include_reason=ref.include_reason,
            skip_reason=ref.skip_reason,
        )


class ShareSummary(BaseModel):
    total_references: int = 0
    resolved_references: int = 0
    unresolved_references: int = 0
    included_references: int = 0
    missing_references: int = 0
    required_missing: int = 0
    optional_missing: int = 0
    excluded_by_reason: dict[str, int] = Field(default_factory=dict)


class ShareGraph(BaseModel):
    """Auditable report of every reference evaluated for a share payload."""

    model_config = ConfigDict(frozen=True)

    max_depth_requested: int
    max_depth_reached: int
    nodes: list[ShareGraphNode] = Field(default_factory=list)
    edges: list[ShareGraphEdge] = Field(default_factory=list)
    missing_references: list[ShareGraphEdge] = Field(default_factory=list)
    summary: ShareSummary = Field(default_factory=ShareSummary)


class SharePayload(BaseModel):
    """A root document plus its bundled dependencies."""

    root_path: str
    root_rid: str
    root_content: str
    content_type: str = "text/markdown"
    share_mode: ShareMode
    context_depth: int
    references: list[ShareReference] = Field(default_factory=list)
    dependencies: list[DependencyDoc] = Field(default_factory=list)
    dependency_graph: ShareGraph

    @property
    def dependency_count(self) -> int:
        return len(self.dependencies)


# =============================================================================
# Extraction and document processing
# =============================================================================


class Mention(BaseModel):
    text: str
    start_offset: int
    end_offset: int


class ExtractedEntity(BaseModel):
    """An entity reported by the extraction step, with mention offsets."""

    name: str
    type: str
    mentions: list[Mention] = Field(default_factory=list)
    confidence: float = 0.0
    context: str | None = None


class SuggestedWikilink(BaseModel):
    original_text: str
    replacement: str
    existing_note: str | None = None
    entity_type: str
    confidence: float
    start_offset: int
    end_offset: int


class NewEntityFile(BaseModel):
    """A note that would be created for an entity with no vault match."""

    path: str
    name: str
    type: str
    frontmatter: dict[str, Any] = Field(default_factory=dict)
    content: str
    context: str = ""


class ProcessingStats(BaseModel):
    entities_extracted: int = 0
    entities_resolved: int = 0
    new_entities_suggested: int = 0
    wikilinks_added: int = 0


class ProcessingResult(BaseModel):
    document_path: str
    entities: list[ExtractedEntity] = Field(default_factory=list)
    resolutions: dict[str, ResolutionDecision] = Field(default_factory=dict)
    wikilinks: list[SuggestedWikilink] = Field(default_factory=list)
    frontmatter: dict[str, Any] = Field(default_factory=dict)
    new_entities: list[NewEntityFile] = Field(default_factory=list)
    modified_content: str | None = None
    stats: ProcessingStats = Field(default_factory=ProcessingStats)
