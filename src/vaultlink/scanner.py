"""Vault entity scanner.

Scans the entity folders of a vault (People/, Organizations/, ...) and turns
each note into a KnownEntity candidate for resolution.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Iterator

from .models import ScanError, ScannedEntity, ScanResult
from .parser.frontmatter import split_frontmatter
from .schema import EntityTypeRegistry

log = logging.getLogger(__name__)


def _find_markdown_files(folder: Path, vault_root: Path) -> Iterator[str]:
    """Vault-relative paths of markdown files under ``folder``, hidden directories skipped."""
    for entry in sorted(folder.iterdir(), key=lambda p: p.name):
        if entry.is_symlink():
            continue
        if entry.is_dir():
            if not entry.name.startswith("."):
                yield from _find_markdown_files(entry, vault_root)
        elif entry.is_file() and entry.name.endswith(".md"):
            yield entry.relative_to(vault_root).as_posix()


def _as_aliases(value: Any) -> list[str]:
    if isinstance(value, str):
        return [value] if value.strip() else []
    if isinstance(value, list):
        return [str(item) for item in value if item]
    return []


def scan_file(vault_root: Path, relative_path: str, registry: EntityTypeRegistry) -> ScannedEntity:
    """Scan a single entity note.

    Raises:
        OSError, UnicodeDecodeError: If the note cannot be read.
    """
    content = (vault_root / relative_path).read_text(encoding="utf-8")
    metadata, _ = split_frontmatter(content)
    metadata = metadata or {}

    explicit_type = metadata.get("@type") or metadata.get("type")
    if isinstance(explicit_type, str) and explicit_type.strip():
        entity_type = explicit_type.strip().removeprefix("schema:")
    else:
        explicit_type = None
        folder = relative_path.split("/", 1)[0]
        entity_type = registry.folder_to_type(folder) or folder

    filename = relative_path.rsplit("/", 1)[-1].removesuffix(".md")
    name = metadata.get("name") or metadata.get("title") or filename

    return ScannedEntity(
        relative_path=relative_path,
        entity_type=entity_type,
        name=str(name),
        aliases=_as_aliases(metadata.get("aliases")),
        frontmatter=metadata,
        has_explicit_type=explicit_type is not None,
    )


def scan_vault_entities(
    vault_root: Path,
    registry: EntityTypeRegistry | None = None,
    folders: list[str] | None = None,
    *,
    require_type: bool = False,
) -> ScanResult:
    """Scan vault entity folders for entity notes.

    Args:
        vault_root: Root directory of the vault.
        registry: Entity type registry for folder/type mapping.
        folders: Folders to scan; defaults to the registry's entity folders.
        require_type: Only keep notes with an explicit ``@type``/``type``.

    Returns:
        ScanResult with entities, per-file errors and statistics.
    """
    registry = registry or EntityTypeRegistry()
    result = ScanResult()

    for folder in folders or registry.entity_folders():
        folder_path = vault_root / folder
        if not folder_path.is_dir():
            continue

        files = list(_find_markdown_files(folder_path, vault_root))
        result.stats.total_files += len(files)

        for relative_path in files:
            try:
                entity = scan_file(vault_root, relative_path, registry)
            except (OSError, UnicodeDecodeError) as e:
                log.debug("Skipping unreadable entity note %s: %s", relative_path, e)
                result.errors.append(ScanError(path=relative_path, error=str(e)))
                continue

            result.stats.scanned_files += 1
            if entity.frontmatter:
                result.stats.with_frontmatter += 1
            if entity.has_explicit_type:
                result.stats.with_type += 1
            if require_type and not entity.has_explicit_type:
                continue

            result.stats.by_type[entity.entity_type] = result.stats.by_type.get(entity.entity_type, 0) + 1
            result.entities.append(entity)

    log.info("Scanned %d entity notes (%d errors)", len(result.entities), len(result.errors))
    return result
