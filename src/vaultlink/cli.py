#!/usr/bin/env python3
"""
vl: CLI for vaultlink

Usage:
    vl scan                                # List entity notes found in the vault
    vl resolve "Clare Atwell" --type Person
    vl share Notes/meeting.md --mode context_pack --context-depth 2
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import click

from . import __version__ as VAULTLINK_VERSION
from ._logging import LOG_LEVELS, configure_logging
from .config import ConfigurationError, get_vault_root
from .models import ShareMode
from .resolver import EntityResolver
from .scanner import scan_vault_entities
from .schema import EntityTypeRegistry, load_schema_file
from .share import ShareParameterError, build_share_payload
from .store import DocumentNotFoundError


def _emit_json(data: Any) -> None:
    click.echo(json.dumps(data, indent=2, default=str))


def _vault_root(ctx: click.Context) -> Path:
    vault = ctx.obj.get("vault")
    if vault is not None:
        return vault
    try:
        return get_vault_root()
    except ConfigurationError as e:
        raise click.ClickException(str(e)) from e


def _registry(ctx: click.Context) -> EntityTypeRegistry:
    schema_path = ctx.obj.get("schema")
    if schema_path is None:
        return EntityTypeRegistry()
    return EntityTypeRegistry(loader=lambda: load_schema_file(schema_path))


@click.group()
@click.version_option(version=VAULTLINK_VERSION, prog_name="vl")
@click.option(
    "--vault",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    help="Vault directory (default: $VAULTLINK_VAULT_ROOT)",
)
@click.option(
    "--schema",
    type=click.Path(dir_okay=False, path_type=Path),
    help="YAML entity type schema (default: built-in types)",
)
@click.option(
    "--log-level",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    help="Log level (default: $VAULTLINK_LOG_LEVEL or INFO)",
)
@click.pass_context
def cli(ctx: click.Context, vault: Path | None, schema: Path | None, log_level: str | None):
    """Resolve entity mentions and build share bundles for a markdown vault."""
    if log_level:
        configure_logging(log_level)
    ctx.ensure_object(dict)
    ctx.obj["vault"] = vault
    ctx.obj["schema"] = schema


@cli.command()
@click.option("--require-type", is_flag=True, help="Only count notes with an explicit @type")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def scan(ctx: click.Context, require_type: bool, as_json: bool):
    """List entity notes found in the vault's entity folders."""
    result = scan_vault_entities(_vault_root(ctx), _registry(ctx), require_type=require_type)

    if as_json:
        _emit_json(result.model_dump(mode="json", exclude={"entities": {"__all__": {"frontmatter"}}}))
        return

    click.echo(f"Scanned {result.stats.scanned_files} of {result.stats.total_files} files")
    for entity_type, count in sorted(result.stats.by_type.items()):
        click.echo(f"  {entity_type}: {count}")
    for error in result.errors:
        click.echo(f"  error: {error.path}: {error.error}", err=True)


@cli.command()
@click.argument("name")
@click.option("--type", "entity_type", default="Concept", show_default=True, help="Entity type")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def resolve(ctx: click.Context, name: str, entity_type: str, as_json: bool):
    """Resolve NAME against the vault's entity notes."""
    result = scan_vault_entities(_vault_root(ctx), _registry(ctx))
    resolver = EntityResolver()
    resolver.load_entities(result.known_entities())
    decision = resolver.resolve(name, entity_type)

    if as_json:
        _emit_json(decision.model_dump(mode="json"))
        return

    target = decision.matched_target or resolver.get_suggested_path(name, entity_type)
    click.echo(f"{name} -> {decision.match_type.value} ({decision.confidence:.2f}) -> [[{target}]]")
    for suggestion in decision.suggestions:
        click.echo(f"  ~ {suggestion.path} ({suggestion.confidence:.2f})")


@cli.command()
@click.argument("path")
@click.option(
    "--mode",
    type=click.Choice([mode.value for mode in ShareMode]),
    default=ShareMode.ROOT_PLUS_REQUIRED.value,
    show_default=True,
)
@click.option("--optional-limit", type=int, default=None, help="Optional references for context_pack")
@click.option("--context-depth", type=int, default=None, help="Traversal depth (1-4)")
@click.option("--json", "as_json", is_flag=True, help="Output the full payload as JSON")
@click.pass_context
def share(
    ctx: click.Context,
    path: str,
    mode: str,
    optional_limit: int | None,
    context_depth: int | None,
    as_json: bool,
):
    """Build a share payload for PATH and report its dependency graph."""
    try:
        payload = build_share_payload(
            path,
            mode,
            optional_limit,
            context_depth,
            vault_root=_vault_root(ctx),
        )
    except (ShareParameterError, DocumentNotFoundError) as e:
        raise click.ClickException(str(e)) from e

    if as_json:
        _emit_json(payload.model_dump(mode="json"))
        return

    graph = payload.dependency_graph
    summary = graph.summary
    click.echo(f"{payload.root_path} ({payload.share_mode.value}, depth {payload.context_depth})")
    click.echo(f"Dependencies: {payload.dependency_count}")
    for dependency in payload.dependencies:
        marker = "required" if dependency.required else "optional"
        click.echo(f"  [{dependency.depth}] {dependency.vault_path} ({marker})")
    click.echo(
        f"References: {summary.total_references} total, {summary.included_references} included, "
        f"{summary.missing_references} missing"
    )
    for reason, count in sorted(summary.excluded_by_reason.items()):
        click.echo(f"  {reason}: {count}")


def main():
    """Entry point for vl CLI."""
    configure_logging()
    cli()


if __name__ == "__main__":
    main()
