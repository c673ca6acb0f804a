"""Shared test fixtures for vaultlink test suite.

Design:
- tmp_vault: Isolated vault directory in a temp path, VAULTLINK_VAULT_ROOT set
- write_note: Helper for writing notes (optionally with frontmatter) into it
- runner: CliRunner for command tests
"""

from pathlib import Path
from typing import Callable

import pytest
import yaml
from click.testing import CliRunner

from vaultlink.models import KnownEntity


# ─────────────────────────────────────────────────────────────────────────────
# Core Fixtures
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture
def runner() -> CliRunner:
    """CLI runner with isolated environment."""
    return CliRunner()


@pytest.fixture
def tmp_vault(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Create an empty vault and point VAULTLINK_VAULT_ROOT at it.

    Usage:
        def test_something(tmp_vault):
            (tmp_vault / "note.md").write_text("# Note")
    """
    vault_root = tmp_path / "vault"
    vault_root.mkdir()
    monkeypatch.setenv("VAULTLINK_VAULT_ROOT", str(vault_root))
    return vault_root


@pytest.fixture
def write_note(tmp_vault: Path) -> Callable[..., Path]:
    """Write a note into the vault.

    Usage:
        def test_something(write_note):
            write_note("People/Ada.md", "Body", frontmatter={"name": "Ada"})
    """

    def _write(relative_path: str, body: str = "", frontmatter: dict | None = None) -> Path:
        path = tmp_vault / relative_path
        path.parent.mkdir(parents=True, exist_ok=True)
        content = body
        if frontmatter is not None:
            header = yaml.safe_dump(frontmatter, sort_keys=False, allow_unicode=True)
            content = f"---\n{header}---\n{body}"
        path.write_text(content, encoding="utf-8")
        return path

    return _write


@pytest.fixture
def known_people() -> list[KnownEntity]:
    """A small entity corpus with a person, an organization and a concept."""
    return [
        KnownEntity(
            name="Clare Attwell",
            type="Person",
            path="People/Clare Attwell",
            aliases=["C. Attwell"],
        ),
        KnownEntity(
            name="Fisheries and Oceans Canada",
            type="Organization",
            path="Organizations/Fisheries and Oceans Canada",
            aliases=["DFO"],
        ),
        KnownEntity(name="Salmon Habitat", type="Concept", path="Concepts/Salmon Habitat"),
    ]
