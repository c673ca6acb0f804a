"""Read access to vault documents by vault-relative path."""

from __future__ import annotations

from pathlib import Path

NOTE_RID_PREFIX = "orn:obsidian.note:"


def note_rid(path: str) -> str:
    """Resource identifier for a vault note."""
    return f"{NOTE_RID_PREFIX}{path}"


class VaultPathError(ValueError):
    """Raised when a relative path resolves outside the vault root."""


class DocumentNotFoundError(FileNotFoundError):
    """Raised when a vault document cannot be read."""

    def __init__(self, path: str, message: str) -> None:
        self.path = path
        self.message = message
        super().__init__(f"{path}: {message}")


class VaultDocumentStore:
    """Document content provider backed by a vault directory.

    Reads are cached per store instance, so one store reflects a single
    snapshot of each document it has read.
    """

    def __init__(self, vault_root: Path) -> None:
        self.vault_root = Path(vault_root).resolve()
        self._cache: dict[str, str] = {}

    def safe_path(self, relative_path: str) -> Path:
        """Absolute path for ``relative_path``, rejecting traversal outside the vault."""
        try:
            resolved = (self.vault_root / relative_path).resolve()
        except (OSError, ValueError) as e:
            # e.g. an embedded NUL from a percent-decoded link target
            raise VaultPathError(f'Invalid vault path "{relative_path}": {e}') from e
        if resolved != self.vault_root and not resolved.is_relative_to(self.vault_root):
            raise VaultPathError(f'Path traversal rejected: "{relative_path}" resolves outside vault root')
        return resolved

    def exists(self, relative_path: str) -> bool:
        if relative_path in self._cache:
            return True
        try:
            return self.safe_path(relative_path).is_file()
        except VaultPathError:
            return False

    def read(self, relative_path: str) -> str:
        """Return the UTF-8 content of a document.

        Raises:
            DocumentNotFoundError: If the path is outside the vault, missing,
                or not valid UTF-8.
        """
        cached = self._cache.get(relative_path)
        if cached is not None:
            return cached

        try:
            content = self.safe_path(relative_path).read_text(encoding="utf-8")
        except VaultPathError as e:
            raise DocumentNotFoundError(relative_path, str(e)) from e
        except (OSError, UnicodeDecodeError) as e:
            raise DocumentNotFoundError(relative_path, f"Cannot read document: {e}") from e

        self._cache[relative_path] = content
        return content
