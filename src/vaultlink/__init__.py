"""vaultlink: entity resolution and share bundles for markdown vaults."""

__version__ = "0.1.0"
