"""Storage layer for dgarden."""

from dgarden.storage.markdown_parser import MarkdownParser
from dgarden.storage.vault_repository import LoadResult, Resolution, VaultRepository

__all__ = [
    "MarkdownParser",
    "VaultRepository",
    "LoadResult",
    "Resolution",
]
