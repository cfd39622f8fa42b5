"""
dgarden - tooling for Obsidian "Digital Garden" vaults.

Loads a vault of Markdown notes, validates their publishing front-matter
and wikilinks, and indexes tags and backlinks. The static-site generator
that consumes the vault is not part of this package.
"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("dgarden")
except PackageNotFoundError:
    __version__ = "0.3.0"
