"""Common test fixtures for dgarden."""

import logging

import pytest

from dgarden.config import GardenConfig, config
from dgarden.storage.vault_repository import VaultRepository
from tests.helpers import write_note


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch):
    """Snapshot the global config so CLI runs cannot leak settings between tests."""
    for name in GardenConfig.model_fields:
        monkeypatch.setattr(config, name, getattr(config, name))
    monkeypatch.setattr(config, "log_dir", None)
    monkeypatch.setattr(config, "log_level", "WARNING")
    monkeypatch.setattr(config, "strict", False)
    monkeypatch.setattr(config, "check_unpublished_links", True)
    monkeypatch.setattr(config, "require_permalink", True)
    yield config


@pytest.fixture(autouse=True)
def reset_logging():
    """Drop handlers the CLI installs so they don't outlive captured streams."""
    yield
    root_logger = logging.getLogger("dgarden")
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
        handler.close()


@pytest.fixture
def vault(tmp_path):
    """A small, valid garden.

    Links: Home -> CSharp/Strings, Home -> Polars/Joins,
    CSharp/Strings -> Home, Polars/Joins -> Git/Worktree (unpublished).
    """
    root = tmp_path / "vault"
    root.mkdir()
    write_note(
        root,
        "Home",
        "# Home\n\nStart with [[CSharp/Strings|string formatting]] or [[Joins]].\n",
        {"dg-publish": True, "dg-home": True, "tags": ["gardenEntry"]},
    )
    write_note(
        root,
        "CSharp/Strings",
        (
            "# String formatting\n"
            "\n"
            "## Interpolation\n"
            "\n"
            "Use `$\"{name}\"` or `[[NotALink]]` in code. Back to [[Home]].\n"
        ),
        {"dg-publish": True, "permalink": "/csharp/strings/", "tags": ["csharp", "fundamentals"]},
    )
    write_note(
        root,
        "Polars/Joins",
        (
            "# Joins\n"
            "\n"
            "```python\n"
            "df.join(other, on=\"id\")  # [[not-a-link]]\n"
            "```\n"
            "\n"
            "See [[Git/Worktree#Adding a worktree]].\n"
        ),
        {"dg-publish": True, "permalink": "polars/joins", "tags": ["polars", "etl"]},
    )
    write_note(
        root,
        "Git/Worktree",
        "# Worktree\n\n## Adding a worktree\n\n`git worktree add ../hotfix`\n",
        {"dg-publish": False, "tags": ["git"]},
    )
    write_note(root, "Scratch", "# Scratch\n\nNothing here yet.\n")
    obsidian = root / ".obsidian"
    obsidian.mkdir()
    (obsidian / "app.json").write_text("{}", encoding="utf-8")
    write_note(obsidian, "workspace", "[[Missing]]")
    return root


@pytest.fixture
def repository(vault):
    """Repository over the sample vault, already loaded."""
    repo = VaultRepository(vault)
    repo.load_notes()
    return repo
