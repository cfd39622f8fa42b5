"""Tests for the publish manifest."""
import json

import pytest

from dgarden.exceptions import VaultError
from dgarden.services.publisher import build_manifest, slugify, write_manifest
from tests.helpers import write_note


class TestSlugify:
    """Tests for permalink derivation from vault paths."""

    @pytest.mark.parametrize(
        "path, expected",
        [
            ("Polars/Join Types", "/polars/join-types/"),
            ("Git/Worktree (advanced)", "/git/worktree-advanced/"),
            ("CSharp/String  Formatting - Basics", "/csharp/string-formatting-basics/"),
            ("???", "/"),
        ],
    )
    def test_slugify(self, path, expected):
        assert slugify(path) == expected


class TestManifest:
    """Tests for build_manifest and write_manifest."""

    def test_only_published_notes(self, repository):
        entries = build_manifest(repository.notes)
        assert [e["path"] for e in entries] == ["Home", "CSharp/Strings", "Polars/Joins"]

    def test_entry_fields(self, repository):
        entries = {e["path"]: e for e in build_manifest(repository.notes)}
        assert entries["Home"]["permalink"] == "/"
        assert entries["Polars/Joins"] == {
            "path": "Polars/Joins",
            "title": "Joins",
            "permalink": "/polars/joins/",
            "tags": ["polars", "etl"],
        }

    def test_derived_permalink(self, vault, repository):
        write_note(vault, "Polars/Lazy Frames", "# Lazy", {"dg-publish": True})
        repository.load_notes()
        entries = {e["path"]: e for e in build_manifest(repository.notes)}
        assert entries["Polars/Lazy Frames"]["permalink"] == "/polars/lazy-frames/"

    def test_write_manifest(self, repository, tmp_path):
        output = tmp_path / "site" / "manifest.json"
        entries = build_manifest(repository.notes)
        write_manifest(entries, output)
        assert json.loads(output.read_text(encoding="utf-8")) == entries

    def test_write_manifest_failure(self, tmp_path):
        blocker = tmp_path / "file"
        blocker.write_text("x", encoding="utf-8")
        with pytest.raises(VaultError):
            write_manifest([], blocker / "manifest.json")
