"""Publish manifest for the external site generator.

The manifest lists what the generator will expose: each published note with
the permalink it will be served at. Notes without an explicit permalink get
the slug the generator derives from their vault path.
"""
import json
import logging
import re
from pathlib import Path
from typing import Any, Dict, Iterable, List

from dgarden.exceptions import ErrorCode, VaultError
from dgarden.models.schema import Note

logger = logging.getLogger(__name__)

_SLUG_DROP = re.compile(r"[^a-z0-9/_\-]")
_SLUG_DASHES = re.compile(r"-{2,}")


def slugify(path: str) -> str:
    """Derive a permalink from a vault path.

    Examples:
        "Polars/Join Types" -> "/polars/join-types/"
        "Git/Worktree (advanced)" -> "/git/worktree-advanced/"
    """
    slug = path.strip().lower().replace(" ", "-")
    slug = _SLUG_DROP.sub("", slug)
    slug = _SLUG_DASHES.sub("-", slug)
    segments = [segment.strip("-") for segment in slug.split("/")]
    slug = "/".join(segment for segment in segments if segment)
    return f"/{slug}/" if slug else "/"


def published_permalink(note: Note) -> str:
    """URL the site generator serves a published note at.

    The home note is served at ``/``; other notes use their permalink, or
    the slug of their path when they declare none.
    """
    if note.is_home:
        return "/"
    return note.permalink or slugify(note.path)


def build_manifest(notes: Iterable[Note]) -> List[Dict[str, Any]]:
    """One entry per published note, sorted by permalink.

    The home note is always served at ``/``.
    """
    entries = []
    for note in notes:
        if not note.published:
            continue
        entries.append(
            {
                "path": note.path,
                "title": note.title,
                "permalink": published_permalink(note),
                "tags": note.tags,
            }
        )
    entries.sort(key=lambda e: (e["permalink"], e["path"]))
    return entries


def write_manifest(entries: List[Dict[str, Any]], output: Path) -> None:
    """Write manifest entries as pretty-printed JSON.

    Raises:
        VaultError: If the file cannot be written.
    """
    try:
        output.parent.mkdir(parents=True, exist_ok=True)
        with open(output, "w", encoding="utf-8") as f:
            json.dump(entries, f, indent=2, ensure_ascii=False)
            f.write("\n")
    except OSError as e:
        raise VaultError(
            "Failed to write publish manifest",
            operation="write_manifest",
            path=str(output),
            code=ErrorCode.STORAGE_WRITE_FAILED,
            original_error=e,
        ) from e
    logger.info(f"Wrote manifest with {len(entries)} entries to {output}")
