"""Markdown parsing and serialization for vault notes.

Handles conversion between Note domain objects and Markdown files with a
front-matter block. Digital Garden writes the block as single-line JSON
between ``---`` fences; JSON is a subset of YAML, so the block is read with
python-frontmatter's YAML handler, which also accepts hand-written YAML.
"""
import json
import logging
import re
from pathlib import PurePosixPath
from typing import Any, Dict, Iterator, List, Optional, Tuple

import frontmatter
import yaml

from dgarden.exceptions import ErrorCode, FrontMatterError
from dgarden.models.schema import FrontMatter, Note, WikiLink

logger = logging.getLogger(__name__)

WIKILINK_PATTERN = re.compile(r"(!?)\[\[([^\[\]\n]+?)\]\]")
HEADING_PATTERN = re.compile(r"^(#{1,6})\s+(.*?)\s*#*\s*$")
FENCE_PATTERN = re.compile(r"^\s{0,3}(`{3,}|~{3,})")
INLINE_CODE_PATTERN = re.compile(r"(`+)(.+?)\1")

_yaml_handler = frontmatter.YAMLHandler()

_KNOWN_KEYS = ("dg-publish", "dg-home", "permalink", "tags")


def split_front_matter(text: str) -> Tuple[Optional[Dict[str, Any]], str, int]:
    """Split raw note text into front-matter mapping and body.

    Args:
        text: Raw file content.

    Returns:
        ``(mapping, body, line_offset)`` where ``mapping`` is None when the
        note has no front-matter block and ``line_offset`` is the number of
        lines preceding the body.

    Raises:
        FrontMatterError: If the block is unterminated, does not parse, or
            is not a mapping.
    """
    if not _yaml_handler.detect(text):
        return None, text, 0

    try:
        fm_text, body = _yaml_handler.split(text)
    except ValueError as e:
        raise FrontMatterError(
            "Front-matter block is not terminated by a '---' line",
            line=1,
            code=ErrorCode.FRONT_MATTER_SYNTAX,
        ) from e

    line_offset = text[: len(text) - len(body)].count("\n") if text.endswith(body) else 0

    try:
        data = _yaml_handler.load(fm_text)
    except yaml.YAMLError as e:
        line = None
        mark = getattr(e, "problem_mark", None)
        if mark is not None:
            # The block starts with the rest of the opening fence line, so
            # its 0-based line numbers are already 1-based file lines.
            # Errors at end of stream are reported on the last block line.
            line = min(mark.line + 1, max(fm_text.count("\n"), 1))
        problem = getattr(e, "problem", None) or str(e)
        raise FrontMatterError(
            f"Front-matter is not valid JSON/YAML: {problem}",
            line=line,
            code=ErrorCode.FRONT_MATTER_SYNTAX,
        ) from e

    if data is None:
        return {}, body, line_offset
    if not isinstance(data, dict):
        raise FrontMatterError(
            f"Front-matter must be a mapping, got {type(data).__name__}",
            line=1,
            code=ErrorCode.FRONT_MATTER_NOT_MAPPING,
        )
    return data, body, line_offset


def _require_bool(data: Dict[str, Any], key: str) -> bool:
    value = data.get(key, False)
    if value is None:
        return False
    if not isinstance(value, bool):
        raise FrontMatterError(
            f"'{key}' must be true or false",
            field=key,
            value=value,
            code=ErrorCode.FRONT_MATTER_FIELD_TYPE,
        )
    return value


def _parse_tags(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        raw = value.split(",")
    elif isinstance(value, list):
        raw = value
        for item in raw:
            if not isinstance(item, str):
                raise FrontMatterError(
                    "'tags' entries must be strings",
                    field="tags",
                    value=item,
                    code=ErrorCode.FRONT_MATTER_FIELD_TYPE,
                )
    else:
        raise FrontMatterError(
            "'tags' must be a list of strings",
            field="tags",
            value=value,
            code=ErrorCode.FRONT_MATTER_FIELD_TYPE,
        )
    # Obsidian accepts tags written with or without the leading '#'
    return [tag.strip().lstrip("#") for tag in raw]


def parse_front_matter(data: Dict[str, Any]) -> FrontMatter:
    """Interpret a front-matter mapping.

    Raises:
        FrontMatterError: If a known key has the wrong type.
    """
    permalink = data.get("permalink")
    if permalink is not None and not isinstance(permalink, str):
        raise FrontMatterError(
            "'permalink' must be a string",
            field="permalink",
            value=permalink,
            code=ErrorCode.FRONT_MATTER_FIELD_TYPE,
        )

    return FrontMatter(
        dg_publish=_require_bool(data, "dg-publish"),
        dg_home=_require_bool(data, "dg-home"),
        permalink=permalink,
        tags=_parse_tags(data.get("tags")),
        extra={k: v for k, v in data.items() if k not in _KNOWN_KEYS},
    )


def iter_prose_lines(body: str, line_offset: int = 0) -> Iterator[Tuple[int, str]]:
    """Yield ``(line_number, text)`` for lines outside fenced code blocks.

    Inline code spans are blanked out so that code samples inside tutorial
    prose are never read as links or headings.
    """
    fence: Optional[str] = None
    for index, line in enumerate(body.split("\n"), start=line_offset + 1):
        match = FENCE_PATTERN.match(line)
        if fence is None:
            if match:
                fence = match.group(1)
                continue
        else:
            if match and match.group(1)[0] == fence[0] and len(match.group(1)) >= len(fence):
                if not line.strip().lstrip(fence[0]):
                    fence = None
            continue
        yield index, INLINE_CODE_PATTERN.sub(lambda m: " " * len(m.group(0)), line)


def extract_wikilinks(body: str, line_offset: int = 0) -> List[WikiLink]:
    """Find every ``[[target#heading|label]]`` and ``![[embed]]`` in a body."""
    links: List[WikiLink] = []
    for line_number, line in iter_prose_lines(body, line_offset):
        for match in WIKILINK_PATTERN.finditer(line):
            inner = match.group(2)
            target_part, _, label = inner.partition("|")
            # Links inside tables escape their pipe as '\|'
            target_part = target_part.rstrip("\\")
            target, has_heading, heading = target_part.partition("#")
            target = target.strip()
            heading = heading.strip() if has_heading else None
            if not target and not heading:
                logger.debug(f"Skipping empty wikilink on line {line_number}")
                continue
            links.append(
                WikiLink(
                    target=target,
                    heading=heading or None,
                    label=label.strip() or None,
                    embed=bool(match.group(1)),
                    line=line_number,
                )
            )
    return links


def extract_headings(body: str) -> List[str]:
    """Return ATX heading texts outside code blocks, in document order."""
    headings: List[str] = []
    for _, line in iter_prose_lines(body):
        match = HEADING_PATTERN.match(line)
        if match and match.group(2):
            headings.append(match.group(2))
    return headings


class MarkdownParser:
    """Parses and serializes vault notes."""

    def parse_note(self, content: str, path: str) -> Note:
        """Parse a note from raw Markdown.

        Args:
            content: Raw file content, front-matter included.
            path: Vault-relative note path without ``.md``.

        Returns:
            A fully populated Note.

        Raises:
            FrontMatterError: If the front-matter block is present but unusable.
        """
        text = content.lstrip("\ufeff").replace("\r\n", "\n")
        data, body, line_offset = split_front_matter(text)
        front_matter = parse_front_matter(data) if data is not None else None
        return self._build_note(path, body, front_matter, line_offset)

    def parse_body_only(self, content: str, path: str) -> Note:
        """Parse a note whose front-matter is broken, keeping links and headings.

        The broken block is skipped up to its closing fence when there is
        one; otherwise the whole file is treated as body.
        """
        text = content.lstrip("\ufeff").replace("\r\n", "\n")
        try:
            _, body = _yaml_handler.split(text)
            line_offset = text[: len(text) - len(body)].count("\n") if text.endswith(body) else 0
        except ValueError:
            body, line_offset = text, 0
        return self._build_note(path, body, None, line_offset)

    def render_note(self, note: Note) -> str:
        """Serialize a note back to Markdown.

        Front-matter is written the way Digital Garden writes it: one line
        of JSON between ``---`` fences.
        """
        body = note.body.lstrip("\n")
        if note.front_matter is None:
            return body
        mapping = note.front_matter.to_mapping()
        fm_line = json.dumps(mapping, ensure_ascii=False, default=str)
        return f"---\n{fm_line}\n---\n\n{body}"

    @staticmethod
    def _build_note(
        path: str,
        body: str,
        front_matter: Optional[FrontMatter],
        line_offset: int,
    ) -> Note:
        headings = extract_headings(body)
        title = None
        for _, line in iter_prose_lines(body):
            if line.startswith("# "):
                title = line[2:].strip()
                break
        if not title:
            title = PurePosixPath(path).name

        return Note(
            path=path,
            title=title,
            body=body,
            front_matter=front_matter,
            links=extract_wikilinks(body, line_offset),
            headings=headings,
        )
