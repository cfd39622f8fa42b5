"""Data models for dgarden."""

import re
from enum import Enum
from pathlib import PurePosixPath
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

# Characters the external site router accepts in a permalink path
PERMALINK_PATTERN = re.compile(r"^/[A-Za-z0-9._~%/\-]*$")


def normalize_permalink(value: str) -> str:
    """Normalize a permalink to a single leading and trailing slash.

    Examples:
        "csharp/strings" -> "/csharp/strings/"
        "/git/worktree" -> "/git/worktree/"
        "/" -> "/"
    """
    trimmed = value.strip().strip("/")
    if not trimmed:
        return "/"
    return f"/{trimmed}/"


def validate_note_path(value: str) -> str:
    """Validate a vault-relative note key.

    Note keys are POSIX paths without the ``.md`` suffix, relative to the
    vault root (``"Polars/Joins"``).

    Raises:
        ValueError: If the path is empty, absolute, or escapes the vault.
    """
    if not value or not value.strip():
        raise ValueError("Note path cannot be empty")
    if value.startswith("/"):
        raise ValueError("Note path must be relative to the vault root")
    if ".." in PurePosixPath(value).parts:
        raise ValueError("Note path cannot contain '..' (path traversal)")
    if "\\" in value:
        raise ValueError("Note path must use '/' separators")
    return value


class FrontMatter(BaseModel):
    """Publishing metadata from a note's front-matter block."""

    dg_publish: bool = Field(default=False, description="Expose the note on the public site")
    permalink: Optional[str] = Field(default=None, description="Public URL path of the note")
    tags: List[str] = Field(default_factory=list, description="Tag index labels")
    dg_home: bool = Field(default=False, description="Note is the garden's home page")
    extra: Dict[str, Any] = Field(
        default_factory=dict, description="Keys not interpreted by dgarden"
    )

    model_config = {"frozen": True, "extra": "forbid"}

    def to_mapping(self) -> Dict[str, Any]:
        """Return the front-matter as written in a note, in canonical key order."""
        data: Dict[str, Any] = {"dg-publish": self.dg_publish}
        if self.dg_home:
            data["dg-home"] = True
        if self.permalink is not None:
            data["permalink"] = self.permalink
        if self.tags:
            data["tags"] = list(self.tags)
        data.update(self.extra)
        return data


class WikiLink(BaseModel):
    """An inline ``[[target#heading|label]]`` reference."""

    target: str = Field(..., description="Raw link target before '#' and '|'")
    heading: Optional[str] = Field(default=None, description="Heading or block anchor")
    label: Optional[str] = Field(default=None, description="Display text after '|'")
    embed: bool = Field(default=False, description="Link was written as ![[...]]")
    line: int = Field(default=1, ge=1, description="1-based line number in the file")

    model_config = {"frozen": True}

    def __str__(self) -> str:
        text = self.target
        if self.heading:
            text += f"#{self.heading}"
        if self.label:
            text += f"|{self.label}"
        prefix = "!" if self.embed else ""
        return f"{prefix}[[{text}]]"


class Note(BaseModel):
    """A Markdown note in the vault."""

    path: str = Field(..., description="Vault-relative path without the .md suffix")
    title: str = Field(..., description="First '# ' heading, else the file name")
    body: str = Field(default="", description="Markdown content after the front-matter")
    front_matter: Optional[FrontMatter] = Field(
        default=None, description="Parsed front-matter, None when absent or invalid"
    )
    links: List[WikiLink] = Field(default_factory=list, description="Outgoing wikilinks")
    headings: List[str] = Field(default_factory=list, description="Heading texts in order")

    model_config = {"validate_assignment": True}

    @field_validator("path")
    @classmethod
    def validate_path(cls, v: str) -> str:
        """Validate that the note path stays inside the vault."""
        return validate_note_path(v)

    @property
    def name(self) -> str:
        """File stem, the target used by bare ``[[Name]]`` links."""
        return PurePosixPath(self.path).name

    @property
    def folder(self) -> str:
        """Vault-relative folder of the note ("" at the root)."""
        parent = str(PurePosixPath(self.path).parent)
        return "" if parent == "." else parent

    @property
    def published(self) -> bool:
        return bool(self.front_matter and self.front_matter.dg_publish)

    @property
    def is_home(self) -> bool:
        return bool(self.front_matter and self.front_matter.dg_home)

    @property
    def permalink(self) -> Optional[str]:
        """Normalized permalink, or None when the note declares none."""
        if self.front_matter is None or not self.front_matter.permalink:
            return None
        return normalize_permalink(self.front_matter.permalink)

    @property
    def tags(self) -> List[str]:
        return list(self.front_matter.tags) if self.front_matter else []


class Severity(str, Enum):
    """How serious a lint finding is."""

    ERROR = "error"
    WARNING = "warning"


class IssueCode(str, Enum):
    """Stable identifiers for lint findings."""

    FRONT_MATTER_INVALID = "front-matter-invalid"
    LINK_BROKEN = "link-broken"
    LINK_AMBIGUOUS = "link-ambiguous"
    HEADING_MISSING = "heading-missing"
    PERMALINK_DUPLICATE = "permalink-duplicate"
    PERMALINK_INVALID = "permalink-invalid"
    PUBLISH_MISSING_PERMALINK = "publish-missing-permalink"
    LINK_TO_UNPUBLISHED = "link-to-unpublished"
    HOME_DUPLICATE = "home-duplicate"
    TAG_INVALID = "tag-invalid"
    NOTE_UNREADABLE = "note-unreadable"


class Issue(BaseModel):
    """A single lint finding."""

    code: IssueCode
    severity: Severity
    path: str = Field(..., description="Note the finding belongs to")
    message: str
    line: Optional[int] = Field(default=None, description="1-based line, when known")

    model_config = {"frozen": True}

    def format(self) -> str:
        """Render as ``path:line: severity [code] message``."""
        location = f"{self.path}.md"
        if self.line is not None:
            location += f":{self.line}"
        return f"{location}: {self.severity.value} [{self.code.value}] {self.message}"


class LintReport(BaseModel):
    """Outcome of linting a vault."""

    issues: List[Issue] = Field(default_factory=list)
    notes_checked: int = 0

    @property
    def errors(self) -> List[Issue]:
        return [i for i in self.issues if i.severity == Severity.ERROR]

    @property
    def warnings(self) -> List[Issue]:
        return [i for i in self.issues if i.severity == Severity.WARNING]

    def ok(self, strict: bool = False) -> bool:
        """True when the vault passes; ``strict`` also fails on warnings."""
        if strict:
            return not self.issues
        return not self.errors

    def to_dict(self) -> Dict[str, Any]:
        return {
            "notes_checked": self.notes_checked,
            "error_count": len(self.errors),
            "warning_count": len(self.warnings),
            "issues": [issue.model_dump(mode="json") for issue in self.issues],
        }
