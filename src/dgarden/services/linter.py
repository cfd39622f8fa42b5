"""Vault linting.

Each ``check_*`` function inspects the loaded notes for one class of
problem and returns Issues; :class:`Linter` runs them all over a vault.
"""
import logging
import re
from collections import defaultdict
from typing import Dict, Iterable, List, Optional, Set

from dgarden.config import GardenConfig, config as default_config
from dgarden.models.schema import (
    PERMALINK_PATTERN,
    Issue,
    IssueCode,
    LintReport,
    Note,
    Severity,
    normalize_permalink,
)
from dgarden.observability import timed_operation
from dgarden.services.publisher import published_permalink
from dgarden.storage.vault_repository import VaultRepository

logger = logging.getLogger(__name__)

_WHITESPACE = re.compile(r"\s")


def _heading_key(text: str) -> str:
    return " ".join(text.split()).lower()


def check_links(notes: Iterable[Note], repository: VaultRepository) -> List[Issue]:
    """Report wikilinks that resolve to nothing, several notes, or a missing heading."""
    issues: List[Issue] = []
    for note in notes:
        for link in note.links:
            resolution = repository.resolve(link, note)
            if not resolution.resolved:
                issues.append(
                    Issue(
                        code=IssueCode.LINK_BROKEN,
                        severity=Severity.ERROR,
                        path=note.path,
                        line=link.line,
                        message=f"{link} does not resolve to any note or attachment",
                    )
                )
                continue

            if resolution.ambiguous:
                issues.append(
                    Issue(
                        code=IssueCode.LINK_AMBIGUOUS,
                        severity=Severity.WARNING,
                        path=note.path,
                        line=link.line,
                        message=(
                            f"{link} matches {len(resolution.candidates)} notes "
                            f"({', '.join(resolution.candidates)}); "
                            f"'{resolution.note}' is used"
                        ),
                    )
                )

            # Block references (#^id) are not checked against headings
            if resolution.note and link.heading and not link.heading.startswith("^"):
                target = repository.get(resolution.note)
                wanted = _heading_key(link.heading)
                if wanted not in {_heading_key(h) for h in target.headings}:
                    issues.append(
                        Issue(
                            code=IssueCode.HEADING_MISSING,
                            severity=Severity.WARNING,
                            path=note.path,
                            line=link.line,
                            message=f"{link}: '{target.path}' has no heading '{link.heading}'",
                        )
                    )
    return issues


def check_permalinks(notes: Iterable[Note]) -> List[Issue]:
    """Report malformed permalinks and URLs claimed by several notes.

    Published notes are checked at the URL they will be served at, which
    may be derived from their path; unpublished notes only reserve an
    explicit permalink.
    """
    issues: List[Issue] = []
    owners: Dict[str, List[str]] = defaultdict(list)
    derived: Set[str] = set()
    home_seen = False

    for note in notes:
        raw = note.front_matter.permalink if note.front_matter else None
        if raw is not None:
            if not raw.strip() or _WHITESPACE.search(raw.strip()) or ".." in raw:
                issues.append(
                    Issue(
                        code=IssueCode.PERMALINK_INVALID,
                        severity=Severity.ERROR,
                        path=note.path,
                        message=f"Permalink {raw!r} is empty or contains whitespace or '..'",
                    )
                )
                continue
            if not PERMALINK_PATTERN.match(normalize_permalink(raw)):
                issues.append(
                    Issue(
                        code=IssueCode.PERMALINK_INVALID,
                        severity=Severity.ERROR,
                        path=note.path,
                        message=f"Permalink {raw!r} contains characters not allowed in a URL path",
                    )
                )
                continue

        if note.published:
            if note.is_home:
                # Further homes are reported as home-duplicate
                if home_seen:
                    continue
                home_seen = True
            owners[published_permalink(note)].append(note.path)
            if raw is None and not note.is_home:
                derived.add(note.path)
        elif raw is not None:
            owners[normalize_permalink(raw)].append(note.path)

    for permalink, paths in owners.items():
        if len(paths) < 2:
            continue
        for path in paths:
            others = ", ".join(p for p in paths if p != path)
            origin = " (derived from its path)" if path in derived else ""
            issues.append(
                Issue(
                    code=IssueCode.PERMALINK_DUPLICATE,
                    severity=Severity.ERROR,
                    path=path,
                    message=f"Permalink '{permalink}'{origin} is also used by {others}",
                )
            )
    return issues


def check_publishing(
    notes: Iterable[Note],
    repository: VaultRepository,
    require_permalink: bool = True,
    check_unpublished_links: bool = True,
) -> List[Issue]:
    """Report publishing problems: missing permalinks, dead published links, several homes."""
    issues: List[Issue] = []
    homes: List[str] = []

    for note in notes:
        if note.is_home:
            homes.append(note.path)
        if not note.published:
            continue

        if require_permalink and note.permalink is None and not note.is_home:
            issues.append(
                Issue(
                    code=IssueCode.PUBLISH_MISSING_PERMALINK,
                    severity=Severity.WARNING,
                    path=note.path,
                    message="Published note has no permalink; the site will derive one from its path",
                )
            )

        if not check_unpublished_links:
            continue
        for link in note.links:
            resolution = repository.resolve(link, note)
            if resolution.note is None or resolution.note == note.path:
                continue
            if not repository.get(resolution.note).published:
                issues.append(
                    Issue(
                        code=IssueCode.LINK_TO_UNPUBLISHED,
                        severity=Severity.WARNING,
                        path=note.path,
                        line=link.line,
                        message=f"{link} points to '{resolution.note}', which is not published",
                    )
                )

    if len(homes) > 1:
        for path in homes:
            issues.append(
                Issue(
                    code=IssueCode.HOME_DUPLICATE,
                    severity=Severity.ERROR,
                    path=path,
                    message=f"{len(homes)} notes are marked dg-home: {', '.join(homes)}",
                )
            )
    return issues


def check_tags(notes: Iterable[Note]) -> List[Issue]:
    """Report empty tags and tags containing whitespace."""
    issues: List[Issue] = []
    for note in notes:
        for tag in note.tags:
            if not tag or _WHITESPACE.search(tag):
                issues.append(
                    Issue(
                        code=IssueCode.TAG_INVALID,
                        severity=Severity.WARNING,
                        path=note.path,
                        message=f"Tag {tag!r} is empty or contains whitespace",
                    )
                )
    return issues


class Linter:
    """Runs every check over a vault.

    Args:
        repository: Vault to lint; notes are (re)loaded by :meth:`lint`.
        config: Settings controlling the optional publishing checks.
    """

    def __init__(
        self,
        repository: VaultRepository,
        config: Optional[GardenConfig] = None,
    ) -> None:
        self.repository = repository
        self.config = config or default_config

    def lint(self) -> LintReport:
        """Load the vault and return every finding, sorted by path and line."""
        with timed_operation("lint", vault=self.repository.root) as op:
            loaded = self.repository.load_notes()
            notes = loaded.notes

            issues: List[Issue] = list(loaded.failures)
            issues.extend(check_links(notes, self.repository))
            issues.extend(check_permalinks(notes))
            issues.extend(
                check_publishing(
                    notes,
                    self.repository,
                    require_permalink=self.config.require_permalink,
                    check_unpublished_links=self.config.check_unpublished_links,
                )
            )
            issues.extend(check_tags(notes))
            issues.sort(key=lambda i: (i.path, i.line or 0, i.code.value))

            report = LintReport(issues=issues, notes_checked=len(notes))
            op["error_count"] = len(report.errors)
            op["warning_count"] = len(report.warnings)

        logger.info(
            f"Linted {report.notes_checked} notes: "
            f"{len(report.errors)} errors, {len(report.warnings)} warnings"
        )
        return report
