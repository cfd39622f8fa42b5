"""Repository for reading notes from an Obsidian vault on disk.

The vault directory is the single source of truth. Notes are keyed by their
vault-relative path without the ``.md`` suffix, which is also what a
path-qualified wikilink names.
"""
import logging
import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import Dict, Iterator, List, Optional, Sequence

from dgarden.exceptions import (
    ErrorCode,
    FrontMatterError,
    NoteNotFoundError,
    VaultError,
)
from dgarden.models.schema import Issue, IssueCode, Note, Severity, WikiLink
from dgarden.observability import timed_operation
from dgarden.storage.markdown_parser import MarkdownParser

logger = logging.getLogger(__name__)

NOTE_SUFFIX = ".md"


@dataclass
class LoadResult:
    """Notes read from the vault plus the problems met while reading them."""

    notes: List[Note] = field(default_factory=list)
    failures: List[Issue] = field(default_factory=list)


@dataclass(frozen=True)
class Resolution:
    """Where a wikilink points.

    Attributes:
        link: The link that was resolved.
        note: Path of the target note, if it is a note.
        attachment: Vault-relative path of the target file, if it is an
            attachment (image, PDF, ...).
        candidates: Every note path that matched; more than one means the
            link is ambiguous and ``note`` is the one Obsidian would open.
    """

    link: WikiLink
    note: Optional[str] = None
    attachment: Optional[str] = None
    candidates: Sequence[str] = ()

    @property
    def resolved(self) -> bool:
        return self.note is not None or self.attachment is not None

    @property
    def ambiguous(self) -> bool:
        return len(self.candidates) > 1


def _folder_of(path: str) -> str:
    parent = str(PurePosixPath(path).parent)
    return "" if parent == "." else parent


def _strip_suffix(target: str) -> str:
    if target.lower().endswith(NOTE_SUFFIX):
        return target[: -len(NOTE_SUFFIX)]
    return target


class VaultRepository:
    """Reads, writes and resolves notes inside a vault directory.

    Args:
        root: Vault root directory.
        ignore_dirs: Directory names skipped while walking (``.obsidian``...).
        parser: Parser used for note files.
    """

    def __init__(
        self,
        root: Path,
        ignore_dirs: Sequence[str] = (".obsidian", ".trash", ".git"),
        parser: Optional[MarkdownParser] = None,
    ) -> None:
        self.root = Path(root)
        if not self.root.is_dir():
            raise VaultError(
                f"Vault directory does not exist: {self.root}",
                operation="open",
                path=str(self.root),
                code=ErrorCode.VAULT_NOT_FOUND,
            )
        self.ignore_dirs = set(ignore_dirs)
        self.parser = parser or MarkdownParser()
        self._notes: Dict[str, Note] = {}
        # Lowercased lookups, rebuilt on every load
        self._by_path: Dict[str, str] = {}
        self._by_name: Dict[str, List[str]] = {}
        self._attachments: Dict[str, str] = {}

    # ------------------------------------------------------------------
    # Walking the vault
    # ------------------------------------------------------------------

    def _iter_files(self) -> Iterator[Path]:
        for dirpath, dirnames, filenames in os.walk(self.root):
            dirnames[:] = sorted(
                d for d in dirnames
                if d not in self.ignore_dirs and not d.startswith(".")
            )
            for filename in sorted(filenames):
                if filename.startswith("."):
                    continue
                yield Path(dirpath) / filename

    def relative_key(self, file_path: Path) -> str:
        """Vault-relative POSIX path of ``file_path``, without ``.md``."""
        relative = PurePosixPath(file_path.relative_to(self.root).as_posix())
        return _strip_suffix(str(relative))

    def iter_note_files(self) -> Iterator[Path]:
        """Yield every Markdown file in the vault, sorted per directory."""
        for file_path in self._iter_files():
            if file_path.suffix.lower() == NOTE_SUFFIX:
                yield file_path

    def list_attachments(self) -> List[str]:
        """Vault-relative paths of every non-Markdown file."""
        return [
            file_path.relative_to(self.root).as_posix()
            for file_path in self._iter_files()
            if file_path.suffix.lower() != NOTE_SUFFIX
        ]

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def load_notes(self) -> LoadResult:
        """Read and parse every note in the vault.

        A note whose front-matter cannot be used is still loaded, without
        front-matter, so its links can be checked; the problem is returned
        in ``failures``. Unreadable files are skipped and reported.
        """
        result = LoadResult()
        with timed_operation("load_notes", vault=self.root) as op:
            for file_path in self.iter_note_files():
                key = self.relative_key(file_path)
                try:
                    content = file_path.read_text(encoding="utf-8")
                except (OSError, UnicodeDecodeError) as e:
                    logger.warning(f"Skipping unreadable note {file_path}: {e}")
                    result.failures.append(
                        Issue(
                            code=IssueCode.NOTE_UNREADABLE,
                            severity=Severity.ERROR,
                            path=key,
                            message=f"Cannot read note: {e}",
                        )
                    )
                    continue

                try:
                    note = self.parser.parse_note(content, key)
                except FrontMatterError as e:
                    logger.info(f"Invalid front-matter in {key}: {e}")
                    result.failures.append(
                        Issue(
                            code=IssueCode.FRONT_MATTER_INVALID,
                            severity=Severity.ERROR,
                            path=key,
                            message=e.message,
                            line=e.line,
                        )
                    )
                    note = self.parser.parse_body_only(content, key)
                result.notes.append(note)

            self._index(result.notes)
            op["note_count"] = len(result.notes)
            op["failure_count"] = len(result.failures)
        return result

    def _index(self, notes: List[Note]) -> None:
        self._notes = {note.path: note for note in notes}
        self._by_path = {}
        self._by_name = {}
        for note in notes:
            self._by_path[note.path.lower()] = note.path
            self._by_name.setdefault(note.name.lower(), []).append(note.path)
        self._attachments = {path.lower(): path for path in self.list_attachments()}

    @property
    def notes(self) -> List[Note]:
        """Notes from the last :meth:`load_notes` call."""
        return list(self._notes.values())

    def get(self, path: str) -> Note:
        """Get a loaded note by its vault path.

        Raises:
            NoteNotFoundError: If no note has that path.
        """
        key = _strip_suffix(path.strip("/"))
        actual = self._by_path.get(key.lower())
        if actual is None:
            raise NoteNotFoundError(path)
        return self._notes[actual]

    def write_note(self, note: Note) -> Path:
        """Write a note to disk atomically and update the loaded set.

        Raises:
            VaultError: If the file cannot be written.
        """
        target = self.root / f"{note.path}{NOTE_SUFFIX}"
        markdown = self.parser.render_note(note)
        temp_name = None
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            fd, temp_name = tempfile.mkstemp(
                dir=target.parent, prefix=".dgarden-", suffix=".tmp"
            )
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(markdown)
            os.replace(temp_name, target)
        except OSError as e:
            if temp_name is not None and os.path.exists(temp_name):
                os.unlink(temp_name)
            raise VaultError(
                f"Failed to write note {note.path}",
                operation="write",
                path=str(target),
                code=ErrorCode.STORAGE_WRITE_FAILED,
                original_error=e,
            ) from e
        logger.debug(f"Wrote note {note.path} to {target}")

        self._notes[note.path] = note
        self._index(list(self._notes.values()))
        return target

    # ------------------------------------------------------------------
    # Link resolution
    # ------------------------------------------------------------------

    def resolve(self, link: WikiLink, source: Note) -> Resolution:
        """Resolve a wikilink the way Obsidian does.

        - ``[[#Heading]]`` points at the source note itself.
        - A target containing ``/`` names a note path, or the tail of one.
        - A bare target names any note with that file name; the candidate
          in the source note's folder wins, otherwise the shortest path.
        - Matching is case-insensitive and ignores a trailing ``.md``.
        - A target with another extension resolves against attachments.
        """
        if not link.target:
            return Resolution(link=link, note=source.path, candidates=(source.path,))

        target = link.target.strip("/")
        suffix = PurePosixPath(target).suffix.lower()
        if suffix and suffix != NOTE_SUFFIX:
            return self._resolve_attachment(link, target, source)
        return self._resolve_note(link, target, source)

    def _resolve_note(self, link: WikiLink, target: str, source: Note) -> Resolution:
        key = _strip_suffix(target).lower()
        if "/" in key:
            exact = self._by_path.get(key)
            if exact is not None:
                return Resolution(link=link, note=exact, candidates=(exact,))
            candidates = sorted(
                path for lowered, path in self._by_path.items()
                if lowered.endswith("/" + key)
            )
        else:
            candidates = sorted(self._by_name.get(key, []))

        if not candidates:
            return Resolution(link=link)

        return Resolution(
            link=link,
            note=self._pick(candidates, source),
            candidates=tuple(candidates),
        )

    def _resolve_attachment(self, link: WikiLink, target: str, source: Note) -> Resolution:
        lowered = target.lower()
        exact = self._attachments.get(lowered)
        if exact is not None:
            return Resolution(link=link, attachment=exact)
        name_matches = sorted(
            path for key, path in self._attachments.items()
            if key == lowered or key.endswith("/" + lowered)
        )
        if name_matches:
            return Resolution(link=link, attachment=min(name_matches, key=len))
        # Dotted note names such as "Release v1.2"
        return self._resolve_note(link, target, source)

    @staticmethod
    def _pick(candidates: List[str], source: Note) -> str:
        if len(candidates) == 1:
            return candidates[0]
        same_folder = [path for path in candidates if _folder_of(path) == source.folder]
        if same_folder:
            return same_folder[0]
        return min(candidates, key=lambda p: (p.count("/"), len(p), p))
