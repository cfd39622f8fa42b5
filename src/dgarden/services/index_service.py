"""Tag and backlink index over a loaded vault.

Notes, tags and resolved links are loaded into an in-memory SQLite database
so that tag counts, backlinks and orphan detection are plain queries.
"""
import logging
from typing import Dict, Iterable, List, Optional

from sqlalchemy import func, select

from dgarden.models.db_models import (DBLink, DBNote, DBTag, get_session_factory,
                                      init_db, note_tags)
from dgarden.models.schema import Note, normalize_permalink
from dgarden.observability import timed_operation
from dgarden.storage.vault_repository import VaultRepository

logger = logging.getLogger(__name__)


class VaultIndex:
    """Queryable index of notes, tags and wikilinks.

    Use :meth:`build` to create one from loaded notes.
    """

    def __init__(self, engine=None):
        self.engine = engine or init_db()
        self.session_factory = get_session_factory(self.engine)

    @classmethod
    def build(cls, notes: Iterable[Note], repository: VaultRepository) -> "VaultIndex":
        """Index ``notes``, resolving their links through ``repository``."""
        index = cls()
        index.add_notes(list(notes), repository)
        return index

    def add_notes(self, notes: List[Note], repository: VaultRepository) -> None:
        """Insert notes with their tags and resolved links."""
        with timed_operation("build_index", note_count=len(notes)) as op:
            link_count = 0
            with self.session_factory() as session:
                tags: Dict[str, DBTag] = {
                    tag.name: tag for tag in session.scalars(select(DBTag)).all()
                }
                for note in notes:
                    db_note = DBNote(
                        path=note.path,
                        title=note.title,
                        published=note.published,
                        is_home=note.is_home,
                        permalink=note.permalink,
                    )
                    for name in dict.fromkeys(t for t in note.tags if t):
                        if name not in tags:
                            tags[name] = DBTag(name=name)
                        db_note.tags.append(tags[name])
                    session.add(db_note)
                session.flush()

                for note in notes:
                    for link in note.links:
                        resolution = repository.resolve(link, note)
                        session.add(
                            DBLink(
                                source_path=note.path,
                                target_path=resolution.note,
                                raw_target=str(link),
                                line=link.line,
                            )
                        )
                        link_count += 1
                session.commit()
            op["link_count"] = link_count
        logger.debug(f"Indexed {len(notes)} notes and {link_count} links")

    def tag_counts(self) -> Dict[str, int]:
        """Map every tag to the number of notes carrying it."""
        with self.session_factory() as session:
            result = session.execute(
                select(DBTag.name, func.count(note_tags.c.note_path))
                .select_from(DBTag)
                .outerjoin(note_tags, DBTag.id == note_tags.c.tag_id)
                .group_by(DBTag.name)
                .order_by(DBTag.name)
            ).all()
            return {name: count for name, count in result}

    def notes_with_tag(self, tag_name: str) -> List[str]:
        """Paths of notes carrying ``tag_name``."""
        with self.session_factory() as session:
            result = session.execute(
                select(note_tags.c.note_path)
                .select_from(note_tags)
                .join(DBTag, note_tags.c.tag_id == DBTag.id)
                .where(DBTag.name == tag_name.lstrip("#"))
                .order_by(note_tags.c.note_path)
            ).all()
            return [row[0] for row in result]

    def backlinks(self, path: str) -> List[str]:
        """Paths of other notes that link to ``path``."""
        with self.session_factory() as session:
            result = session.execute(
                select(DBLink.source_path)
                .where(DBLink.target_path == path)
                .where(DBLink.source_path != path)
                .distinct()
                .order_by(DBLink.source_path)
            ).all()
            return [row[0] for row in result]

    def outgoing(self, path: str) -> List[str]:
        """Paths of notes that ``path`` links to (resolved links only)."""
        with self.session_factory() as session:
            result = session.execute(
                select(DBLink.target_path)
                .where(DBLink.source_path == path)
                .where(DBLink.target_path.is_not(None))
                .where(DBLink.target_path != path)
                .distinct()
                .order_by(DBLink.target_path)
            ).all()
            return [row[0] for row in result]

    def orphans(self, published_only: bool = False) -> List[str]:
        """Notes no other note links to, excluding the home note."""
        with self.session_factory() as session:
            linked = (
                select(DBLink.target_path)
                .where(DBLink.target_path.is_not(None))
                .where(DBLink.target_path != DBLink.source_path)
            )
            query = (
                select(DBNote.path)
                .where(DBNote.path.not_in(linked))
                .where(DBNote.is_home.is_(False))
                .order_by(DBNote.path)
            )
            if published_only:
                query = query.where(DBNote.published.is_(True))
            return list(session.scalars(query).all())

    def published(self) -> List[str]:
        """Paths of notes flagged ``dg-publish``."""
        with self.session_factory() as session:
            return list(
                session.scalars(
                    select(DBNote.path)
                    .where(DBNote.published.is_(True))
                    .order_by(DBNote.path)
                ).all()
            )

    def find_by_permalink(self, permalink: str) -> Optional[str]:
        """Path of the first note declaring ``permalink``, compared normalized."""
        with self.session_factory() as session:
            return session.scalar(
                select(DBNote.path)
                .where(DBNote.permalink == normalize_permalink(permalink))
                .order_by(DBNote.path)
                .limit(1)
            )
