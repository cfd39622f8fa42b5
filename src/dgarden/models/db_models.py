"""SQLAlchemy models for the in-memory vault index."""
from sqlalchemy import (Boolean, Column, ForeignKey, Integer, String, Table,
                        Text, create_engine)
from sqlalchemy.orm import declarative_base, relationship, sessionmaker
from sqlalchemy.pool import StaticPool

# Create base class for SQLAlchemy models
Base = declarative_base()

# Association table for tags and notes
note_tags = Table(
    "note_tags",
    Base.metadata,
    Column("note_path", String(1024), ForeignKey("notes.path"), primary_key=True),
    Column("tag_id", Integer, ForeignKey("tags.id"), primary_key=True),
)


class DBNote(Base):
    """Database model for a note."""
    __tablename__ = "notes"
    path = Column(String(1024), primary_key=True, index=True)
    title = Column(String(512), nullable=False, index=True)
    published = Column(Boolean, default=False, nullable=False, index=True)
    is_home = Column(Boolean, default=False, nullable=False)
    permalink = Column(String(1024), nullable=True, index=True)

    # Relationships
    tags = relationship("DBTag", secondary=note_tags, back_populates="notes")
    outgoing_links = relationship(
        "DBLink",
        foreign_keys="DBLink.source_path",
        back_populates="source",
        cascade="all, delete-orphan"
    )
    incoming_links = relationship(
        "DBLink",
        foreign_keys="DBLink.target_path",
        back_populates="target",
    )

    def __repr__(self) -> str:
        """Return string representation of note."""
        return f"<Note(path='{self.path}', title='{self.title}')>"


class DBTag(Base):
    """Database model for a tag."""
    __tablename__ = "tags"
    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), unique=True, nullable=False)

    # Relationships
    notes = relationship("DBNote", secondary=note_tags, back_populates="tags")

    def __repr__(self) -> str:
        """Return string representation of tag."""
        return f"<Tag(id={self.id}, name='{self.name}')>"


class DBLink(Base):
    """Database model for a wikilink between notes.

    ``target_path`` is NULL when the link does not resolve to a note
    (broken links and attachment embeds).
    """
    __tablename__ = "links"
    id = Column(Integer, primary_key=True, autoincrement=True)
    source_path = Column(String(1024), ForeignKey("notes.path"), nullable=False, index=True)
    target_path = Column(String(1024), ForeignKey("notes.path"), nullable=True, index=True)
    raw_target = Column(Text, nullable=False)
    line = Column(Integer, nullable=False)

    # Relationships
    source = relationship(
        "DBNote", foreign_keys=[source_path], back_populates="outgoing_links"
    )
    target = relationship(
        "DBNote", foreign_keys=[target_path], back_populates="incoming_links"
    )

    def __repr__(self) -> str:
        """Return string representation of link."""
        return (
            f"<Link(id={self.id}, source='{self.source_path}', "
            f"target='{self.target_path}', raw='{self.raw_target}')>"
        )


def init_db():
    """Create an in-memory SQLite engine with the index schema.

    The index is rebuilt from the Markdown files on every run, so nothing is
    persisted. ``StaticPool`` keeps the single in-memory connection alive for
    every session.
    """
    engine = create_engine(
        "sqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(engine)
    return engine


def get_session_factory(engine):
    """Get a session factory for the database."""
    return sessionmaker(bind=engine)
