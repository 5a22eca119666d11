"""
Glossary Database Models
SQLAlchemy models for project glossaries and their entries.
"""
import json
from datetime import datetime
from pathlib import Path
from typing import Optional

from sqlalchemy import (
    Boolean, DateTime, Index, Integer, String, Text, create_engine, event,
)
from sqlalchemy.orm import Mapped, declarative_base, mapped_column

from .models import GlossaryEntry, generate_uuid, utcnow

Base = declarative_base()


class ProjectGlossary(Base):
    """
    Per-project glossary bookkeeping.

    Attributes:
        project_id: Owning translation project
        revision: Bumped on every entry mutation; term indexes built for an
            older revision are stale
        entry_count: Cached count of entries
    """

    __tablename__ = "project_glossaries"

    project_id: Mapped[str] = mapped_column(String(36), primary_key=True)
    revision: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    entry_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow
    )

    def __repr__(self):
        return f"<ProjectGlossary {self.project_id} r{self.revision} ({self.entry_count} entries)>"


class GlossaryEntryRecord(Base):
    """
    One glossary entry row.

    Attributes:
        id: Unique identifier (UUID)
        project_id: Owning project
        position: Glossary list order, used for matcher tie-breaks
        original_term_lower: Lowercase version for duplicate detection
        aliases_json: JSON array of alias strings
    """

    __tablename__ = "glossary_entries"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=generate_uuid
    )
    project_id: Mapped[str] = mapped_column(String(36), nullable=False)
    position: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    # Term data
    original_term: Mapped[str] = mapped_column(String(500), nullable=False)
    original_term_lower: Mapped[str] = mapped_column(String(500), nullable=False)
    translation: Mapped[str] = mapped_column(String(1000), nullable=False)
    category: Mapped[str] = mapped_column(String(20), default="other", nullable=False)
    aliases_json: Mapped[str] = mapped_column(Text, default="[]", nullable=False)
    gender: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)
    context_description: Mapped[str] = mapped_column(Text, default="", nullable=False)

    # Bookkeeping
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    usage_count: Mapped[int] = mapped_column(Integer, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    last_used_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index("idx_entries_project", "project_id", "position"),
        Index("idx_entries_unique", "project_id", "original_term_lower", unique=True),
    )

    def __repr__(self):
        return f"<Entry {self.original_term} → {self.translation}>"

    @property
    def aliases(self):
        return json.loads(self.aliases_json or "[]")

    @aliases.setter
    def aliases(self, value):
        self.aliases_json = json.dumps(list(value or []), ensure_ascii=False)

    def to_entry(self) -> GlossaryEntry:
        """Snapshot this row as an immutable GlossaryEntry."""
        return GlossaryEntry(
            id=self.id,
            original_term=self.original_term,
            translation=self.translation,
            category=self.category,
            aliases=tuple(self.aliases),
            gender=self.gender,
            context_description=self.context_description or "",
            is_active=self.is_active,
            usage_count=self.usage_count or 0,
            created_at=self.created_at,
            last_used_at=self.last_used_at,
        )

    def apply(self, entry: GlossaryEntry) -> None:
        """Copy editable fields from an entry snapshot."""
        self.original_term = entry.original_term
        self.translation = entry.translation
        self.category = entry.category.value
        self.aliases = entry.aliases
        self.gender = entry.gender.value if entry.gender else None
        self.context_description = entry.context_description
        self.is_active = entry.is_active


# ==================== EVENT LISTENERS ====================

@event.listens_for(GlossaryEntryRecord, "before_insert")
def set_term_lower_on_insert(mapper, connection, target):
    """Auto-set original_term_lower before insert."""
    if target.original_term:
        target.original_term_lower = target.original_term.lower()


@event.listens_for(GlossaryEntryRecord, "before_update")
def set_term_lower_on_update(mapper, connection, target):
    """Auto-set original_term_lower before update."""
    if target.original_term:
        target.original_term_lower = target.original_term.lower()


# ==================== DATABASE SETUP ====================

def get_engine(db_path: str):
    """Create SQLAlchemy engine."""
    Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    return create_engine(
        f"sqlite:///{db_path}",
        echo=False,
        connect_args={"check_same_thread": False},
    )


def create_tables(engine):
    """Create all glossary tables."""
    Base.metadata.create_all(engine)
    return engine
