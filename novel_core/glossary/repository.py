"""
Glossary Repository
Database access layer for project glossaries.
"""
from typing import Dict, Iterable, List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from novel_config.logging_config import get_logger

from .db_models import GlossaryEntryRecord, ProjectGlossary, create_tables, get_engine
from .exceptions import DuplicateEntryError, EntryNotFoundError
from .models import GlossaryEntry, utcnow

logger = get_logger(__name__)


class GlossaryRepository:
    """
    Repository for glossary database operations.

    Every method returns immutable GlossaryEntry snapshots, never ORM rows.
    Mutations bump the project's revision.
    """

    def __init__(self, db_path: Optional[str] = None):
        """Initialize repository with database path."""
        if db_path is None:
            from novel_config.settings import get_settings
            db_path = str(get_settings().database_path)
        self.db_path = db_path
        self._engine = None
        self._session_factory = None

    @property
    def engine(self):
        """Get or create SQLAlchemy engine."""
        if self._engine is None:
            self._engine = create_tables(get_engine(self.db_path))
        return self._engine

    @property
    def session_factory(self):
        """Get session factory."""
        if self._session_factory is None:
            self._session_factory = sessionmaker(bind=self.engine, expire_on_commit=False)
        return self._session_factory

    def get_session(self) -> Session:
        """Get a new database session."""
        return self.session_factory()

    # ==================== PROJECT BOOKKEEPING ====================

    def _touch_project(self, session: Session, project_id: str) -> ProjectGlossary:
        project = session.get(ProjectGlossary, project_id)
        if project is None:
            project = ProjectGlossary(project_id=project_id, revision=0, entry_count=0)
            session.add(project)
        project.revision = (project.revision or 0) + 1
        project.entry_count = session.query(func.count(GlossaryEntryRecord.id)).filter(
            GlossaryEntryRecord.project_id == project_id
        ).scalar()
        return project

    def get_revision(self, project_id: str) -> int:
        """Current glossary revision for a project (0 if never written)."""
        with self.get_session() as session:
            project = session.get(ProjectGlossary, project_id)
            return project.revision if project else 0

    def count_entries(self, project_id: str) -> int:
        with self.get_session() as session:
            return session.query(func.count(GlossaryEntryRecord.id)).filter(
                GlossaryEntryRecord.project_id == project_id
            ).scalar()

    # ==================== ENTRY OPERATIONS ====================

    def _next_position(self, session: Session, project_id: str) -> int:
        current = session.query(func.max(GlossaryEntryRecord.position)).filter(
            GlossaryEntryRecord.project_id == project_id
        ).scalar()
        return 0 if current is None else current + 1

    def _find_duplicate(
        self,
        session: Session,
        project_id: str,
        original_term: str,
        exclude_id: Optional[str] = None,
    ) -> Optional[GlossaryEntryRecord]:
        query = session.query(GlossaryEntryRecord).filter(
            GlossaryEntryRecord.project_id == project_id,
            GlossaryEntryRecord.original_term_lower == original_term.lower(),
        )
        if exclude_id:
            query = query.filter(GlossaryEntryRecord.id != exclude_id)
        return query.first()

    @staticmethod
    def _new_record(project_id: str, entry: GlossaryEntry, position: int) -> GlossaryEntryRecord:
        record = GlossaryEntryRecord(
            id=entry.id,
            project_id=project_id,
            position=position,
            original_term_lower=entry.original_term.lower(),
            usage_count=entry.usage_count,
            created_at=entry.created_at,
            last_used_at=entry.last_used_at,
        )
        record.apply(entry)
        return record

    def add_entry(self, project_id: str, entry: GlossaryEntry) -> GlossaryEntry:
        """
        Add an entry to a project glossary.

        Raises:
            DuplicateEntryError: original term already present (case-insensitive)
        """
        with self.get_session() as session:
            if self._find_duplicate(session, project_id, entry.original_term):
                raise DuplicateEntryError(entry.original_term)

            record = self._new_record(project_id, entry, self._next_position(session, project_id))
            try:
                session.add(record)
                session.flush()
                self._touch_project(session, project_id)
                session.commit()
            except IntegrityError:
                session.rollback()
                logger.warning(f"Duplicate entry: {entry.original_term}")
                raise DuplicateEntryError(entry.original_term)

            logger.info(f"Added glossary entry: {entry.original_term} ({record.id})")
            return record.to_entry()

    def add_entries_bulk(
        self,
        project_id: str,
        entries: Iterable[GlossaryEntry],
        skip_duplicates: bool = True,
    ) -> Tuple[List[GlossaryEntry], int, List[dict]]:
        """
        Add multiple entries in one transaction.

        Returns:
            Tuple of (added_entries, skipped_count, errors)
        """
        added: List[GlossaryEntry] = []
        skipped = 0
        errors: List[dict] = []

        with self.get_session() as session:
            position = self._next_position(session, project_id)
            seen = set()

            for i, entry in enumerate(entries):
                key = entry.original_term.lower()
                if key in seen or self._find_duplicate(session, project_id, entry.original_term):
                    if skip_duplicates:
                        skipped += 1
                    else:
                        errors.append({
                            "index": i,
                            "original_term": entry.original_term,
                            "error": "Entry already exists",
                        })
                    continue

                seen.add(key)
                record = self._new_record(project_id, entry, position)
                session.add(record)
                added.append(entry)
                position += 1

            if added:
                session.flush()
                self._touch_project(session, project_id)
            session.commit()

        logger.info(f"Bulk add to {project_id}: {len(added)} added, {skipped} skipped")
        return added, skipped, errors

    def get_entry(self, project_id: str, entry_id: str) -> Optional[GlossaryEntry]:
        """Get a specific entry."""
        with self.get_session() as session:
            record = session.query(GlossaryEntryRecord).filter(
                GlossaryEntryRecord.project_id == project_id,
                GlossaryEntryRecord.id == entry_id,
            ).first()
            return record.to_entry() if record else None

    def list_entries(
        self,
        project_id: str,
        active_only: bool = False,
        category: Optional[str] = None,
        search: Optional[str] = None,
    ) -> List[GlossaryEntry]:
        """List entries in glossary order."""
        with self.get_session() as session:
            query = session.query(GlossaryEntryRecord).filter(
                GlossaryEntryRecord.project_id == project_id
            )
            if active_only:
                query = query.filter(GlossaryEntryRecord.is_active == True)  # noqa: E712
            if category:
                query = query.filter(GlossaryEntryRecord.category == category)
            if search:
                query = query.filter(
                    GlossaryEntryRecord.original_term.ilike(f"%{search}%")
                    | GlossaryEntryRecord.translation.ilike(f"%{search}%")
                )
            records = query.order_by(GlossaryEntryRecord.position).all()
            return [r.to_entry() for r in records]

    def update_entry(self, project_id: str, entry: GlossaryEntry) -> GlossaryEntry:
        """
        Replace an entry's editable fields with those of the given snapshot.

        Raises:
            EntryNotFoundError: no entry with ``entry.id`` in the project
            DuplicateEntryError: the new original term collides with another entry
        """
        with self.get_session() as session:
            record = session.query(GlossaryEntryRecord).filter(
                GlossaryEntryRecord.project_id == project_id,
                GlossaryEntryRecord.id == entry.id,
            ).first()
            if not record:
                raise EntryNotFoundError(project_id, entry.id)
            if self._find_duplicate(session, project_id, entry.original_term, exclude_id=entry.id):
                raise DuplicateEntryError(entry.original_term)

            record.apply(entry)
            self._touch_project(session, project_id)
            session.commit()
            return record.to_entry()

    def delete_entry(self, project_id: str, entry_id: str) -> bool:
        """Delete an entry."""
        with self.get_session() as session:
            record = session.query(GlossaryEntryRecord).filter(
                GlossaryEntryRecord.project_id == project_id,
                GlossaryEntryRecord.id == entry_id,
            ).first()
            if not record:
                return False

            session.delete(record)
            session.flush()
            self._touch_project(session, project_id)
            session.commit()
            logger.info(f"Deleted glossary entry: {entry_id}")
            return True

    def increment_usage_count(self, project_id: str, entry_ids: Iterable[str]) -> int:
        """
        Increment usage counts for entries.

        Bookkeeping only, so the revision is left alone.
        """
        ids = list(set(entry_ids))
        if not ids:
            return 0
        with self.get_session() as session:
            updated = session.query(GlossaryEntryRecord).filter(
                GlossaryEntryRecord.project_id == project_id,
                GlossaryEntryRecord.id.in_(ids),
            ).update(
                {
                    GlossaryEntryRecord.usage_count: GlossaryEntryRecord.usage_count + 1,
                    GlossaryEntryRecord.last_used_at: utcnow(),
                },
                synchronize_session=False,
            )
            session.commit()
            return updated

    def usage_counts(self, project_id: str) -> Dict[str, int]:
        with self.get_session() as session:
            rows = session.query(GlossaryEntryRecord.id, GlossaryEntryRecord.usage_count).filter(
                GlossaryEntryRecord.project_id == project_id
            ).all()
            return {entry_id: count for entry_id, count in rows}


# Global instance
_repository: Optional[GlossaryRepository] = None


def get_repository() -> GlossaryRepository:
    """Get or create the global repository instance."""
    global _repository
    if _repository is None:
        _repository = GlossaryRepository()
    return _repository
