"""
Glossary Service
Business logic layer for project glossaries.
"""
from io import BytesIO
from typing import Dict, List, Optional, Tuple

from novel_config.logging_config import get_logger
from novel_core.translation.prompt_builder import (
    PromptBuilder, collect_previous_context, get_prompt_builder,
)
from novel_core.translation.schemas import (
    ExtractionPromptRequest, PromptResponse, TranslationPromptRequest,
)

from .exceptions import EntryNotFoundError, GlossaryFormatError
from .highlight import CATEGORY_COLORS, highlight_text
from .index import TermIndex
from .io import (
    export_entries_to_csv, export_entries_to_json,
    filter_new_entries, import_entries_from_csv, import_entries_from_json,
    parse_extraction_response,
)
from .matcher import GlossaryMatch, GlossaryMatcher, get_matcher, get_unique_entries
from .models import GlossaryEntry, MatchMode, generate_uuid
from .repository import GlossaryRepository, get_repository
from .schemas import (
    BulkEntryCreate, BulkEntryResult, EntryCreate, EntryResponse, EntryUpdate,
    ImportResult, MatchItem, MatchRequest, MatchResponse, VerifyResponse,
)

logger = get_logger(__name__)

HIGHLIGHT_FORMATS = ("markdown", "html", "plain")


class GlossaryService:
    """
    Service layer for glossary operations.

    Coordinates repository, term indexes, matcher and prompt builder. Term
    indexes are cached per (project, mode) and rebuilt whenever the
    project's glossary revision moves.
    """

    def __init__(
        self,
        repository: Optional[GlossaryRepository] = None,
        matcher: Optional[GlossaryMatcher] = None,
        prompt_builder: Optional[PromptBuilder] = None,
        case_sensitive: Optional[bool] = None,
    ):
        """Initialize service."""
        if case_sensitive is None:
            from novel_config.settings import get_settings
            case_sensitive = get_settings().match_case_sensitive

        self.repository = repository or get_repository()
        self.matcher = matcher or get_matcher()
        self.prompt_builder = prompt_builder or get_prompt_builder()
        self.case_sensitive = case_sensitive
        self._index_cache: Dict[Tuple[str, MatchMode], Tuple[int, TermIndex]] = {}

    # ==================== ENTRY OPERATIONS ====================

    async def add_entry(self, project_id: str, data: EntryCreate) -> EntryResponse:
        """Add an entry to a project glossary."""
        entry = self.repository.add_entry(project_id, data.to_entry())
        return EntryResponse.from_entry(entry)

    async def add_entries_bulk(self, project_id: str, data: BulkEntryCreate) -> BulkEntryResult:
        """Add multiple entries."""
        added, skipped, errors = self.repository.add_entries_bulk(
            project_id,
            [e.to_entry() for e in data.entries],
            skip_duplicates=data.skip_duplicates,
        )
        return BulkEntryResult(added=len(added), skipped=skipped, errors=errors)

    async def get_entry(self, project_id: str, entry_id: str) -> Optional[EntryResponse]:
        """Get entry by ID."""
        entry = self.repository.get_entry(project_id, entry_id)
        return EntryResponse.from_entry(entry) if entry else None

    async def list_entries(
        self,
        project_id: str,
        category: Optional[str] = None,
        search: Optional[str] = None,
        active_only: bool = False,
    ) -> List[EntryResponse]:
        """List entries in glossary order."""
        entries = self.repository.list_entries(
            project_id, active_only=active_only, category=category, search=search,
        )
        return [EntryResponse.from_entry(e) for e in entries]

    async def update_entry(self, project_id: str, entry_id: str, data: EntryUpdate) -> EntryResponse:
        """Apply a partial update and store the new snapshot."""
        current = self.repository.get_entry(project_id, entry_id)
        if current is None:
            raise EntryNotFoundError(project_id, entry_id)
        updated = self.repository.update_entry(project_id, data.apply_to(current))
        return EntryResponse.from_entry(updated)

    async def delete_entry(self, project_id: str, entry_id: str) -> bool:
        """Delete entry."""
        return self.repository.delete_entry(project_id, entry_id)

    # ==================== INDEX ====================

    def get_index(self, project_id: str, mode: MatchMode = MatchMode.SOURCE) -> TermIndex:
        """
        Term index over the project's active entries.

        Rebuilt only when the glossary revision changed since the last build.
        """
        mode = MatchMode(mode)
        key = (project_id, mode)
        revision = self.repository.get_revision(project_id)

        cached = self._index_cache.get(key)
        if cached is not None and cached[0] == revision:
            return cached[1]

        entries = self.repository.list_entries(project_id, active_only=True)
        index = TermIndex.build(entries, mode, self.case_sensitive)
        self._index_cache[key] = (revision, index)
        logger.info(
            f"Rebuilt {mode.value} index for project {project_id} "
            f"(revision {revision}, {len(index)} candidates)"
        )
        return index

    def clear_cache(self, project_id: Optional[str] = None):
        """Drop cached indexes."""
        if project_id is None:
            self._index_cache.clear()
            return
        for key in [k for k in self._index_cache if k[0] == project_id]:
            del self._index_cache[key]

    # ==================== MATCHING ====================

    async def detect(
        self,
        project_id: str,
        text: str,
        mode: MatchMode = MatchMode.SOURCE,
    ) -> List[GlossaryMatch]:
        """Run the matcher over one pane of text."""
        return self.matcher.detect(text, self.get_index(project_id, mode))

    async def match_text(self, project_id: str, request: MatchRequest) -> MatchResponse:
        """Find matching terms in text."""
        matches = await self.detect(project_id, request.text, request.mode)

        highlighted_text = None
        if request.highlight:
            if request.highlight not in HIGHLIGHT_FORMATS:
                raise ValueError(f"Unsupported highlight format: {request.highlight}")
            highlighted_text = highlight_text(request.text, matches, request.highlight)

        return MatchResponse(
            matches=[
                MatchItem(
                    entry_id=m.entry.id,
                    original_term=m.entry.original_term,
                    translation=m.entry.translation,
                    category=m.entry.category,
                    start=m.start,
                    end=m.end,
                    matched_alias=m.matched_alias,
                    color=CATEGORY_COLORS[m.entry.category],
                )
                for m in matches
            ],
            highlighted_text=highlighted_text,
            match_count=len(matches),
            unique_entries=len(get_unique_entries(matches)),
        )

    async def verify_translation(
        self,
        project_id: str,
        source_text: str,
        translated_text: str,
    ) -> VerifyResponse:
        """
        Check that every entry matched in the source has its translation
        present in the translated text.
        """
        expected = get_unique_entries(await self.detect(project_id, source_text, MatchMode.SOURCE))
        translated = await self.detect(project_id, translated_text, MatchMode.TRANSLATED)
        present = {m.entry.id for m in translated}

        found = [e for e in expected if e.id in present]
        missing = [e for e in expected if e.id not in present]
        if missing:
            logger.info(f"Translation is missing {len(missing)} glossary terms")

        return VerifyResponse(
            verified=not missing,
            found=[EntryResponse.from_entry(e) for e in found],
            missing=[EntryResponse.from_entry(e) for e in missing],
        )

    # ==================== PROMPTS ====================

    async def build_translation_prompt(
        self,
        project_id: str,
        request: TranslationPromptRequest,
    ) -> PromptResponse:
        """Detect glossary terms in the chapter and assemble its prompt."""
        matches = await self.detect(project_id, request.text, MatchMode.SOURCE)
        previous_context = request.previous_context
        if not previous_context and request.chapter_id and request.chapters:
            previous_context = collect_previous_context(
                [c.to_chapter() for c in request.chapters],
                request.chapter_id,
                request.config.previous_context_chapter_count,
            )
        prompt = self.prompt_builder.build_translation_prompt(
            text=request.text,
            glossary_matches=matches,
            source_language=request.source_language,
            target_language=request.target_language,
            preset=request.preset,
            config=request.config,
            previous_context=previous_context,
        )

        entry_ids = [e.id for e in get_unique_entries(matches)]
        if request.record_usage and entry_ids:
            self.repository.increment_usage_count(project_id, entry_ids)

        return PromptResponse(prompt=prompt, glossary_entry_ids=entry_ids, match_count=len(matches))

    async def build_extraction_prompt(
        self,
        project_id: str,
        request: ExtractionPromptRequest,
    ) -> PromptResponse:
        """Build the glossary-extraction prompt against the current glossary."""
        existing = self.repository.list_entries(project_id)
        prompt = self.prompt_builder.build_glossary_extraction_prompt(
            source_text=request.source_text,
            translated_text=request.translated_text,
            existing_glossary=existing,
            source_language=request.source_language,
            target_language=request.target_language,
            categories=request.categories,
            additional_query=request.additional_query,
            fill_context=request.fill_context,
        )
        return PromptResponse(prompt=prompt)

    async def apply_extraction_response(self, project_id: str, raw: str) -> BulkEntryResult:
        """
        Parse an LLM extraction reply and add the genuinely new entries.

        Raises:
            GlossaryFormatError: the reply holds no entry array
        """
        proposed = parse_extraction_response(raw)
        existing = self.repository.list_entries(project_id)
        fresh = [e.replace(id=generate_uuid()) for e in filter_new_entries(proposed, existing)]

        added, skipped, errors = self.repository.add_entries_bulk(project_id, fresh)
        return BulkEntryResult(
            added=len(added),
            skipped=skipped + len(proposed) - len(fresh),
            errors=errors,
        )

    # ==================== IMPORT/EXPORT ====================

    async def export_entries(self, project_id: str, format: str = "json") -> Tuple[BytesIO, str, str]:
        """
        Export entries to file.

        Supports: json, csv

        Returns:
            Tuple of (file_content, filename, media_type)
        """
        entries = self.repository.list_entries(project_id)

        if format == "json":
            content_str = export_entries_to_json(entries, project_name=project_id)
            media_type = "application/json"
        elif format == "csv":
            content_str = export_entries_to_csv(entries)
            media_type = "text/csv"
        else:
            raise ValueError(f"Unsupported format: {format}")

        filename = f"glossary_{project_id}.{format}"
        return BytesIO(content_str.encode("utf-8")), filename, media_type

    async def import_entries(
        self,
        project_id: str,
        content: str,
        format: str = "json",
        skip_duplicates: bool = True,
    ) -> ImportResult:
        """Import entries from JSON or CSV content."""
        if format == "json":
            parsed, parse_errors = import_entries_from_json(content)
        elif format == "csv":
            parsed, parse_errors = import_entries_from_csv(content)
        else:
            raise GlossaryFormatError(f"Unsupported format: {format}")

        # Imported ids may belong to another project
        entries = [e.replace(id=generate_uuid(), usage_count=0) for e in parsed]
        added, skipped, errors = self.repository.add_entries_bulk(
            project_id, entries, skip_duplicates=skip_duplicates,
        )
        errors = parse_errors + errors

        if not added and (errors or not parsed):
            status = "failed"
        elif errors:
            status = "partial"
        else:
            status = "completed"

        logger.info(f"Imported {len(added)} entries into {project_id} ({status})")
        return ImportResult(status=status, added=len(added), skipped=skipped, errors=errors)


# Global instance
_service: Optional[GlossaryService] = None


def get_glossary_service() -> GlossaryService:
    """Get or create the global service instance."""
    global _service
    if _service is None:
        _service = GlossaryService()
    return _service
