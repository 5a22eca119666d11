"""
Glossary API Router
FastAPI endpoints for project glossary entries and term matching.
"""
from fastapi import APIRouter, HTTPException, Query, UploadFile, File
from fastapi.responses import StreamingResponse
from typing import Optional

from novel_config.logging_config import get_logger
from novel_core.glossary.exceptions import (
    DuplicateEntryError, EntryNotFoundError, GlossaryFormatError,
)
from novel_core.glossary.models import GlossaryCategory
from novel_core.glossary.service import get_glossary_service, GlossaryService
from novel_core.glossary.schemas import (
    EntryCreate, EntryUpdate, EntryResponse, EntryListResponse,
    BulkEntryCreate, BulkEntryResult,
    MatchRequest, MatchResponse,
    VerifyRequest, VerifyResponse,
    ImportResult,
)

logger = get_logger(__name__)

router = APIRouter(prefix="/api/projects/{project_id}/glossary", tags=["Glossary"])


def get_service() -> GlossaryService:
    """Get glossary service instance."""
    return get_glossary_service()


# =============================================================================
# Entry CRUD
# =============================================================================

@router.get("/categories")
async def list_categories(project_id: str):
    """Get list of entry categories."""
    return {"categories": [c.value for c in GlossaryCategory]}


@router.post("/entries", response_model=EntryResponse)
async def create_entry(project_id: str, data: EntryCreate):
    """
    Add an entry to the project glossary.

    - **original_term**: Source-language term
    - **translation**: Target-language term
    - **category**: character, place, event, object, concept, organization, technique, other
    - **aliases**: Alternate source spellings, matched like the term itself
    """
    service = get_service()
    try:
        return await service.add_entry(project_id, data)
    except DuplicateEntryError as e:
        raise HTTPException(status_code=409, detail=str(e))


@router.post("/entries/bulk", response_model=BulkEntryResult)
async def create_entries_bulk(project_id: str, data: BulkEntryCreate):
    """Add up to 1000 entries at once."""
    service = get_service()
    return await service.add_entries_bulk(project_id, data)


@router.get("/entries", response_model=EntryListResponse)
async def list_entries(
    project_id: str,
    category: Optional[GlossaryCategory] = Query(None, description="Filter by category"),
    search: Optional[str] = Query(None, description="Search term or translation"),
    active_only: bool = Query(False, description="Only active entries"),
):
    """List entries in glossary order."""
    service = get_service()
    entries = await service.list_entries(
        project_id,
        category=category.value if category else None,
        search=search,
        active_only=active_only,
    )
    return EntryListResponse(entries=entries, total=len(entries))


@router.get("/entries/{entry_id}", response_model=EntryResponse)
async def get_entry(project_id: str, entry_id: str):
    """Get entry by ID."""
    service = get_service()
    entry = await service.get_entry(project_id, entry_id)
    if not entry:
        raise HTTPException(status_code=404, detail="Entry not found")
    return entry


@router.patch("/entries/{entry_id}", response_model=EntryResponse)
async def update_entry(project_id: str, entry_id: str, data: EntryUpdate):
    """Update an entry (partial update)."""
    service = get_service()
    try:
        return await service.update_entry(project_id, entry_id, data)
    except EntryNotFoundError:
        raise HTTPException(status_code=404, detail="Entry not found")
    except DuplicateEntryError as e:
        raise HTTPException(status_code=409, detail=str(e))


@router.delete("/entries/{entry_id}")
async def delete_entry(project_id: str, entry_id: str):
    """Delete an entry."""
    service = get_service()
    success = await service.delete_entry(project_id, entry_id)
    if not success:
        raise HTTPException(status_code=404, detail="Entry not found")
    return {"status": "deleted", "entry_id": entry_id}


# =============================================================================
# Matching
# =============================================================================

@router.post("/match", response_model=MatchResponse)
async def match_terms(project_id: str, data: MatchRequest):
    """
    Find glossary terms in one pane of a chapter.

    Use mode=source for the raw pane (terms and aliases) and
    mode=translated for the translation pane (translations only).
    """
    service = get_service()
    try:
        return await service.match_text(project_id, data)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/verify", response_model=VerifyResponse)
async def verify_translation(project_id: str, data: VerifyRequest):
    """Check which matched source terms kept their glossary translation."""
    service = get_service()
    return await service.verify_translation(project_id, data.source_text, data.translated_text)


# =============================================================================
# Import / Export
# =============================================================================

@router.post("/import", response_model=ImportResult)
async def import_entries(
    project_id: str,
    file: UploadFile = File(...),
    skip_duplicates: bool = Query(True),
):
    """Import entries from a JSON or CSV file."""
    service = get_service()
    filename = file.filename or ""
    format = "csv" if filename.lower().endswith(".csv") else "json"

    try:
        content = (await file.read()).decode("utf-8")
        return await service.import_entries(project_id, content, format, skip_duplicates)
    except UnicodeDecodeError:
        raise HTTPException(status_code=400, detail="File must be UTF-8 encoded")
    except GlossaryFormatError as e:
        logger.warning(f"Rejected glossary import for {project_id}: {e}")
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/export")
async def export_entries(
    project_id: str,
    format: str = Query("json", description="Export format: json, csv"),
):
    """Export the glossary as a file download."""
    service = get_service()
    try:
        content, filename, media_type = await service.export_entries(project_id, format)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return StreamingResponse(
        content,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
