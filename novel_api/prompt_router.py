"""
Prompt API Router
Translation and glossary-extraction prompt assembly.
"""
from fastapi import APIRouter, HTTPException

from novel_config.logging_config import get_logger
from novel_core.glossary.exceptions import GlossaryFormatError
from novel_core.glossary.schemas import BulkEntryResult
from novel_core.glossary.service import get_glossary_service
from novel_core.translation.models import split_text_lines
from novel_core.translation.prompt_builder import postprocess_line_sync
from novel_core.translation.schemas import (
    ExtractionPromptRequest, ExtractionResultRequest,
    LineSyncRequest, LineSyncResponse,
    PromptResponse, TranslationPromptRequest,
)

logger = get_logger(__name__)

router = APIRouter(tags=["Prompts"])


@router.post("/api/projects/{project_id}/prompts/translation", response_model=PromptResponse)
async def build_translation_prompt(project_id: str, data: TranslationPromptRequest):
    """
    Assemble the translation prompt for a chapter.

    Only glossary entries that actually occur in the chapter text are
    included in the glossary block.
    """
    service = get_glossary_service()
    return await service.build_translation_prompt(project_id, data)


@router.post("/api/projects/{project_id}/prompts/extraction", response_model=PromptResponse)
async def build_extraction_prompt(project_id: str, data: ExtractionPromptRequest):
    """Assemble a prompt asking the LLM to propose new glossary entries."""
    service = get_glossary_service()
    return await service.build_extraction_prompt(project_id, data)


@router.post("/api/projects/{project_id}/prompts/extraction/result", response_model=BulkEntryResult)
async def apply_extraction_result(project_id: str, data: ExtractionResultRequest):
    """Add the new entries proposed in an LLM extraction reply."""
    service = get_glossary_service()
    try:
        return await service.apply_extraction_response(project_id, data.response)
    except GlossaryFormatError as e:
        logger.warning(f"Unusable extraction reply for {project_id}: {e}")
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/api/prompts/line-sync", response_model=LineSyncResponse)
async def line_sync(data: LineSyncRequest):
    """Strip line markers from a line-synced reply and fix its line count."""
    source_line_count = data.target_line_count()
    text = postprocess_line_sync(data.text, source_line_count)
    line_count = len(split_text_lines(text)) if (text or source_line_count) else 0
    return LineSyncResponse(text=text, line_count=line_count)
