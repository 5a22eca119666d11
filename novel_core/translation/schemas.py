"""
Prompt API Schemas
"""
from typing import List, Optional

from pydantic import BaseModel, Field

from novel_config.settings import get_settings
from novel_core.glossary.models import GlossaryCategory

from .models import Chapter, PromptPreset, TranslationConfig


def _default_source_language() -> str:
    return get_settings().default_source_language


def _default_target_language() -> str:
    return get_settings().default_target_language


class ChapterSchema(BaseModel):
    """A chapter of the project as sent by the client."""
    id: str = Field(..., min_length=1)
    chapter_number: int
    raw_content: str = ""
    translated_content: Optional[str] = None
    title: str = ""

    def to_chapter(self) -> Chapter:
        return Chapter(
            id=self.id,
            chapter_number=self.chapter_number,
            raw_content=self.raw_content,
            translated_content=self.translated_content,
            title=self.title,
        )


class TranslationPromptRequest(BaseModel):
    """
    Build the translation prompt for one chapter.

    Previous context is either given directly in ``previous_context`` or
    collected from ``chapters`` relative to ``chapter_id``.
    """
    text: str = Field(..., description="Raw chapter text")
    source_language: str = Field(default_factory=_default_source_language, min_length=1)
    target_language: str = Field(default_factory=_default_target_language, min_length=1)
    preset: Optional[PromptPreset] = None
    config: TranslationConfig = Field(default_factory=TranslationConfig)
    previous_context: List[str] = Field(
        default_factory=list, description="Translated earlier chapters, oldest first"
    )
    chapter_id: Optional[str] = Field(None, description="Id of the chapter being translated")
    chapters: List[ChapterSchema] = Field(
        default_factory=list, description="Project chapters used to collect previous context"
    )
    record_usage: bool = Field(default=True, description="Increment usage counts of matched entries")


class ExtractionPromptRequest(BaseModel):
    """Build a prompt asking the LLM to propose new glossary entries."""
    source_text: str
    translated_text: str
    source_language: str = Field(default_factory=_default_source_language, min_length=1)
    target_language: str = Field(default_factory=_default_target_language, min_length=1)
    categories: Optional[List[GlossaryCategory]] = None
    additional_query: str = ""
    fill_context: bool = True


class ExtractionResultRequest(BaseModel):
    """Raw LLM reply to an extraction prompt."""
    response: str = Field(..., min_length=1)


class PromptResponse(BaseModel):
    prompt: str
    glossary_entry_ids: List[str] = Field(default_factory=list)
    match_count: int = 0


class LineSyncRequest(BaseModel):
    """
    Clean a line-synced LLM reply.

    The target line count is ``source_line_count`` when given, otherwise the
    line count of ``chapter``'s raw text.
    """
    text: str
    source_line_count: Optional[int] = Field(None, ge=0)
    chapter: Optional[ChapterSchema] = None

    def target_line_count(self) -> Optional[int]:
        if self.source_line_count is not None:
            return self.source_line_count
        if self.chapter is not None:
            return self.chapter.to_chapter().source_line_count
        return None


class LineSyncResponse(BaseModel):
    text: str
    line_count: int
