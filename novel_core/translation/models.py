"""
Translation Models
Prompt presets, per-project translation options and chapter snapshots.
"""
import re
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from novel_core.glossary.models import generate_uuid, utcnow


DEFAULT_PROMPT = """You are an expert novel translator. Your task is to translate the following text from {{SOURCE_LANGUAGE}} to {{TARGET_LANGUAGE}}.
Preserve the original tone, style, and formatting, including line breaks.

Do not add any markers such as "Translation:" or any kind of prelude text at the beginning of the translation, just present the translated content directly.

{{GLOSSARY}}
Now, translate the following text:
--- TEXT TO TRANSLATE START ---
{{TEXT}}
--- TEXT TO TRANSLATE END ---"""

_NEWLINE = re.compile(r"\r\n|\r|\n")


def split_text_lines(text: str) -> List[str]:
    """Split on any newline convention. An empty string is one empty line."""
    return _NEWLINE.split(text)


class PromptPreset(BaseModel):
    """A user-editable translation template with an optional worked example."""
    id: str = Field(default_factory=generate_uuid)
    name: str = Field(..., min_length=1, max_length=255)
    prompt: str = Field(default="", description="Template with {{PLACEHOLDER}} markers")
    provide_example: bool = False
    example_raw_text: str = ""
    example_translated_text: str = ""
    created_at: datetime = Field(default_factory=utcnow)
    last_modified_at: datetime = Field(default_factory=utcnow)

    @property
    def template(self) -> str:
        """The preset prompt, or the built-in default when empty."""
        return self.prompt if self.prompt.strip() else DEFAULT_PROMPT

    @property
    def has_example(self) -> bool:
        return self.provide_example and bool(self.example_raw_text)


class TranslationConfig(BaseModel):
    """Project-level options that shape prompt assembly."""
    force_line_count_sync: bool = Field(default=False, description="Require line-for-line output")
    include_previous_context: bool = Field(default=False, description="Prepend earlier translated chapters")
    previous_context_chapter_count: int = Field(default=1, ge=1, le=5, description="Chapters of context (1-5)")


@dataclass(frozen=True)
class Chapter:
    """The slice of a chapter the prompt pipeline needs."""
    id: str
    chapter_number: int
    raw_content: str
    translated_content: Optional[str] = None
    title: str = ""

    @property
    def source_line_count(self) -> int:
        if not self.raw_content:
            return 0
        return len(split_text_lines(self.raw_content))
