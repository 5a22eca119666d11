"""
Translation Prompt Module

Usage:
    from novel_core.translation import PromptBuilder, TranslationConfig

    builder = PromptBuilder()
    prompt = builder.build_translation_prompt(
        text, matches, "Japanese", "English", preset=None, config=TranslationConfig()
    )
"""

from .models import DEFAULT_PROMPT, Chapter, PromptPreset, TranslationConfig
from .prompt_builder import (
    PromptBuilder,
    collect_previous_context,
    get_prompt_builder,
    postprocess_line_sync,
    preprocess_line_sync,
)

__all__ = [
    "DEFAULT_PROMPT",
    "Chapter",
    "PromptPreset",
    "TranslationConfig",
    "PromptBuilder",
    "collect_previous_context",
    "get_prompt_builder",
    "postprocess_line_sync",
    "preprocess_line_sync",
]
