"""
Prompt Builder
Render translation and glossary-extraction instructions for the LLM.
"""
import re
from typing import Dict, Iterable, List, Optional, Sequence, Union

from novel_config.logging_config import get_logger
from novel_core.glossary.matcher import GlossaryMatch, get_unique_entries
from novel_core.glossary.models import GlossaryCategory, GlossaryEntry

from .models import Chapter, PromptPreset, TranslationConfig, split_text_lines, DEFAULT_PROMPT

logger = get_logger(__name__)

PLACEHOLDER_SOURCE_LANGUAGE = "{{SOURCE_LANGUAGE}}"
PLACEHOLDER_TARGET_LANGUAGE = "{{TARGET_LANGUAGE}}"
PLACEHOLDER_GLOSSARY = "{{GLOSSARY}}"
PLACEHOLDER_TEXT = "{{TEXT}}"

CONTEXT_SEPARATOR = "\n\n---\n\n"

_LINE_MARKER = re.compile(r"^\[L\d+\] ?")


class PromptBuilder:
    """
    Build the final instruction text sent to a translation backend.

    Stateless: every method is a pure transform of its arguments.
    """

    LINE_SYNC_INSTRUCTION = """CRITICAL INSTRUCTION: The following text has been formatted with line markers (e.g., [L1], [L2]). You MUST translate the text for each line and reproduce the exact same line markers in your output. Empty lines must be preserved. The number of lines in your translation must exactly match the number of lines in the source.

Example:
[L1] source text -> [L1] translation text
[L2] -> [L2]
[L3] source text -> [L3] translation text"""

    EXAMPLE_TEMPLATE = """Here is an example of the desired translation style and format. Follow it carefully.
--- EXAMPLE START ---
[Source]:
{raw}

[Translation]:
{translated}
--- EXAMPLE END ---"""

    CONTEXT_TEMPLATE = """Here is the translation of the preceding chapter(s) for context only. Use it to keep names, tone and continuity consistent. Do NOT translate or repeat it.
--- PREVIOUS CONTEXT START ---
{context}
--- PREVIOUS CONTEXT END ---"""

    # ==================== TRANSLATION ====================

    def build_translation_prompt(
        self,
        text: str,
        glossary_matches: Sequence[GlossaryMatch],
        source_language: str,
        target_language: str,
        preset: Optional[PromptPreset] = None,
        config: Optional[TranslationConfig] = None,
        previous_context: Optional[Union[str, Sequence[str]]] = None,
    ) -> str:
        """
        Build the translation prompt for one chapter.

        Args:
            text: Raw chapter text
            glossary_matches: Matches found in ``text``; only these entries
                reach the glossary block
            source_language: Source language name
            target_language: Target language name
            preset: Template and optional worked example
            config: Line sync and previous-context options
            previous_context: Translated text of earlier chapters, oldest
                first, either pre-joined or one string per chapter

        Returns:
            The assembled prompt
        """
        config = config or TranslationConfig()
        components: List[str] = []

        context_block = self._build_context_block(previous_context, config)
        if context_block:
            components.append(context_block)

        example_block = self._build_example_block(preset, config)
        if example_block:
            components.append(example_block)

        if config.force_line_count_sync:
            components.append(self.LINE_SYNC_INSTRUCTION)
            text = preprocess_line_sync(text)

        template = preset.template if preset else DEFAULT_PROMPT
        glossary_block = self.build_glossary_block(glossary_matches)

        main_prompt = (
            template
            .replace(PLACEHOLDER_SOURCE_LANGUAGE, source_language)
            .replace(PLACEHOLDER_TARGET_LANGUAGE, target_language)
        )
        # {{TEXT}} goes last: placeholders inside chapter text stay verbatim
        if PLACEHOLDER_GLOSSARY in template:
            main_prompt = main_prompt.replace(PLACEHOLDER_GLOSSARY, glossary_block)
        elif glossary_block:
            main_prompt = glossary_block + main_prompt
        main_prompt = main_prompt.replace(PLACEHOLDER_TEXT, text)

        components.append(main_prompt)

        prompt = "\n\n".join(components).strip()
        logger.debug(
            f"Built translation prompt: {len(prompt)} chars, "
            f"{len(get_unique_entries(glossary_matches))} glossary entries"
        )
        return prompt

    def build_glossary_block(self, glossary_matches: Iterable[GlossaryMatch]) -> str:
        """
        Format the deduplicated matched entries, grouped by category.

        Returns:
            The glossary section, or an empty string when nothing matched
        """
        entries = get_unique_entries(glossary_matches)
        if not entries:
            return ""

        grouped: Dict[GlossaryCategory, List[GlossaryEntry]] = {}
        for entry in entries:
            grouped.setdefault(entry.category, []).append(entry)

        lines = [
            "CRITICAL: You MUST use the following translations for specific terms. Do not deviate from them.",
            "--- GLOSSARY START ---",
        ]
        for category in sorted(grouped, key=lambda c: c.display_name):
            lines.append(f"[{category.display_name}]")
            for entry in sorted(grouped[category], key=lambda e: e.original_term):
                lines.append(self._format_entry(entry))
            lines.append("")

        block = "\n".join(lines).strip()
        return block + "\n--- GLOSSARY END ---\n\n"

    @staticmethod
    def _format_entry(entry: GlossaryEntry) -> str:
        line = f"{entry.original_term} -> {entry.translation}"
        if entry.gender is not None:
            line += f" | Gender: {entry.gender.value}"
        if entry.context_description:
            line += f" | Context: {entry.context_description}"
        return line

    def _build_example_block(
        self,
        preset: Optional[PromptPreset],
        config: TranslationConfig,
    ) -> Optional[str]:
        if preset is None or not preset.has_example:
            return None

        raw = preset.example_raw_text
        translated = preset.example_translated_text
        if config.force_line_count_sync:
            raw = preprocess_line_sync(raw)
            translated = preprocess_line_sync(translated)
        return self.EXAMPLE_TEMPLATE.format(raw=raw, translated=translated)

    def _build_context_block(
        self,
        previous_context: Optional[Union[str, Sequence[str]]],
        config: TranslationConfig,
    ) -> Optional[str]:
        if not config.include_previous_context or not previous_context:
            return None

        if isinstance(previous_context, str):
            context = previous_context
        else:
            chapters = [c for c in previous_context if c and c.strip()]
            context = CONTEXT_SEPARATOR.join(chapters[-config.previous_context_chapter_count:])

        if not context.strip():
            return None
        return self.CONTEXT_TEMPLATE.format(context=context)

    # ==================== GLOSSARY EXTRACTION ====================

    def build_glossary_extraction_prompt(
        self,
        source_text: str,
        translated_text: str,
        existing_glossary: Iterable[GlossaryEntry],
        source_language: str,
        target_language: str,
        categories: Optional[Sequence[GlossaryCategory]] = None,
        additional_query: str = "",
        fill_context: bool = True,
    ) -> str:
        """
        Build a prompt asking the LLM to propose new glossary entries.

        Args:
            source_text: Chapter source text
            translated_text: Its translation
            existing_glossary: Entries the model must not propose again
            source_language: Source language name
            target_language: Target language name
            categories: Restrict proposals to these categories (all if None)
            additional_query: Free-form extra instruction from the user
            fill_context: Ask for context descriptions, or demand empty ones

        Returns:
            The extraction prompt
        """
        all_categories = list(GlossaryCategory)
        requested = [GlossaryCategory(c) for c in categories] if categories else all_categories

        existing_text = "\n".join(
            f"- {e.original_term} -> {e.translation}" for e in existing_glossary
        )
        category_values = ", ".join(c.value for c in all_categories)

        rules = [
            'DO NOT extract terms that are already present in the "Existing Glossary" list.',
            "Focus on proper nouns, unique concepts, or recurring objects. Avoid common words.",
            "The `contextDescription` should be concise and based *only* on the provided texts.",
            'You MUST return your findings as a JSON object. This object must contain a single key, "entries", which holds an array of glossary objects.',
            'Each object in the "entries" array MUST conform to this schema:\n'
            "    - `originalTerm` (string, required): The term in the source language.\n"
            "    - `translation` (string, required): The term in the target language.\n"
            f"    - `category` (string, enum, required): The category of the term. Must be one of: {category_values}.\n"
            "    - `aliases` (array of strings, optional): Other spellings of the term found in the source text.\n"
            "    - `contextDescription` (string, optional): A brief explanation.",
            'If no new terms are found, you MUST return an empty array like this: `{"entries": []}`.',
        ]
        if len(set(requested)) < len(all_categories):
            rules.append(
                "Only extract terms belonging to the following categories: "
                + ", ".join(c.value for c in requested) + "."
            )
        if not fill_context:
            rules.append("The `contextDescription` field for all extracted items MUST be an empty string.")
        if additional_query.strip():
            rules.append(f"Follow this additional instruction carefully: {additional_query.strip()}")

        numbered = "\n".join(f"{i}. {rule}" for i, rule in enumerate(rules, start=1))

        return f"""You are a linguistic expert tasked with expanding a glossary for a novel translation project. Analyze the provided source text and its professional translation. Identify new, important, or recurring terms (such as characters, places, special abilities, items, or concepts) that are NOT already in the existing glossary list.

---

**CRITICAL INSTRUCTIONS:**
{numbered}

---

**EXISTING GLOSSARY (DO NOT EXTRACT THESE):**
{existing_text or "None"}

---

**SOURCE TEXT ({source_language}):**
{source_text}

---

**TRANSLATED TEXT ({target_language}):**
{translated_text}

---

Now, provide the JSON object with the "entries" key."""

    # ==================== LINE SYNC ====================

    def postprocess_line_sync(self, text: str, source_line_count: Optional[int] = None) -> str:
        return postprocess_line_sync(text, source_line_count)


def preprocess_line_sync(text: str) -> str:
    """Prefix every line with ``[Ln] `` markers (1-based)."""
    return "\n".join(
        f"[L{i}] {line}" for i, line in enumerate(split_text_lines(text), start=1)
    )


def postprocess_line_sync(text: str, source_line_count: Optional[int] = None) -> str:
    """
    Clean an LLM reply produced under line sync.

    Strips the leading ``[Ln]`` marker from each line. With
    ``source_line_count``, the result has exactly that many lines: surplus
    lines are collapsed into the last line (non-empty pieces joined by a
    space, order kept) and missing lines are padded as empty lines.
    """
    lines = [_LINE_MARKER.sub("", line) for line in split_text_lines(text)]
    if source_line_count is None:
        return "\n".join(lines)

    if source_line_count <= 0:
        return ""
    if len(lines) > source_line_count:
        head = lines[:source_line_count - 1]
        tail = " ".join(piece.strip() for piece in lines[source_line_count - 1:] if piece.strip())
        lines = head + [tail]
    elif len(lines) < source_line_count:
        lines = lines + [""] * (source_line_count - len(lines))
    return "\n".join(lines)


def collect_previous_context(
    chapters: Iterable[Chapter],
    current_chapter_id: str,
    count: int,
) -> List[str]:
    """
    Translated text of up to ``count`` chapters right before the current one.

    Chapters are ordered by chapter number; chapters without a translation
    are skipped. Returns oldest first, empty if the chapter is unknown.
    """
    ordered = sorted(chapters, key=lambda c: c.chapter_number)
    position = next((i for i, c in enumerate(ordered) if c.id == current_chapter_id), None)
    if position is None or count <= 0:
        return []

    window = ordered[max(0, position - count):position]
    return [c.translated_content for c in window if c.translated_content and c.translated_content.strip()]


# Global instance
_builder: Optional[PromptBuilder] = None


def get_prompt_builder() -> PromptBuilder:
    """Get or create the global prompt builder instance."""
    global _builder
    if _builder is None:
        _builder = PromptBuilder()
    return _builder
