"""
Unit tests for novel_core/translation/prompt_builder.py

Covers:
- Glossary block formatting and deduplication
- Placeholder substitution
- Example, previous-context and line-sync components
- Line-sync post-processing
- Glossary extraction prompt
"""

import pytest

from novel_core.glossary.matcher import GlossaryMatcher
from novel_core.glossary.models import GlossaryCategory, GlossaryEntry
from novel_core.translation.models import Chapter, PromptPreset, TranslationConfig
from novel_core.translation.prompt_builder import (
    CONTEXT_SEPARATOR,
    PromptBuilder,
    collect_previous_context,
    postprocess_line_sync,
    preprocess_line_sync,
)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def builder():
    return PromptBuilder()


@pytest.fixture
def arthur():
    return GlossaryEntry(
        original_term="Arthur",
        translation="アーサー",
        category=GlossaryCategory.CHARACTER,
        aliases=("Art",),
        gender="male",
        context_description="King of Eldoria",
    )


@pytest.fixture
def eldoria():
    return GlossaryEntry(original_term="Eldoria", translation="エルドリア", category=GlossaryCategory.PLACE)


@pytest.fixture
def merlin():
    return GlossaryEntry(original_term="Merlin", translation="マーリン", category=GlossaryCategory.CHARACTER)


def _build(builder, text, entries, **kwargs):
    matches = GlossaryMatcher().detect_terms(text, entries)
    return builder.build_translation_prompt(
        text=text,
        glossary_matches=matches,
        source_language=kwargs.pop("source_language", "English"),
        target_language=kwargs.pop("target_language", "Japanese"),
        **kwargs,
    )


# ---------------------------------------------------------------------------
# Glossary block
# ---------------------------------------------------------------------------

class TestGlossaryBlock:
    def test_format(self, builder, arthur, eldoria):
        matches = GlossaryMatcher().detect_terms("Arthur of Eldoria", [arthur, eldoria])
        block = builder.build_glossary_block(matches)

        assert block == (
            "CRITICAL: You MUST use the following translations for specific terms. Do not deviate from them.\n"
            "--- GLOSSARY START ---\n"
            "[Character]\n"
            "Arthur -> アーサー | Gender: male | Context: King of Eldoria\n"
            "\n"
            "[Place]\n"
            "Eldoria -> エルドリア\n"
            "--- GLOSSARY END ---\n\n"
        )

    def test_empty_when_nothing_matched(self, builder):
        assert builder.build_glossary_block([]) == ""

    def test_entries_sorted_within_category(self, builder, arthur, merlin):
        matches = GlossaryMatcher().detect_terms("Merlin and Arthur", [arthur, merlin])
        block = builder.build_glossary_block(matches)
        assert block.index("Arthur ->") < block.index("Merlin ->")

    def test_repeated_matches_listed_once(self, builder, arthur):
        text = "Arthur. Art. Arthur! ART? arthur."
        matches = GlossaryMatcher().detect_terms(text, [arthur])
        assert len(matches) == 5

        prompt = builder.build_translation_prompt(text, matches, "English", "Japanese")
        assert prompt.count("Arthur -> アーサー") == 1

    def test_only_matched_entries_included(self, builder, arthur, eldoria, merlin):
        prompt = _build(builder, "Merlin waited.", [arthur, eldoria, merlin])
        assert "Merlin -> マーリン" in prompt
        assert "Arthur ->" not in prompt
        assert "Eldoria ->" not in prompt


# ---------------------------------------------------------------------------
# Placeholders
# ---------------------------------------------------------------------------

class TestPlaceholders:
    def test_default_template(self, builder, arthur):
        prompt = _build(builder, "Arthur smiled.", [arthur])

        assert "from English to Japanese" in prompt
        assert "--- GLOSSARY START ---" in prompt
        assert "--- TEXT TO TRANSLATE START ---\nArthur smiled.\n--- TEXT TO TRANSLATE END ---" in prompt
        assert "{{" not in prompt

    def test_no_glossary_section_without_matches(self, builder, arthur):
        prompt = _build(builder, "Nobody here.", [arthur])
        assert "GLOSSARY START" not in prompt
        assert "{{GLOSSARY}}" not in prompt

    def test_unknown_placeholder_left_verbatim(self, builder):
        preset = PromptPreset(name="custom", prompt="{{STYLE}} {{SOURCE_LANGUAGE}}: {{TEXT}}")
        prompt = _build(builder, "Hello", [], preset=preset)
        assert prompt == "{{STYLE}} English: Hello"

    def test_placeholders_in_chapter_text_untouched(self, builder, arthur):
        text = "Arthur wrote {{GLOSSARY}} and {{TARGET_LANGUAGE}} on the wall."
        prompt = _build(builder, text, [arthur])
        assert text in prompt

    def test_glossary_prepended_when_template_lacks_placeholder(self, builder, arthur):
        preset = PromptPreset(name="bare", prompt="Translate into {{TARGET_LANGUAGE}}:\n{{TEXT}}")
        prompt = _build(builder, "Arthur", [arthur], preset=preset)

        assert prompt.startswith("CRITICAL: You MUST use")
        assert prompt.endswith("Translate into Japanese:\nArthur")

    def test_blank_preset_prompt_uses_default(self, builder):
        preset = PromptPreset(name="empty", prompt="   ")
        prompt = _build(builder, "Hello", [], preset=preset)
        assert prompt.startswith("You are an expert novel translator.")


# ---------------------------------------------------------------------------
# Optional components
# ---------------------------------------------------------------------------

class TestComponents:
    def test_example_block(self, builder):
        preset = PromptPreset(
            name="with example",
            provide_example=True,
            example_raw_text="こんにちは",
            example_translated_text="Hello",
        )
        prompt = _build(builder, "Text", [], preset=preset)
        assert "--- EXAMPLE START ---\n[Source]:\nこんにちは\n\n[Translation]:\nHello\n--- EXAMPLE END ---" in prompt

    def test_example_skipped_when_disabled(self, builder):
        preset = PromptPreset(name="p", provide_example=False, example_raw_text="x", example_translated_text="y")
        assert "EXAMPLE START" not in _build(builder, "Text", [], preset=preset)

    def test_context_bounded_to_chapter_count(self, builder):
        config = TranslationConfig(include_previous_context=True, previous_context_chapter_count=2)
        prompt = _build(
            builder, "Text", [],
            config=config,
            previous_context=["First chapter.", "Second chapter.", "Third chapter."],
        )
        assert "First chapter." not in prompt
        assert "Second chapter." + CONTEXT_SEPARATOR + "Third chapter." in prompt

    def test_context_ignored_when_disabled(self, builder):
        prompt = _build(builder, "Text", [], previous_context=["Earlier chapter."])
        assert "Earlier chapter." not in prompt
        assert "PREVIOUS CONTEXT" not in prompt

    def test_blank_context_skipped(self, builder):
        config = TranslationConfig(include_previous_context=True)
        prompt = _build(builder, "Text", [], config=config, previous_context=["", "  "])
        assert "PREVIOUS CONTEXT" not in prompt

    def test_line_sync_marks_text(self, builder):
        config = TranslationConfig(force_line_count_sync=True)
        prompt = _build(builder, "one\n\nthree", [], config=config)
        assert "CRITICAL INSTRUCTION: The following text has been formatted with line markers" in prompt
        assert "[L1] one\n[L2] \n[L3] three" in prompt

    def test_component_order(self, builder, arthur):
        preset = PromptPreset(
            name="full", provide_example=True, example_raw_text="raw", example_translated_text="done",
        )
        config = TranslationConfig(force_line_count_sync=True, include_previous_context=True)
        prompt = _build(
            builder, "Arthur", [arthur],
            preset=preset, config=config, previous_context=["Before."],
        )

        positions = [
            prompt.index("--- PREVIOUS CONTEXT START ---"),
            prompt.index("--- EXAMPLE START ---"),
            prompt.index("CRITICAL INSTRUCTION: The following text"),
            prompt.index("--- GLOSSARY START ---"),
            prompt.index("[L1] Arthur"),
        ]
        assert positions == sorted(positions)

    def test_example_marked_under_line_sync(self, builder):
        preset = PromptPreset(
            name="p", provide_example=True, example_raw_text="a\nb", example_translated_text="c\nd",
        )
        config = TranslationConfig(force_line_count_sync=True)
        prompt = _build(builder, "x", [], preset=preset, config=config)
        assert "[Source]:\n[L1] a\n[L2] b" in prompt
        assert "[Translation]:\n[L1] c\n[L2] d" in prompt


# ---------------------------------------------------------------------------
# Line sync
# ---------------------------------------------------------------------------

class TestLineSync:
    def test_preprocess_numbers_lines(self):
        assert preprocess_line_sync("a\r\nb\rc") == "[L1] a\n[L2] b\n[L3] c"

    def test_preprocess_empty_text_is_one_line(self):
        assert preprocess_line_sync("") == "[L1] "

    def test_postprocess_strips_markers(self):
        assert postprocess_line_sync("[L1] a\n[L2] \n[L3]b") == "a\n\nb"

    def test_postprocess_keeps_inner_brackets(self):
        assert postprocess_line_sync("[L1] He said [L2] twice") == "He said [L2] twice"

    def test_postprocess_collapses_surplus_lines(self):
        text = "[L1] a\n[L2] b\n[L3] c\n[L4] "
        assert postprocess_line_sync(text, source_line_count=2) == "a\nb c"

    def test_postprocess_pads_missing_lines(self):
        assert postprocess_line_sync("[L1] a", source_line_count=3) == "a\n\n"

    def test_postprocess_exact_count_unchanged(self):
        assert postprocess_line_sync("[L1] a\n[L2] b", source_line_count=2) == "a\nb"

    def test_postprocess_zero_lines(self):
        assert postprocess_line_sync("[L1] a", source_line_count=0) == ""

    def test_builder_method_delegates(self, builder):
        assert builder.postprocess_line_sync("[L1] x", 1) == "x"


class TestCollectPreviousContext:
    @pytest.fixture
    def chapters(self):
        return [
            Chapter(id="c3", chapter_number=3, raw_content="r3", translated_content="t3"),
            Chapter(id="c1", chapter_number=1, raw_content="r1", translated_content="t1"),
            Chapter(id="c2", chapter_number=2, raw_content="r2", translated_content="t2"),
            Chapter(id="c4", chapter_number=4, raw_content="r4"),
        ]

    def test_previous_chapters_oldest_first(self, chapters):
        assert collect_previous_context(chapters, "c4", 2) == ["t2", "t3"]

    def test_count_larger_than_history(self, chapters):
        assert collect_previous_context(chapters, "c2", 5) == ["t1"]

    def test_first_chapter_has_no_context(self, chapters):
        assert collect_previous_context(chapters, "c1", 3) == []

    def test_untranslated_chapters_skipped(self, chapters):
        chapters.append(Chapter(id="c5", chapter_number=5, raw_content="r5"))
        assert collect_previous_context(chapters, "c5", 2) == ["t3"]

    def test_unknown_chapter(self, chapters):
        assert collect_previous_context(chapters, "missing", 2) == []

    def test_source_line_count(self):
        assert Chapter(id="x", chapter_number=1, raw_content="a\n\nb").source_line_count == 3
        assert Chapter(id="y", chapter_number=2, raw_content="").source_line_count == 0


# ---------------------------------------------------------------------------
# Glossary extraction
# ---------------------------------------------------------------------------

class TestExtractionPrompt:
    def _prompt(self, builder, existing=(), **kwargs):
        return builder.build_glossary_extraction_prompt(
            source_text="アーサーは剣を抜いた。",
            translated_text="Arthur drew his sword.",
            existing_glossary=list(existing),
            source_language="Japanese",
            target_language="English",
            **kwargs,
        )

    def test_contains_texts_and_languages(self, builder):
        prompt = self._prompt(builder)
        assert "**SOURCE TEXT (Japanese):**\nアーサーは剣を抜いた。" in prompt
        assert "**TRANSLATED TEXT (English):**\nArthur drew his sword." in prompt
        assert prompt.rstrip().endswith('provide the JSON object with the "entries" key.')

    def test_no_existing_glossary(self, builder):
        assert "(DO NOT EXTRACT THESE):**\nNone" in self._prompt(builder)

    def test_existing_glossary_listed(self, builder, arthur, eldoria):
        prompt = self._prompt(builder, existing=[arthur, eldoria])
        assert "- Arthur -> アーサー\n- Eldoria -> エルドリア" in prompt

    def test_all_categories_no_restriction(self, builder):
        assert "Only extract terms belonging" not in self._prompt(builder)
        assert "Only extract terms belonging" not in self._prompt(builder, categories=list(GlossaryCategory))

    def test_category_restriction(self, builder):
        prompt = self._prompt(builder, categories=[GlossaryCategory.CHARACTER, GlossaryCategory.PLACE])
        assert "7. Only extract terms belonging to the following categories: character, place." in prompt

    def test_fill_context_disabled(self, builder):
        prompt = self._prompt(builder, fill_context=False)
        assert "7. The `contextDescription` field for all extracted items MUST be an empty string." in prompt

    def test_additional_query_numbered_last(self, builder):
        prompt = self._prompt(
            builder,
            categories=["character"],
            fill_context=False,
            additional_query="  Include honorifics.  ",
        )
        assert "9. Follow this additional instruction carefully: Include honorifics." in prompt

    def test_schema_lists_categories(self, builder):
        prompt = self._prompt(builder)
        assert "character, place, event, object, concept, organization, technique, other" in prompt
