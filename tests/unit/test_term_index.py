"""
Unit tests for novel_core/glossary/index.py — TermIndex and normalization.
"""

import pytest

from novel_core.glossary.index import TermIndex, fold_char, normalize
from novel_core.glossary.models import GlossaryCategory, GlossaryEntry, MatchMode


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def arthur():
    return GlossaryEntry(
        original_term="Arthur",
        translation="アーサー",
        category=GlossaryCategory.CHARACTER,
        aliases=("Art", "King Arthur"),
    )


@pytest.fixture
def camelot():
    return GlossaryEntry(original_term="Camelot", translation="キャメロット", category="place")


# ---------------------------------------------------------------------------
# Normalization
# ---------------------------------------------------------------------------

class TestNormalize:
    def test_lowercases_latin(self):
        assert normalize("Eldoria") == "eldoria"

    def test_case_sensitive_is_identity(self):
        assert normalize("Eldoria", case_sensitive=True) == "Eldoria"

    def test_cjk_unchanged(self):
        assert normalize("エルドリア王国") == "エルドリア王国"

    def test_length_preserved_for_expanding_lowercase(self):
        # "İ".lower() is two code points; folding must keep offsets aligned
        assert len("İ".lower()) == 2
        assert fold_char("İ") == "İ"
        assert len(normalize("İstanbul")) == len("İstanbul")

    def test_length_preserved_for_astral_chars(self):
        text = "😀 Eldoria"
        assert len(normalize(text)) == len(text)


# ---------------------------------------------------------------------------
# Build
# ---------------------------------------------------------------------------

class TestBuildSourceMode:
    def test_indexes_term_and_aliases(self, arthur):
        index = TermIndex.build([arthur], MatchMode.SOURCE)
        texts = sorted(c.text for c in index)
        assert texts == ["Art", "Arthur", "King Arthur"]

    def test_primary_flag(self, arthur):
        index = TermIndex.build([arthur], MatchMode.SOURCE)
        primary = [c for c in index if c.is_primary]
        assert len(primary) == 1
        assert primary[0].text == "Arthur"

    def test_bucket_sorted_longest_first(self, arthur):
        index = TermIndex.build([arthur], MatchMode.SOURCE)
        bucket = index.candidates_for("a")
        assert [c.text for c in bucket] == ["Arthur", "Art"]

    def test_translation_not_indexed(self, arthur):
        index = TermIndex.build([arthur], MatchMode.SOURCE)
        assert index.candidates_for("ア") == ()

    def test_same_length_ordered_by_glossary_position(self):
        first = GlossaryEntry(original_term="Kenji", translation="a", aliases=("Ken",))
        second = GlossaryEntry(original_term="Kenta", translation="b", aliases=("Ken",))
        index = TermIndex.build([first, second])
        kens = [c for c in index.candidates_for("k") if c.text == "Ken"]
        assert [c.entry for c in kens] == [first, second]

    def test_duplicate_string_within_entry_indexed_once(self):
        entry = GlossaryEntry(original_term="Ken", translation="ケン", aliases=("KEN", "Kenny"))
        index = TermIndex.build([entry])
        kens = [c for c in index if c.key == "ken"]
        assert len(kens) == 1
        assert kens[0].is_primary

    def test_case_sensitive_keeps_variants(self):
        entry = GlossaryEntry(original_term="Ken", translation="ケン", aliases=("KEN",))
        index = TermIndex.build([entry], case_sensitive=True)
        assert len(index) == 2


class TestBuildTranslatedMode:
    def test_indexes_translation_only(self, arthur, camelot):
        index = TermIndex.build([arthur, camelot], MatchMode.TRANSLATED)
        assert sorted(c.text for c in index) == ["アーサー", "キャメロット"]
        assert all(c.is_primary for c in index)

    def test_mode_recorded(self, arthur):
        index = TermIndex.build([arthur], "translated")
        assert index.mode == MatchMode.TRANSLATED


class TestMalformedInput:
    def test_empty_glossary(self):
        index = TermIndex.build([])
        assert len(index) == 0
        assert not index

    def test_empty_index_helper(self):
        assert len(TermIndex.empty()) == 0

    def test_blank_original_term_excluded(self):
        entry = GlossaryEntry(original_term="", translation="x", aliases=("Alias",))
        index = TermIndex.build([entry])
        assert [c.text for c in index] == ["Alias"]
        assert not next(iter(index)).is_primary

    def test_whitespace_term_excluded(self):
        entry = GlossaryEntry(original_term="   ", translation="x")
        assert len(TermIndex.build([entry])) == 0

    def test_blank_translation_excluded(self):
        entry = GlossaryEntry(original_term="Arthur", translation="  ")
        assert len(TermIndex.build([entry], MatchMode.TRANSLATED)) == 0

    def test_one_bad_entry_does_not_affect_others(self, camelot):
        bad = GlossaryEntry(original_term="", translation="")
        index = TermIndex.build([bad, camelot])
        assert [c.text for c in index] == ["Camelot"]
