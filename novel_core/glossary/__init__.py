"""
Glossary Matching Module
Novel Translator - Terminology consistency for chapter translations

Features:
- Immutable glossary entries with aliases
- Term index rebuilt on every glossary change
- Longest-match, non-overlapping scan over source or translated text
- Highlight projection for editor panes

Usage:
    from novel_core.glossary import GlossaryEntry, GlossaryMatcher, TermIndex, MatchMode

    index = TermIndex.build(entries, MatchMode.SOURCE)
    matches = GlossaryMatcher().detect(text, index)

The persistence-backed ``GlossaryService`` lives in ``novel_core.glossary.service``.
"""

from .highlight import StyleSpan, TextSegment, project_highlights, split_segments
from .index import TermCandidate, TermIndex
from .matcher import GlossaryMatch, GlossaryMatcher, get_matcher, get_unique_entries
from .models import Gender, GlossaryCategory, GlossaryEntry, MatchMode

__all__ = [
    "Gender",
    "GlossaryCategory",
    "GlossaryEntry",
    "MatchMode",
    "TermCandidate",
    "TermIndex",
    "GlossaryMatch",
    "GlossaryMatcher",
    "get_matcher",
    "get_unique_entries",
    "StyleSpan",
    "TextSegment",
    "project_highlights",
    "split_segments",
]

__version__ = "1.0.0"
