"""
Glossary Matcher
Engine for finding glossary terms in chapter text.
"""
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Tuple, Union

from novel_config.logging_config import get_logger

from .index import TermCandidate, TermIndex
from .models import GlossaryEntry, MatchMode

logger = get_logger(__name__)


@dataclass(frozen=True)
class GlossaryMatch:
    """A matched term in text. ``start``/``end`` form a half-open span."""
    entry: GlossaryEntry
    start: int
    end: int
    matched_alias: Optional[str] = None

    @property
    def span(self) -> Tuple[int, int]:
        return self.start, self.end

    @property
    def length(self) -> int:
        return self.end - self.start


def _is_word_char(ch: str) -> bool:
    return ch.isalnum() or ch == "_"


class GlossaryMatcher:
    """
    Single left-to-right scan producing non-overlapping matches.

    Features:
    - Longest match wins at each position
    - Same-length ties go to the earlier glossary entry, then to the
      primary term over aliases
    - Substring matching by default, optional word-boundary mode
    - Pure: no caching, no mutation of the index or the text
    """

    def __init__(self, word_boundary: bool = False):
        self.word_boundary = word_boundary

    def detect(self, text: str, index: TermIndex) -> List[GlossaryMatch]:
        """
        Find all glossary terms in the text.

        Args:
            text: Full text buffer to scan
            index: Prebuilt term index

        Returns:
            List of GlossaryMatch sorted by position, pairwise non-overlapping
        """
        if not text or not index:
            return []

        folded = index.normalize(text)
        length = len(folded)
        matches: List[GlossaryMatch] = []
        pos = 0

        while pos < length:
            candidate = self._longest_at(folded, pos, index)
            if candidate is None:
                pos += 1
                continue

            end = pos + candidate.length
            matches.append(GlossaryMatch(
                entry=candidate.entry,
                start=pos,
                end=end,
                matched_alias=None if candidate.is_primary else candidate.text,
            ))
            pos = end

        logger.debug(f"Found {len(matches)} {index.mode.value} matches in {length} chars")
        return matches

    def _longest_at(self, folded: str, pos: int, index: TermIndex) -> Optional[TermCandidate]:
        for candidate in index.candidates_for(folded[pos]):
            if not folded.startswith(candidate.key, pos):
                continue
            if self.word_boundary and not self._on_boundary(folded, pos, pos + candidate.length):
                continue
            return candidate
        return None

    @staticmethod
    def _on_boundary(text: str, start: int, end: int) -> bool:
        if start > 0 and _is_word_char(text[start - 1]) and _is_word_char(text[start]):
            return False
        if end < len(text) and _is_word_char(text[end]) and _is_word_char(text[end - 1]):
            return False
        return True

    def detect_terms(
        self,
        text: str,
        glossary: Union[TermIndex, Iterable[GlossaryEntry]],
        case_sensitive: bool = False,
    ) -> List[GlossaryMatch]:
        """Scan source-language text for original terms and aliases."""
        return self.detect(text, self._as_index(glossary, MatchMode.SOURCE, case_sensitive))

    def detect_translations(
        self,
        text: str,
        glossary: Union[TermIndex, Iterable[GlossaryEntry]],
        case_sensitive: bool = False,
    ) -> List[GlossaryMatch]:
        """Scan translated text for entry translations (aliases are not used)."""
        return self.detect(text, self._as_index(glossary, MatchMode.TRANSLATED, case_sensitive))

    @staticmethod
    def _as_index(glossary, mode: MatchMode, case_sensitive: bool) -> TermIndex:
        if isinstance(glossary, TermIndex):
            if glossary.mode != mode:
                raise ValueError(f"Expected a {mode.value} index, got {glossary.mode.value}")
            return glossary
        return TermIndex.build(glossary, mode, case_sensitive)


def get_unique_entries(matches: Iterable[GlossaryMatch]) -> List[GlossaryEntry]:
    """
    Deduplicate matched entries by id.

    Returns:
        Entries in order of first appearance
    """
    unique: Dict[str, GlossaryEntry] = {}
    for match in matches:
        unique.setdefault(match.entry.id, match.entry)
    return list(unique.values())


# Global instance
_matcher: Optional[GlossaryMatcher] = None


def get_matcher() -> GlossaryMatcher:
    """Get or create the global matcher instance."""
    global _matcher
    if _matcher is None:
        from novel_config.settings import get_settings
        _matcher = GlossaryMatcher(word_boundary=get_settings().match_word_boundary)
    return _matcher
