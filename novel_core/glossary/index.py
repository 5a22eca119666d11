"""
Term Index
Lookup structure over glossary candidate strings, rebuilt on every glossary change.
"""
from dataclasses import dataclass
from typing import Dict, Iterable, List, Tuple

from novel_config.logging_config import get_logger

from .models import GlossaryEntry, MatchMode

logger = get_logger(__name__)


def fold_char(ch: str) -> str:
    """Lowercase one code point, unless lowering would change its length."""
    lowered = ch.lower()
    return lowered if len(lowered) == 1 else ch


def normalize(text: str, case_sensitive: bool = False) -> str:
    """
    Normalize text for matching.

    The result always has the same length as the input, so offsets found in
    the normalized string are valid offsets into the original.
    """
    if case_sensitive:
        return text
    return "".join(fold_char(ch) for ch in text)


@dataclass(frozen=True)
class TermCandidate:
    """A matchable string with a back-reference to its entry."""
    key: str  # normalized form
    text: str  # as written in the glossary
    entry: GlossaryEntry
    is_primary: bool
    order: Tuple[int, int]  # (entry position, position within entry)

    @property
    def length(self) -> int:
        return len(self.key)


class TermIndex:
    """
    Candidates bucketed by their first normalized character.

    Each bucket is sorted longest first, then by ``order``, so the first
    candidate that matches at a position is the one the matcher accepts.
    Treat an index as an immutable value; build a new one when the glossary
    changes.
    """

    def __init__(
        self,
        buckets: Dict[str, Tuple[TermCandidate, ...]],
        mode: MatchMode,
        case_sensitive: bool = False,
    ):
        self._buckets = buckets
        self.mode = mode
        self.case_sensitive = case_sensitive

    @classmethod
    def build(
        cls,
        entries: Iterable[GlossaryEntry],
        mode: MatchMode = MatchMode.SOURCE,
        case_sensitive: bool = False,
    ) -> "TermIndex":
        """
        Build an index from glossary entries.

        Args:
            entries: Glossary entries in glossary list order
            mode: SOURCE indexes original terms and aliases,
                TRANSLATED indexes translations only
            case_sensitive: Disable case folding

        Returns:
            A new TermIndex
        """
        mode = MatchMode(mode)
        grouped: Dict[str, List[TermCandidate]] = {}
        skipped = 0

        for entry_pos, entry in enumerate(entries):
            if mode == MatchMode.SOURCE:
                strings = [entry.original_term, *entry.aliases]
            else:
                strings = [entry.translation]

            seen = set()
            for string_pos, string in enumerate(strings):
                if not string or not string.strip():
                    skipped += 1
                    continue
                key = normalize(string, case_sensitive)
                if key in seen:
                    continue
                seen.add(key)
                candidate = TermCandidate(
                    key=key,
                    text=string,
                    entry=entry,
                    is_primary=string_pos == 0,
                    order=(entry_pos, string_pos),
                )
                grouped.setdefault(key[0], []).append(candidate)

        buckets = {
            first: tuple(sorted(cands, key=lambda c: (-c.length, c.order)))
            for first, cands in grouped.items()
        }

        if skipped:
            logger.debug(f"Skipped {skipped} blank candidate strings")
        index = cls(buckets, mode, case_sensitive)
        logger.debug(f"Built {mode.value} term index with {len(index)} candidates")
        return index

    @classmethod
    def empty(cls, mode: MatchMode = MatchMode.SOURCE) -> "TermIndex":
        return cls({}, MatchMode(mode))

    def candidates_for(self, first_char: str) -> Tuple[TermCandidate, ...]:
        """All candidates starting with the given normalized character."""
        return self._buckets.get(first_char, ())

    def normalize(self, text: str) -> str:
        return normalize(text, self.case_sensitive)

    def __len__(self) -> int:
        return sum(len(b) for b in self._buckets.values())

    def __bool__(self) -> bool:
        return bool(self._buckets)

    def __iter__(self):
        for bucket in self._buckets.values():
            yield from bucket
