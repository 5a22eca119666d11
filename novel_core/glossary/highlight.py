"""
Highlight Projection
Maps matcher output onto style spans and text segments for the editor panes.
"""
import html
from dataclasses import dataclass
from typing import List, Optional, Sequence

from .matcher import GlossaryMatch
from .models import GlossaryCategory, GlossaryEntry

# Underline colors per category
CATEGORY_COLORS = {
    GlossaryCategory.CHARACTER: "#4A90D9",
    GlossaryCategory.PLACE: "#50A060",
    GlossaryCategory.EVENT: "#D9534F",
    GlossaryCategory.OBJECT: "#9B59B6",
    GlossaryCategory.CONCEPT: "#E67E22",
    GlossaryCategory.ORGANIZATION: "#1ABC9C",
    GlossaryCategory.TECHNIQUE: "#D4AF37",
    GlossaryCategory.OTHER: "#7F8C8D",
}


@dataclass(frozen=True)
class StyleSpan:
    """A visual range to underline in a text buffer."""
    start: int
    end: int
    category: GlossaryCategory
    color: str
    entry_id: str
    matched_alias: Optional[str] = None


@dataclass(frozen=True)
class TextSegment:
    """Plain text, or a glossary term with its entry."""
    text: str
    start: int
    entry: Optional[GlossaryEntry] = None

    @property
    def is_glossary(self) -> bool:
        return self.entry is not None

    @property
    def end(self) -> int:
        return self.start + len(self.text)


def project_highlights(matches: Sequence[GlossaryMatch]) -> List[StyleSpan]:
    """Convert matches into style spans, one per match."""
    return [
        StyleSpan(
            start=m.start,
            end=m.end,
            category=m.entry.category,
            color=CATEGORY_COLORS[m.entry.category],
            entry_id=m.entry.id,
            matched_alias=m.matched_alias,
        )
        for m in sorted(matches, key=lambda m: m.start)
    ]


def split_segments(
    text: str,
    matches: Sequence[GlossaryMatch],
    offset: int = 0,
) -> List[TextSegment]:
    """
    Partition text into alternating plain and glossary segments.

    Concatenating the segment texts gives back ``text``. Matches are
    expected in ``text`` coordinates shifted by ``offset``.
    """
    segments: List[TextSegment] = []
    cursor = 0

    for match in sorted(matches, key=lambda m: m.start):
        start, end = match.start - offset, match.end - offset
        if start < cursor or end > len(text):
            continue
        if start > cursor:
            segments.append(TextSegment(text=text[cursor:start], start=cursor + offset))
        segments.append(TextSegment(text=text[start:end], start=start + offset, entry=match.entry))
        cursor = end

    if cursor < len(text):
        segments.append(TextSegment(text=text[cursor:], start=cursor + offset))
    return segments


def split_lines(text: str, matches: Sequence[GlossaryMatch]) -> List[List[TextSegment]]:
    """Segments grouped per line; segment offsets stay buffer-absolute."""
    ordered = sorted(matches, key=lambda m: m.start)
    lines: List[List[TextSegment]] = []
    line_start = 0

    for line in text.split("\n"):
        line_end = line_start + len(line)
        in_line = [m for m in ordered if m.start >= line_start and m.end <= line_end]
        lines.append(split_segments(line, in_line, offset=line_start))
        line_start = line_end + 1
    return lines


def highlight_text(
    text: str,
    matches: Sequence[GlossaryMatch],
    format: str = "markdown",
) -> str:
    """
    Highlight matched terms in text.

    Args:
        text: Original text
        matches: List of matches from the matcher
        format: Highlight format (markdown, html, plain)

    Returns:
        Text with highlighted terms
    """
    if not matches:
        return html.escape(text) if format == "html" else text

    parts = []
    for segment in split_segments(text, matches):
        if format == "html":
            body = html.escape(segment.text)
            if segment.is_glossary:
                category = segment.entry.category.value
                body = f'<mark class="glossary-{category}">{body}</mark>'
        elif not segment.is_glossary:
            body = segment.text
        elif format == "markdown":
            body = f"**{segment.text}**"
        else:
            body = f"[{segment.text}]"
        parts.append(body)
    return "".join(parts)
