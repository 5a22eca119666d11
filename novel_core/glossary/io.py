"""
Glossary Import/Export Module

Supports:
- JSON (project glossary files, LLM extraction replies)
- CSV (Simple format for spreadsheets)
"""

import csv
import io
import json
import re
from datetime import datetime, timezone
from typing import Any, Iterable, List, Sequence, Tuple

from novel_config.logging_config import get_logger

from .exceptions import GlossaryFormatError
from .models import MAX_TERM_LENGTH, MAX_TRANSLATION_LENGTH, GlossaryEntry

logger = get_logger(__name__)

CSV_FIELDS = [
    "original_term", "translation", "category", "aliases",
    "gender", "context_description", "is_active",
]

ALIAS_SEPARATOR = "|"

_CODE_FENCE = re.compile(r"^\s*```[a-zA-Z]*\s*\n(.*?)\n\s*```\s*$", re.DOTALL)


# ==================== EXPORT ====================

def export_entries_to_json(entries: Iterable[GlossaryEntry], project_name: str = "") -> str:
    """
    Export entries to JSON format.

    Returns:
        JSON string with an ``entries`` array
    """
    entries = list(entries)
    data = {
        "project": project_name,
        "exported_at": datetime.now(timezone.utc).isoformat(),
        "entry_count": len(entries),
        "entries": [e.to_dict() for e in entries],
    }
    return json.dumps(data, ensure_ascii=False, indent=2)


def export_entries_to_csv(entries: Iterable[GlossaryEntry]) -> str:
    """Export entries to CSV; aliases are joined with ``|``."""
    output = io.StringIO()
    writer = csv.DictWriter(output, fieldnames=CSV_FIELDS, extrasaction="ignore")
    writer.writeheader()

    for entry in entries:
        row = entry.to_dict()
        row["aliases"] = ALIAS_SEPARATOR.join(entry.aliases)
        row["gender"] = row["gender"] or ""
        row["is_active"] = "true" if entry.is_active else "false"
        writer.writerow(row)

    return output.getvalue()


# ==================== IMPORT ====================

def _entries_from_items(items: Sequence[Any]) -> Tuple[List[GlossaryEntry], List[dict]]:
    entries: List[GlossaryEntry] = []
    errors: List[dict] = []
    for i, item in enumerate(items):
        if not isinstance(item, dict):
            errors.append({"index": i, "error": "Item is not an object"})
            continue
        try:
            entry = GlossaryEntry.from_dict(item)
        except (KeyError, TypeError, ValueError) as e:
            errors.append({"index": i, "error": f"Invalid entry: {e}"})
            continue
        if not entry.original_term.strip() or not entry.translation.strip():
            errors.append({"index": i, "error": "Missing original_term or translation"})
            continue
        if len(entry.original_term) > MAX_TERM_LENGTH:
            errors.append({"index": i, "error": f"original_term longer than {MAX_TERM_LENGTH} characters"})
            continue
        if len(entry.translation) > MAX_TRANSLATION_LENGTH:
            errors.append({"index": i, "error": f"translation longer than {MAX_TRANSLATION_LENGTH} characters"})
            continue
        entries.append(entry)

    for error in errors:
        logger.warning(f"Skipped glossary item {error['index']}: {error['error']}")
    return entries, errors


def _find_entry_array(data: Any) -> List[Any]:
    if isinstance(data, list):
        return data
    if isinstance(data, dict):
        # Prefer the documented key, then any array value
        if isinstance(data.get("entries"), list):
            return data["entries"]
        for value in data.values():
            if isinstance(value, list):
                return value
    raise GlossaryFormatError(
        "Could not find a top-level array or an array nested under a key"
    )


def _load_json(content: str) -> Any:
    fenced = _CODE_FENCE.match(content)
    if fenced:
        content = fenced.group(1)
    try:
        return json.loads(content)
    except json.JSONDecodeError as e:
        raise GlossaryFormatError(f"Invalid JSON: {e}") from e


def import_entries_from_json(content: str) -> Tuple[List[GlossaryEntry], List[dict]]:
    """
    Import entries from a JSON glossary file.

    Returns:
        Tuple of (entries, errors)
    """
    return _entries_from_items(_find_entry_array(_load_json(content)))


def import_entries_from_csv(content: str) -> Tuple[List[GlossaryEntry], List[dict]]:
    """
    Import entries from CSV.

    Required columns: original_term, translation
    """
    reader = csv.DictReader(io.StringIO(content.lstrip("\ufeff")))
    if not reader.fieldnames or not {"original_term", "translation"} <= set(reader.fieldnames):
        raise GlossaryFormatError("CSV must have original_term and translation columns")

    items = []
    for row in reader:
        item = {k: (v or "").strip() for k, v in row.items() if k}
        item["aliases"] = [a.strip() for a in item.get("aliases", "").split(ALIAS_SEPARATOR)]
        items.append(item)
    return _entries_from_items(items)


def parse_extraction_response(raw: str) -> List[GlossaryEntry]:
    """
    Parse an LLM glossary-extraction reply.

    Accepts a top-level JSON array or an object holding the array under any
    key (models do not always honour the requested key name). Markdown code
    fences around the JSON are tolerated. Malformed items are skipped.

    Raises:
        GlossaryFormatError: No JSON array could be found
    """
    entries, _ = _entries_from_items(_find_entry_array(_load_json(raw.strip())))
    logger.info(f"Parsed {len(entries)} proposed glossary entries")
    return entries


def filter_new_entries(
    proposed: Iterable[GlossaryEntry],
    existing: Iterable[GlossaryEntry],
) -> List[GlossaryEntry]:
    """Drop proposals whose term already exists as a term or alias (case-insensitive)."""
    known = set()
    for entry in existing:
        known.add(entry.original_term.lower())
        known.update(a.lower() for a in entry.aliases)

    fresh = []
    for entry in proposed:
        key = entry.original_term.lower()
        if key in known:
            continue
        known.add(key)
        fresh.append(entry)
    return fresh
