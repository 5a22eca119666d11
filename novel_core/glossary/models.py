"""
Glossary Domain Models
Immutable value types shared by the index, matcher and prompt builder.
"""
import dataclasses
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterable, Optional, Tuple


def generate_uuid() -> str:
    """Generate a new UUID string."""
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# Column sizes of glossary_entries; API schemas and imports enforce the same limits
MAX_TERM_LENGTH = 500
MAX_TRANSLATION_LENGTH = 1000


class GlossaryCategory(str, Enum):
    CHARACTER = "character"
    PLACE = "place"
    EVENT = "event"
    OBJECT = "object"
    CONCEPT = "concept"
    ORGANIZATION = "organization"
    TECHNIQUE = "technique"
    OTHER = "other"

    @property
    def display_name(self) -> str:
        return self.value.capitalize()


class Gender(str, Enum):
    MALE = "male"
    FEMALE = "female"
    OTHER = "other"
    UNKNOWN = "unknown"


class MatchMode(str, Enum):
    """Which pane of a chapter is being scanned."""
    SOURCE = "source"
    TRANSLATED = "translated"


# Keys accepted by GlossaryEntry.from_dict, including the camelCase
# spellings LLM replies and older project files use.
_FIELD_ALIASES = {
    "originalTerm": "original_term",
    "contextDescription": "context_description",
    "usageCount": "usage_count",
    "isActive": "is_active",
    "createdDate": "created_at",
    "createdAt": "created_at",
    "lastUsedDate": "last_used_at",
    "lastUsedAt": "last_used_at",
}


def _clean_aliases(aliases: Optional[Iterable[str]]) -> Tuple[str, ...]:
    if not aliases:
        return ()
    if isinstance(aliases, str):
        aliases = (aliases,)
    return tuple(a for a in aliases if isinstance(a, str) and a.strip())


def _parse_bool(value: Any, default: bool = True) -> bool:
    if value is None:
        return default
    if isinstance(value, str):
        text = value.strip().lower()
        if not text:
            return default
        return text not in ("false", "0", "no", "off")
    return bool(value)


def _parse_datetime(value: Any) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value).replace("Z", "+00:00"))


@dataclass(frozen=True)
class GlossaryEntry:
    """
    A term the user wants translated consistently.

    Entries are snapshots: edits go through ``replace()`` and produce a new
    object, so a Term Index built from a list of entries never goes stale
    behind the caller's back.

    Attributes:
        id: Stable unique identifier (UUID string)
        original_term: Term in the source language/script
        translation: Term in the target language/script
        category: Closed category enumeration
        aliases: Alternate source-language spellings of the same entity
        gender: Only kept for characters
        context_description: Free text shown to the LLM, unused by matching
        is_active, usage_count, created_at, last_used_at: Bookkeeping
    """

    original_term: str
    translation: str
    category: GlossaryCategory = GlossaryCategory.OTHER
    aliases: Tuple[str, ...] = ()
    gender: Optional[Gender] = None
    context_description: str = ""
    id: str = field(default_factory=generate_uuid)
    is_active: bool = True
    usage_count: int = 0
    created_at: datetime = field(default_factory=utcnow)
    last_used_at: Optional[datetime] = None

    def __post_init__(self):
        object.__setattr__(self, "category", GlossaryCategory(self.category))
        object.__setattr__(self, "aliases", _clean_aliases(self.aliases))
        gender = self.gender
        if gender is not None:
            gender = Gender(gender) if self.category == GlossaryCategory.CHARACTER else None
        object.__setattr__(self, "gender", gender)

    def replace(self, **changes) -> "GlossaryEntry":
        """Return a copy with the given fields changed."""
        return dataclasses.replace(self, **changes)

    def to_dict(self) -> dict:
        """Convert to a JSON-serializable dictionary."""
        return {
            "id": self.id,
            "original_term": self.original_term,
            "translation": self.translation,
            "category": self.category.value,
            "aliases": list(self.aliases),
            "gender": self.gender.value if self.gender else None,
            "context_description": self.context_description,
            "is_active": self.is_active,
            "usage_count": self.usage_count,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "last_used_at": self.last_used_at.isoformat() if self.last_used_at else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GlossaryEntry":
        """
        Build an entry from a dictionary.

        Only ``original_term`` and ``translation`` are required; everything
        else falls back to defaults.
        """
        values = {_FIELD_ALIASES.get(k, k): v for k, v in data.items()}
        for required in ("original_term", "translation"):
            if not isinstance(values[required], str):
                raise TypeError(f"{required} must be a string")
        category = values.get("category") or GlossaryCategory.OTHER
        if isinstance(category, str) and not isinstance(category, GlossaryCategory):
            category = category.strip().lower()

        kwargs: Dict[str, Any] = {
            "original_term": values["original_term"],
            "translation": values["translation"],
            "category": category,
            "aliases": values.get("aliases") or (),
            "gender": values.get("gender") or None,
            "context_description": values.get("context_description") or "",
            "is_active": _parse_bool(values.get("is_active")),
            "usage_count": values.get("usage_count") or 0,
            "last_used_at": _parse_datetime(values.get("last_used_at")),
        }
        if values.get("id"):
            kwargs["id"] = str(values["id"])
        created_at = _parse_datetime(values.get("created_at"))
        if created_at is not None:
            kwargs["created_at"] = created_at
        return cls(**kwargs)

    def primary_term(self, mode: MatchMode) -> str:
        """The string a match reports as primary for the given mode."""
        return self.original_term if mode == MatchMode.SOURCE else self.translation

    def __repr__(self):
        return f"<GlossaryEntry {self.original_term} → {self.translation}>"
