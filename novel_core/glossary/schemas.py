"""
Glossary Pydantic Schemas
API validation schemas for glossary operations.
"""
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from .models import (
    MAX_TERM_LENGTH,
    MAX_TRANSLATION_LENGTH,
    Gender,
    GlossaryCategory,
    GlossaryEntry,
    MatchMode,
)


# ==================== ENTRY SCHEMAS ====================

class EntryBase(BaseModel):
    """Base schema for a glossary entry."""
    original_term: str = Field(..., min_length=1, max_length=MAX_TERM_LENGTH, description="Source-language term")
    translation: str = Field(..., min_length=1, max_length=MAX_TRANSLATION_LENGTH, description="Target-language term")
    category: GlossaryCategory = Field(default=GlossaryCategory.OTHER, description="Entry category")
    aliases: List[str] = Field(default_factory=list, description="Alternate source spellings")
    gender: Optional[Gender] = Field(None, description="Only meaningful for characters")
    context_description: str = Field(default="", description="Notes passed to the LLM")

    @field_validator("original_term", "translation")
    @classmethod
    def validate_not_blank(cls, v, info):
        if not v.strip():
            raise ValueError(f"{info.field_name} must not be blank")
        return v

    @field_validator("aliases")
    @classmethod
    def validate_aliases(cls, v):
        return [a for a in v if a.strip()]


class EntryCreate(EntryBase):
    """Schema for creating a new entry."""

    def to_entry(self) -> GlossaryEntry:
        return GlossaryEntry(
            original_term=self.original_term,
            translation=self.translation,
            category=self.category,
            aliases=tuple(self.aliases),
            gender=self.gender,
            context_description=self.context_description,
        )


class EntryUpdate(BaseModel):
    """Schema for updating an entry (partial update)."""
    original_term: Optional[str] = Field(None, min_length=1, max_length=MAX_TERM_LENGTH)
    translation: Optional[str] = Field(None, min_length=1, max_length=MAX_TRANSLATION_LENGTH)
    category: Optional[GlossaryCategory] = None
    aliases: Optional[List[str]] = None
    gender: Optional[Gender] = None
    context_description: Optional[str] = None
    is_active: Optional[bool] = None

    @field_validator("original_term", "translation")
    @classmethod
    def validate_not_blank(cls, v, info):
        if v is not None and not v.strip():
            raise ValueError(f"{info.field_name} must not be blank")
        return v

    def apply_to(self, entry: GlossaryEntry) -> GlossaryEntry:
        changes = self.model_dump(exclude_unset=True)
        if "aliases" in changes and changes["aliases"] is not None:
            changes["aliases"] = tuple(changes["aliases"])
        return entry.replace(**{k: v for k, v in changes.items() if v is not None or k == "gender"})


class EntryResponse(EntryBase):
    """Schema for entry API response."""
    id: str
    is_active: bool
    usage_count: int
    created_at: datetime
    last_used_at: Optional[datetime] = None

    @classmethod
    def from_entry(cls, entry: GlossaryEntry) -> "EntryResponse":
        return cls.model_validate(entry.to_dict())


class EntryListResponse(BaseModel):
    """Schema for list of entries response."""
    entries: List[EntryResponse]
    total: int


class BulkEntryCreate(BaseModel):
    """Schema for bulk entry creation."""
    entries: List[EntryCreate] = Field(..., min_length=1, max_length=1000)
    skip_duplicates: bool = Field(default=True, description="Skip existing entries")


class BulkEntryResult(BaseModel):
    """Result of bulk entry operation."""
    added: int
    skipped: int
    errors: List[dict]


# ==================== MATCHING ====================

class MatchRequest(BaseModel):
    """Request to find glossary terms in one pane of a chapter."""
    text: str = Field(..., description="Full text buffer to scan")
    mode: MatchMode = Field(default=MatchMode.SOURCE, description="source or translated pane")
    highlight: Optional[str] = Field(None, description="Return highlighted text: markdown, html, plain")


class MatchItem(BaseModel):
    """A matched term in text."""
    entry_id: str
    original_term: str
    translation: str
    category: GlossaryCategory
    start: int
    end: int
    matched_alias: Optional[str] = None
    color: str


class MatchResponse(BaseModel):
    """Response with matched terms."""
    matches: List[MatchItem]
    highlighted_text: Optional[str] = None
    match_count: int
    unique_entries: int


class VerifyRequest(BaseModel):
    """Check that a translation uses the glossary translations of its source terms."""
    source_text: str
    translated_text: str


class VerifyResponse(BaseModel):
    verified: bool
    found: List[EntryResponse]
    missing: List[EntryResponse]


# ==================== IMPORT/EXPORT ====================

class ImportResult(BaseModel):
    """Result of import operation."""
    status: str  # completed, partial, failed
    added: int
    skipped: int
    errors: List[dict]
