#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Settings - Centralized configuration management
"""

from pathlib import Path
from typing import Optional
from pydantic_settings import BaseSettings


# Base directory
BASE_DIR = Path(__file__).resolve().parent.parent


class Settings(BaseSettings):
    """Application settings"""

    # ========== Languages ==========
    default_source_language: str = "Japanese"
    default_target_language: str = "English"

    # ========== Glossary Matching ==========
    match_case_sensitive: bool = False  # Case-insensitive, like the editor search
    match_word_boundary: bool = False  # Substring matching suits CJK source text

    # ========== Database ==========
    database_path: Path = BASE_DIR / "data" / "glossary.db"

    # ========== Logging ==========
    log_level: str = "INFO"
    log_file: Optional[Path] = None

    class Config:
        env_file = str(BASE_DIR / ".env")
        env_file_encoding = "utf-8"
        case_sensitive = False
        extra = "ignore"  # Allow extra fields from .env that aren't defined in model


settings = Settings()


def get_settings() -> Settings:
    """Get the global settings instance."""
    return settings
