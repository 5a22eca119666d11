"""
Unit tests for novel_config — settings and logging setup.
"""
import logging

from novel_config.logging_config import get_logger, setup_logging
from novel_config.settings import Settings


class TestSettings:
    def test_defaults(self):
        s = Settings(_env_file=None)
        assert s.match_case_sensitive is False
        assert s.match_word_boundary is False
        assert s.database_path.name == "glossary.db"

    def test_env_override(self, monkeypatch, tmp_path):
        monkeypatch.setenv("MATCH_WORD_BOUNDARY", "true")
        monkeypatch.setenv("DATABASE_PATH", str(tmp_path / "other.db"))
        s = Settings(_env_file=None)
        assert s.match_word_boundary is True
        assert s.database_path == tmp_path / "other.db"


class TestLogging:
    def test_setup_is_idempotent(self):
        setup_logging("INFO")
        handlers = list(logging.getLogger().handlers)
        setup_logging("DEBUG")
        assert logging.getLogger().handlers == handlers
        assert logging.getLogger().level == logging.DEBUG

    def test_get_logger(self):
        assert get_logger("novel_core.glossary").name == "novel_core.glossary"
