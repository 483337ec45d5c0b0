"""
Tests for engine construction.

Tests cover:
- SQLite URLs survive unchanged
- Dialect-specific connect arguments
"""
from sevenblue_loyalty import db as db_module
from sevenblue_loyalty.db import build_engine


class TestBuildEngine:
    """Engine construction from DATABASE_URL."""

    def test_in_memory_sqlite_url(self):
        """Test sqlite:// keeps its empty authority and opens in memory."""
        engine = build_engine("sqlite://")
        try:
            assert engine.url.get_backend_name() == "sqlite"
            assert engine.url.database is None
        finally:
            engine.dispose()

    def test_relative_file_sqlite_url(self):
        """Test the default relative file URL keeps its path."""
        engine = build_engine("sqlite:///./sevenblue_loyalty.db")
        try:
            assert engine.url.database == "./sevenblue_loyalty.db"
        finally:
            engine.dispose()

    def test_file_engine_connects(self, tmp_path):
        """Test an absolute file URL opens a working connection."""
        engine = build_engine(f"sqlite:///{tmp_path / 'check.db'}")
        try:
            with engine.connect() as conn:
                assert conn.exec_driver_sql("SELECT 1").scalar() == 1
        finally:
            engine.dispose()

    def test_module_engine_uses_configured_sqlite_url(self):
        """Test the module-level engine imported with a SQLite URL is usable."""
        assert db_module.engine.url.get_backend_name() == "sqlite"
        with db_module.engine.connect() as conn:
            assert conn.exec_driver_sql("SELECT 1").scalar() == 1
