"""SQLite database helpers for the journal and project summary schema."""

from __future__ import annotations

import logging
from pathlib import Path
import sqlite3
from typing import Iterable

from .section_schema import ALL_SECTIONS

logger = logging.getLogger(__name__)

PROJECT_ROOT = Path(__file__).resolve().parents[3]
DATA_DIR = PROJECT_ROOT / "data"
DEFAULT_DB_PATH = DATA_DIR / "journal.db"

# One flat TEXT column per known section: the legacy mirror read by clients
# that predate sectioned storage.
LEGACY_SECTION_COLUMNS: tuple[str, ...] = tuple(f"{name} TEXT" for name in ALL_SECTIONS)

DDL_STATEMENTS: tuple[str, ...] = (
    """
    CREATE TABLE IF NOT EXISTS project_summaries (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        repository TEXT UNIQUE NOT NULL,
        git_url TEXT,
        updated_at TEXT DEFAULT CURRENT_TIMESTAMP
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_project_repo ON project_summaries(repository)",
    """
    CREATE TABLE IF NOT EXISTS summary_sections (
        repository TEXT NOT NULL,
        section_name TEXT NOT NULL,
        current_value TEXT,
        last_updated_commit TEXT,
        last_updated_at TEXT,
        PRIMARY KEY (repository, section_name),
        FOREIGN KEY (repository) REFERENCES project_summaries(repository) ON DELETE CASCADE
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS section_history (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        repository TEXT NOT NULL,
        section_name TEXT NOT NULL,
        value TEXT NOT NULL,
        commit_ref TEXT,
        at TEXT,
        change_summary TEXT NOT NULL DEFAULT '',
        FOREIGN KEY (repository, section_name)
            REFERENCES summary_sections(repository, section_name) ON DELETE CASCADE
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_history_section ON section_history(repository, section_name, id)",
    """
    CREATE TABLE IF NOT EXISTS journal_entries (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        commit_hash TEXT UNIQUE NOT NULL,
        repository TEXT NOT NULL,
        branch TEXT NOT NULL,
        author TEXT NOT NULL,
        date TEXT NOT NULL,
        why TEXT NOT NULL,
        what_changed TEXT NOT NULL,
        decisions TEXT NOT NULL,
        technologies TEXT NOT NULL,
        summary TEXT,
        created_at TEXT DEFAULT CURRENT_TIMESTAMP
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_repository ON journal_entries(repository, date DESC)",
)

# Columns added to project_summaries after its first release. Older databases
# are brought forward with ALTER TABLE; existing columns are left alone.
SUMMARY_MIGRATION_COLUMNS: tuple[str, ...] = (
    "current_commit TEXT",
    "schema_version INTEGER",
    "last_synced_entry TEXT",
    "entries_synced INTEGER",
) + LEGACY_SECTION_COLUMNS


class DatabaseService:
    """Manage SQLite connections and schema initialization."""

    def __init__(self, db_path: str | Path | None = None):
        self.db_path = Path(db_path) if db_path else DEFAULT_DB_PATH

    def _ensure_directory(self) -> None:
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

    def connect(self) -> sqlite3.Connection:
        """Return a sqlite3 connection with the proper data directory created."""
        self._ensure_directory()
        conn = sqlite3.connect(self.db_path, timeout=30.0)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        return conn

    def initialize(self, statements: Iterable[str] | None = None) -> Path:
        """Create all schema artifacts and migrate older summary tables."""
        conn = self.connect()
        try:
            with conn:  # Transactional apply of DDL
                for statement in statements or DDL_STATEMENTS:
                    conn.execute(statement)
            self._migrate_summary_columns(conn)
        finally:
            conn.close()
        return self.db_path

    def _migrate_summary_columns(self, conn: sqlite3.Connection) -> None:
        existing = {
            row["name"] for row in conn.execute("PRAGMA table_info(project_summaries)")
        }
        for column in SUMMARY_MIGRATION_COLUMNS:
            name = column.split(" ", 1)[0]
            if name in existing:
                continue
            with conn:
                conn.execute(f"ALTER TABLE project_summaries ADD COLUMN {column}")
            logger.debug("Added column to project_summaries", extra={"column": name})


def init_database(db_path: str | Path | None = None) -> Path:
    """Convenience wrapper matching the quickstart instructions."""
    return DatabaseService(db_path).initialize()


__all__ = ["DatabaseService", "init_database", "DEFAULT_DB_PATH", "LEGACY_SECTION_COLUMNS"]
