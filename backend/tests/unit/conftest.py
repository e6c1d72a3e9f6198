from pathlib import Path

import pytest

from backend.src.services.config import AppConfig
from backend.src.services.database import DatabaseService
from backend.src.services.journal_service import JournalService
from backend.src.services.summary_store import SummaryStore

TIER1 = {
    "file_structure": "src/\n  app.ts",
    "tech_stack": "Node 20, Postgres 15",
    "patterns": "Services per module",
    "commands": "npm run dev",
    "architecture": "Monolith with a job queue",
}


@pytest.fixture
def db_service(tmp_path: Path) -> DatabaseService:
    service = DatabaseService(tmp_path / "journal.db")
    service.initialize()
    return service


@pytest.fixture
def store(db_service: DatabaseService) -> SummaryStore:
    return SummaryStore(db_service)


@pytest.fixture
def journal(db_service: DatabaseService) -> JournalService:
    return JournalService(db_service)


@pytest.fixture
def app_config(tmp_path: Path) -> AppConfig:
    return AppConfig(database_path=tmp_path / "journal.db", change_summary_preview_chars=40)


@pytest.fixture
def tier1_sections() -> dict:
    return dict(TIER1)
