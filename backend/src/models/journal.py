"""Journal entry models (commit-level records used as summary context)."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class JournalEntry(BaseModel):
    """One journal entry written for a commit."""

    commit_hash: str = Field(..., min_length=4, max_length=64)
    repository: str = Field(..., min_length=1, max_length=256)
    branch: str = "main"
    author: str = "unknown"
    date: datetime
    why: str = ""
    what_changed: str = ""
    decisions: str = ""
    technologies: str = ""
    summary: Optional[str] = None


class JournalEntryRecorded(BaseModel):
    """Acknowledgement returned after an entry is stored."""

    id: int
    commit_hash: str
    repository: str
    entry_count: int = Field(..., ge=1, description="Entries now recorded for the repository")


__all__ = ["JournalEntry", "JournalEntryRecorded"]
