"""Journal entry endpoints.

Entries are commit-level notes. Narrative summary reports read the newest
ones as context, and summary listings report how many each repository has.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, status

from ...models.journal import JournalEntry, JournalEntryRecorded
from ...services.summary_service import SummaryService, get_summary_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/entries", tags=["entries"])


@router.post("", response_model=JournalEntryRecorded, status_code=status.HTTP_201_CREATED)
async def create_entry(
    entry: JournalEntry,
    service: SummaryService = Depends(get_summary_service),
):
    """Record a journal entry; an entry for the same commit is replaced."""
    recorded = service.record_entry(entry)
    logger.info(
        "Journal entry recorded via API",
        extra={"repository": entry.repository, "commit": entry.commit_hash},
    )
    return recorded


__all__ = ["router"]
