"""Pydantic models for data validation and serialization."""

from .journal import JournalEntry, JournalEntryRecorded
from .settings import ModelProvider
from .summary import (
    DeepView,
    HistoryEntry,
    NarrativeUpdate,
    NarrativeUpdateResponse,
    ProjectSummary,
    Section,
    SummaryCreate,
    SummaryCreateResponse,
    SummaryListItem,
    SummaryListResponse,
    TechnicalUpdate,
    TechnicalUpdateResponse,
)

__all__ = [
    "JournalEntry",
    "JournalEntryRecorded",
    "ModelProvider",
    "HistoryEntry",
    "Section",
    "ProjectSummary",
    "DeepView",
    "SummaryCreate",
    "SummaryCreateResponse",
    "TechnicalUpdate",
    "TechnicalUpdateResponse",
    "NarrativeUpdate",
    "NarrativeUpdateResponse",
    "SummaryListItem",
    "SummaryListResponse",
]
