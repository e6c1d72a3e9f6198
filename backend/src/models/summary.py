"""Pydantic models for the Living Project Summary (Entry 0)."""

from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class HistoryEntry(BaseModel):
    """A superseded section value, captured right before it was overwritten."""

    model_config = ConfigDict(frozen=True)

    value: str = Field(..., description="The value that was replaced")
    commit_ref: Optional[str] = Field(
        None, description="Commit the replaced value was last pinned to"
    )
    at: Optional[datetime] = Field(
        None, description="When the replaced value was written"
    )
    change_summary: str = Field("", description="Why the value was replaced")


class Section(BaseModel):
    """Current value of one named section plus its evolution ledger."""

    current_value: Optional[str] = None
    history: List[HistoryEntry] = Field(default_factory=list)
    last_updated_commit: Optional[str] = None
    last_updated_at: Optional[datetime] = None


class ProjectSummary(BaseModel):
    """Aggregate root: one per repository."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id": 1,
                "repository": "acme",
                "git_url": "https://github.com/acme/acme",
                "current_commit": "abc123",
                "schema_version": 2,
                "sections": {
                    "tech_stack": {
                        "current_value": "Node 22, Postgres 16",
                        "history": [
                            {
                                "value": "Node 20, Postgres 15",
                                "commit_ref": None,
                                "at": "2025-01-10T09:00:00+00:00",
                                "change_summary": "Runtime upgrade",
                            }
                        ],
                        "last_updated_commit": "abc123",
                        "last_updated_at": "2025-01-15T14:30:00+00:00",
                    }
                },
                "legacy_mirror": {"tech_stack": "Node 22, Postgres 16"},
                "updated_at": "2025-01-15T14:30:00+00:00",
            }
        }
    )

    id: int
    repository: str = Field(..., min_length=1, max_length=256)
    git_url: Optional[str] = None
    current_commit: Optional[str] = None
    schema_version: int = Field(1, ge=1, description="2 = sectioned, 1 = legacy flat row")
    sections: Dict[str, Section] = Field(default_factory=dict)
    legacy_mirror: Dict[str, Optional[str]] = Field(default_factory=dict)
    updated_at: Optional[datetime] = None
    last_synced_entry: Optional[str] = None
    entries_synced: int = 0


class DeepView(BaseModel):
    """Full audit projection of a summary."""

    repository: str
    git_url: Optional[str] = None
    current_commit: Optional[str] = None
    schema_version: int
    has_sectioned_data: bool = Field(
        ..., description="False when only legacy flat fields exist"
    )
    sections: Dict[str, Section]
    legacy_mirror: Dict[str, Optional[str]]
    updated_at: Optional[datetime] = None
    last_synced_entry: Optional[str] = None
    entries_synced: int = 0


class SummaryCreate(BaseModel):
    """Request payload to create a summary."""

    repository: str = Field(..., min_length=1, max_length=256)
    git_url: Optional[str] = None
    current_commit: Optional[str] = None
    sections: Dict[str, str] = Field(default_factory=dict)


class SummaryCreateResponse(BaseModel):
    repository: str
    schema_version: int = 2
    sections_filled: List[str]
    sections_count: int
    commit: Optional[str] = None


class TechnicalUpdate(BaseModel):
    """Request payload to update technical sections."""

    from_commit: Optional[str] = None
    to_commit: str = Field(..., min_length=1)
    sections: Dict[str, str] = Field(default_factory=dict)
    agent_report: str = Field("", description="Stored as a truncated change summary")


class TechnicalUpdateResponse(BaseModel):
    repository: str
    from_commit: Optional[str] = None
    to_commit: str
    updated_sections: List[str]
    total_updates: int = Field(..., ge=0, description="History entries appended")


class NarrativeUpdate(BaseModel):
    """Request payload to update narrative sections.

    Either ``sections`` or ``raw_report`` (or both) must be supplied; direct
    section values win over anything derived from the report.
    """

    sections: Optional[Dict[str, str]] = None
    raw_report: Optional[str] = None
    change_summary: Optional[str] = None
    commit: Optional[str] = None
    include_recent_entries: Optional[int] = Field(None, ge=0)


class NarrativeUpdateResponse(BaseModel):
    repository: str
    updated_sections: List[str]


class SummaryListItem(BaseModel):
    """Lightweight representation used for listings."""

    repository: str
    git_url: Optional[str] = None
    schema_version: int
    sections_count: int
    current_commit: Optional[str] = None
    updated_at: Optional[datetime] = None
    entry_count: int = Field(0, ge=0, description="Journal entries recorded for the repository")
    last_entry_date: Optional[datetime] = Field(
        None, description="Date of the newest journal entry"
    )


class SummaryListResponse(BaseModel):
    summaries: List[SummaryListItem]
    total: int
    has_more: bool


__all__ = [
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
