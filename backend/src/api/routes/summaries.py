"""Project summary API endpoints for the dashboard.

Domain failures raised by the service (missing Tier-1 sections, unknown
repositories, duplicate creation, empty updates) are ``SummaryError``
subclasses and are turned into JSON responses by the shared error handlers.
"""

from __future__ import annotations

import logging
from typing import Dict

from fastapi import APIRouter, Depends, Query, status

from ...models.summary import (
    DeepView,
    NarrativeUpdate,
    NarrativeUpdateResponse,
    SummaryCreate,
    SummaryCreateResponse,
    SummaryListResponse,
    TechnicalUpdate,
    TechnicalUpdateResponse,
)
from ...services.summary_service import MAX_LIST_LIMIT, SummaryService, get_summary_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/summaries", tags=["summaries"])


@router.get("", response_model=SummaryListResponse)
async def list_summaries(
    limit: int = Query(30, ge=1, le=MAX_LIST_LIMIT, description="Page size"),
    offset: int = Query(0, ge=0, description="Number of summaries to skip"),
    service: SummaryService = Depends(get_summary_service),
):
    """List project summaries ordered by repository name."""
    return service.list_summaries(limit=limit, offset=offset)


@router.post("", response_model=SummaryCreateResponse, status_code=status.HTTP_201_CREATED)
async def create_summary(
    request: SummaryCreate,
    service: SummaryService = Depends(get_summary_service),
):
    """Create a summary. All Tier-1 technical sections are required."""
    created = service.create_summary(
        request.repository,
        request.sections,
        git_url=request.git_url,
        current_commit=request.current_commit,
    )
    logger.info(
        "Project summary created via API",
        extra={"repository": request.repository, "sections": created.sections_filled},
    )
    return created


@router.get("/{repository}", response_model=Dict[str, str])
async def get_summary(
    repository: str,
    service: SummaryService = Depends(get_summary_service),
):
    """Current section values only."""
    return service.get_shallow_view(repository)


@router.get("/{repository}/deep", response_model=DeepView)
async def get_summary_deep(
    repository: str,
    service: SummaryService = Depends(get_summary_service),
):
    """Every section with its full history, plus the legacy flat fields."""
    return service.get_deep_view(repository)


@router.patch("/{repository}/technical", response_model=TechnicalUpdateResponse)
async def update_technical_sections(
    repository: str,
    request: TechnicalUpdate,
    service: SummaryService = Depends(get_summary_service),
):
    return service.update_technical(
        repository,
        request.to_commit,
        request.sections,
        agent_report=request.agent_report,
        from_commit=request.from_commit,
    )


@router.patch("/{repository}/narrative", response_model=NarrativeUpdateResponse)
async def update_narrative_sections(
    repository: str,
    request: NarrativeUpdate,
    service: SummaryService = Depends(get_summary_service),
):
    return await service.update_narrative(
        repository,
        sections=request.sections,
        raw_report=request.raw_report,
        change_summary=request.change_summary,
        commit=request.commit,
        include_recent_entries=request.include_recent_entries,
    )


__all__ = ["router"]
