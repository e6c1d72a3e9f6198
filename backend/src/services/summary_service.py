"""Summary service - validation and orchestration over the summary store.

Creation is gated on the Tier-1 technical sections. Technical and narrative
updates each accept only their own vocabulary. Narrative updates may carry a
free-form report that is normalized into section proposals; values supplied
directly always take precedence over proposals derived from the report.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Mapping, Optional

from fastapi import status

from ..models.journal import JournalEntry, JournalEntryRecorded
from ..models.summary import (
    DeepView,
    NarrativeUpdateResponse,
    SummaryCreateResponse,
    SummaryListItem,
    SummaryListResponse,
    TechnicalUpdateResponse,
)
from .config import AppConfig, get_config
from .journal_service import JournalService
from .output_limits import preview
from .projections import deep_view, shallow_view
from .report_normalizer import ReportNormalizer, get_report_normalizer
from .section_schema import (
    TIER1_SECTIONS,
    SectionKind,
    classify,
    ordered,
)
from .summary_store import (
    SummaryError,
    SummaryNotFoundError,
    SummaryStore,
    get_summary_store,
)

logger = logging.getLogger(__name__)

MAX_LIST_LIMIT = 50
DIRECT_NARRATIVE_CHANGE = "Direct narrative update"


class SectionValidationError(SummaryError):
    """Raised for missing Tier-1 sections or names outside the accepted vocabulary."""

    error = "validation_failed"
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(
        self,
        message: str,
        missing_sections: Optional[List[str]] = None,
        invalid_sections: Optional[List[str]] = None,
    ):
        details: Dict[str, List[str]] = {}
        if missing_sections:
            details["missing_sections"] = list(missing_sections)
        if invalid_sections:
            details["invalid_sections"] = list(invalid_sections)
        super().__init__(message, details)
        self.missing_sections = list(missing_sections or [])
        self.invalid_sections = list(invalid_sections or [])


class NoChangesProvidedError(SummaryError):
    """Raised when an update carries nothing to apply."""

    error = "no_changes_provided"
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, repository: str):
        super().__init__(
            f"No section values to apply for '{repository}'. Provide at least one non-empty section.",
            {"repository": repository},
        )


def _non_blank(sections: Optional[Mapping[str, Optional[str]]]) -> Dict[str, str]:
    """Drop blank values; an update never clears a section."""
    return {
        name: value
        for name, value in (sections or {}).items()
        if value is not None and value.strip()
    }


def _outside(sections: Mapping[str, object], kind: SectionKind) -> List[str]:
    return ordered(name for name in sections if classify(name) is not kind)


class SummaryService:
    """Create, update and read Living Project Summaries."""

    def __init__(
        self,
        store: SummaryStore | None = None,
        normalizer: ReportNormalizer | None = None,
        journal: JournalService | None = None,
        config: AppConfig | None = None,
    ):
        self.config = config or get_config()
        self.store = store or get_summary_store()
        self._normalizer = normalizer
        self.journal = journal or JournalService(self.store.db_service)

    @property
    def normalizer(self) -> ReportNormalizer:
        if self._normalizer is None:
            self._normalizer = get_report_normalizer()
        return self._normalizer

    def _preview(self, text: str) -> str:
        return preview(text, self.config.change_summary_preview_chars)

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    def create_summary(
        self,
        repository: str,
        sections: Mapping[str, Optional[str]],
        git_url: Optional[str] = None,
        current_commit: Optional[str] = None,
    ) -> SummaryCreateResponse:
        invalid = ordered(
            name for name in sections if classify(name) is SectionKind.UNKNOWN
        )
        provided = _non_blank(sections)
        missing = [name for name in TIER1_SECTIONS if name not in provided]

        if invalid or missing:
            parts = []
            if missing:
                parts.append(f"missing required sections: {', '.join(missing)}")
            if invalid:
                parts.append(f"unknown sections: {', '.join(invalid)}")
            raise SectionValidationError(
                f"Cannot create summary for '{repository}': {'; '.join(parts)}",
                missing_sections=missing,
                invalid_sections=invalid,
            )

        _, populated = self.store.create(repository, git_url, current_commit, provided)
        return SummaryCreateResponse(
            repository=repository,
            sections_filled=populated,
            sections_count=len(populated),
            commit=current_commit,
        )

    # ------------------------------------------------------------------
    # Updates
    # ------------------------------------------------------------------

    def update_technical(
        self,
        repository: str,
        to_commit: str,
        sections: Mapping[str, Optional[str]],
        agent_report: str = "",
        from_commit: Optional[str] = None,
    ) -> TechnicalUpdateResponse:
        if not to_commit or not to_commit.strip():
            raise SectionValidationError("to_commit is required for technical updates")

        invalid = _outside(sections, SectionKind.TECHNICAL)
        if invalid:
            raise SectionValidationError(
                f"Not technical sections: {', '.join(invalid)}",
                invalid_sections=invalid,
            )

        proposed = _non_blank(sections)
        if not proposed:
            raise NoChangesProvidedError(repository)

        updated, appended, previous_commit = self.store.update_technical(
            repository,
            to_commit,
            proposed,
            change_summary=self._preview(agent_report or ""),
        )
        return TechnicalUpdateResponse(
            repository=repository,
            from_commit=from_commit or previous_commit,
            to_commit=to_commit,
            updated_sections=updated,
            total_updates=appended,
        )

    async def update_narrative(
        self,
        repository: str,
        sections: Optional[Mapping[str, Optional[str]]] = None,
        raw_report: Optional[str] = None,
        change_summary: Optional[str] = None,
        commit: Optional[str] = None,
        include_recent_entries: Optional[int] = None,
    ) -> NarrativeUpdateResponse:
        invalid = _outside(sections or {}, SectionKind.NARRATIVE)
        if invalid:
            raise SectionValidationError(
                f"Not narrative sections: {', '.join(invalid)}",
                invalid_sections=invalid,
            )

        existing = self.store.read(repository)
        if existing is None:
            raise SummaryNotFoundError(repository)

        # Stage 1: direct values
        proposed = _non_blank(sections)

        # Stage 2: fill gaps from the normalized report
        last_synced_entry = None
        entries_analyzed = 0
        report = (raw_report or "").strip()
        if report:
            entries = self.journal.recent_entries(
                repository, self._recent_entries_limit(include_recent_entries)
            )
            derived = await self.normalizer.normalize(report, existing, entries)
            for name, value in _non_blank(derived).items():
                if classify(name) is SectionKind.NARRATIVE and name not in proposed:
                    proposed[name] = value
            if entries:
                last_synced_entry = entries[0].commit_hash
                entries_analyzed = len(entries)

        if not proposed:
            raise NoChangesProvidedError(repository)

        if change_summary and change_summary.strip():
            summary_text = self._preview(change_summary)
        elif report:
            summary_text = self._preview(report)
        else:
            summary_text = DIRECT_NARRATIVE_CHANGE

        updated, _, _ = self.store.update_narrative(
            repository,
            proposed,
            change_summary=summary_text,
            to_commit=commit,
            last_synced_entry=last_synced_entry,
            entries_analyzed=entries_analyzed,
        )
        return NarrativeUpdateResponse(repository=repository, updated_sections=updated)

    def _recent_entries_limit(self, requested: Optional[int]) -> int:
        limit = self.config.recent_entries_default if requested is None else requested
        return max(0, min(limit, self.config.recent_entries_max))

    # ------------------------------------------------------------------
    # Journal
    # ------------------------------------------------------------------

    def record_entry(self, entry: JournalEntry) -> JournalEntryRecorded:
        """Store a commit journal entry so later reports can use it as context."""
        entry_id = self.journal.add_entry(entry)
        count, _ = self.journal.entry_stats([entry.repository])[entry.repository]
        return JournalEntryRecorded(
            id=entry_id,
            commit_hash=entry.commit_hash,
            repository=entry.repository,
            entry_count=count,
        )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_shallow_view(self, repository: str) -> Dict[str, str]:
        summary = self.store.read(repository)
        if summary is None:
            raise SummaryNotFoundError(repository)
        return shallow_view(summary)

    def get_deep_view(self, repository: str) -> DeepView:
        summary = self.store.read(repository)
        if summary is None:
            raise SummaryNotFoundError(repository)
        return deep_view(summary)

    def list_summaries(self, limit: int = 30, offset: int = 0) -> SummaryListResponse:
        limit = max(1, min(limit, MAX_LIST_LIMIT))
        offset = max(0, offset)
        summaries, total = self.store.list(limit, offset)
        stats = self.journal.entry_stats([summary.repository for summary in summaries])
        items = [
            SummaryListItem(
                repository=summary.repository,
                git_url=summary.git_url,
                schema_version=summary.schema_version,
                sections_count=len(shallow_view(summary)),
                current_commit=summary.current_commit,
                updated_at=summary.updated_at,
                entry_count=stats[summary.repository][0],
                last_entry_date=stats[summary.repository][1],
            )
            for summary in summaries
        ]
        return SummaryListResponse(
            summaries=items,
            total=total,
            has_more=offset + len(items) < total,
        )


# Singleton instance for dependency injection
_summary_service: SummaryService | None = None


def get_summary_service() -> SummaryService:
    """Get or create the summary service singleton."""
    global _summary_service
    if _summary_service is None:
        _summary_service = SummaryService()
    return _summary_service


__all__ = [
    "SummaryService",
    "SectionValidationError",
    "NoChangesProvidedError",
    "get_summary_service",
    "MAX_LIST_LIMIT",
]
