"""Read projections over a project summary aggregate."""

from __future__ import annotations

from typing import Dict

from ..models.summary import DeepView, ProjectSummary
from .section_schema import ALL_SECTIONS, ordered

SECTIONED_SCHEMA_VERSION = 2


def shallow_view(summary: ProjectSummary) -> Dict[str, str]:
    """Current values only, keyed by section name, no history.

    Rows that were never written in sectioned form fall back to their legacy
    flat fields, returned as stored.
    """
    if summary.schema_version != SECTIONED_SCHEMA_VERSION and not summary.sections:
        return {
            name: summary.legacy_mirror[name]
            for name in ALL_SECTIONS
            if summary.legacy_mirror.get(name) is not None
        }

    view: Dict[str, str] = {}
    for name in ordered(summary.sections):
        value = summary.sections[name].current_value
        if value is not None:
            view[name] = value
    return view


def deep_view(summary: ProjectSummary) -> DeepView:
    return DeepView(
        repository=summary.repository,
        git_url=summary.git_url,
        current_commit=summary.current_commit,
        schema_version=summary.schema_version,
        has_sectioned_data=bool(summary.sections),
        sections={name: summary.sections[name] for name in ordered(summary.sections)},
        legacy_mirror=dict(summary.legacy_mirror),
        updated_at=summary.updated_at,
        last_synced_entry=summary.last_synced_entry,
        entries_synced=summary.entries_synced,
    )


__all__ = ["shallow_view", "deep_view"]
