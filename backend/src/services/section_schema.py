"""Static vocabulary of Living Project Summary sections.

Sections fall into two disjoint groups. Technical sections describe how the
repository is built and are updated against a commit; narrative sections
describe why it exists and where it is heading. A subset of the technical
sections (Tier-1) must be filled before a summary can be created.
"""

from __future__ import annotations

from enum import Enum
from typing import FrozenSet, Iterable, List, Tuple


class SectionKind(str, Enum):
    """Classification of a section name."""

    TECHNICAL = "technical"
    NARRATIVE = "narrative"
    UNKNOWN = "unknown"


TECHNICAL_SECTIONS: Tuple[str, ...] = (
    "file_structure",
    "tech_stack",
    "patterns",
    "commands",
    "architecture",
    "frontend",
    "backend",
    "database_info",
    "services",
    "data_flow",
    "custom_tooling",
)

NARRATIVE_SECTIONS: Tuple[str, ...] = (
    "summary",
    "purpose",
    "key_decisions",
    "technologies",
    "status",
    "extended_notes",
)

TIER1_SECTIONS: Tuple[str, ...] = (
    "file_structure",
    "tech_stack",
    "patterns",
    "commands",
    "architecture",
)

# Narrative first, matching the column order of the legacy project_summaries table.
ALL_SECTIONS: Tuple[str, ...] = NARRATIVE_SECTIONS + TECHNICAL_SECTIONS

_TECHNICAL = frozenset(TECHNICAL_SECTIONS)
_NARRATIVE = frozenset(NARRATIVE_SECTIONS)
_TIER1 = frozenset(TIER1_SECTIONS)
_ALL = frozenset(ALL_SECTIONS)


def classify(name: str) -> SectionKind:
    if name in _TECHNICAL:
        return SectionKind.TECHNICAL
    if name in _NARRATIVE:
        return SectionKind.NARRATIVE
    return SectionKind.UNKNOWN


def is_tier1(name: str) -> bool:
    return name in _TIER1


def all_section_names() -> FrozenSet[str]:
    return _ALL


def sections_of_kind(kind: SectionKind) -> Tuple[str, ...]:
    """Return the ordered vocabulary for ``kind`` (empty for UNKNOWN)."""
    if kind is SectionKind.TECHNICAL:
        return TECHNICAL_SECTIONS
    if kind is SectionKind.NARRATIVE:
        return NARRATIVE_SECTIONS
    return ()


def ordered(names: Iterable[str]) -> List[str]:
    """Sort section names into vocabulary order, unknown names last."""
    position = {name: index for index, name in enumerate(ALL_SECTIONS)}
    return sorted(set(names), key=lambda name: (position.get(name, len(position)), name))


__all__ = [
    "SectionKind",
    "TECHNICAL_SECTIONS",
    "NARRATIVE_SECTIONS",
    "TIER1_SECTIONS",
    "ALL_SECTIONS",
    "classify",
    "is_tier1",
    "all_section_names",
    "sections_of_kind",
    "ordered",
]
