"""Tests for shallow and deep summary projections."""

from datetime import datetime, timezone

from backend.src.models.summary import HistoryEntry, ProjectSummary, Section
from backend.src.services.projections import deep_view, shallow_view

AT = datetime(2025, 1, 15, 14, 30, tzinfo=timezone.utc)


def _sectioned() -> ProjectSummary:
    return ProjectSummary(
        id=1,
        repository="acme",
        current_commit="abc123",
        schema_version=2,
        sections={
            "tech_stack": Section(
                current_value="Node 22, Postgres 16",
                history=[HistoryEntry(value="Node 20, Postgres 15", change_summary="upgrade")],
                last_updated_commit="abc123",
                last_updated_at=AT,
            ),
            "purpose": Section(current_value="Invoicing"),
        },
        legacy_mirror={"tech_stack": "Node 22, Postgres 16", "purpose": "Invoicing"},
    )


def test_shallow_view_has_current_values_only():
    view = shallow_view(_sectioned())

    assert view == {"purpose": "Invoicing", "tech_stack": "Node 22, Postgres 16"}
    assert list(view) == ["purpose", "tech_stack"]


def test_shallow_and_deep_agree_on_current_values():
    summary = _sectioned()
    shallow = shallow_view(summary)
    deep = deep_view(summary)

    assert {name: section.current_value for name, section in deep.sections.items()} == shallow


def test_deep_view_keeps_history_and_metadata():
    deep = deep_view(_sectioned())

    assert deep.has_sectioned_data is True
    assert deep.current_commit == "abc123"
    assert deep.sections["tech_stack"].history[0].value == "Node 20, Postgres 15"
    assert deep.sections["tech_stack"].last_updated_at == AT
    assert deep.legacy_mirror["purpose"] == "Invoicing"


def test_legacy_summary_falls_back_to_flat_fields():
    legacy = ProjectSummary(
        id=7,
        repository="old",
        schema_version=1,
        legacy_mirror={"summary": "  Old  ", "tech_stack": "Perl", "status": None},
    )

    assert shallow_view(legacy) == {"summary": "  Old  ", "tech_stack": "Perl"}

    deep = deep_view(legacy)
    assert deep.has_sectioned_data is False
    assert deep.sections == {}
    assert deep.legacy_mirror["tech_stack"] == "Perl"
