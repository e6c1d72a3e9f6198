"""Tests for the pure section merge."""

from datetime import datetime, timezone

from backend.src.models.summary import HistoryEntry, Section
from backend.src.services.summary_store import merge_sections

T0 = datetime(2025, 1, 10, 9, 0, tzinfo=timezone.utc)
T1 = datetime(2025, 1, 15, 14, 30, tzinfo=timezone.utc)


def test_new_section_has_no_history():
    updated, deltas = merge_sections(
        {}, {"frontend": "React 19"}, commit="abc123", at=T1, change_summary="add ui"
    )

    assert deltas == []
    assert updated["frontend"].current_value == "React 19"
    assert updated["frontend"].history == []
    assert updated["frontend"].last_updated_commit == "abc123"
    assert updated["frontend"].last_updated_at == T1


def test_overwrite_pushes_previous_value():
    existing = {
        "tech_stack": Section(
            current_value="Node 20, Postgres 15", last_updated_commit=None, last_updated_at=T0
        )
    }

    updated, deltas = merge_sections(
        existing,
        {"tech_stack": "Node 22, Postgres 16"},
        commit="abc123",
        at=T1,
        change_summary="Runtime upgrade",
    )

    section = updated["tech_stack"]
    assert section.current_value == "Node 22, Postgres 16"
    assert section.history == [
        HistoryEntry(
            value="Node 20, Postgres 15", commit_ref=None, at=T0, change_summary="Runtime upgrade"
        )
    ]
    assert deltas == [("tech_stack", section.history[0])]


def test_identical_value_still_records_history():
    existing = {"commands": Section(current_value="make dev", last_updated_commit="a1")}

    updated, deltas = merge_sections(
        existing, {"commands": "make dev"}, commit="b2", at=T1, change_summary="recheck"
    )

    assert len(deltas) == 1
    assert updated["commands"].history[0].commit_ref == "a1"
    assert updated["commands"].current_value == "make dev"


def test_untouched_sections_are_carried_over():
    patterns = Section(current_value="MVC", last_updated_commit="a1", last_updated_at=T0)
    existing = {"patterns": patterns, "commands": Section(current_value="make")}

    updated, _ = merge_sections(
        existing, {"commands": "just"}, commit="b2", at=T1, change_summary=""
    )

    assert updated["patterns"] == patterns
    assert set(updated) == {"patterns", "commands"}


def test_merge_does_not_mutate_inputs():
    existing = {"commands": Section(current_value="make")}

    merge_sections(existing, {"commands": "just"}, commit=None, at=T1, change_summary="")

    assert existing["commands"].current_value == "make"
    assert existing["commands"].history == []


def test_history_grows_with_each_overwrite():
    sections = {}
    for index, value in enumerate(["v1", "v2", "v3", "v4"]):
        sections, _ = merge_sections(
            sections, {"status": value}, commit=f"c{index}", at=T1, change_summary=f"step {index}"
        )

    assert sections["status"].current_value == "v4"
    assert [entry.value for entry in sections["status"].history] == ["v1", "v2", "v3"]
    assert [entry.commit_ref for entry in sections["status"].history] == ["c0", "c1", "c2"]
