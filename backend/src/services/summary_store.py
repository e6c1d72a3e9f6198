"""Versioned document store for Living Project Summaries (Entry 0).

Each repository owns one row in ``project_summaries``. Section values live in
``summary_sections`` and every overwritten value is appended to
``section_history``. The flat section columns on ``project_summaries`` are a
mirror of the current values for readers that predate sectioned storage; they
are only ever written in the same transaction as the sections they mirror.
"""

from __future__ import annotations

import logging
import sqlite3
import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple

from fastapi import status

from ..models.summary import HistoryEntry, ProjectSummary, Section
from .database import DatabaseService
from .section_schema import ALL_SECTIONS, SectionKind, classify, ordered

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 2
LEGACY_SCHEMA_VERSION = 1


class SummaryError(Exception):
    """Base class for project summary failures caused by caller input."""

    error = "summary_error"
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.error, "message": self.message, **self.details}


class SummaryAlreadyExistsError(SummaryError):
    """Raised when creating a summary for a repository that already has one."""

    error = "already_exists"
    status_code = status.HTTP_409_CONFLICT

    def __init__(self, repository: str):
        super().__init__(
            f"Project summary already exists for '{repository}'. Update it instead of creating it.",
            {"repository": repository},
        )


class SummaryNotFoundError(SummaryError):
    """Raised when reading or updating a repository without a summary."""

    error = "not_found"
    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, repository: str):
        super().__init__(
            f"No project summary found for '{repository}'. Create one first.",
            {"repository": repository},
        )


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _parse_ts(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        logger.warning("Unparseable timestamp in summary store", extra={"value": value})
        return None


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def merge_sections(
    existing: Mapping[str, Section],
    proposed: Mapping[str, str],
    *,
    commit: Optional[str],
    at: datetime,
    change_summary: str,
) -> Tuple[Dict[str, Section], List[Tuple[str, HistoryEntry]]]:
    """Apply ``proposed`` values on top of ``existing`` sections.

    Returns the full updated section map and the history entries appended,
    as ``(section_name, entry)`` pairs in proposal order. Sections missing
    from ``proposed`` are carried over untouched. A section that already holds
    a value always gets a history entry, even when the new value is identical.
    """
    updated: Dict[str, Section] = dict(existing)
    deltas: List[Tuple[str, HistoryEntry]] = []

    for name, new_value in proposed.items():
        previous = existing.get(name)
        history = list(previous.history) if previous else []
        if previous is not None and previous.current_value:
            entry = HistoryEntry(
                value=previous.current_value,
                commit_ref=previous.last_updated_commit,
                at=previous.last_updated_at,
                change_summary=change_summary,
            )
            history.append(entry)
            deltas.append((name, entry))
        updated[name] = Section(
            current_value=new_value,
            history=history,
            last_updated_commit=commit,
            last_updated_at=at,
        )

    return updated, deltas


class SummaryStore:
    """Persistence for project summary aggregates."""

    def __init__(self, db_service: DatabaseService | None = None):
        """Initialize with database service."""
        self._db = db_service or DatabaseService()
        self._locks: Dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    @property
    def db_service(self) -> DatabaseService:
        return self._db

    def _lock_for(self, repository: str) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(repository)
            if lock is None:
                lock = self._locks[repository] = threading.Lock()
            return lock

    @contextmanager
    def _transaction(self, repository: str) -> Iterator[sqlite3.Connection]:
        """Serialize writers per repository inside one IMMEDIATE transaction."""
        with self._lock_for(repository):
            conn = self._db.connect()
            conn.isolation_level = None
            try:
                conn.execute("BEGIN IMMEDIATE")
                try:
                    yield conn
                except BaseException:
                    conn.execute("ROLLBACK")
                    raise
                conn.execute("COMMIT")
            finally:
                conn.close()

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create(
        self,
        repository: str,
        git_url: Optional[str],
        current_commit: Optional[str],
        sections: Mapping[str, str],
    ) -> Tuple[int, List[str]]:
        """
        Create a sectioned summary. Returns (summary_id, populated_section_names).

        Only known section names are stored; omitted sections stay absent.
        """
        populated = ordered(name for name in sections if classify(name) is not SectionKind.UNKNOWN)
        now = _iso(_utcnow())

        with self._transaction(repository) as conn:
            if self._fetch_row(conn, repository) is not None:
                raise SummaryAlreadyExistsError(repository)

            columns = ["repository", "git_url", "current_commit", "schema_version", "updated_at"]
            columns += populated
            values = [repository, git_url, current_commit, SCHEMA_VERSION, now]
            values += [sections[name] for name in populated]
            placeholders = ", ".join("?" for _ in columns)
            try:
                cursor = conn.execute(
                    f"INSERT INTO project_summaries ({', '.join(columns)}) VALUES ({placeholders})",
                    values,
                )
            except sqlite3.IntegrityError as exc:
                raise SummaryAlreadyExistsError(repository) from exc
            summary_id = int(cursor.lastrowid)

            for name in populated:
                conn.execute(
                    """
                    INSERT INTO summary_sections
                    (repository, section_name, current_value, last_updated_commit, last_updated_at)
                    VALUES (?, ?, ?, ?, ?)
                    """,
                    (repository, name, sections[name], current_commit, now),
                )

        logger.info(
            "Created project summary",
            extra={"repository": repository, "sections": populated, "commit": current_commit},
        )
        return summary_id, populated

    def update_technical(
        self,
        repository: str,
        to_commit: str,
        sections: Mapping[str, str],
        change_summary: str,
    ) -> Tuple[List[str], int, Optional[str]]:
        """
        Update technical sections pinned to ``to_commit``.

        Returns (updated_section_names, history_entries_appended, previous_commit).
        Non-technical names are ignored.
        """
        return self._apply_update(
            repository,
            SectionKind.TECHNICAL,
            sections,
            change_summary=change_summary,
            to_commit=to_commit,
        )

    def update_narrative(
        self,
        repository: str,
        sections: Mapping[str, str],
        change_summary: str,
        to_commit: Optional[str] = None,
        *,
        last_synced_entry: Optional[str] = None,
        entries_analyzed: int = 0,
    ) -> Tuple[List[str], int, Optional[str]]:
        """
        Update narrative sections; the commit pin is optional.

        Returns (updated_section_names, history_entries_appended, previous_commit).
        Non-narrative names are ignored.
        """
        return self._apply_update(
            repository,
            SectionKind.NARRATIVE,
            sections,
            change_summary=change_summary,
            to_commit=to_commit,
            last_synced_entry=last_synced_entry,
            entries_analyzed=entries_analyzed,
        )

    def _apply_update(
        self,
        repository: str,
        kind: SectionKind,
        sections: Mapping[str, str],
        *,
        change_summary: str,
        to_commit: Optional[str],
        last_synced_entry: Optional[str] = None,
        entries_analyzed: int = 0,
    ) -> Tuple[List[str], int, Optional[str]]:
        proposed = {name: value for name, value in sections.items() if classify(name) is kind}
        now = _utcnow()

        with self._transaction(repository) as conn:
            row = self._fetch_row(conn, repository)
            if row is None:
                raise SummaryNotFoundError(repository)
            previous_commit = row["current_commit"]

            if not proposed:
                return [], 0, previous_commit

            existing = self._load_sections(conn, repository)
            adopted: List[str] = []
            upgrading = (
                not existing
                and (row["schema_version"] or LEGACY_SCHEMA_VERSION) < SCHEMA_VERSION
            )
            if upgrading:
                existing = self._adopt_legacy(row)
                adopted = list(existing)

            merged, deltas = merge_sections(
                existing,
                proposed,
                commit=to_commit,
                at=now,
                change_summary=change_summary,
            )

            touched = ordered(set(adopted) | set(proposed))
            for name in touched:
                section = merged[name]
                conn.execute(
                    """
                    INSERT INTO summary_sections
                    (repository, section_name, current_value, last_updated_commit, last_updated_at)
                    VALUES (?, ?, ?, ?, ?)
                    ON CONFLICT(repository, section_name) DO UPDATE SET
                        current_value = excluded.current_value,
                        last_updated_commit = excluded.last_updated_commit,
                        last_updated_at = excluded.last_updated_at
                    """,
                    (
                        repository,
                        name,
                        section.current_value,
                        section.last_updated_commit,
                        _iso(section.last_updated_at),
                    ),
                )

            for name, entry in deltas:
                conn.execute(
                    """
                    INSERT INTO section_history
                    (repository, section_name, value, commit_ref, at, change_summary)
                    VALUES (?, ?, ?, ?, ?, ?)
                    """,
                    (
                        repository,
                        name,
                        entry.value,
                        entry.commit_ref,
                        _iso(entry.at),
                        entry.change_summary,
                    ),
                )

            # Mirror columns are derived from the merged sections, never from input.
            # An upgraded row gets every column rewritten so skipped blanks become NULL.
            mirrored = list(ALL_SECTIONS) if upgrading else touched
            mirror_sql = ", ".join(f"{name} = ?" for name in mirrored)
            conn.execute(
                f"""
                UPDATE project_summaries SET
                    {mirror_sql},
                    schema_version = ?,
                    updated_at = ?,
                    current_commit = COALESCE(?, current_commit),
                    last_synced_entry = COALESCE(?, last_synced_entry),
                    entries_synced = COALESCE(entries_synced, 0) + ?
                WHERE repository = ?
                """,
                [
                    merged[name].current_value if name in merged else None
                    for name in mirrored
                ]
                + [
                    SCHEMA_VERSION,
                    _iso(now),
                    to_commit,
                    last_synced_entry,
                    entries_analyzed,
                    repository,
                ],
            )

        updated = ordered(proposed)
        logger.info(
            "Updated project summary sections",
            extra={
                "repository": repository,
                "kind": kind.value,
                "sections": updated,
                "history_appended": len(deltas),
                "adopted_legacy": adopted,
                "commit": to_commit,
            },
        )
        return updated, len(deltas), previous_commit

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def read(self, repository: str) -> Optional[ProjectSummary]:
        """Return the full aggregate for ``repository`` or None."""
        conn = self._db.connect()
        conn.isolation_level = None
        try:
            # Single read transaction so sections and history come from one snapshot.
            conn.execute("BEGIN")
            try:
                row = self._fetch_row(conn, repository)
                if row is None:
                    return None
                return self._to_summary(row, self._load_sections(conn, repository))
            finally:
                conn.execute("COMMIT")
        finally:
            conn.close()

    def list(self, limit: int = 30, offset: int = 0) -> Tuple[List[ProjectSummary], int]:
        """Return a page of aggregates ordered by repository, plus the total count."""
        conn = self._db.connect()
        conn.isolation_level = None
        try:
            conn.execute("BEGIN")
            try:
                total = conn.execute("SELECT COUNT(*) FROM project_summaries").fetchone()[0]
                rows = conn.execute(
                    "SELECT * FROM project_summaries ORDER BY repository ASC LIMIT ? OFFSET ?",
                    (limit, offset),
                ).fetchall()
                summaries = [
                    self._to_summary(row, self._load_sections(conn, row["repository"]))
                    for row in rows
                ]
            finally:
                conn.execute("COMMIT")
            return summaries, total
        finally:
            conn.close()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _fetch_row(conn: sqlite3.Connection, repository: str) -> Optional[sqlite3.Row]:
        return conn.execute(
            "SELECT * FROM project_summaries WHERE repository = ? LIMIT 1",
            (repository,),
        ).fetchone()

    @staticmethod
    def _load_sections(conn: sqlite3.Connection, repository: str) -> Dict[str, Section]:
        history: Dict[str, List[HistoryEntry]] = {}
        for h in conn.execute(
            """
            SELECT section_name, value, commit_ref, at, change_summary
            FROM section_history
            WHERE repository = ?
            ORDER BY id ASC
            """,
            (repository,),
        ):
            history.setdefault(h["section_name"], []).append(
                HistoryEntry(
                    value=h["value"],
                    commit_ref=h["commit_ref"],
                    at=_parse_ts(h["at"]),
                    change_summary=h["change_summary"] or "",
                )
            )

        sections: Dict[str, Section] = {}
        for s in conn.execute(
            """
            SELECT section_name, current_value, last_updated_commit, last_updated_at
            FROM summary_sections
            WHERE repository = ?
            """,
            (repository,),
        ):
            sections[s["section_name"]] = Section(
                current_value=s["current_value"],
                history=history.get(s["section_name"], []),
                last_updated_commit=s["last_updated_commit"],
                last_updated_at=_parse_ts(s["last_updated_at"]),
            )
        return {name: sections[name] for name in ordered(sections)}

    @staticmethod
    def _adopt_legacy(row: sqlite3.Row) -> Dict[str, Section]:
        """Lift non-empty flat columns of a legacy row into sections."""
        written_at = _parse_ts(row["updated_at"])
        adopted: Dict[str, Section] = {}
        for name in ALL_SECTIONS:
            value = row[name]
            if value and value.strip():
                adopted[name] = Section(current_value=value, last_updated_at=written_at)
        return adopted

    @staticmethod
    def _to_summary(row: sqlite3.Row, sections: Dict[str, Section]) -> ProjectSummary:
        return ProjectSummary(
            id=row["id"],
            repository=row["repository"],
            git_url=row["git_url"],
            current_commit=row["current_commit"],
            schema_version=row["schema_version"] or LEGACY_SCHEMA_VERSION,
            sections=sections,
            legacy_mirror={name: row[name] for name in ALL_SECTIONS},
            updated_at=_parse_ts(row["updated_at"]),
            last_synced_entry=row["last_synced_entry"],
            entries_synced=row["entries_synced"] or 0,
        )


# Singleton instance for dependency injection
_summary_store: SummaryStore | None = None


def get_summary_store() -> SummaryStore:
    """Get or create the summary store singleton."""
    global _summary_store
    if _summary_store is None:
        from .config import get_config

        db_service = DatabaseService(get_config().database_path)
        db_service.initialize()
        _summary_store = SummaryStore(db_service)
    return _summary_store


__all__ = [
    "SummaryStore",
    "SummaryError",
    "SummaryAlreadyExistsError",
    "SummaryNotFoundError",
    "merge_sections",
    "get_summary_store",
    "SCHEMA_VERSION",
]
