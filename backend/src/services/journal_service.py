"""Journal entries recorded per commit, used as context for summary reports."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Dict, List, Optional, Sequence, Tuple

from ..models.journal import JournalEntry
from .database import DatabaseService

logger = logging.getLogger(__name__)


class JournalService:
    """Read and write commit journal entries."""

    def __init__(self, db_service: DatabaseService | None = None):
        self._db = db_service or DatabaseService()

    def add_entry(self, entry: JournalEntry) -> int:
        """Insert or replace the entry for ``entry.commit_hash``. Returns the row id."""
        conn = self._db.connect()
        try:
            with conn:
                cursor = conn.execute(
                    """
                    INSERT INTO journal_entries
                    (commit_hash, repository, branch, author, date, why,
                     what_changed, decisions, technologies, summary)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    ON CONFLICT(commit_hash) DO UPDATE SET
                        repository = excluded.repository,
                        branch = excluded.branch,
                        author = excluded.author,
                        date = excluded.date,
                        why = excluded.why,
                        what_changed = excluded.what_changed,
                        decisions = excluded.decisions,
                        technologies = excluded.technologies,
                        summary = excluded.summary
                    """,
                    (
                        entry.commit_hash,
                        entry.repository,
                        entry.branch,
                        entry.author,
                        entry.date.isoformat(),
                        entry.why,
                        entry.what_changed,
                        entry.decisions,
                        entry.technologies,
                        entry.summary,
                    ),
                )
                row = conn.execute(
                    "SELECT id FROM journal_entries WHERE commit_hash = ?",
                    (entry.commit_hash,),
                ).fetchone()
            logger.info(
                "Recorded journal entry",
                extra={"repository": entry.repository, "commit": entry.commit_hash},
            )
            return int(row["id"]) if row else int(cursor.lastrowid)
        finally:
            conn.close()

    def recent_entries(self, repository: str, limit: int = 5) -> List[JournalEntry]:
        """Newest first."""
        if limit <= 0:
            return []
        conn = self._db.connect()
        try:
            rows = conn.execute(
                """
                SELECT commit_hash, repository, branch, author, date, why,
                       what_changed, decisions, technologies, summary
                FROM journal_entries
                WHERE repository = ?
                ORDER BY date DESC, id DESC
                LIMIT ?
                """,
                (repository, limit),
            ).fetchall()
        finally:
            conn.close()

        return [
            JournalEntry(
                commit_hash=row["commit_hash"],
                repository=row["repository"],
                branch=row["branch"],
                author=row["author"],
                date=datetime.fromisoformat(row["date"]),
                why=row["why"],
                what_changed=row["what_changed"],
                decisions=row["decisions"],
                technologies=row["technologies"],
                summary=row["summary"],
            )
            for row in rows
        ]

    def entry_stats(
        self, repositories: Sequence[str]
    ) -> Dict[str, Tuple[int, Optional[datetime]]]:
        """Map each repository to ``(entry_count, last_entry_date)``, ``(0, None)`` when empty."""
        stats: Dict[str, Tuple[int, Optional[datetime]]] = {
            repository: (0, None) for repository in repositories
        }
        if not stats:
            return stats

        placeholders = ", ".join("?" for _ in stats)
        conn = self._db.connect()
        try:
            rows = conn.execute(
                f"""
                SELECT repository, COUNT(*) AS entry_count, MAX(date) AS last_entry_date
                FROM journal_entries
                WHERE repository IN ({placeholders})
                GROUP BY repository
                """,
                list(stats),
            ).fetchall()
        finally:
            conn.close()

        for row in rows:
            last = row["last_entry_date"]
            stats[row["repository"]] = (
                row["entry_count"],
                datetime.fromisoformat(last) if last else None,
            )
        return stats


__all__ = ["JournalService"]
