"""SQLite issue store with merge links kept in their own table."""

from __future__ import annotations

import json
import sqlite3
from datetime import UTC, datetime
from pathlib import Path

from hostelkeep.models import Issue
from hostelkeep.storage.base import IssueFilter


class SQLiteIssueStore:
    """SQLite-backed persistence with clear adapter boundary for a document-store swap.

    The primary side of a merge lives in ``issue_merges`` keyed by
    ``(primary_id, duplicate_id)``, so concurrent appends are a set-union via
    ``INSERT OR IGNORE`` rather than a read-modify-write of a JSON array.
    """

    def __init__(self, db_path: str | Path) -> None:
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.init_schema()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        return conn

    def init_schema(self) -> None:
        with self._connect() as conn:
            conn.execute("PRAGMA journal_mode = WAL")
            conn.execute("PRAGMA synchronous = NORMAL")
            conn.executescript(
                """
                CREATE TABLE IF NOT EXISTS issues (
                  id TEXT PRIMARY KEY,
                  status TEXT NOT NULL,
                  category TEXT NOT NULL,
                  merged_into TEXT,
                  created_at TEXT NOT NULL,
                  updated_at TEXT NOT NULL,
                  payload_json TEXT NOT NULL
                );

                CREATE TABLE IF NOT EXISTS issue_merges (
                  seq INTEGER PRIMARY KEY AUTOINCREMENT,
                  primary_id TEXT NOT NULL,
                  duplicate_id TEXT NOT NULL,
                  merged_at TEXT NOT NULL,
                  UNIQUE (primary_id, duplicate_id),
                  FOREIGN KEY (primary_id) REFERENCES issues(id) ON DELETE CASCADE
                );

                CREATE INDEX IF NOT EXISTS idx_issues_status_merged ON issues(status, merged_into);
                CREATE INDEX IF NOT EXISTS idx_issues_created ON issues(created_at);
                CREATE INDEX IF NOT EXISTS idx_issue_merges_duplicate ON issue_merges(duplicate_id);
                """
            )

    @staticmethod
    def _payload(issue: Issue) -> str:
        return issue.model_dump_json(exclude={"merged_issues"})

    @staticmethod
    def _merged_ids(conn: sqlite3.Connection, primary_id: str) -> list[str]:
        rows = conn.execute(
            "SELECT duplicate_id FROM issue_merges WHERE primary_id = ? ORDER BY seq",
            (primary_id,),
        ).fetchall()
        return [row["duplicate_id"] for row in rows]

    def _hydrate(self, conn: sqlite3.Connection, row: sqlite3.Row) -> Issue:
        payload = json.loads(row["payload_json"])
        payload["merged_into"] = row["merged_into"]
        payload["merged_issues"] = self._merged_ids(conn, row["id"])
        return Issue.model_validate(payload)

    def get_issue(self, issue_id: str) -> Issue | None:
        with self._connect() as conn:
            row = conn.execute("SELECT id, merged_into, payload_json FROM issues WHERE id = ?", (issue_id,)).fetchone()
            if row is None:
                return None
            return self._hydrate(conn, row)

    def find_issues(self, issue_filter: IssueFilter) -> list[Issue]:
        predicates: list[str] = []
        params: list[object] = []
        if issue_filter.exclude_merged:
            predicates.append("merged_into IS NULL")
        if issue_filter.statuses is not None:
            if not issue_filter.statuses:
                return []
            statuses = sorted(status.value for status in issue_filter.statuses)
            predicates.append(f"status IN ({', '.join('?' for _ in statuses)})")
            params.extend(statuses)
        if issue_filter.exclude_ids:
            excluded = sorted(issue_filter.exclude_ids)
            predicates.append(f"id NOT IN ({', '.join('?' for _ in excluded)})")
            params.extend(excluded)
        if issue_filter.lists_merged_issue is not None:
            predicates.append("id IN (SELECT primary_id FROM issue_merges WHERE duplicate_id = ?)")
            params.append(issue_filter.lists_merged_issue)

        sql = "SELECT id, merged_into, payload_json FROM issues"
        if predicates:
            sql += " WHERE " + " AND ".join(predicates)
        sql += " ORDER BY created_at, rowid"

        with self._connect() as conn:
            rows = conn.execute(sql, tuple(params)).fetchall()
            return [self._hydrate(conn, row) for row in rows]

    def list_issues(self, include_merged: bool = False) -> list[Issue]:
        rows = self.find_issues(IssueFilter(exclude_merged=not include_merged))
        rows.reverse()
        return rows

    def insert_issue(self, issue: Issue) -> Issue:
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO issues (id, status, category, merged_into, created_at, updated_at, payload_json)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    issue.id,
                    issue.status.value,
                    issue.category.value,
                    issue.merged_into,
                    issue.created_at.isoformat(),
                    issue.updated_at.isoformat(),
                    self._payload(issue),
                ),
            )
            now = datetime.now(UTC).isoformat()
            conn.executemany(
                "INSERT OR IGNORE INTO issue_merges (primary_id, duplicate_id, merged_at) VALUES (?, ?, ?)",
                [(issue.id, duplicate_id, now) for duplicate_id in issue.merged_issues],
            )
            conn.commit()
        return issue.model_copy(deep=True)

    def save_issue(self, issue: Issue) -> Issue:
        stored = issue.model_copy(update={"updated_at": datetime.now(UTC)})
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO issues (id, status, category, merged_into, created_at, updated_at, payload_json)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                  status=excluded.status,
                  category=excluded.category,
                  merged_into=excluded.merged_into,
                  updated_at=excluded.updated_at,
                  payload_json=excluded.payload_json
                """,
                (
                    stored.id,
                    stored.status.value,
                    stored.category.value,
                    stored.merged_into,
                    stored.created_at.isoformat(),
                    stored.updated_at.isoformat(),
                    self._payload(stored),
                ),
            )
            conn.commit()
            row = conn.execute("SELECT id, merged_into, payload_json FROM issues WHERE id = ?", (stored.id,)).fetchone()
            return self._hydrate(conn, row)

    def _touch(self, conn: sqlite3.Connection, issue_id: str) -> bool:
        now = datetime.now(UTC).isoformat()
        cursor = conn.execute(
            """
            UPDATE issues
            SET updated_at = ?, payload_json = json_set(payload_json, '$.updated_at', ?)
            WHERE id = ?
            """,
            (now, now, issue_id),
        )
        return cursor.rowcount > 0

    def add_merged_issues(self, primary_id: str, duplicate_ids: list[str]) -> Issue | None:
        with self._connect() as conn:
            if not self._touch(conn, primary_id):
                return None
            now = datetime.now(UTC).isoformat()
            conn.executemany(
                "INSERT OR IGNORE INTO issue_merges (primary_id, duplicate_id, merged_at) VALUES (?, ?, ?)",
                [(primary_id, duplicate_id, now) for duplicate_id in duplicate_ids],
            )
            conn.commit()
        return self.get_issue(primary_id)

    def remove_merged_issue(self, primary_id: str, duplicate_id: str) -> Issue | None:
        with self._connect() as conn:
            if not self._touch(conn, primary_id):
                return None
            conn.execute(
                "DELETE FROM issue_merges WHERE primary_id = ? AND duplicate_id = ?",
                (primary_id, duplicate_id),
            )
            conn.commit()
        return self.get_issue(primary_id)

    def replace_merged_issues(self, primary_id: str, duplicate_ids: list[str]) -> Issue | None:
        with self._connect() as conn:
            if not self._touch(conn, primary_id):
                return None
            now = datetime.now(UTC).isoformat()
            conn.execute("DELETE FROM issue_merges WHERE primary_id = ?", (primary_id,))
            conn.executemany(
                "INSERT OR IGNORE INTO issue_merges (primary_id, duplicate_id, merged_at) VALUES (?, ?, ?)",
                [(primary_id, duplicate_id, now) for duplicate_id in dict.fromkeys(duplicate_ids)],
            )
            conn.commit()
        return self.get_issue(primary_id)

    def delete_issue(self, issue_id: str) -> bool:
        with self._connect() as conn:
            cursor = conn.execute("DELETE FROM issues WHERE id = ?", (issue_id,))
            if cursor.rowcount == 0:
                return False
            conn.execute("DELETE FROM issue_merges WHERE duplicate_id = ?", (issue_id,))
            conn.execute(
                """
                UPDATE issues
                SET merged_into = NULL, payload_json = json_set(payload_json, '$.merged_into', json('null'))
                WHERE merged_into = ?
                """,
                (issue_id,),
            )
            conn.commit()
        return True

    def stats(self) -> dict[str, int]:
        with self._connect() as conn:
            row = conn.execute(
                """
                SELECT
                  COUNT(*) AS total,
                  SUM(CASE WHEN merged_into IS NOT NULL THEN 1 ELSE 0 END) AS duplicates,
                  SUM(CASE WHEN status IN ('resolved', 'closed') THEN 1 ELSE 0 END) AS closed
                FROM issues
                """
            ).fetchone()
            links = conn.execute("SELECT COUNT(*) AS links, COUNT(DISTINCT primary_id) AS primaries FROM issue_merges").fetchone()
        return {
            "total": int(row["total"] or 0),
            "duplicates": int(row["duplicates"] or 0),
            "closed": int(row["closed"] or 0),
            "merge_links": int(links["links"] or 0),
            "primaries": int(links["primaries"] or 0),
        }
