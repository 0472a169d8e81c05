"""In-process issue store, used by tests and the ``memory`` storage backend."""

from __future__ import annotations

import threading
from datetime import UTC, datetime

from hostelkeep.models import Issue
from hostelkeep.storage.base import IssueFilter


class InMemoryIssueStore:
    """Dict-backed store; every read hands out a copy so callers cannot alias records."""

    def __init__(self, issues: list[Issue] | None = None) -> None:
        self._issues: dict[str, Issue] = {}
        self._lock = threading.Lock()
        for issue in issues or []:
            self.insert_issue(issue)

    def get_issue(self, issue_id: str) -> Issue | None:
        with self._lock:
            issue = self._issues.get(issue_id)
            return issue.model_copy(deep=True) if issue else None

    def find_issues(self, issue_filter: IssueFilter) -> list[Issue]:
        with self._lock:
            rows = [issue for issue in self._issues.values() if issue_filter.matches(issue)]
            rows.sort(key=lambda issue: issue.created_at)
            return [issue.model_copy(deep=True) for issue in rows]

    def list_issues(self, include_merged: bool = False) -> list[Issue]:
        rows = self.find_issues(IssueFilter(exclude_merged=not include_merged))
        rows.reverse()
        return rows

    def insert_issue(self, issue: Issue) -> Issue:
        with self._lock:
            if issue.id in self._issues:
                raise ValueError(f"Issue {issue.id} already exists")
            self._issues[issue.id] = issue.model_copy(deep=True)
            return issue.model_copy(deep=True)

    def save_issue(self, issue: Issue) -> Issue:
        with self._lock:
            current = self._issues.get(issue.id)
            merged_issues = list(current.merged_issues) if current else list(issue.merged_issues)
            stored = issue.model_copy(deep=True, update={"merged_issues": merged_issues, "updated_at": datetime.now(UTC)})
            self._issues[issue.id] = stored
            return stored.model_copy(deep=True)

    def add_merged_issues(self, primary_id: str, duplicate_ids: list[str]) -> Issue | None:
        with self._lock:
            primary = self._issues.get(primary_id)
            if primary is None:
                return None
            for duplicate_id in duplicate_ids:
                if duplicate_id not in primary.merged_issues:
                    primary.merged_issues.append(duplicate_id)
            primary.updated_at = datetime.now(UTC)
            return primary.model_copy(deep=True)

    def remove_merged_issue(self, primary_id: str, duplicate_id: str) -> Issue | None:
        with self._lock:
            primary = self._issues.get(primary_id)
            if primary is None:
                return None
            primary.merged_issues = [item for item in primary.merged_issues if item != duplicate_id]
            primary.updated_at = datetime.now(UTC)
            return primary.model_copy(deep=True)

    def replace_merged_issues(self, primary_id: str, duplicate_ids: list[str]) -> Issue | None:
        with self._lock:
            primary = self._issues.get(primary_id)
            if primary is None:
                return None
            primary.merged_issues = list(dict.fromkeys(duplicate_ids))
            primary.updated_at = datetime.now(UTC)
            return primary.model_copy(deep=True)

    def delete_issue(self, issue_id: str) -> bool:
        with self._lock:
            if self._issues.pop(issue_id, None) is None:
                return False
            for issue in self._issues.values():
                if issue.merged_into == issue_id:
                    issue.merged_into = None
                if issue_id in issue.merged_issues:
                    issue.merged_issues = [item for item in issue.merged_issues if item != issue_id]
            return True
