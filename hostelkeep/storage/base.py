"""Storage backend interfaces for HostelKeep persistence."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol

from hostelkeep.models import Issue, IssueStatus


@dataclass(frozen=True)
class IssueFilter:
    exclude_merged: bool = False
    statuses: frozenset[IssueStatus] | None = None
    exclude_ids: frozenset[str] = field(default_factory=frozenset)
    lists_merged_issue: str | None = None

    def matches(self, issue: Issue) -> bool:
        if self.exclude_merged and issue.merged_into:
            return False
        if self.statuses is not None and issue.status not in self.statuses:
            return False
        if issue.id in self.exclude_ids:
            return False
        if self.lists_merged_issue is not None and self.lists_merged_issue not in issue.merged_issues:
            return False
        return True


class IssueStore(Protocol):
    """Persistence contract the merge engine relies on.

    ``save_issue`` never rewrites ``merged_issues``; that list changes only
    through ``add_merged_issues`` (set-union) and ``remove_merged_issue``.
    ``delete_issue`` must clear merge references pointing at the deleted id.
    """

    def get_issue(self, issue_id: str) -> Issue | None: ...

    def find_issues(self, issue_filter: IssueFilter) -> list[Issue]: ...

    def list_issues(self, include_merged: bool = False) -> list[Issue]: ...

    def insert_issue(self, issue: Issue) -> Issue: ...

    def save_issue(self, issue: Issue) -> Issue: ...

    def add_merged_issues(self, primary_id: str, duplicate_ids: list[str]) -> Issue | None: ...

    def remove_merged_issue(self, primary_id: str, duplicate_id: str) -> Issue | None: ...

    def replace_merged_issues(self, primary_id: str, duplicate_ids: list[str]) -> Issue | None: ...

    def delete_issue(self, issue_id: str) -> bool: ...
