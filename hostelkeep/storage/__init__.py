"""Issue store backends."""

from .base import IssueFilter, IssueStore
from .memory import InMemoryIssueStore
from .sqlite import SQLiteIssueStore

__all__ = ["InMemoryIssueStore", "IssueFilter", "IssueStore", "SQLiteIssueStore"]
