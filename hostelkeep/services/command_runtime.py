"""Typed command runtime dependency container."""

from __future__ import annotations

from dataclasses import dataclass

from hostelkeep.config import HostelKeepConfig
from hostelkeep.notifier import EventNotifier
from hostelkeep.services.interfaces import NotifierFactory, StoreFactory
from hostelkeep.storage import InMemoryIssueStore, IssueStore, SQLiteIssueStore


def build_store(config: HostelKeepConfig) -> IssueStore:
    backend = config.storage.backend
    if backend == "sqlite":
        return SQLiteIssueStore(config.storage.sqlite_path)
    if backend == "memory":
        return InMemoryIssueStore()
    raise ValueError(f"Unsupported storage backend: {backend}")


@dataclass(frozen=True)
class CommandRuntime:
    store_factory: StoreFactory = build_store
    notifier_factory: NotifierFactory = EventNotifier
