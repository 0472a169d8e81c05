"""Service interfaces used by command/runtime orchestration."""

from __future__ import annotations

from typing import Protocol

from hostelkeep.config import HostelKeepConfig
from hostelkeep.notifier import EventNotifier
from hostelkeep.storage.base import IssueStore


class StoreFactory(Protocol):
    def __call__(self, config: HostelKeepConfig) -> IssueStore: ...


class NotifierFactory(Protocol):
    def __call__(self) -> EventNotifier: ...
