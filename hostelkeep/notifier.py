"""Event registry used to broadcast issue lifecycle changes."""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Callable
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)


class EventName(str, Enum):
    ISSUE_CREATED = "issue.created"
    ISSUE_UPDATED = "issue.updated"
    ISSUE_REOPENED = "issue.reopened"
    ISSUE_DELETED = "issue.deleted"
    ISSUE_AUTO_MERGED = "issue.autoMerged"
    ISSUE_MERGED = "issue.merged"
    ISSUE_UNMERGED = "issue.unmerged"


EventCallback = Callable[[EventName, dict[str, Any]], None]


class EventNotifier:
    """In-process, best-effort event fan-out with deterministic callback ordering.

    A failing subscriber is logged and skipped; it never propagates back into
    the operation that published the event.
    """

    def __init__(self) -> None:
        self._callbacks: dict[EventName, list[EventCallback]] = defaultdict(list)
        self._wildcard: list[EventCallback] = []

    def subscribe(self, name: EventName, callback: EventCallback) -> None:
        self._callbacks[name].append(callback)

    def subscribe_all(self, callback: EventCallback) -> None:
        self._wildcard.append(callback)

    def publish(self, name: EventName, payload: dict[str, Any]) -> int:
        delivered = 0
        for callback in [*self._callbacks[name], *self._wildcard]:
            try:
                callback(name, dict(payload))
            except Exception:
                logger.warning("Event subscriber failed for %s", name.value, exc_info=True)
                continue
            delivered += 1
        return delivered


class RecordingNotifier(EventNotifier):
    """Notifier that keeps every published event, for CLI dry runs and tests."""

    def __init__(self) -> None:
        super().__init__()
        self.events: list[tuple[EventName, dict[str, Any]]] = []

    def publish(self, name: EventName, payload: dict[str, Any]) -> int:
        self.events.append((name, dict(payload)))
        return super().publish(name, payload)

    def names(self) -> list[EventName]:
        return [name for name, _ in self.events]
