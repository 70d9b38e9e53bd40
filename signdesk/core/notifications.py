"""User-facing notifications emitted by the analysis subsystem."""
from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Protocol

logger = logging.getLogger(__name__)


class NotificationKind(str, Enum):
    ANALYSIS_STARTED = "analysis_started"
    ANALYSIS_COMPLETED = "analysis_completed"
    ANALYSIS_FAILED = "analysis_failed"
    ANALYSIS_TIMEOUT = "analysis_timeout"
    ANALYSIS_POLL_ERROR = "analysis_poll_error"
    ANALYSIS_ERROR = "analysis_error"
    ANALYSIS_REMOVED = "analysis_removed"
    DOCUMENTS_ERROR = "documents_error"
    DOCUMENT_SAVED = "document_saved"
    DOCUMENT_DELETED = "document_deleted"
    DOCUMENT_ERROR = "document_error"


_ERROR_KINDS = {
    NotificationKind.ANALYSIS_FAILED,
    NotificationKind.ANALYSIS_POLL_ERROR,
    NotificationKind.ANALYSIS_ERROR,
    NotificationKind.DOCUMENTS_ERROR,
    NotificationKind.DOCUMENT_ERROR,
}


@dataclass(frozen=True, slots=True)
class Notification:
    kind: NotificationKind
    message: str
    document_id: int | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def is_error(self) -> bool:
        return self.kind in _ERROR_KINDS

    def as_dict(self) -> dict[str, object]:
        return {
            "kind": self.kind.value,
            "message": self.message,
            "document_id": self.document_id,
            "is_error": self.is_error,
            "created_at": self.created_at.isoformat(),
        }


class Notifier(Protocol):
    """Sink for notifications intended for user-facing feedback."""

    def notify(self, notification: Notification) -> None: ...


class NotificationFeed:
    """Bounded in-memory feed of the most recent notifications."""

    def __init__(self, maxlen: int = 100) -> None:
        self._items: deque[Notification] = deque(maxlen=maxlen)

    def notify(self, notification: Notification) -> None:
        level = logging.WARNING if notification.is_error else logging.INFO
        logger.log(level, "%s (document=%s): %s", notification.kind.value, notification.document_id, notification.message)
        self._items.append(notification)

    def items(self) -> list[Notification]:
        return list(self._items)

    def kinds(self) -> list[NotificationKind]:
        return [item.kind for item in self._items]

    def clear(self) -> None:
        self._items.clear()

    def __len__(self) -> int:
        return len(self._items)


__all__ = ["Notification", "NotificationFeed", "NotificationKind", "Notifier"]
