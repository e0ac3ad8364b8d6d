"""Best-effort outbound notifications.

Services hand a ``NotificationEvent`` to a ``Notifier`` after their own
changes are committed. Delivery is not transactional with the triggering
operation: ``notify_safely`` logs and drops any failure.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional, Protocol

from sqlalchemy.orm import Session

from knowledge_chakra.logging_config import get_logger
from knowledge_chakra.models import Notification, NotificationType

logger = get_logger(__name__)


@dataclass(frozen=True)
class NotificationEvent:
    recipient_id: int
    title: str
    message: str
    type: NotificationType
    resource_id: Optional[str] = None
    link: Optional[str] = None


class Notifier(Protocol):
    def notify(self, event: NotificationEvent) -> None:
        ...


class DatabaseNotifier:
    """Writes each event as a ``Notification`` row in its own commit."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def notify(self, event: NotificationEvent) -> None:
        notification = Notification(
            user_id=event.recipient_id,
            title=event.title,
            message=event.message,
            type=event.type,
            resource_id=event.resource_id,
            link=event.link,
            read=False,
        )
        try:
            self.db.add(notification)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise


class NullNotifier:
    """Discards events."""

    def notify(self, event: NotificationEvent) -> None:
        return None


def notify_safely(notifier: Notifier, event: NotificationEvent) -> bool:
    """Deliver ``event``; return False instead of raising on failure."""

    try:
        notifier.notify(event)
    except Exception:
        logger.warning(
            "Dropped %s notification for user %s",
            event.type.value,
            event.recipient_id,
            exc_info=True,
            extra={"event_type": "notification_failed", "resource_id": event.resource_id},
        )
        return False
    return True


def notify_all(notifier: Notifier, events: Iterable[NotificationEvent]) -> int:
    """Deliver each event independently; return how many succeeded."""

    return sum(1 for event in events if notify_safely(notifier, event))
