"""Notification capability used after successful writes.

Delivery (push, WebSocket, e-mail) lives outside the core. The core only
calls :meth:`Notifier.notify`, and always through :func:`dispatch`, which
logs and drops failures so a notification problem never undoes a committed
assignment.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from groundops.domain.models import Assignment, Operation

logger = logging.getLogger(__name__)


class NotificationType(Enum):
    ASSIGNMENT = "ASSIGNMENT"
    SCHEDULE_CHANGE = "SCHEDULE_CHANGE"
    STAFF_SHORTAGE = "STAFF_SHORTAGE"
    OVERTIME_ALERT = "OVERTIME_ALERT"


class NotificationPriority(Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    URGENT = "URGENT"


class Notifier(ABC):
    """Abstract notification sink."""

    @abstractmethod
    def notify(
        self,
        staff_id: int,
        title: str,
        message: str,
        data: Optional[dict[str, Any]] = None,
    ) -> None:
        pass


@dataclass
class Notification:
    """A notification captured by :class:`InMemoryNotifier`."""

    staff_id: int
    title: str
    message: str
    data: dict[str, Any] = field(default_factory=dict)


class InMemoryNotifier(Notifier):
    """Keeps notifications in a list. Useful for tests and the CLI."""

    def __init__(self):
        self.sent: list[Notification] = []

    def notify(self, staff_id, title, message, data=None):
        self.sent.append(Notification(staff_id, title, message, dict(data or {})))

    def for_staff(self, staff_id: int) -> list[Notification]:
        return [n for n in self.sent if n.staff_id == staff_id]


class LoggingNotifier(Notifier):
    """Writes notifications to the log instead of delivering them."""

    def notify(self, staff_id, title, message, data=None):
        logger.info("Notify staff %s: %s - %s %s", staff_id, title, message, data or {})


class NullNotifier(Notifier):
    """Discards notifications."""

    def notify(self, staff_id, title, message, data=None):
        return None


def dispatch(
    notifier: Optional[Notifier],
    staff_id: int,
    title: str,
    message: str,
    data: Optional[dict[str, Any]] = None,
) -> bool:
    """Send a notification on a best-effort basis.

    Returns:
        True if the notifier accepted it, False if it raised.
    """
    if notifier is None:
        return False
    try:
        notifier.notify(staff_id, title, message, data)
    except Exception:
        logger.warning("Notification to staff %s failed", staff_id, exc_info=True)
        return False
    return True


def notify_new_assignment(
    notifier: Optional[Notifier],
    assignment: Assignment,
    operation: Optional[Operation] = None,
) -> bool:
    """Tell a staff member about an assignment they were just given."""
    flight = operation.flight_number if operation else f"operation {assignment.operation_id}"
    return dispatch(
        notifier,
        assignment.staff_id,
        "New assignment",
        f"You have been assigned to {flight} at {assignment.start_time:%Y-%m-%d %H:%M}",
        {
            "assignment_id": assignment.id,
            "operation_id": assignment.operation_id,
            "type": NotificationType.ASSIGNMENT.value,
            "priority": NotificationPriority.MEDIUM.value,
            "is_replacement": assignment.is_replacement,
        },
    )
