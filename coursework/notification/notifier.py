from __future__ import annotations

import logging
import typing as t

from coursework.model import NotificationIntent, UserID


class Notifier(t.Protocol):
    """Outbound delivery to a student; raising means the delivery failed and may be retried."""

    def notify(self, student_id: UserID, title: str, message: str) -> None: ...


class LoggingNotifier(object):
    """Delivers by writing a log record, for environments without a delivery service."""

    def __init__(self, logger: logging.Logger | None = None):
        self.logger = logger or logging.getLogger(__name__)

    def notify(self, student_id: UserID, title: str, message: str) -> None:
        self.logger.info(title, extra={"student_id": student_id, "notification": message})


class DispatchResult(t.NamedTuple):
    delivered: tuple[NotificationIntent, ...]
    failed: tuple[NotificationIntent, ...]
