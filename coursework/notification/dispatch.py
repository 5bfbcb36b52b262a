"""Delivery of notification intents recorded by grading.

Runs after the grading transaction has committed. Each intent is delivered and marked
in its own transaction, so a failure leaves the intent pending for the next run.
Delivery is at least once; the notifier sees the same intent again only if marking it
delivered did not commit.
"""

from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from coursework.core import di
from coursework.core.provider import TimestampProvider
from coursework.model import NotificationIntent
from coursework.storage import notification as notification_storage

from .notifier import DispatchResult, Notifier

logger = logging.getLogger(__name__)


@di.inject
def dispatch_pending(
    *,
    limit: int = di.Provide["config.grading.notification.batch_size"],
    max_attempts: int = di.Provide["config.grading.notification.max_attempts"],
    session: Session = di.Provide["storage.persistent.session"],
    notifier: Notifier = di.Provide["notification.notifier"],
    utcnow: TimestampProvider = di.Provide["utcnow"],
) -> DispatchResult:
    """Deliver up to `limit` undelivered intents; failures are logged and counted, never raised."""
    with session.begin():
        pending = notification_storage.find_pending(limit=limit, max_attempts=max_attempts, session=session)

    delivered: list[NotificationIntent] = []
    failed: list[NotificationIntent] = []
    for intent in pending:
        try:
            notifier.notify(intent.student_id, intent.title, intent.message)
        except Exception as e:
            logger.exception(
                "notification delivery failed",
                extra={
                    "notification_id": intent.notification_id,
                    "student_id": intent.student_id,
                    "attempt": intent.attempts + 1,
                },
            )
            with session.begin():
                notification_storage.mark_failed(intent.notification_id, repr(e), session=session)
            failed.append(intent)
            continue

        with session.begin():
            notification_storage.mark_delivered(intent.notification_id, utcnow(), session=session)
        delivered.append(intent)

    if pending:
        logger.info(
            "dispatched notifications",
            extra={"delivered": len(delivered), "failed": len(failed)},
        )
    return DispatchResult(delivered=tuple(delivered), failed=tuple(failed))
