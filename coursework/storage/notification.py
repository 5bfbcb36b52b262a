from __future__ import annotations

import datetime

import sqlalchemy as sqla

from coursework.core import di
from coursework.model import NotificationID, NotificationIntent, SubmissionID, UserID

from . import Session
from .table import notification_intents


def get(
    notification_id: NotificationID, session: Session = di.Provide["storage.persistent.session"]
) -> NotificationIntent | None:
    stmt = sqla.select(notification_intents.__table__).where(
        notification_intents.notification_id == notification_id
    )
    row = session.execute(stmt).mappings().one_or_none()
    return NotificationIntent(**row) if row else None


def find(
    *,
    submission_id: SubmissionID | None = None,
    student_id: UserID | None = None,
    session: Session = di.Provide["storage.persistent.session"],
) -> tuple[NotificationIntent, ...]:
    stmt = sqla.select(notification_intents.__table__).order_by(notification_intents.create_time)
    if submission_id is not None:
        stmt = stmt.where(notification_intents.submission_id == submission_id)
    if student_id is not None:
        stmt = stmt.where(notification_intents.student_id == student_id)
    rows = session.execute(stmt).mappings().all()
    return tuple(NotificationIntent(**row) for row in rows)


def find_pending(
    *,
    limit: int = 100,
    max_attempts: int | None = None,
    session: Session = di.Provide["storage.persistent.session"],
) -> tuple[NotificationIntent, ...]:
    """Undelivered intents, oldest first, skipping any that have used up their attempts."""
    stmt = (
        sqla
        .select(notification_intents.__table__)
        .where(notification_intents.delivered_at.is_(None))
        .order_by(notification_intents.create_time, notification_intents.notification_id)
        .limit(limit)
    )
    if max_attempts is not None:
        stmt = stmt.where(notification_intents.attempts < max_attempts)
    rows = session.execute(stmt).mappings().all()
    return tuple(NotificationIntent(**row) for row in rows)


def create(
    *,
    student_id: UserID,
    submission_id: SubmissionID,
    title: str,
    message: str,
    dedupe_key: str,
    session: Session = di.Provide["storage.persistent.session"],
) -> NotificationIntent:
    """Record an intent to notify a student.

    Idempotent on `dedupe_key`: a second call with the same key returns the intent already recorded.
    """
    stmt = sqla.select(notification_intents.__table__).where(notification_intents.dedupe_key == dedupe_key)
    row = session.execute(stmt).mappings().one_or_none()
    if row is not None:
        return NotificationIntent(**row)

    intent = notification_intents(
        notification_id=NotificationID(),
        student_id=student_id,
        submission_id=submission_id,
        title=title,
        message=message,
        dedupe_key=dedupe_key,
    )
    session.add(intent)
    session.flush()
    return get(intent.notification_id, session=session)  # type: ignore


def mark_delivered(
    notification_id: NotificationID,
    delivered_at: datetime.datetime,
    *,
    session: Session = di.Provide["storage.persistent.session"],
) -> None:
    stmt = (
        sqla
        .update(notification_intents)
        .where(notification_intents.notification_id == notification_id)
        .values(delivered_at=delivered_at, attempts=notification_intents.attempts + 1, last_error=None)
    )
    result = session.execute(stmt)
    if result.rowcount == 0:  # pyright: ignore[reportAttributeAccessIssue]
        raise KeyError(f"Notification {notification_id} not found")
    session.flush()


def mark_failed(
    notification_id: NotificationID,
    error: str,
    *,
    session: Session = di.Provide["storage.persistent.session"],
) -> None:
    stmt = (
        sqla
        .update(notification_intents)
        .where(notification_intents.notification_id == notification_id)
        .values(attempts=notification_intents.attempts + 1, last_error=error)
    )
    result = session.execute(stmt)
    if result.rowcount == 0:  # pyright: ignore[reportAttributeAccessIssue]
        raise KeyError(f"Notification {notification_id} not found")
    session.flush()
