from __future__ import annotations

import logging

import sqlalchemy.exc
from sqlalchemy.orm import Session

from coursework import notification
from coursework.core import di

logger = logging.getLogger(__name__)


@di.inject
def deliver_notifications(
    *,
    session: Session,
    enabled: bool = di.Provide["config.grading.notification.dispatch_after_commit"],
) -> None:
    """Deliver notifications recorded by a grading request that has just committed.

    Grading has succeeded at this point; a storage failure here leaves the intents for
    `coursework grading dispatch` and does not fail the request.
    """
    if not enabled:
        return
    try:
        notification.dispatch_pending(session=session)
    except sqlalchemy.exc.SQLAlchemyError:
        logger.exception("notification dispatch after grading failed")
