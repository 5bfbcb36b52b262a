import datetime

from .base import WithCtime
from .id import NotificationID, SubmissionID, UserID


class NotificationIntent(WithCtime):
    notification_id: NotificationID
    student_id: UserID
    submission_id: SubmissionID
    title: str
    message: str
    # submission id + grading time; one intent per grading pass
    dedupe_key: str
    attempts: int = 0
    last_error: str | None = None
    delivered_at: datetime.datetime | None = None
