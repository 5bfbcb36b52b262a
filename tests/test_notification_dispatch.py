"""Tests for coursework.notification.dispatch module."""

from __future__ import annotations

import datetime
import typing as t

from conftest import NOW, RecordingNotifier
from sqlalchemy.orm import Session

from coursework.model import AssessmentWithQuestions, SubmissionWithAnswers, User
from coursework.notification import dispatch_pending
from coursework.storage import notification as notification_storage


def record(submission: SubmissionWithAnswers, session: Session, key: str = "k") -> None:
    with session.begin():
        notification_storage.create(
            student_id=submission.student_id,
            submission_id=submission.submission_id,
            title="Assessment Graded",
            message="Your submission has been graded",
            dedupe_key=f"{submission.submission_id}@{key}",
            session=session,
        )


class TestDispatchPending(object):
    """Tests for dispatch_pending()."""

    def test_delivers_and_marks(
        self,
        db_session: Session,
        notifier: RecordingNotifier,
        clock: list[datetime.datetime],
        assessment_factory: t.Callable[..., AssessmentWithQuestions],
        submission_factory: t.Callable[..., SubmissionWithAnswers],
    ) -> None:
        submission = submission_factory(assessment_factory(), "b")
        record(submission, db_session)
        clock[0] = NOW + datetime.timedelta(minutes=5)

        result = dispatch_pending(session=db_session)

        assert len(result.delivered) == 1 and result.failed == ()
        assert notifier.sent == [(submission.student_id, "Assessment Graded", "Your submission has been graded")]
        with db_session.begin():
            [intent] = notification_storage.find(submission_id=submission.submission_id, session=db_session)
        assert intent.delivered_at == clock[0]

        # nothing left to send
        assert dispatch_pending(session=db_session).delivered == ()
        assert len(notifier.sent) == 1

    def test_failure_leaves_intent_pending(
        self,
        db_session: Session,
        notifier: RecordingNotifier,
        user_factory: t.Callable[..., User],
        assessment_factory: t.Callable[..., AssessmentWithQuestions],
        submission_factory: t.Callable[..., SubmissionWithAnswers],
    ) -> None:
        assessment = assessment_factory()
        unreachable = user_factory(name="Offline Olive")
        ok = submission_factory(assessment, "b")
        bad = submission_factory(assessment, "b", by=unreachable)
        record(ok, db_session)
        record(bad, db_session)
        notifier.fail_for.add(unreachable.user_id)

        result = dispatch_pending(session=db_session)

        assert [i.submission_id for i in result.delivered] == [ok.submission_id]
        assert [i.submission_id for i in result.failed] == [bad.submission_id]
        with db_session.begin():
            [intent] = notification_storage.find(submission_id=bad.submission_id, session=db_session)
        assert intent.delivered_at is None
        assert intent.attempts == 1
        assert intent.last_error is not None and "cannot reach" in intent.last_error

        notifier.fail_for.clear()
        retry = dispatch_pending(session=db_session)
        assert [i.submission_id for i in retry.delivered] == [bad.submission_id]

    def test_gives_up_after_max_attempts(
        self,
        db_session: Session,
        notifier: RecordingNotifier,
        assessment_factory: t.Callable[..., AssessmentWithQuestions],
        submission_factory: t.Callable[..., SubmissionWithAnswers],
    ) -> None:
        submission = submission_factory(assessment_factory(), "b")
        record(submission, db_session)
        notifier.fail_for.add(submission.student_id)

        for _ in range(2):
            assert len(dispatch_pending(max_attempts=2, session=db_session).failed) == 1
        result = dispatch_pending(max_attempts=2, session=db_session)

        assert result.delivered == () and result.failed == ()
        assert notifier.sent == []

    def test_limit(
        self,
        db_session: Session,
        notifier: RecordingNotifier,
        assessment_factory: t.Callable[..., AssessmentWithQuestions],
        submission_factory: t.Callable[..., SubmissionWithAnswers],
    ) -> None:
        submission = submission_factory(assessment_factory(), "b")
        for key in ("one", "two", "three"):
            record(submission, db_session, key=key)

        assert len(dispatch_pending(limit=2, session=db_session).delivered) == 2
        assert len(dispatch_pending(limit=2, session=db_session).delivered) == 1
        assert len(notifier.sent) == 3
