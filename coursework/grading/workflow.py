"""Instructor grading of submissions, one at a time or in bulk.

Both paths record a grading history entry and a notification intent for every graded
submission in the caller's transaction. Intents are delivered by
`coursework.notification.dispatch_pending` once that transaction has committed.
"""

from __future__ import annotations

import datetime
import logging
import typing as t

from sqlalchemy.orm import Session

from coursework.core import di
from coursework.core.provider import TimestampProvider
from coursework.lib.util import round_half_up
from coursework.model import Assessment, AssessmentID, BulkGradeEntry, BulkGradeEntryResult, BulkGradeOutcome, \
    BulkGradeStats, GradingHistoryEntry, NotificationIntent, Submission, SubmissionID, SubmissionStatus, User
from coursework.storage import assessment as assessment_storage
from coursework.storage import grading_history as history_storage
from coursework.storage import notification as notification_storage
from coursework.storage import submission as submission_storage
from coursework.storage import user as user_storage

from . import assessment as assessment_service
from . import penalty, scoring
from .errors import NotFound, ValidationError

logger = logging.getLogger(__name__)


def grade(
    grader: User,
    submission_id: SubmissionID,
    *,
    feedback: str | None = None,
    manual_score: float | None = None,
    session: Session = di.Provide["storage.persistent.session"],
    utcnow: TimestampProvider = di.Provide["utcnow"],
) -> Submission:
    """Grade a single submission.

    With `manual_score` the instructor's score becomes the final score and percentage and
    passed are derived from it; without it the automatic score stands. Feedback is stored
    verbatim when given. The submission is always marked graded.

    Raises:
        NotFound: If the submission does not exist
        Forbidden: If `grader` may not grade the submission's assessment
        ValidationError: If `manual_score` lies outside [0, total_points]
    """
    current = submission_storage.get(submission_id, for_update=True, session=session)
    if current is None:
        raise NotFound(f"Submission {submission_id} not found")
    assessment = assessment_service.load(current.assessment_id, session=session)
    assessment_service.authorize(grader, assessment, session=session)

    if manual_score is not None and not 0 <= manual_score <= assessment.total_points:
        raise ValidationError(f"Score must be between 0 and {assessment.total_points:g} points")
    _check_transition(current, SubmissionStatus.Graded, assessment)

    graded_at = utcnow()
    if manual_score is not None:
        final = manual_score
        pct = scoring.percentage(final, assessment.total_points)
        submission_storage.update(
            submission_id,
            grade=final,
            final_score=final,
            original_score=None,
            percentage=pct,
            passed=scoring.passed(pct, assessment.passing_score),
            session=session,
        )
    else:
        final = current.effective_score

    submission_storage.update(
        submission_id,
        status=SubmissionStatus.Graded,
        graded_by=grader.user_id,
        graded_at=graded_at,
        **({"feedback": feedback} if feedback is not None else {}),
        session=session,
    )
    history_storage.create(
        submission_id=submission_id,
        graded_by=grader.user_id,
        previous_grade=current.grade,
        new_grade=final,
        previous_feedback=current.feedback,
        new_feedback=feedback if feedback is not None else current.feedback,
        create_time=graded_at,
        session=session,
    )
    if current.status is not SubmissionStatus.Graded:
        assessment_storage.increment_graded_count(assessment.assessment_id, 1, session=session)
    record_notification(current, assessment, final, graded_at, session=session)

    logger.info(
        "graded submission",
        extra={
            "submission_id": submission_id,
            "grader_id": grader.user_id,
            "final_score": final,
            "manual": manual_score is not None,
        },
    )
    result = submission_storage.get(submission_id, session=session)
    assert result is not None
    return result


def bulk_grade(
    grader: User,
    assessment_id: AssessmentID,
    entries: t.Sequence[BulkGradeEntry],
    *,
    return_to_students: bool = False,
    session: Session = di.Provide["storage.persistent.session"],
    utcnow: TimestampProvider = di.Provide["utcnow"],
) -> BulkGradeOutcome:
    """Grade several submissions of one assessment as a single unit.

    Every entry is validated before anything is written: all submissions must exist and
    belong to the assessment, and no grade may exceed the assessment's total points. The
    writes then happen inside a savepoint, so a failure part way leaves no submission in
    the batch updated and no notification recorded.

    Raises:
        NotFound: If the assessment does not exist
        Forbidden: If `grader` may not grade the assessment
        ValidationError: If any entry fails validation
    """
    assessment = assessment_service.load(assessment_id, session=session)
    assessment_service.authorize(grader, assessment, session=session)

    if not entries:
        raise ValidationError("No grades provided")
    requested = [e.submission_id for e in entries]
    if len(set(requested)) != len(requested):
        raise ValidationError("Each submission may be graded only once per request")

    # row locks are held until the caller commits
    locked = submission_storage.find(
        assessment_id=assessment_id, submission_ids=requested, for_update=True, session=session
    )
    found = {s.submission_id: s for s in locked}
    if len(found) != len(requested):
        missing = sorted(str(i) for i in requested if i not in found)
        logger.warning(
            "bulk grade rejected",
            extra={"assessment_id": assessment_id, "missing": missing},
        )
        raise ValidationError(
            f"Some submissions not found or don't belong to this assessment: {', '.join(missing)}"
        )
    if any(e.grade > assessment.total_points for e in entries):
        raise ValidationError(f"Some grades exceed the maximum of {assessment.total_points:g} points")

    target = SubmissionStatus.Returned if return_to_students else SubmissionStatus.Graded
    for submission in found.values():
        _check_transition(submission, target, assessment)

    names = {u.user_id: u.name for u in
             user_storage.find(user_ids={s.student_id for s in found.values()}, session=session)}
    graded_at = utcnow()
    results: list[BulkGradeEntryResult] = []
    newly_graded = 0

    with session.begin_nested():
        for entry in entries:
            submission = found[entry.submission_id]
            late = penalty.apply(entry.grade, assessment, submission)
            pct = scoring.percentage(late.final_score, assessment.total_points)

            submission_storage.update(
                submission.submission_id,
                grade=late.final_score,
                final_score=late.final_score,
                original_score=late.original_score if late.applied else None,
                percentage=pct,
                passed=scoring.passed(pct, assessment.passing_score),
                status=target,
                graded_by=grader.user_id,
                graded_at=graded_at,
                **({"feedback": entry.feedback} if entry.feedback is not None else {}),
                session=session,
            )
            history_storage.create(
                submission_id=submission.submission_id,
                graded_by=grader.user_id,
                previous_grade=submission.grade,
                new_grade=late.final_score,
                previous_feedback=submission.feedback,
                new_feedback=entry.feedback if entry.feedback is not None else submission.feedback,
                reason=_penalty_reason(late, submission) if late.applied else None,
                create_time=graded_at,
                session=session,
            )
            record_notification(submission, assessment, late.final_score, graded_at, session=session)

            if submission.status is not SubmissionStatus.Graded:
                newly_graded += 1
            results.append(
                BulkGradeEntryResult(
                    submission_id=submission.submission_id,
                    student_name=names.get(submission.student_id),
                    original_grade=late.original_score,
                    final_grade=late.final_score,
                    late_penalty_applied=late.fraction,
                )
            )

        assessment_storage.increment_graded_count(assessment_id, newly_graded, session=session)

    stats = BulkGradeStats(
        total_graded=len(results),
        newly_graded=newly_graded,
        with_late_penalty=sum(1 for r in results if r.late_penalty_applied > 0),
    )
    logger.info(
        "bulk graded submissions",
        extra={
            "assessment_id": assessment_id,
            "grader_id": grader.user_id,
            "total": stats.total_graded,
            "newly_graded": stats.newly_graded,
            "late_penalty": stats.with_late_penalty,
            "returned": return_to_students,
        },
    )
    return BulkGradeOutcome(results=results, stats=stats)


def history(
    user: User,
    submission_id: SubmissionID,
    *,
    session: Session = di.Provide["storage.persistent.session"],
) -> tuple[GradingHistoryEntry, ...]:
    """Grading history of a submission, oldest first, for its student or its graders."""
    submission = submission_storage.get(submission_id, session=session)
    if submission is None:
        raise NotFound(f"Submission {submission_id} not found")
    if submission.student_id != user.user_id:
        assessment = assessment_service.load(submission.assessment_id, session=session)
        assessment_service.authorize(user, assessment, session=session)
    return history_storage.find(submission_id=submission_id, session=session)


def record_notification(
    submission: Submission,
    assessment: Assessment,
    final_score: float,
    graded_at: datetime.datetime,
    *,
    session: Session = di.Provide["storage.persistent.session"],
) -> NotificationIntent:
    title = assessment.title
    return notification_storage.create(
        student_id=submission.student_id,
        submission_id=submission.submission_id,
        title=f"Assessment Graded: {title}",
        message=(
            f'Your submission for "{title}" has been graded. '
            f"Score: {round_half_up(final_score, 2):g}/{assessment.total_points:g}"
        ),
        dedupe_key=f"{submission.submission_id}@{graded_at.isoformat()}",
        session=session,
    )


def _check_transition(submission: Submission, target: SubmissionStatus, assessment: Assessment) -> None:
    if not submission.status.can_become(target, allow_resubmission=assessment.allow_resubmission):
        raise ValidationError(
            f"Submission {submission.submission_id} cannot go from {submission.status.value} to {target.value}"
        )


def _penalty_reason(late: penalty.LatePenalty, submission: Submission) -> str:
    plural = "s" if submission.days_late != 1 else ""
    return f"Late penalty of {round_half_up(late.fraction * 100, 2):g}% ({submission.days_late} day{plural} late)"
