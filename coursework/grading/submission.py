"""Submission lifecycle: attempt limits, automatic scoring, lateness and resubmission.

Callers own the transaction; every function here expects to run inside
``with session.begin():`` so that the attempt check and the insert commit together.
"""

from __future__ import annotations

import datetime
import logging
import typing as t

import sqlalchemy.exc
from sqlalchemy.orm import Session

from coursework.core import di
from coursework.core.provider import TimestampProvider
from coursework.model import Answer, AssessmentID, AssessmentWithQuestions, Question, QuestionID, SubmissionID, \
    SubmissionStatus, SubmissionWithAnswers, SubmittedAnswer, User, UserRole
from coursework.storage import submission as submission_storage

from . import assessment as assessment_service
from . import penalty, scoring
from .errors import AttemptsExceeded, Forbidden, NotFound, ValidationError

logger = logging.getLogger(__name__)


class Scored(t.NamedTuple):
    answers: list[Answer]
    score: float
    percentage: float
    passed: bool


def read_answers(questions: t.Sequence[Question], submitted: t.Sequence[SubmittedAnswer]) -> list[Answer]:
    """Type raw answers against their questions.

    Raises:
        ValidationError: For an unknown or repeated question, or an answer that does not fit its question kind
    """
    by_id: dict[QuestionID, Question] = {q.question_id: q for q in questions}
    answers: list[Answer] = []
    seen: set[str] = set()
    for item in submitted:
        question = by_id.get(t.cast(QuestionID, item.question_id))
        if question is None:
            raise ValidationError(f"Question {item.question_id} is not part of this assessment")
        if item.question_id in seen:
            raise ValidationError(f"Question {item.question_id} answered more than once")
        seen.add(item.question_id)
        if item.answer is None:
            continue

        try:
            response = question.read_response(item.answer)
        except ValueError as e:
            raise ValidationError(f"Question {item.question_id}: {e}") from e
        answers.append(Answer(question_id=question.question_id, response=response, time_spent=item.time_spent))
    return answers


def score(assessment: AssessmentWithQuestions, answers: list[Answer]) -> Scored:
    result = scoring.score(assessment.questions, answers)
    awarded = [a.model_copy(update={"awarded_points": result.by_question.get(a.question_id, 0.0)}) for a in answers]
    total = scoring.clamp(result.total, assessment.total_points)
    pct = scoring.percentage(total, assessment.total_points)
    return Scored(answers=awarded, score=total, percentage=pct, passed=scoring.passed(pct, assessment.passing_score))


def lateness(assessment: AssessmentWithQuestions, submitted_at: datetime.datetime) -> tuple[bool, int]:
    days = penalty.days_late(submitted_at, assessment.due_date)
    is_late = assessment.due_date is not None and submitted_at > assessment.due_date
    if is_late and not assessment.allow_late_submission:
        raise ValidationError("Late submissions are not accepted for this assessment")
    return is_late, days


def submit(
    student: User,
    assessment_id: AssessmentID,
    answers: t.Sequence[SubmittedAnswer],
    time_spent: int | None = None,
    *,
    session: Session = di.Provide["storage.persistent.session"],
    utcnow: TimestampProvider = di.Provide["utcnow"],
) -> SubmissionWithAnswers:
    """Score and record one attempt at an assessment.

    The assessment row stays locked until the caller's transaction ends, so concurrent
    submissions by the same student are counted one after the other.

    Raises:
        NotFound: If the assessment does not exist
        Forbidden: If `student` is not a student
        AttemptsExceeded: If the student has used every allowed attempt
        ValidationError: If the answers do not fit the assessment, or the submission is late and
            late submissions are not accepted
    """
    if student.role is not UserRole.Student:
        raise Forbidden("Only students can submit assessments")

    assessment = assessment_service.load(assessment_id, for_update=True, session=session)
    existing = submission_storage.count(assessment_id=assessment_id, student_id=student.user_id, session=session)
    if assessment.attempts_allowed is not None and existing >= assessment.attempts_allowed:
        raise AttemptsExceeded(f"Maximum attempts ({assessment.attempts_allowed}) reached for this assessment")

    submitted_at = utcnow()
    is_late, days_late = lateness(assessment, submitted_at)
    scored = score(assessment, read_answers(assessment.questions, answers))

    try:
        with session.begin_nested():
            submission = submission_storage.create(
                assessment_id=assessment_id,
                student_id=student.user_id,
                attempt_number=existing + 1,
                score=scored.score,
                percentage=scored.percentage,
                passed=scored.passed,
                submitted_at=submitted_at,
                answers=scored.answers,
                time_spent=time_spent,
                is_late=is_late,
                days_late=days_late,
                session=session,
            )
    except sqlalchemy.exc.IntegrityError as e:
        # a concurrent submission took this attempt number first
        raise AttemptsExceeded("Another submission for this attempt was recorded first") from e

    logger.info(
        "recorded submission",
        extra={
            "submission_id": submission.submission_id,
            "assessment_id": assessment_id,
            "student_id": student.user_id,
            "attempt": submission.attempt_number,
            "score": submission.score,
            "late": is_late,
        },
    )
    return submission


def resubmit(
    student: User,
    submission_id: SubmissionID,
    answers: t.Sequence[SubmittedAnswer],
    time_spent: int | None = None,
    *,
    session: Session = di.Provide["storage.persistent.session"],
    utcnow: TimestampProvider = di.Provide["utcnow"],
) -> SubmissionWithAnswers:
    """Replace the answers of a returned submission and score them again.

    The instructor's previous grade and feedback are kept until the submission is graded again;
    the final score is cleared so the new automatic score stands until then.

    Raises:
        NotFound: If the submission does not exist
        Forbidden: If the submission belongs to another student
        ValidationError: If the assessment does not allow resubmission or the submission has not been returned
    """
    current = submission_storage.get(submission_id, for_update=True, session=session)
    if current is None:
        raise NotFound(f"Submission {submission_id} not found")
    if current.student_id != student.user_id:
        raise Forbidden("Not your submission")

    assessment = assessment_service.load(current.assessment_id, for_update=True, session=session)
    if not assessment.allow_resubmission:
        raise ValidationError("This assessment does not allow resubmission")
    if not current.status.can_become(SubmissionStatus.Resubmitted, allow_resubmission=True):
        raise ValidationError(f"A {current.status.value} submission cannot be resubmitted")

    submitted_at = utcnow()
    is_late, days_late = lateness(assessment, submitted_at)
    scored = score(assessment, read_answers(assessment.questions, answers))

    submission_storage.replace_answers(submission_id, scored.answers, session=session)
    submission_storage.update(
        submission_id,
        status=SubmissionStatus.Resubmitted,
        score=scored.score,
        percentage=scored.percentage,
        passed=scored.passed,
        time_spent=time_spent,
        submitted_at=submitted_at,
        is_late=is_late,
        days_late=days_late,
        resubmission_count=current.resubmission_count + 1,
        final_score=None,
        original_score=None,
        session=session,
    )
    logger.info(
        "recorded resubmission",
        extra={
            "submission_id": submission_id,
            "student_id": student.user_id,
            "resubmission": current.resubmission_count + 1,
            "score": scored.score,
        },
    )
    result = submission_storage.get(submission_id, with_answers=True, session=session)
    assert result is not None
    return result


def view(
    user: User,
    submission_id: SubmissionID,
    *,
    session: Session = di.Provide["storage.persistent.session"],
) -> SubmissionWithAnswers:
    """A submission as seen by its student or by someone who may grade it."""
    submission = submission_storage.get(submission_id, with_answers=True, session=session)
    if submission is None:
        raise NotFound(f"Submission {submission_id} not found")
    if submission.student_id != user.user_id:
        assessment = assessment_service.load(submission.assessment_id, session=session)
        assessment_service.authorize(user, assessment, session=session)
    return submission
