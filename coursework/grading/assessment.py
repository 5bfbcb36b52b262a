"""Assessment authoring and access checks shared by submission and grading."""

from __future__ import annotations

import datetime
import logging
import typing as t

import pydantic as p
from sqlalchemy.orm import Session

from coursework.core import di
from coursework.model import Assessment, AssessmentID, AssessmentKind, AssessmentWithQuestions, CourseID, \
    QuestionDraft, User, UserRole
from coursework.storage import assessment as assessment_storage
from coursework.storage import course as course_storage
from coursework.storage import question as question_storage

from .errors import Forbidden, NotFound, ValidationError

logger = logging.getLogger(__name__)


def load(
    assessment_id: AssessmentID,
    *,
    for_update: bool = False,
    session: Session = di.Provide["storage.persistent.session"],
) -> AssessmentWithQuestions:
    assessment = assessment_storage.get(assessment_id, with_questions=True, for_update=for_update, session=session)
    if assessment is None:
        raise NotFound(f"Assessment {assessment_id} not found")
    return assessment


def can_grade(
    user: User,
    assessment: Assessment,
    *,
    session: Session = di.Provide["storage.persistent.session"],
) -> bool:
    """Admins, the assessment's instructor, and the instructor of its course may grade it."""
    if user.role is UserRole.Admin:
        return True
    if user.role is not UserRole.Instructor:
        return False
    if assessment.instructor_id == user.user_id:
        return True
    return course_storage.owned_by(assessment.course_id, user.user_id, session=session)


def authorize(
    user: User,
    assessment: Assessment,
    *,
    session: Session = di.Provide["storage.persistent.session"],
) -> None:
    if not can_grade(user, assessment, session=session):
        logger.warning(
            "grading access denied",
            extra={"user_id": user.user_id, "assessment_id": assessment.assessment_id},
        )
        raise Forbidden("Not authorized to grade this assessment")


def create(
    instructor: User,
    *,
    course_id: CourseID,
    title: str,
    kind: AssessmentKind,
    total_points: float,
    passing_score: float,
    questions: t.Sequence[QuestionDraft] = (),
    description: str | None = None,
    time_limit: int | None = None,
    attempts_allowed: int | None = None,
    due_date: datetime.datetime | None = None,
    late_penalty_percent_per_day: float | None = None,
    allow_late_submission: bool = True,
    allow_resubmission: bool = False,
    attachments: t.Sequence[str] = (),
    session: Session = di.Provide["storage.persistent.session"],
) -> AssessmentWithQuestions:
    """Create an assessment with its questions, in the order given.

    Question points may add up to less than `total_points` (the remainder is left for
    manual grading) but never to more.

    Raises:
        NotFound: If the course does not exist
        Forbidden: If `instructor` neither teaches the course nor is an admin
        ValidationError: If the questions are inconsistent with each other or with the assessment
    """
    course = course_storage.get(course_id, session=session)
    if course is None:
        raise NotFound(f"Course {course_id} not found")
    if instructor.role is not UserRole.Admin and course.instructor_id != instructor.user_id:
        raise Forbidden("Only the course instructor may create assessments")

    if total_points < 0:
        raise ValidationError("total_points must not be negative")
    if not 0 <= passing_score <= 100:
        raise ValidationError("passing_score must be a percentage between 0 and 100")
    if attempts_allowed is not None and attempts_allowed < 1:
        raise ValidationError("attempts_allowed must be a positive integer")
    question_points = sum(q.points for q in questions)
    if question_points > total_points:
        raise ValidationError(
            f"Question points ({question_points:g}) exceed the assessment total of {total_points:g} points"
        )

    assessment = assessment_storage.create(
        course_id=course_id,
        instructor_id=instructor.user_id,
        title=title,
        kind=kind,
        total_points=total_points,
        passing_score=passing_score,
        description=description,
        time_limit=time_limit,
        attempts_allowed=attempts_allowed,
        due_date=due_date,
        late_penalty_percent_per_day=late_penalty_percent_per_day,
        allow_late_submission=allow_late_submission,
        allow_resubmission=allow_resubmission,
        attachments=attachments,
        session=session,
    )
    for position, draft in enumerate(questions):
        try:
            question_storage.create(
                assessment_id=assessment.assessment_id,
                text=draft.text,
                kind=draft.kind,
                points=draft.points,
                position=position,
                answer_key=draft.answer_key,
                options=draft.options,
                explanation=draft.explanation,
                session=session,
            )
        except p.ValidationError as e:
            raise ValidationError(f"Question {position + 1}: {e.errors()[0]['msg']}") from e

    logger.info(
        "created assessment",
        extra={
            "assessment_id": assessment.assessment_id,
            "course_id": course_id,
            "questions": len(questions),
        },
    )
    return load(assessment.assessment_id, session=session)
