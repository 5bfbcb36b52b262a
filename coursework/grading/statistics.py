"""Summary metrics derived from stored submissions."""

from __future__ import annotations

import statistics
import typing as t

from sqlalchemy.orm import Session

from coursework.core import di
from coursework.lib.util import round_half_up
from coursework.model import AssessmentID, AssessmentStatistics, GradeBand, GradeStatistics, \
    InstructorAssessmentSummary, InstructorStatistics, PendingStatuses, Submission, SubmissionStatus, User, UserID, \
    UserRole
from coursework.storage import assessment as assessment_storage
from coursework.storage import submission as submission_storage

from . import assessment as assessment_service
from .errors import Forbidden

GradedStatuses = frozenset({SubmissionStatus.Graded, SubmissionStatus.Returned})

# (label, lower bound inclusive) in percent of total points, highest band includes 100%
Bands: tuple[tuple[str, float], ...] = (
    ("Below 60%", 0.0),
    ("60-70%", 60.0),
    ("70-80%", 70.0),
    ("80-90%", 80.0),
    ("90-100%", 90.0),
)


def summarize(submissions: t.Sequence[Submission], ndigits: int = 2) -> AssessmentStatistics:
    """Averages over a set of submissions of one assessment; all zero for an empty set.

    Scores are each submission's effective score, the instructor's final score once graded.
    Time spent is averaged over the submissions that recorded it.
    """
    if not submissions:
        return AssessmentStatistics()

    total = len(submissions)
    times = [s.time_spent for s in submissions if s.time_spent is not None]
    return AssessmentStatistics(
        total_submissions=total,
        average_score=round_half_up(statistics.fmean(s.effective_score for s in submissions), ndigits),
        average_percentage=round_half_up(statistics.fmean(s.percentage for s in submissions), ndigits),
        pass_rate=round_half_up(sum(1 for s in submissions if s.passed) / total * 100, ndigits),
        average_time_spent=round_half_up(statistics.fmean(times)) if times else 0.0,
    )


def band(pct: float) -> str:
    label = Bands[0][0]
    for name, lower in Bands:
        if pct >= lower:
            label = name
    return label


def grade_distribution(grades: t.Iterable[float], total_points: float) -> list[GradeBand]:
    counts = {name: 0 for name, _ in Bands}
    for g in grades:
        pct = g / total_points * 100 if total_points > 0 else 0.0
        counts[band(pct)] += 1
    return [GradeBand(label=name, count=count) for name, count in counts.items()]


def for_assessment(
    user: User,
    assessment_id: AssessmentID,
    *,
    session: Session = di.Provide["storage.persistent.session"],
) -> AssessmentStatistics:
    assessment = assessment_service.load(assessment_id, session=session)
    assessment_service.authorize(user, assessment, session=session)
    return summarize(submission_storage.find(assessment_id=assessment_id, session=session))


def grades_for_assessment(
    user: User,
    assessment_id: AssessmentID,
    *,
    session: Session = di.Provide["storage.persistent.session"],
) -> GradeStatistics:
    """Counts by grading state, and the spread of final grades among graded submissions."""
    assessment = assessment_service.load(assessment_id, session=session)
    assessment_service.authorize(user, assessment, session=session)

    submissions = submission_storage.find(assessment_id=assessment_id, session=session)
    graded = [s.effective_score for s in submissions if s.status in GradedStatuses]
    return GradeStatistics(
        total_submissions=len(submissions),
        graded_count=len(graded),
        pending_count=sum(1 for s in submissions if s.status in PendingStatuses),
        late_count=sum(1 for s in submissions if s.is_late),
        average_grade=round_half_up(statistics.fmean(graded), 2) if graded else 0.0,
        highest_grade=max(graded, default=0.0),
        lowest_grade=min(graded, default=0.0),
        distribution=grade_distribution(graded, assessment.total_points),
    )


def for_instructor(
    user: User,
    instructor_id: UserID,
    *,
    session: Session = di.Provide["storage.persistent.session"],
) -> InstructorStatistics:
    """Per-assessment averages across an instructor's assessments, without submission detail."""
    if user.user_id != instructor_id and user.role is not UserRole.Admin:
        raise Forbidden("Not authorized to view this instructor's statistics")

    summaries: list[InstructorAssessmentSummary] = []
    for assessment in assessment_storage.find(instructor_id=instructor_id, session=session):
        stats = summarize(submission_storage.find(assessment_id=assessment.assessment_id, session=session), ndigits=0)
        summaries.append(
            InstructorAssessmentSummary(
                assessment_id=assessment.assessment_id,
                title=assessment.title,
                kind=assessment.kind,
                total_points=assessment.total_points,
                total_submissions=stats.total_submissions,
                average_score=stats.average_score,
                completion_rate=stats.pass_rate,
            )
        )
    return InstructorStatistics(
        total_assessments=len(summaries),
        total_submissions=sum(s.total_submissions for s in summaries),
        assessments=summaries,
    )
