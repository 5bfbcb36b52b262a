"""Tests for coursework.grading.statistics."""

from __future__ import annotations

import datetime
import typing as t

import pytest
from conftest import NOW
from sqlalchemy.orm import Session

from coursework.grading import Forbidden, statistics, workflow
from coursework.model import AssessmentID, AssessmentWithQuestions, BulkGradeEntry, Submission, SubmissionID, \
    SubmissionStatus, SubmissionWithAnswers, User, UserID

AssessmentFactory = t.Callable[..., AssessmentWithQuestions]
SubmissionFactory = t.Callable[..., SubmissionWithAnswers]


def make_submission(score: float, *, time_spent: int | None = None, final_score: float | None = None) -> Submission:
    return Submission(
        submission_id=SubmissionID(),
        assessment_id=AssessmentID(),
        student_id=UserID(),
        attempt_number=1,
        score=score,
        percentage=score,
        passed=score >= 60,
        submitted_at=NOW,
        time_spent=time_spent,
        final_score=final_score,
    )


class TestSummarize(object):
    """Tests for statistics.summarize()."""

    def test_empty(self) -> None:
        stats = statistics.summarize([])

        assert stats.total_submissions == 0
        assert stats.average_score == 0
        assert stats.pass_rate == 0
        assert stats.average_time_spent == 0

    def test_averages(self) -> None:
        stats = statistics.summarize([
            make_submission(50, time_spent=10),
            make_submission(70, time_spent=15),
            make_submission(91),
        ])

        assert stats.total_submissions == 3
        assert stats.average_score == 70.33
        assert stats.average_percentage == 70.33
        assert stats.pass_rate == 66.67
        # only submissions that recorded time
        assert stats.average_time_spent == 13

    def test_final_score_wins(self) -> None:
        stats = statistics.summarize([make_submission(40, final_score=80), make_submission(60)])

        assert stats.average_score == 70

    def test_whole_number_rounding(self) -> None:
        stats = statistics.summarize([make_submission(50), make_submission(75)], ndigits=0)

        assert stats.average_score == 63
        assert stats.pass_rate == 50


class TestDistribution(object):
    """Tests for statistics.band() and grade_distribution()."""

    @pytest.mark.parametrize(
        ("pct", "label"),
        [
            (0, "Below 60%"),
            (59.99, "Below 60%"),
            (60, "60-70%"),
            (79.5, "70-80%"),
            (89.99, "80-90%"),
            (90, "90-100%"),
            (100, "90-100%"),
        ],
    )
    def test_band_edges(self, pct: float, label: str) -> None:
        assert statistics.band(pct) == label

    def test_every_band_is_reported(self) -> None:
        bands = statistics.grade_distribution([45, 95, 96], total_points=100)

        assert [(b.label, b.count) for b in bands] == [
            ("Below 60%", 1),
            ("60-70%", 0),
            ("70-80%", 0),
            ("80-90%", 0),
            ("90-100%", 2),
        ]

    def test_scaled_by_total_points(self) -> None:
        bands = statistics.grade_distribution([17], total_points=20)

        assert {b.label: b.count for b in bands}["80-90%"] == 1


class TestForAssessment(object):
    """Tests for statistics.for_assessment() and grades_for_assessment()."""

    def test_counts_and_grades(
        self,
        db_session: Session,
        assessment_factory: AssessmentFactory,
        submission_factory: SubmissionFactory,
        user_factory: t.Callable[..., User],
        instructor: User,
    ) -> None:
        assessment = assessment_factory(due_date=NOW - datetime.timedelta(hours=1))
        graded = submission_factory(assessment, "b", by=user_factory(), time_spent=20)
        returned = submission_factory(assessment, "b", True, by=user_factory(), time_spent=30)
        submission_factory(assessment, "a", by=user_factory())

        with db_session.begin():
            workflow.bulk_grade(
                instructor,
                assessment.assessment_id,
                [BulkGradeEntry(submission_id=graded.submission_id, grade=95)],
                session=db_session,
                utcnow=lambda: NOW,
            )
            workflow.bulk_grade(
                instructor,
                assessment.assessment_id,
                [BulkGradeEntry(submission_id=returned.submission_id, grade=72)],
                return_to_students=True,
                session=db_session,
                utcnow=lambda: NOW,
            )
            summary = statistics.for_assessment(instructor, assessment.assessment_id, session=db_session)
            grades = statistics.grades_for_assessment(instructor, assessment.assessment_id, session=db_session)

        assert summary.total_submissions == 3
        assert summary.average_score == 55.67
        assert summary.average_time_spent == 25

        assert grades.total_submissions == 3
        assert grades.graded_count == 2
        assert grades.pending_count == 1
        assert grades.late_count == 3
        assert grades.average_grade == 83.5
        assert grades.highest_grade == 95
        assert grades.lowest_grade == 72
        assert {b.label: b.count for b in grades.distribution} == {
            "Below 60%": 0,
            "60-70%": 0,
            "70-80%": 1,
            "80-90%": 0,
            "90-100%": 1,
        }

    def test_no_submissions(
        self, db_session: Session, assessment_factory: AssessmentFactory, instructor: User
    ) -> None:
        assessment = assessment_factory()

        with db_session.begin():
            grades = statistics.grades_for_assessment(instructor, assessment.assessment_id, session=db_session)

        assert grades.graded_count == 0
        assert grades.average_grade == 0
        assert grades.highest_grade == 0
        assert all(b.count == 0 for b in grades.distribution)

    def test_students_refused(
        self, db_session: Session, assessment_factory: AssessmentFactory, student: User
    ) -> None:
        assessment = assessment_factory()

        with pytest.raises(Forbidden), db_session.begin():
            statistics.for_assessment(student, assessment.assessment_id, session=db_session)


class TestForInstructor(object):
    """Tests for statistics.for_instructor()."""

    def test_summaries(
        self,
        db_session: Session,
        assessment_factory: AssessmentFactory,
        submission_factory: SubmissionFactory,
        user_factory: t.Callable[..., User],
        instructor: User,
    ) -> None:
        quiz = assessment_factory(title="Quiz 1")
        assessment_factory(title="Quiz 2")
        submission_factory(quiz, "b", True, by=user_factory())
        submission_factory(quiz, "b", by=user_factory())

        with db_session.begin():
            stats = statistics.for_instructor(instructor, instructor.user_id, session=db_session)

        assert stats.total_assessments == 2
        assert stats.total_submissions == 2
        by_title = {s.title: s for s in stats.assessments}
        assert by_title["Quiz 1"].average_score == 50
        assert by_title["Quiz 1"].completion_rate == 50
        assert by_title["Quiz 2"].total_submissions == 0

    def test_admin_may_view(self, db_session: Session, admin: User, instructor: User) -> None:
        with db_session.begin():
            stats = statistics.for_instructor(admin, instructor.user_id, session=db_session)

        assert stats.total_assessments == 0

    def test_other_instructor_refused(
        self, db_session: Session, user_factory: t.Callable[..., User], instructor: User
    ) -> None:
        from coursework.model import UserRole

        with pytest.raises(Forbidden), db_session.begin():
            statistics.for_instructor(user_factory(role=UserRole.Instructor), instructor.user_id, session=db_session)
