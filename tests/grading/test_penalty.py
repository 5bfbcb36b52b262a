"""Tests for coursework.grading.penalty."""

from __future__ import annotations

import datetime

from coursework.grading import penalty
from coursework.model import Assessment, AssessmentID, AssessmentKind, CourseID, Submission, SubmissionID, UserID

DUE = datetime.datetime(2026, 3, 1, 23, 59, tzinfo=datetime.UTC)


def make_assessment(late_penalty_percent_per_day: float | None = 10.0) -> Assessment:
    return Assessment(
        assessment_id=AssessmentID(),
        course_id=CourseID(),
        instructor_id=UserID(),
        title="Essay",
        kind=AssessmentKind.Assignment,
        total_points=100,
        passing_score=60,
        due_date=DUE,
        late_penalty_percent_per_day=late_penalty_percent_per_day,
    )


def make_submission(days_late: int) -> Submission:
    return Submission(
        submission_id=SubmissionID(),
        assessment_id=AssessmentID(),
        student_id=UserID(),
        attempt_number=1,
        score=0,
        percentage=0,
        passed=False,
        submitted_at=DUE + datetime.timedelta(days=days_late),
        is_late=days_late > 0,
        days_late=days_late,
    )


class TestDaysLate(object):
    """Tests for penalty.days_late()."""

    def test_on_time(self) -> None:
        assert penalty.days_late(DUE, DUE) == 0
        assert penalty.days_late(DUE - datetime.timedelta(hours=5), DUE) == 0

    def test_part_of_a_day_counts_as_a_day(self) -> None:
        assert penalty.days_late(DUE + datetime.timedelta(minutes=1), DUE) == 1
        assert penalty.days_late(DUE + datetime.timedelta(days=1), DUE) == 1
        assert penalty.days_late(DUE + datetime.timedelta(days=1, seconds=1), DUE) == 2

    def test_no_due_date(self) -> None:
        assert penalty.days_late(DUE, None) == 0


class TestApply(object):
    """Tests for penalty.apply()."""

    def test_two_days_at_ten_percent(self) -> None:
        """80 points, two days late at 10% per day, becomes 64."""
        result = penalty.apply(80, make_assessment(), make_submission(2))

        assert result.original_score == 80
        assert result.final_score == 64
        assert result.fraction == 0.2
        assert result.applied

    def test_on_time_is_untouched(self) -> None:
        result = penalty.apply(80, make_assessment(), make_submission(0))

        assert result.final_score == 80
        assert not result.applied

    def test_no_penalty_configured(self) -> None:
        assert not penalty.apply(80, make_assessment(None), make_submission(3)).applied
        assert not penalty.apply(80, make_assessment(0), make_submission(3)).applied

    def test_never_below_zero(self) -> None:
        result = penalty.apply(50, make_assessment(25), make_submission(5))

        assert result.final_score == 0
        assert result.fraction == 1.25
