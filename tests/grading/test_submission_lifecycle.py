"""Tests for coursework.grading.submission: attempts, automatic scoring, lateness and resubmission."""

from __future__ import annotations

import datetime
import typing as t

import pytest
from conftest import answers_for, NOW
from sqlalchemy.orm import Session

from coursework.grading import assessment as assessment_service
from coursework.grading import AttemptsExceeded, Forbidden, NotFound, statistics, ValidationError, workflow
from coursework.grading import submission as submission_service
from coursework.model import AssessmentID, AssessmentKind, AssessmentWithQuestions, BulkGradeEntry, ChoiceKey, Course, \
    CourseID, QuestionDraft, QuestionKind, SubmissionID, SubmissionStatus, SubmissionWithAnswers, SubmittedAnswer, \
    User, UserRole
from coursework.storage import assessment as assessment_storage
from coursework.storage import notification as notification_storage
from coursework.storage import submission as submission_storage

AssessmentFactory = t.Callable[..., AssessmentWithQuestions]
SubmissionFactory = t.Callable[..., SubmissionWithAnswers]


class TestCreateAssessment(object):
    """Tests for assessment_service.create()."""

    def test_questions_keep_their_order(self, assessment_factory: AssessmentFactory) -> None:
        assessment = assessment_factory()

        assert [q.kind for q in assessment.questions] == [
            QuestionKind.SingleChoice,
            QuestionKind.TrueFalse,
            QuestionKind.MultiSelect,
            QuestionKind.Essay,
        ]
        assert [q.position for q in assessment.questions] == [0, 1, 2, 3]

    def test_question_points_may_not_exceed_total(self, assessment_factory: AssessmentFactory) -> None:
        with pytest.raises(ValidationError, match="exceed the assessment total"):
            assessment_factory(total_points=50)

    def test_question_points_may_fall_short_of_total(self, assessment_factory: AssessmentFactory) -> None:
        assessment = assessment_factory(total_points=150)

        assert sum(q.points for q in assessment.questions) == 100

    def test_mismatched_answer_key(self, assessment_factory: AssessmentFactory) -> None:
        """A true/false question needs 'true' or 'false' as its key."""
        bad = QuestionDraft(
            text="?", kind=QuestionKind.TrueFalse, points=10, answer_key=ChoiceKey(correct="maybe")
        )

        with pytest.raises(ValidationError, match="Question 1"):
            assessment_factory(questions=[bad])

    def test_only_course_instructor(
        self, assessment_factory: AssessmentFactory, user_factory: t.Callable[..., User]
    ) -> None:
        other = user_factory(role=UserRole.Instructor)

        with pytest.raises(Forbidden):
            assessment_factory(owner=other)

    def test_admin_may_create(self, assessment_factory: AssessmentFactory, admin: User) -> None:
        assessment = assessment_factory(owner=admin, kind=AssessmentKind.Quiz)

        assert assessment.instructor_id == admin.user_id
        assert assessment.kind is AssessmentKind.Quiz

    def test_unknown_course(self, db_session: Session, instructor: User, course: Course) -> None:
        with pytest.raises(NotFound), db_session.begin():
            assessment_service.create(
                instructor,
                course_id=CourseID(),
                title="Nowhere",
                kind=AssessmentKind.Quiz,
                total_points=10,
                passing_score=50,
                session=db_session,
            )


class TestSubmit(object):
    """Tests for submission_service.submit()."""

    def test_scores_machine_checkable_answers(
        self, assessment_factory: AssessmentFactory, submission_factory: SubmissionFactory, student: User
    ) -> None:
        """Correct choice, true/false and multi-select answers score 80 of 100; the essay waits for a grader."""
        assessment = assessment_factory()

        submission = submission_factory(assessment, "b", True, ["c", "a"], "It spreads cost.", time_spent=25)

        assert submission.student_id == student.user_id
        assert submission.attempt_number == 1
        assert submission.score == 80
        assert submission.percentage == 80
        assert submission.passed
        assert submission.status is SubmissionStatus.Submitted
        assert submission.time_spent == 25
        assert not submission.is_late
        assert [a.awarded_points for a in submission.answers] == [40, 20, 20, 0]

    def test_wrong_answers(self, assessment_factory: AssessmentFactory, submission_factory: SubmissionFactory) -> None:
        assessment = assessment_factory()

        submission = submission_factory(assessment, "a", "false", ["a"])

        assert submission.score == 0
        assert submission.percentage == 0
        assert not submission.passed

    def test_unanswered_questions_score_zero(
        self, assessment_factory: AssessmentFactory, submission_factory: SubmissionFactory
    ) -> None:
        assessment = assessment_factory()

        submission = submission_factory(assessment, "b")

        assert submission.score == 40
        assert len(submission.answers) == 1

    def test_attempt_limit(
        self, assessment_factory: AssessmentFactory, submission_factory: SubmissionFactory
    ) -> None:
        """With two attempts allowed the third submission is refused."""
        assessment = assessment_factory(attempts_allowed=2)

        first = submission_factory(assessment, "a")
        second = submission_factory(assessment, "b")
        with pytest.raises(AttemptsExceeded, match=r"Maximum attempts \(2\)"):
            submission_factory(assessment, "b")

        assert (first.attempt_number, second.attempt_number) == (1, 2)

    def test_attempts_are_counted_per_student(
        self,
        assessment_factory: AssessmentFactory,
        submission_factory: SubmissionFactory,
        user_factory: t.Callable[..., User],
    ) -> None:
        assessment = assessment_factory(attempts_allowed=1)
        submission_factory(assessment, "b")

        other = submission_factory(assessment, "b", by=user_factory(name="Other Student"))

        assert other.attempt_number == 1

    def test_attempt_number_taken_concurrently(
        self,
        db_session: Session,
        assessment_factory: AssessmentFactory,
        submission_factory: SubmissionFactory,
        student: User,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """A submission that loses the race for its attempt number is refused and nothing is recorded."""
        assessment = assessment_factory()
        submission_factory(assessment, "b")
        # the count another transaction saw before the first submission committed
        monkeypatch.setattr(submission_storage, "count", lambda **kwargs: 0)

        with pytest.raises(AttemptsExceeded, match="recorded first"), db_session.begin():
            submission_service.submit(
                student, assessment.assessment_id, answers_for(assessment, "a"), session=db_session
            )

        with db_session.begin():
            stored = submission_storage.find(assessment_id=assessment.assessment_id, session=db_session)
        assert [s.attempt_number for s in stored] == [1]

    def test_only_students_submit(
        self, assessment_factory: AssessmentFactory, submission_factory: SubmissionFactory, instructor: User
    ) -> None:
        assessment = assessment_factory()

        with pytest.raises(Forbidden):
            submission_factory(assessment, "b", by=instructor)

    def test_unknown_assessment(self, db_session: Session, student: User) -> None:
        with pytest.raises(NotFound), db_session.begin():
            submission_service.submit(student, AssessmentID(), [], session=db_session, utcnow=lambda: NOW)

    def test_unknown_question(
        self, db_session: Session, assessment_factory: AssessmentFactory, student: User
    ) -> None:
        assessment = assessment_factory()
        stray = SubmittedAnswer(question_id="qstn$nope", answer="b")

        with pytest.raises(ValidationError, match="not part of this assessment"), db_session.begin():
            submission_service.submit(
                student, assessment.assessment_id, [stray], session=db_session, utcnow=lambda: NOW
            )

    def test_answer_of_the_wrong_shape(
        self, assessment_factory: AssessmentFactory, submission_factory: SubmissionFactory
    ) -> None:
        """A number is not an answer to a single-choice question."""
        assessment = assessment_factory()

        with pytest.raises(ValidationError):
            submission_factory(assessment, 3)

    def test_full_marks(
        self, assessment_factory: AssessmentFactory, submission_factory: SubmissionFactory
    ) -> None:
        assessment = assessment_factory(
            total_points=10,
            questions=[
                QuestionDraft(
                    text="?", kind=QuestionKind.SingleChoice, points=10, answer_key=ChoiceKey(correct="b")
                )
            ],
        )

        submission = submission_factory(assessment, "b")

        assert submission.score == 10
        assert submission.percentage == 100

    def test_zero_point_assessment(
        self, assessment_factory: AssessmentFactory, submission_factory: SubmissionFactory
    ) -> None:
        assessment = assessment_factory(total_points=0, passing_score=0, questions=[])

        submission = submission_factory(assessment)

        assert submission.percentage == 0
        assert submission.passed


class TestLateness(object):
    """Tests for lateness of submissions against the due date."""

    def test_late_submission_is_flagged(
        self, assessment_factory: AssessmentFactory, submission_factory: SubmissionFactory
    ) -> None:
        """Thirty-six hours past the due date is two days late."""
        assessment = assessment_factory(due_date=NOW - datetime.timedelta(hours=36))

        submission = submission_factory(assessment, "b")

        assert submission.is_late
        assert submission.days_late == 2

    def test_on_time(self, assessment_factory: AssessmentFactory, submission_factory: SubmissionFactory) -> None:
        assessment = assessment_factory(due_date=NOW + datetime.timedelta(days=1))

        submission = submission_factory(assessment, "b")

        assert not submission.is_late
        assert submission.days_late == 0

    def test_late_submission_refused(
        self, assessment_factory: AssessmentFactory, submission_factory: SubmissionFactory
    ) -> None:
        assessment = assessment_factory(due_date=NOW - datetime.timedelta(hours=1), allow_late_submission=False)

        with pytest.raises(ValidationError, match="Late submissions"):
            submission_factory(assessment, "b")


class TestResubmit(object):
    """Tests for submission_service.resubmit()."""

    def _return(
        self, db_session: Session, instructor: User, submission: SubmissionWithAnswers, grade: float = 70
    ) -> None:
        with db_session.begin():
            workflow.bulk_grade(
                instructor,
                submission.assessment_id,
                [BulkGradeEntry(submission_id=submission.submission_id, grade=grade, feedback="Revise question 4")],
                return_to_students=True,
                session=db_session,
                utcnow=lambda: NOW,
            )

    def test_resubmit_returned_submission(
        self,
        db_session: Session,
        assessment_factory: AssessmentFactory,
        submission_factory: SubmissionFactory,
        instructor: User,
        student: User,
    ) -> None:
        """The answers are scored again and the previous grade stays until the next grading."""
        assessment = assessment_factory(allow_resubmission=True)
        submission = submission_factory(assessment, "a")
        self._return(db_session, instructor, submission)

        later = NOW + datetime.timedelta(hours=2)
        with db_session.begin():
            result = submission_service.resubmit(
                student,
                submission.submission_id,
                answers_for(assessment, "b", "true"),
                30,
                session=db_session,
                utcnow=lambda: later,
            )

        assert result.status is SubmissionStatus.Resubmitted
        assert result.resubmission_count == 1
        assert result.score == 60
        assert result.submitted_at == later
        assert result.time_spent == 30
        assert result.grade == 70
        assert result.feedback == "Revise question 4"
        assert len(result.answers) == 2

    def test_not_allowed_by_assessment(
        self,
        db_session: Session,
        assessment_factory: AssessmentFactory,
        submission_factory: SubmissionFactory,
        instructor: User,
        student: User,
    ) -> None:
        assessment = assessment_factory(allow_resubmission=False)
        submission = submission_factory(assessment, "a")
        self._return(db_session, instructor, submission)

        with pytest.raises(ValidationError, match="does not allow resubmission"), db_session.begin():
            submission_service.resubmit(
                student, submission.submission_id, [], session=db_session, utcnow=lambda: NOW
            )

    def test_must_be_returned_first(
        self,
        db_session: Session,
        assessment_factory: AssessmentFactory,
        submission_factory: SubmissionFactory,
        student: User,
    ) -> None:
        assessment = assessment_factory(allow_resubmission=True)
        submission = submission_factory(assessment, "a")

        with pytest.raises(ValidationError, match="cannot be resubmitted"), db_session.begin():
            submission_service.resubmit(
                student, submission.submission_id, [], session=db_session, utcnow=lambda: NOW
            )

    def test_someone_elses_submission(
        self,
        db_session: Session,
        assessment_factory: AssessmentFactory,
        submission_factory: SubmissionFactory,
        user_factory: t.Callable[..., User],
    ) -> None:
        assessment = assessment_factory(allow_resubmission=True)
        submission = submission_factory(assessment, "a")

        with pytest.raises(Forbidden), db_session.begin():
            submission_service.resubmit(
                user_factory(), submission.submission_id, [], session=db_session, utcnow=lambda: NOW
            )

    def test_unknown_submission(self, db_session: Session, student: User) -> None:
        with pytest.raises(NotFound), db_session.begin():
            submission_service.resubmit(student, SubmissionID(), [], session=db_session, utcnow=lambda: NOW)


    def test_resubmission_replaces_final_score(
        self,
        db_session: Session,
        assessment_factory: AssessmentFactory,
        submission_factory: SubmissionFactory,
        instructor: User,
        student: User,
    ) -> None:
        """Until it is graded again a resubmission is measured by its new automatic score."""
        assessment = assessment_factory(allow_resubmission=True)
        submission = submission_factory(assessment, "a")
        self._return(db_session, instructor, submission, grade=70)

        with db_session.begin():
            result = submission_service.resubmit(
                student,
                submission.submission_id,
                answers_for(assessment, "b", "true"),
                session=db_session,
                utcnow=lambda: NOW,
            )
            stats = statistics.for_assessment(instructor, assessment.assessment_id, session=db_session)

        assert (result.final_score, result.original_score) == (None, None)
        assert result.effective_score == 60
        assert (stats.average_score, stats.average_percentage) == (60, 60)

    def test_grading_a_resubmission(
        self,
        db_session: Session,
        assessment_factory: AssessmentFactory,
        submission_factory: SubmissionFactory,
        instructor: User,
        student: User,
    ) -> None:
        """The new automatic score is finalized and the submission counts as newly graded again."""
        assessment = assessment_factory(allow_resubmission=True)
        submission = submission_factory(assessment, "a")
        self._return(db_session, instructor, submission, grade=70)
        with db_session.begin():
            submission_service.resubmit(
                student,
                submission.submission_id,
                answers_for(assessment, "b", "true"),
                session=db_session,
                utcnow=lambda: NOW,
            )

        later = NOW + datetime.timedelta(hours=3)
        with db_session.begin():
            graded = workflow.grade(instructor, submission.submission_id, session=db_session, utcnow=lambda: later)
            stored = assessment_storage.get(assessment.assessment_id, session=db_session)
            intents = notification_storage.find(submission_id=submission.submission_id, session=db_session)

        assert graded.status is SubmissionStatus.Graded
        assert graded.effective_score == 60
        assert stored is not None and stored.graded_count == 2
        assert sorted(i.message.rsplit(" ", 1)[-1] for i in intents) == ["60/100", "70/100"]


class TestView(object):
    """Tests for submission_service.view()."""

    def test_student_sees_own(
        self,
        db_session: Session,
        assessment_factory: AssessmentFactory,
        submission_factory: SubmissionFactory,
        student: User,
        instructor: User,
    ) -> None:
        submission = submission_factory(assessment_factory(), "b")

        with db_session.begin():
            own = submission_service.view(student, submission.submission_id, session=db_session)
            graded = submission_service.view(instructor, submission.submission_id, session=db_session)

        assert own.submission_id == graded.submission_id == submission.submission_id
        assert len(own.answers) == 1

    def test_other_student_is_refused(
        self,
        db_session: Session,
        assessment_factory: AssessmentFactory,
        submission_factory: SubmissionFactory,
        user_factory: t.Callable[..., User],
    ) -> None:
        submission = submission_factory(assessment_factory(), "b")

        with pytest.raises(Forbidden), db_session.begin():
            submission_service.view(user_factory(), submission.submission_id, session=db_session)

    def test_stored_answers(
        self,
        db_session: Session,
        assessment_factory: AssessmentFactory,
        submission_factory: SubmissionFactory,
    ) -> None:
        submission = submission_factory(assessment_factory(), "b", True)

        with db_session.begin():
            answers = submission_storage.find_answers(submission.submission_id, session=db_session)

        assert {a.awarded_points for a in answers} == {40, 20}
