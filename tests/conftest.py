"""Pytest fixtures for coursework tests.

Tests run against an in-memory SQLite database created once per session. Each test
runs inside a transaction that is rolled back afterwards, so tests never see each
other's rows.

Usage:
    def test_submit(db_session: Session, student: User, assessment_factory):
        assessment = assessment_factory()
        with db_session.begin():
            submission = submission_service.submit(student, assessment.assessment_id, [], session=db_session)
"""

from __future__ import annotations

import datetime
import os
import typing as t
from pathlib import Path

import pydantic as p
import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

import coursework
from coursework.auth import JWTManager
from coursework.core import CourseworkContainer, TimestampProvider
from coursework.grading import assessment as assessment_service
from coursework.grading import submission as submission_service
from coursework.model import AssessmentKind, AssessmentWithQuestions, ChoiceKey, Course, DeploymentEnvironment, \
    ManualKey, MultiSelectKey, QuestionDraft, QuestionKind, SubmissionWithAnswers, SubmittedAnswer, User, UserID, \
    UserRole
from coursework.storage import course as course_storage
from coursework.storage import user as user_storage
from coursework.storage.table import metadata

TEST_JWT_SECRET = "test-jwt-secret-for-grading-tests"

# fixed clock for tests that care about lateness
NOW = datetime.datetime(2026, 3, 10, 12, 0, tzinfo=datetime.UTC)


@pytest.fixture(scope="session")
def container() -> t.Generator[CourseworkContainer]:
    """Boot the DI container once for the test session, with the schema created in memory."""
    ct = CourseworkContainer()
    root = Path(os.path.dirname(coursework.__file__)).parent

    CourseworkContainer.boot(
        ct,
        debug=True,
        env=DeploymentEnvironment.Test,
        config_root=p.FileUrl(f"file://{root}/config"),
        override=(),
    )
    # the test environment has no vault
    ct.secrets.override({"auth": {"jwt": p.Secret(TEST_JWT_SECRET)}})
    metadata.create_all(ct.storage().persistent().engine())

    yield ct

    ct.shutdown_resources()


@pytest.fixture(scope="session")
def app(container: CourseworkContainer) -> FastAPI:
    from coursework.core.config import CourseworkWebSettings
    from coursework.web.coursework.main import _create_app  # pyright: ignore[reportPrivateUsage]

    container.wire(
        modules=[
            "coursework.web.coursework.main",
            "coursework.web.coursework.route.assessment",
            "coursework.web.coursework.route.delivery",
            "coursework.web.coursework.route.grading",
            "coursework.web.coursework.route.statistics",
            "coursework.web.coursework.route.submission",
            "coursework.auth.middleware",
            "coursework.auth.jwt",
        ]
    )
    return _create_app(
        config=CourseworkWebSettings(**container.config.web.coursework()),
        env=DeploymentEnvironment.Test,
        root_path=t.cast(Path, container.root()),
    )


@pytest.fixture
def db_session(container: CourseworkContainer) -> t.Generator[Session]:
    """A session joined to an outer transaction that is rolled back after the test.

    join_transaction_mode="create_savepoint" turns the `session.begin()` calls of the code
    under test into savepoints of the outer transaction.
    """
    engine = container.storage().persistent().engine()

    connection = engine.connect()
    transaction = connection.begin()
    session = Session(
        bind=connection,
        autobegin=False,
        expire_on_commit=False,
        join_transaction_mode="create_savepoint",
    )

    yield session

    session.close()
    transaction.rollback()
    connection.close()


@pytest.fixture
def clock(container: CourseworkContainer) -> t.Generator[list[datetime.datetime]]:
    """Pins the container's clock to NOW; tests move it by replacing `clock[0]`."""
    now = [NOW]
    container.utcnow.override(lambda: now[0])
    yield now
    container.utcnow.reset_override()


@pytest.fixture
def utcnow(clock: list[datetime.datetime]) -> TimestampProvider:
    return lambda: clock[0]


class RecordingNotifier(object):
    def __init__(self, fail_for: t.Collection[UserID] = ()):
        self.sent: list[tuple[UserID, str, str]] = []
        self.fail_for = set(fail_for)

    def notify(self, student_id: UserID, title: str, message: str) -> None:
        if student_id in self.fail_for:
            raise ConnectionError(f"cannot reach {student_id}")
        self.sent.append((student_id, title, message))


@pytest.fixture
def notifier(container: CourseworkContainer) -> t.Generator[RecordingNotifier]:
    recorder = RecordingNotifier()
    container.notification().notifier.override(recorder)
    yield recorder
    container.notification().notifier.reset_override()


@pytest.fixture
def client(
    app: FastAPI, container: CourseworkContainer, db_session: Session, clock: list[datetime.datetime]
) -> t.Generator[TestClient]:
    """A TestClient whose requests share the test's transactional session."""
    container.storage().persistent().session.override(db_session)

    with TestClient(app) as test_client:
        yield test_client

    container.storage().persistent().session.reset_override()


@pytest.fixture
def user_factory(db_session: Session) -> t.Callable[..., User]:
    def create_user(
        name: str = "Test User",
        email: str | None = None,
        role: UserRole = UserRole.Student,
    ) -> User:
        if email is None:
            email = f"{UserID().key[:10].lower()}@example.com"
        with db_session.begin_nested() if db_session.in_transaction() else db_session.begin():
            return user_storage.create(email=email, name=name, role=role, session=db_session)

    return create_user


@pytest.fixture
def instructor(user_factory: t.Callable[..., User]) -> User:
    return user_factory(name="Ada Instructor", role=UserRole.Instructor)


@pytest.fixture
def student(user_factory: t.Callable[..., User]) -> User:
    return user_factory(name="Sam Student", role=UserRole.Student)


@pytest.fixture
def admin(user_factory: t.Callable[..., User]) -> User:
    return user_factory(name="Root Admin", role=UserRole.Admin)


@pytest.fixture
def course(db_session: Session, instructor: User) -> Course:
    with db_session.begin():
        return course_storage.create(title="Algorithms", instructor_id=instructor.user_id, session=db_session)


def standard_questions() -> list[QuestionDraft]:
    """40 + 20 + 20 points machine-checkable, 20 points essay."""
    return [
        QuestionDraft(
            text="Which sort is stable?",
            kind=QuestionKind.SingleChoice,
            points=40,
            answer_key=ChoiceKey(correct="b"),
            options=["a", "b", "c", "d"],
        ),
        QuestionDraft(
            text="Quicksort is O(n log n) on average.",
            kind=QuestionKind.TrueFalse,
            points=20,
            answer_key=ChoiceKey(correct="true"),
        ),
        QuestionDraft(
            text="Which are divide and conquer?",
            kind=QuestionKind.MultiSelect,
            points=20,
            answer_key=MultiSelectKey(correct=frozenset({"a", "c"})),
            options=["a", "b", "c"],
        ),
        QuestionDraft(
            text="Explain amortized analysis.",
            kind=QuestionKind.Essay,
            points=20,
            answer_key=ManualKey(),
        ),
    ]


@pytest.fixture
def assessment_factory(
    db_session: Session, instructor: User, course: Course
) -> t.Callable[..., AssessmentWithQuestions]:
    def create_assessment(
        title: str = "Midterm",
        total_points: float = 100,
        passing_score: float = 60,
        questions: list[QuestionDraft] | None = None,
        owner: User | None = None,
        **kwargs: t.Any,
    ) -> AssessmentWithQuestions:
        with db_session.begin():
            return assessment_service.create(
                owner or instructor,
                course_id=course.course_id,
                title=title,
                kind=kwargs.pop("kind", AssessmentKind.Exam),
                total_points=total_points,
                passing_score=passing_score,
                questions=standard_questions() if questions is None else questions,
                session=db_session,
                **kwargs,
            )

    return create_assessment


def answers_for(assessment: AssessmentWithQuestions, *values: t.Any) -> list[SubmittedAnswer]:
    """Pair raw answer values with the assessment's questions, in order."""
    return [
        SubmittedAnswer(question_id=q.question_id, answer=v)
        for q, v in zip(assessment.questions, values)
    ]


@pytest.fixture
def submission_factory(db_session: Session, student: User) -> t.Callable[..., SubmissionWithAnswers]:
    def create_submission(
        assessment: AssessmentWithQuestions,
        *values: t.Any,
        by: User | None = None,
        at: datetime.datetime = NOW,
        time_spent: int | None = None,
    ) -> SubmissionWithAnswers:
        with db_session.begin():
            return submission_service.submit(
                by or student,
                assessment.assessment_id,
                answers_for(assessment, *values),
                time_spent,
                session=db_session,
                utcnow=lambda: at,
            )

    return create_submission


@pytest.fixture
def jwt_manager(app: FastAPI, container: CourseworkContainer) -> JWTManager:
    """Depends on app so the secret override is in place."""
    return container.auth().jwt_manager()


@pytest.fixture
def auth_headers(jwt_manager: JWTManager) -> t.Callable[[User], dict[str, str]]:
    def headers(user: User) -> dict[str, str]:
        return {"Authorization": f"Bearer {jwt_manager.create_access_token(user.user_id, user.role)}"}

    return headers
