import datetime
import enum
import typing as t

from sqlalchemy import ForeignKey, func, Index, MetaData, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, MappedAsDataclass
from sqlalchemy.types import Float, Text

from coursework.model import AssessmentID, AssessmentKind, CourseID, GradingHistoryID, NotificationID, QuestionID, \
    QuestionKind, SubmissionID, SubmissionStatus, UserID, UserRole

from .type import JSONDocument, ShortUUIDKeyType, UTCDateTime, ValueEnumMapper

metadata = MetaData()


class base(MappedAsDataclass, DeclarativeBase):
    metadata = metadata
    type_annotation_map = {
        UserID: ShortUUIDKeyType(UserID),
        CourseID: ShortUUIDKeyType(CourseID),
        AssessmentID: ShortUUIDKeyType(AssessmentID),
        QuestionID: ShortUUIDKeyType(QuestionID),
        SubmissionID: ShortUUIDKeyType(SubmissionID),
        GradingHistoryID: ShortUUIDKeyType(GradingHistoryID),
        NotificationID: ShortUUIDKeyType(NotificationID),
        datetime.datetime: UTCDateTime(),
        float: Float(),
        list[str]: JSONDocument,
        dict[str, t.Any]: JSONDocument,
        enum.Enum: ValueEnumMapper,
    }


# Users & courses


class users(base):
    __tablename__ = "users"

    user_id: Mapped[UserID] = mapped_column(primary_key=True)
    email: Mapped[str] = mapped_column(unique=True)
    name: Mapped[str]
    role: Mapped[UserRole] = mapped_column(default=UserRole.Student)
    create_time: Mapped[datetime.datetime] = mapped_column(default=None, server_default=func.now())
    update_time: Mapped[datetime.datetime] = mapped_column(default=None, server_default=func.now(), onupdate=func.now())


class courses(base):
    __tablename__ = "courses"

    course_id: Mapped[CourseID] = mapped_column(primary_key=True)
    title: Mapped[str]
    instructor_id: Mapped[UserID] = mapped_column(ForeignKey("users.user_id"))
    create_time: Mapped[datetime.datetime] = mapped_column(default=None, server_default=func.now())
    update_time: Mapped[datetime.datetime] = mapped_column(default=None, server_default=func.now(), onupdate=func.now())


# Assessments & questions


class assessments(base):
    __tablename__ = "assessments"

    assessment_id: Mapped[AssessmentID] = mapped_column(primary_key=True)
    course_id: Mapped[CourseID] = mapped_column(ForeignKey("courses.course_id"), index=True)
    instructor_id: Mapped[UserID] = mapped_column(ForeignKey("users.user_id"), index=True)

    title: Mapped[str]
    kind: Mapped[AssessmentKind]
    total_points: Mapped[float]
    passing_score: Mapped[float]

    description: Mapped[str | None] = mapped_column(Text, default=None)
    time_limit: Mapped[int | None] = mapped_column(default=None)
    attempts_allowed: Mapped[int | None] = mapped_column(default=None)
    due_date: Mapped[datetime.datetime | None] = mapped_column(default=None)
    late_penalty_percent_per_day: Mapped[float | None] = mapped_column(default=None)
    allow_late_submission: Mapped[bool] = mapped_column(default=True)
    allow_resubmission: Mapped[bool] = mapped_column(default=False)
    attachments: Mapped[list[str]] = mapped_column(default_factory=list)
    graded_count: Mapped[int] = mapped_column(default=0)

    create_time: Mapped[datetime.datetime] = mapped_column(default=None, server_default=func.now())
    update_time: Mapped[datetime.datetime] = mapped_column(default=None, server_default=func.now(), onupdate=func.now())


class questions(base):
    __tablename__ = "questions"

    question_id: Mapped[QuestionID] = mapped_column(primary_key=True)
    assessment_id: Mapped[AssessmentID] = mapped_column(ForeignKey("assessments.assessment_id"), index=True)

    text: Mapped[str] = mapped_column(Text)
    kind: Mapped[QuestionKind]
    points: Mapped[float]
    position: Mapped[int]
    # discriminated union, see coursework.model.question.AnswerKey
    answer_key: Mapped[dict[str, t.Any]]
    options: Mapped[list[str]] = mapped_column(default_factory=list)
    explanation: Mapped[str | None] = mapped_column(Text, default=None)


# Submissions


class submissions(base):
    __tablename__ = "submissions"
    __table_args__ = (
        UniqueConstraint("assessment_id", "student_id", "attempt_number", name="uq_submissions_attempt"),
        Index("ix_submissions_assessment_student", "assessment_id", "student_id"),
    )

    submission_id: Mapped[SubmissionID] = mapped_column(primary_key=True)
    assessment_id: Mapped[AssessmentID] = mapped_column(ForeignKey("assessments.assessment_id"))
    student_id: Mapped[UserID] = mapped_column(ForeignKey("users.user_id"))
    attempt_number: Mapped[int]

    score: Mapped[float]
    percentage: Mapped[float]
    passed: Mapped[bool]
    submitted_at: Mapped[datetime.datetime]
    time_spent: Mapped[int | None] = mapped_column(default=None)
    status: Mapped[SubmissionStatus] = mapped_column(default=SubmissionStatus.Submitted)

    grade: Mapped[float | None] = mapped_column(default=None)
    feedback: Mapped[str | None] = mapped_column(Text, default=None)
    graded_by: Mapped[UserID | None] = mapped_column(ForeignKey("users.user_id"), default=None)
    graded_at: Mapped[datetime.datetime | None] = mapped_column(default=None)

    is_late: Mapped[bool] = mapped_column(default=False)
    days_late: Mapped[int] = mapped_column(default=0)
    original_score: Mapped[float | None] = mapped_column(default=None)
    final_score: Mapped[float | None] = mapped_column(default=None)
    resubmission_count: Mapped[int] = mapped_column(default=0)

    create_time: Mapped[datetime.datetime] = mapped_column(default=None, server_default=func.now())
    update_time: Mapped[datetime.datetime] = mapped_column(default=None, server_default=func.now(), onupdate=func.now())


class submission_answers(base):
    __tablename__ = "submission_answers"

    submission_id: Mapped[SubmissionID] = mapped_column(ForeignKey("submissions.submission_id"), primary_key=True)
    question_id: Mapped[QuestionID] = mapped_column(ForeignKey("questions.question_id"), primary_key=True)
    # discriminated union, see coursework.model.question.Response
    response: Mapped[dict[str, t.Any]]
    time_spent: Mapped[int | None] = mapped_column(default=None)
    awarded_points: Mapped[float] = mapped_column(default=0.0)


# Grading


class grading_history(base):
    __tablename__ = "grading_history"

    history_id: Mapped[GradingHistoryID] = mapped_column(primary_key=True)
    submission_id: Mapped[SubmissionID] = mapped_column(ForeignKey("submissions.submission_id"), index=True)
    graded_by: Mapped[UserID] = mapped_column(ForeignKey("users.user_id"))

    previous_grade: Mapped[float | None] = mapped_column(default=None)
    new_grade: Mapped[float | None] = mapped_column(default=None)
    previous_feedback: Mapped[str | None] = mapped_column(Text, default=None)
    new_feedback: Mapped[str | None] = mapped_column(Text, default=None)
    reason: Mapped[str | None] = mapped_column(Text, default=None)

    create_time: Mapped[datetime.datetime] = mapped_column(default=None, server_default=func.now())


class notification_intents(base):
    __tablename__ = "notification_intents"

    notification_id: Mapped[NotificationID] = mapped_column(primary_key=True)
    student_id: Mapped[UserID] = mapped_column(ForeignKey("users.user_id"))
    submission_id: Mapped[SubmissionID] = mapped_column(ForeignKey("submissions.submission_id"))
    title: Mapped[str]
    message: Mapped[str] = mapped_column(Text)
    dedupe_key: Mapped[str] = mapped_column(unique=True)

    attempts: Mapped[int] = mapped_column(default=0)
    last_error: Mapped[str | None] = mapped_column(Text, default=None)
    delivered_at: Mapped[datetime.datetime | None] = mapped_column(default=None, index=True)

    create_time: Mapped[datetime.datetime] = mapped_column(default=None, server_default=func.now())
