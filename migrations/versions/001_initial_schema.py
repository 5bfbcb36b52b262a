"""Initial schema for courses, assessments, submissions and grading

Revision ID: 001_initial
Revises:
Create Date: 2026-10-17

"""

import typing as t

from alembic import op
from sqlalchemy import func as f
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.schema import Column, ForeignKey, UniqueConstraint
from sqlalchemy.types import JSON, Boolean, DateTime, Float, Integer, String, Text

# revision identifiers, used by Alembic.
revision: str = "001_initial"
down_revision: str | None = None
branch_labels: str | t.Sequence[str] | None = None
depends_on: str | t.Sequence[str] | None = None

Key = String(22)
Enum = String(32)
Timestamp = DateTime(timezone=True)
Document = JSON().with_variant(JSONB(), "postgresql")


def upgrade() -> None:
    op.create_table(
        "users",
        Column("user_id", Key, primary_key=True),
        Column("email", String, unique=True, nullable=False),
        Column("name", String, nullable=False),
        Column("role", Enum, nullable=False),
        Column("create_time", Timestamp, server_default=f.now(), nullable=False),
        Column("update_time", Timestamp, server_default=f.now(), nullable=False),
    )

    op.create_table(
        "courses",
        Column("course_id", Key, primary_key=True),
        Column("title", String, nullable=False),
        Column("instructor_id", Key, ForeignKey("users.user_id"), nullable=False),
        Column("create_time", Timestamp, server_default=f.now(), nullable=False),
        Column("update_time", Timestamp, server_default=f.now(), nullable=False),
    )

    op.create_table(
        "assessments",
        Column("assessment_id", Key, primary_key=True),
        Column("course_id", Key, ForeignKey("courses.course_id"), nullable=False),
        Column("instructor_id", Key, ForeignKey("users.user_id"), nullable=False),
        Column("title", String, nullable=False),
        Column("kind", Enum, nullable=False),
        Column("total_points", Float, nullable=False),
        Column("passing_score", Float, nullable=False),
        Column("description", Text, nullable=True),
        Column("time_limit", Integer, nullable=True),
        Column("attempts_allowed", Integer, nullable=True),
        Column("due_date", Timestamp, nullable=True),
        Column("late_penalty_percent_per_day", Float, nullable=True),
        Column("allow_late_submission", Boolean, nullable=False),
        Column("allow_resubmission", Boolean, nullable=False),
        Column("attachments", Document, nullable=False),
        Column("graded_count", Integer, nullable=False),
        Column("create_time", Timestamp, server_default=f.now(), nullable=False),
        Column("update_time", Timestamp, server_default=f.now(), nullable=False),
    )
    op.create_index("ix_assessments_course_id", "assessments", ["course_id"])
    op.create_index("ix_assessments_instructor_id", "assessments", ["instructor_id"])

    op.create_table(
        "questions",
        Column("question_id", Key, primary_key=True),
        Column("assessment_id", Key, ForeignKey("assessments.assessment_id"), nullable=False),
        Column("text", Text, nullable=False),
        Column("kind", Enum, nullable=False),
        Column("points", Float, nullable=False),
        Column("position", Integer, nullable=False),
        Column("answer_key", Document, nullable=False),
        Column("options", Document, nullable=False),
        Column("explanation", Text, nullable=True),
    )
    op.create_index("ix_questions_assessment_id", "questions", ["assessment_id"])

    op.create_table(
        "submissions",
        Column("submission_id", Key, primary_key=True),
        Column("assessment_id", Key, ForeignKey("assessments.assessment_id"), nullable=False),
        Column("student_id", Key, ForeignKey("users.user_id"), nullable=False),
        Column("attempt_number", Integer, nullable=False),
        Column("score", Float, nullable=False),
        Column("percentage", Float, nullable=False),
        Column("passed", Boolean, nullable=False),
        Column("submitted_at", Timestamp, nullable=False),
        Column("time_spent", Integer, nullable=True),
        Column("status", Enum, nullable=False),
        Column("grade", Float, nullable=True),
        Column("feedback", Text, nullable=True),
        Column("graded_by", Key, ForeignKey("users.user_id"), nullable=True),
        Column("graded_at", Timestamp, nullable=True),
        Column("is_late", Boolean, nullable=False),
        Column("days_late", Integer, nullable=False),
        Column("original_score", Float, nullable=True),
        Column("final_score", Float, nullable=True),
        Column("resubmission_count", Integer, nullable=False),
        Column("create_time", Timestamp, server_default=f.now(), nullable=False),
        Column("update_time", Timestamp, server_default=f.now(), nullable=False),
        UniqueConstraint("assessment_id", "student_id", "attempt_number", name="uq_submissions_attempt"),
    )
    op.create_index("ix_submissions_assessment_student", "submissions", ["assessment_id", "student_id"])

    op.create_table(
        "submission_answers",
        Column("submission_id", Key, ForeignKey("submissions.submission_id"), primary_key=True),
        Column("question_id", Key, ForeignKey("questions.question_id"), primary_key=True),
        Column("response", Document, nullable=False),
        Column("time_spent", Integer, nullable=True),
        Column("awarded_points", Float, nullable=False),
    )

    op.create_table(
        "grading_history",
        Column("history_id", Key, primary_key=True),
        Column("submission_id", Key, ForeignKey("submissions.submission_id"), nullable=False),
        Column("graded_by", Key, ForeignKey("users.user_id"), nullable=False),
        Column("previous_grade", Float, nullable=True),
        Column("new_grade", Float, nullable=True),
        Column("previous_feedback", Text, nullable=True),
        Column("new_feedback", Text, nullable=True),
        Column("reason", Text, nullable=True),
        Column("create_time", Timestamp, server_default=f.now(), nullable=False),
    )
    op.create_index("ix_grading_history_submission_id", "grading_history", ["submission_id"])

    op.create_table(
        "notification_intents",
        Column("notification_id", Key, primary_key=True),
        Column("student_id", Key, ForeignKey("users.user_id"), nullable=False),
        Column("submission_id", Key, ForeignKey("submissions.submission_id"), nullable=False),
        Column("title", String, nullable=False),
        Column("message", Text, nullable=False),
        Column("dedupe_key", String, unique=True, nullable=False),
        Column("attempts", Integer, nullable=False),
        Column("last_error", Text, nullable=True),
        Column("delivered_at", Timestamp, nullable=True),
        Column("create_time", Timestamp, server_default=f.now(), nullable=False),
    )
    op.create_index("ix_notification_intents_delivered_at", "notification_intents", ["delivered_at"])


def downgrade() -> None:
    op.drop_index("ix_notification_intents_delivered_at")
    op.drop_index("ix_grading_history_submission_id")
    op.drop_index("ix_submissions_assessment_student")
    op.drop_index("ix_questions_assessment_id")
    op.drop_index("ix_assessments_instructor_id")
    op.drop_index("ix_assessments_course_id")

    # reverse order of creation, for foreign keys
    op.drop_table("notification_intents")
    op.drop_table("grading_history")
    op.drop_table("submission_answers")
    op.drop_table("submissions")
    op.drop_table("questions")
    op.drop_table("assessments")
    op.drop_table("courses")
    op.drop_table("users")
