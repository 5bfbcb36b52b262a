"""Grading sheets: export an assessment's submissions for offline grading and read the grades back.

The CSV form is a round trip: instructors fill in the blank "New Grade" column (and
optionally "Feedback") and the file is read back into bulk-grade entries.
"""

from __future__ import annotations

import io
import re
import typing as t

import pandas as pd
import pydantic as p
from sqlalchemy.orm import Session

from coursework.core import di
from coursework.model import AssessmentID, BulkGradeEntry, GradingSheet, GradingSheetAssessment, GradingSheetRow, \
    GradingSheetStats, GradingSheetStudent, PendingStatuses, SubmissionStatus, User
from coursework.storage import submission as submission_storage

from . import assessment as assessment_service
from .errors import ValidationError

ExportStatuses = frozenset({
    SubmissionStatus.Submitted,
    SubmissionStatus.Resubmitted,
    SubmissionStatus.Graded,
    SubmissionStatus.Returned,
})

SubmissionIDColumn = "Submission ID"
NewGradeColumn = "New Grade"
FeedbackColumn = "Feedback"
Columns = (
    SubmissionIDColumn,
    "Student Name",
    "Student Email",
    "Current Grade",
    NewGradeColumn,
    FeedbackColumn,
    "Status",
    "Submitted At",
    "Is Late",
    "Days Late",
)


def sheet(
    user: User,
    assessment_id: AssessmentID,
    *,
    session: Session = di.Provide["storage.persistent.session"],
) -> GradingSheet:
    """Submissions awaiting or having received a grade, ordered by student name."""
    assessment = assessment_service.load(assessment_id, session=session)
    assessment_service.authorize(user, assessment, session=session)

    rows = [
        GradingSheetRow(
            submission_id=submission.submission_id,
            student=GradingSheetStudent(user_id=student.user_id, name=student.name, email=student.email),
            current_grade=submission.grade,
            feedback=submission.feedback,
            status=submission.status,
            submitted_at=submission.submitted_at,
            is_late=submission.is_late,
            days_late=submission.days_late,
            max_points=assessment.total_points,
        )
        for submission, student in submission_storage.find_with_students(
            assessment_id=assessment_id, statuses=ExportStatuses, session=session
        )
    ]
    return GradingSheet(
        assessment=GradingSheetAssessment(
            assessment_id=assessment.assessment_id,
            title=assessment.title,
            total_points=assessment.total_points,
            late_penalty_percent_per_day=assessment.late_penalty_percent_per_day,
        ),
        submissions=rows,
        stats=GradingSheetStats(
            total=len(rows),
            graded=sum(1 for r in rows if r.status is SubmissionStatus.Graded),
            pending=sum(1 for r in rows if r.status in PendingStatuses),
            late=sum(1 for r in rows if r.is_late),
        ),
    )


def to_frame(gs: GradingSheet) -> pd.DataFrame:
    return pd.DataFrame(
        [
            {
                SubmissionIDColumn: str(r.submission_id),
                "Student Name": r.student.name,
                "Student Email": r.student.email,
                "Current Grade": "" if r.current_grade is None else r.current_grade,
                NewGradeColumn: "",
                FeedbackColumn: r.feedback or "",
                "Status": r.status.value.upper(),
                "Submitted At": r.submitted_at.isoformat(),
                "Is Late": "Yes" if r.is_late else "No",
                "Days Late": r.days_late,
            }
            for r in gs.submissions
        ],
        columns=list(Columns),
    )


def to_csv(gs: GradingSheet) -> str:
    return to_frame(gs).to_csv(index=False)


def filename(gs: GradingSheet) -> str:
    slug = re.sub(r"[^a-zA-Z0-9]", "-", gs.assessment.title)
    return f"bulk-grading-{slug}.csv"


def read_csv(source: str | t.IO[str] | t.IO[bytes]) -> list[BulkGradeEntry]:
    """Read a filled-in grading sheet into bulk-grade entries.

    Rows with an empty "New Grade" are skipped. Only the submission ID, new grade and
    feedback columns are read; the rest of the sheet is informational.

    Raises:
        ValidationError: If a required column is missing or a row cannot be read
    """
    if isinstance(source, str):
        source = io.StringIO(source)
    try:
        df = pd.read_csv(source, dtype=str, keep_default_na=False)
    except (pd.errors.ParserError, pd.errors.EmptyDataError, UnicodeDecodeError) as e:
        raise ValidationError(f"Could not read grading sheet: {e}") from e

    missing = [c for c in (SubmissionIDColumn, NewGradeColumn) if c not in df.columns]
    if missing:
        raise ValidationError(f"Missing required columns: {', '.join(missing)}")
    if FeedbackColumn not in df.columns:
        df[FeedbackColumn] = ""

    entries: list[BulkGradeEntry] = []
    # header is line 1
    for line, row in enumerate(df[[SubmissionIDColumn, NewGradeColumn, FeedbackColumn]].itertuples(index=False), 2):
        submission_id, grade, feedback = (str(v).strip() for v in row)
        if not grade:
            continue
        try:
            entries.append(BulkGradeEntry(submission_id=submission_id, grade=grade, feedback=feedback or None))
        except p.ValidationError as e:
            raise ValidationError(f"Line {line}: {e.errors()[0]['msg']}") from e
    return entries
