__all__ = [
    # Base
    "BaseModel",
    "WithCtime",
    "WithMtime",
    "WithTimestamps",
    # Enums
    "DeploymentEnvironment",
    # ID Types
    "AssessmentID",
    "CourseID",
    "GradingHistoryID",
    "NotificationID",
    "QuestionID",
    "SubmissionID",
    "UserID",
    # Users & courses
    "Course",
    "User",
    "UserRole",
    # Assessments
    "Assessment",
    "AssessmentKind",
    "AssessmentWithQuestions",
    # Questions & answers
    "Answer",
    "AnswerKey",
    "ChoiceKey",
    "ChoiceResponse",
    "ManualKey",
    "MultiSelectKey",
    "MultiSelectResponse",
    "Question",
    "QuestionDraft",
    "QuestionKind",
    "Response",
    "TextResponse",
    # Submissions
    "PendingStatuses",
    "Submission",
    "SubmissionStatus",
    "SubmissionWithAnswers",
    "SubmittedAnswer",
    # Grading
    "BulkGradeEntry",
    "BulkGradeEntryResult",
    "BulkGradeOutcome",
    "BulkGradeStats",
    "GradingHistoryEntry",
    "GradingSheet",
    "GradingSheetAssessment",
    "GradingSheetRow",
    "GradingSheetStats",
    "GradingSheetStudent",
    "ScoreResult",
    # Statistics
    "AssessmentStatistics",
    "GradeBand",
    "GradeStatistics",
    "InstructorAssessmentSummary",
    "InstructorStatistics",
    # Notifications
    "NotificationIntent",
]

from .assessment import Assessment, AssessmentKind, AssessmentWithQuestions
from .base import BaseModel, WithCtime, WithMtime, WithTimestamps
from .course import Course
from .enum import DeploymentEnvironment
from .grading import BulkGradeEntry, BulkGradeEntryResult, BulkGradeOutcome, BulkGradeStats, GradingHistoryEntry, \
    GradingSheet, GradingSheetAssessment, GradingSheetRow, GradingSheetStats, GradingSheetStudent, ScoreResult
from .id import AssessmentID, CourseID, GradingHistoryID, NotificationID, QuestionID, SubmissionID, UserID
from .notification import NotificationIntent
from .question import Answer, AnswerKey, ChoiceKey, ChoiceResponse, ManualKey, MultiSelectKey, MultiSelectResponse, \
    Question, QuestionDraft, QuestionKind, Response, TextResponse
from .statistics import AssessmentStatistics, GradeBand, GradeStatistics, InstructorAssessmentSummary, \
    InstructorStatistics
from .submission import PendingStatuses, Submission, SubmissionStatus, SubmissionWithAnswers, SubmittedAnswer
from .user import User, UserRole
