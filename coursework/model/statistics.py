from .assessment import AssessmentKind
from .base import BaseModel
from .id import AssessmentID


class AssessmentStatistics(BaseModel):
    total_submissions: int = 0
    average_score: float = 0.0
    average_percentage: float = 0.0
    pass_rate: float = 0.0
    average_time_spent: float = 0.0


class InstructorAssessmentSummary(BaseModel):
    assessment_id: AssessmentID
    title: str
    kind: AssessmentKind
    total_points: float
    total_submissions: int
    average_score: float
    completion_rate: float


class InstructorStatistics(BaseModel):
    total_assessments: int
    total_submissions: int
    assessments: list[InstructorAssessmentSummary]


class GradeBand(BaseModel):
    label: str
    count: int


class GradeStatistics(BaseModel):
    total_submissions: int
    graded_count: int
    pending_count: int
    late_count: int
    average_grade: float
    highest_grade: float
    lowest_grade: float
    distribution: list[GradeBand]
