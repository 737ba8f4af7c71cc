"""Data models for the Student Journey Analyzer."""

from datetime import date
from typing import Optional, Dict, List, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator


COMPLETED = 'Completed'
DROPPED = 'Dropped'
IN_PROGRESS = 'In Progress'

RiskLevel = Literal['all', 'high', 'medium', 'low']


class StudentRecord(BaseModel):
    """One student's enrollment in one course."""
    model_config = ConfigDict(frozen=True)

    student_id: str
    program: str = ''
    enrollment_date: str = ''
    registration_date: str = ''
    course_id: str = ''
    course_name: str = ''
    course_category: str = ''
    course_start_date: str = ''
    course_end_date: str = ''
    grade: str = ''
    completion_status: str = ''
    attendance_rate: float = 0.0
    advisor_id: str = ''
    advisor_meeting_count: float = 0.0
    support_ticket_count: float = 0.0
    gpa_at_time: float = 0.0
    credits_earned: float = 0.0
    total_credits_required: float = 0.0


RECORD_FIELDS: List[str] = list(StudentRecord.model_fields)


class DateRange(BaseModel):
    """Inclusive enrollment date window. Only active when both ends are set."""
    model_config = ConfigDict(frozen=True)

    start: Optional[date] = None
    end: Optional[date] = None

    @field_validator('start', 'end', mode='before')
    @classmethod
    def _blank_is_unset(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @property
    def is_active(self) -> bool:
        return self.start is not None and self.end is not None


class FilterSpec(BaseModel):
    """User-selected constraints applied before aggregation."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    programs: List[str] = Field(default_factory=list)
    advisors: List[str] = Field(default_factory=list)
    date_range: DateRange = Field(default_factory=DateRange, alias='dateRange')
    risk_level: RiskLevel = Field(default='all', alias='riskLevel')


class SummaryStats(BaseModel):
    """Headline statistics for a filtered record set.

    Student counts and the completion/dropout rates are computed over distinct
    student ids. Average GPA and attendance are row-weighted.
    """
    model_config = ConfigDict(populate_by_name=True)

    total_students: int = Field(0, alias='totalStudents')
    completed_students: int = Field(0, alias='completedStudents')
    dropped_students: int = Field(0, alias='droppedStudents')
    completion_rate: float = Field(0.0, alias='completionRate')
    dropout_rate: float = Field(0.0, alias='dropoutRate')
    average_gpa: float = Field(0.0, alias='averageGPA')
    average_attendance: float = Field(0.0, alias='averageAttendance')


class ProcessedResult(BaseModel):
    """Output of one pipeline run."""
    model_config = ConfigDict(populate_by_name=True)

    students: List[StudentRecord]
    summary: SummaryStats
    risk_scores: Dict[str, float] = Field(default_factory=dict, alias='riskScores')


class FilterOptions(BaseModel):
    """Distinct values available for the program and advisor filters."""
    programs: List[str]
    advisors: List[str]


class UploadResponse(BaseModel):
    """Response from file upload endpoint."""
    success: bool
    message: str
    record_count: int
    student_count: int
    options: FilterOptions


class EmailDraftRequest(BaseModel):
    """Request for an outreach email draft."""
    student_id: str


class EmailDraftResponse(BaseModel):
    """Email draft response."""
    subject: str
    body: str
    risk_score: float
    risk_level: str
