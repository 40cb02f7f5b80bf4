from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class CourseCreateRequest(BaseModel):
    catalog_course_id: int | None = None
    course_name: str | None = Field(default=None, max_length=255)
    course_code: str = Field(default="", max_length=64)
    credit_hours: float = Field(default=3, ge=0)
    semester: str | None = Field(default=None, max_length=64)


class CourseResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    catalog_course_id: int | None
    course_name: str
    course_code: str
    credit_hours: float
    semester: str | None
    current_mark: float | None
    finalized_at: datetime | None
    passed: bool | None
    status: str
    state: str


class GradeCreateRequest(BaseModel):
    item_type: str = Field(default="quiz", max_length=32)
    title: str = Field(default="Grade", max_length=255)
    score: float = Field(default=0.0, ge=0)
    max_score: float = Field(default=100.0, gt=0)
    weight: float = Field(default=0.0, ge=0, le=100)


class GradeUpdateRequest(BaseModel):
    item_type: str | None = Field(default=None, max_length=32)
    title: str | None = Field(default=None, max_length=255)
    score: float | None = Field(default=None, ge=0)
    max_score: float | None = Field(default=None, gt=0)
    weight: float | None = Field(default=None, ge=0, le=100)


class GradeResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    course_id: int
    item_type: str
    title: str
    score: float
    max_score: float
    weight: float
    created_at: datetime | None = None


class GradeMutationResponse(BaseModel):
    grade: GradeResponse | None
    course_mark: float | None
    finalized: bool
    passed: bool | None


class FinalizeResponse(BaseModel):
    finalized: bool
    already: bool
    passed: bool | None


class NoteResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    course_id: int | None
    course_name: str | None = None
    content: str
    note_type: str
    created_at: datetime | None = None


class CourseStatus(BaseModel):
    id: int
    course_name: str
    course_code: str
    credit_hours: float
    current_mark: float | None
    letter: str | None
    gpa_points: float | None
    grade_status: str
    finalized_at: datetime | None
    passed: bool | None


class DashboardSummaryResponse(BaseModel):
    courses_count: int
    cgpa: float
    cumulative_percent: float
    record_cgpa: float
    record_cumulative_percent: float
    semester_gpa: float
    semester_percent: float
    credits_completed: float
    credits_carried: float
    credits_current: float
    completed_courses: list[dict]
    carried_courses: list[dict]
    courses: list[CourseStatus]
