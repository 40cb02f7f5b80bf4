import datetime as dt

from pydantic import BaseModel, ConfigDict, Field


class EventCreateRequest(BaseModel):
    course_id: int | None = None
    title: str = Field(default="", max_length=255)
    description: str | None = None
    start_date: dt.date | None = None
    end_date: dt.date | None = None
    start_time: dt.time = dt.time(9, 0)
    end_time: dt.time = dt.time(11, 0)
    event_type: str = "study"


class EventUpdateRequest(BaseModel):
    course_id: int | None = None
    title: str | None = Field(default=None, max_length=255)
    description: str | None = None
    start_date: dt.date | None = None
    end_date: dt.date | None = None
    start_time: dt.time | None = None
    end_time: dt.time | None = None
    event_type: str | None = None
    completed: bool | None = None


class EventResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    course_id: int | None
    title: str
    description: str | None
    start_date: dt.date
    end_date: dt.date
    start_time: dt.time
    end_time: dt.time
    event_type: str
    completed: bool
    created_at: dt.datetime | None = None


class TaskCreateRequest(BaseModel):
    course_id: int | None = None
    title: str = Field(default="", max_length=255)
    due_date: dt.date | None = None
    due_time: dt.time | None = None
    priority: int | None = None
    source: str = "student"


class TaskUpdateRequest(BaseModel):
    course_id: int | None = None
    title: str | None = Field(default=None, max_length=255)
    due_date: dt.date | None = None
    due_time: dt.time | None = None
    priority: int | None = None
    completed: bool | None = None


class TaskResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    course_id: int | None
    title: str
    due_date: dt.date
    due_time: dt.time | None
    priority: int
    completed: bool
    source: str
    sort_order: int
    created_at: dt.datetime | None = None


class TaskUpdateResponse(BaseModel):
    task: TaskResponse
    suggested: TaskResponse | None = None


class DailyResponse(BaseModel):
    date: dt.date
    events: list[EventResponse]
    tasks: list[TaskResponse]


class GeneratePlanRequest(BaseModel):
    from_date: dt.date | None = None
    to_date: dt.date | None = None


class GeneratePlanResponse(BaseModel):
    date: dt.date
    generated: list[TaskResponse]
    exams: dict[int, dt.date]
    message: str


class SuggestNextRequest(BaseModel):
    date: dt.date | None = None


class SuggestNextResponse(BaseModel):
    suggested: TaskResponse | None
    kind: str | None
    message: str


class CompareResponse(BaseModel):
    date: dt.date
    app_plan: list[TaskResponse]
    student_plan: list[TaskResponse]


class FeedbackItemResponse(BaseModel):
    type: str
    recommendation: str
    reason: str | None = None
    course_id: int | None = None
    course_name: str | None = None


class FeedbackDetailResponse(BaseModel):
    title: str
    body: str


class FeedbackResponse(BaseModel):
    date: dt.date
    summary: str
    completed_count: int
    total_count: int
    completion_ratio: float
    feedback: list[FeedbackItemResponse]
    details: list[FeedbackDetailResponse]
    at_risk_courses: list[dict]
    recommended_order: list[int]
    student_order: list[int]
