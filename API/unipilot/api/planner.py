"""
Planner API: events and tasks, the daily view, and the risk-ranked planning operations
(generate plan, suggest next, compare, feedback).
"""
from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, Path, Query, Response

from unipilot.api.deps import get_uow, today
from unipilot.core.auth import current_student_id
from unipilot.core.errors import InvalidInputError, NotFoundError
from unipilot.core.logging import DOMAIN_PLANNING, get_domain_logger
from unipilot.models.entities import EVENT_TYPES, TASK_SOURCES, PlannerEvent, PlannerTask
from unipilot.planning.feedback import PlanFeedbackEngine
from unipilot.planning.generator import PlanGenerator
from unipilot.planning.risk import clamp_priority
from unipilot.planning.suggester import NextTaskSuggester
from unipilot.schemas.planner import (
    CompareResponse,
    DailyResponse,
    EventCreateRequest,
    EventResponse,
    EventUpdateRequest,
    FeedbackDetailResponse,
    FeedbackItemResponse,
    FeedbackResponse,
    GeneratePlanRequest,
    GeneratePlanResponse,
    SuggestNextRequest,
    SuggestNextResponse,
    TaskCreateRequest,
    TaskResponse,
    TaskUpdateRequest,
    TaskUpdateResponse,
)
from unipilot.storage.unit_of_work import UnitOfWork

router = APIRouter(prefix="/planner", tags=["planner"])
logger = get_domain_logger(__name__, DOMAIN_PLANNING)

DEFAULT_PRIORITY = 3


async def _check_course_link(uow: UnitOfWork, student_id: int, course_id: int | None) -> None:
    if course_id is None:
        return
    if await uow.courses.get_owned(course_id, student_id) is None:
        raise InvalidInputError("Invalid course")


def _event_type(value: str | None, fallback: str = "study") -> str:
    return value if value in EVENT_TYPES else fallback


def _task_source(value: str | None) -> str:
    return value if value in TASK_SOURCES else "student"


def _task_response(task: PlannerTask | None) -> TaskResponse | None:
    return TaskResponse.model_validate(task) if task is not None else None


# ── Events ────────────────────────────────────────────────────────────────────

@router.get("/events", response_model=list[EventResponse])
async def list_events(student_id: int = Depends(current_student_id), uow: UnitOfWork = Depends(get_uow)):
    return [EventResponse.model_validate(e) for e in await uow.events.list_for_student(student_id)]


@router.post("/events", response_model=EventResponse, status_code=201)
async def create_event(
    payload: EventCreateRequest,
    student_id: int = Depends(current_student_id),
    uow: UnitOfWork = Depends(get_uow),
):
    async with uow:
        await _check_course_link(uow, student_id, payload.course_id)
        start_date = payload.start_date or today()
        end_date = payload.end_date or start_date
        if end_date < start_date:
            raise InvalidInputError("end_date must not be before start_date.")
        event = await uow.events.add(
            PlannerEvent(
                student_id=student_id,
                course_id=payload.course_id,
                title=payload.title.strip() or "Event",
                description=payload.description,
                start_date=start_date,
                end_date=end_date,
                start_time=payload.start_time,
                end_time=payload.end_time,
                event_type=_event_type(payload.event_type),
                completed=False,
            )
        )
        response = EventResponse.model_validate(event)
    return response


@router.get("/events/{event_id}", response_model=EventResponse)
async def get_event(
    event_id: int = Path(ge=1),
    student_id: int = Depends(current_student_id),
    uow: UnitOfWork = Depends(get_uow),
):
    event = await uow.events.get_owned(event_id, student_id)
    if event is None:
        raise NotFoundError()
    return EventResponse.model_validate(event)


@router.patch("/events/{event_id}", response_model=EventResponse)
async def update_event(
    payload: EventUpdateRequest,
    event_id: int = Path(ge=1),
    student_id: int = Depends(current_student_id),
    uow: UnitOfWork = Depends(get_uow),
):
    async with uow:
        event = await uow.events.get_owned(event_id, student_id)
        if event is None:
            raise NotFoundError()
        changes = payload.model_dump(exclude_unset=True)
        if "course_id" in changes:
            await _check_course_link(uow, student_id, payload.course_id)
            event.course_id = payload.course_id
        if "title" in changes:
            event.title = (payload.title or "").strip() or "Event"
        if "description" in changes:
            event.description = payload.description
        for field_name in ("start_date", "end_date", "start_time", "end_time", "completed"):
            if changes.get(field_name) is not None:
                setattr(event, field_name, changes[field_name])
        if "event_type" in changes:
            event.event_type = _event_type(payload.event_type, event.event_type)
        if event.end_date < event.start_date:
            raise InvalidInputError("end_date must not be before start_date.")
        response = EventResponse.model_validate(event)
    return response


@router.delete("/events/{event_id}", status_code=204)
async def delete_event(
    event_id: int = Path(ge=1),
    student_id: int = Depends(current_student_id),
    uow: UnitOfWork = Depends(get_uow),
):
    async with uow:
        event = await uow.events.get_owned(event_id, student_id)
        if event is None:
            raise NotFoundError()
        await uow.events.delete(event)
    return Response(status_code=204)


# ── Tasks ─────────────────────────────────────────────────────────────────────

@router.get("/tasks", response_model=list[TaskResponse])
async def list_tasks(
    day: date | None = Query(default=None, alias="date"),
    student_id: int = Depends(current_student_id),
    uow: UnitOfWork = Depends(get_uow),
):
    if day is not None:
        tasks = await uow.tasks.list_for_day(student_id, day)
    else:
        tasks = await uow.tasks.list_for_student(student_id)
    return [TaskResponse.model_validate(t) for t in tasks]


@router.post("/tasks", response_model=TaskResponse, status_code=201)
async def create_task(
    payload: TaskCreateRequest,
    student_id: int = Depends(current_student_id),
    uow: UnitOfWork = Depends(get_uow),
):
    async with uow:
        await _check_course_link(uow, student_id, payload.course_id)
        task = await uow.tasks.add(
            PlannerTask(
                student_id=student_id,
                course_id=payload.course_id,
                title=payload.title.strip() or "Task",
                due_date=payload.due_date or today(),
                due_time=payload.due_time,
                priority=clamp_priority(payload.priority or DEFAULT_PRIORITY),
                completed=False,
                source=_task_source(payload.source),
                sort_order=await uow.tasks.next_sort_order(student_id),
            )
        )
        response = TaskResponse.model_validate(task)
    return response


@router.patch("/tasks/{task_id}", response_model=TaskUpdateResponse)
async def update_task(
    payload: TaskUpdateRequest,
    task_id: int = Path(ge=1),
    student_id: int = Depends(current_student_id),
    uow: UnitOfWork = Depends(get_uow),
):
    """Update a task. Completing it asks the suggester for the next task on its due date."""
    async with uow:
        task = await uow.tasks.get_owned(task_id, student_id)
        if task is None:
            raise NotFoundError()
        changes = payload.model_dump(exclude_unset=True)
        if "course_id" in changes:
            await _check_course_link(uow, student_id, payload.course_id)
            task.course_id = payload.course_id
        if "title" in changes:
            task.title = (payload.title or "").strip() or "Task"
        if changes.get("due_date") is not None:
            task.due_date = payload.due_date
        if "due_time" in changes:
            task.due_time = payload.due_time
        if "priority" in changes:
            task.priority = clamp_priority(payload.priority or DEFAULT_PRIORITY)

        newly_completed = payload.completed is True and not task.completed
        if payload.completed is not None:
            task.completed = payload.completed

        suggested = None
        if newly_completed:
            suggestion = await NextTaskSuggester(uow.courses, uow.tasks, uow.events).suggest(
                student_id, task.due_date
            )
            suggested = suggestion.task
        response = TaskUpdateResponse(task=TaskResponse.model_validate(task), suggested=_task_response(suggested))
    return response


@router.delete("/tasks/{task_id}", status_code=204)
async def delete_task(
    task_id: int = Path(ge=1),
    student_id: int = Depends(current_student_id),
    uow: UnitOfWork = Depends(get_uow),
):
    async with uow:
        task = await uow.tasks.get_owned(task_id, student_id)
        if task is None:
            raise NotFoundError()
        await uow.tasks.delete(task)
    return Response(status_code=204)


# ── Daily view and planning operations ───────────────────────────────────────

@router.get("/daily", response_model=DailyResponse)
async def daily(
    day: date | None = Query(default=None, alias="date"),
    student_id: int = Depends(current_student_id),
    uow: UnitOfWork = Depends(get_uow),
):
    day = day or today()
    events = await uow.events.list_overlapping(student_id, day, day)
    tasks = await uow.tasks.list_for_day(student_id, day)
    return DailyResponse(
        date=day,
        events=[EventResponse.model_validate(e) for e in events],
        tasks=[TaskResponse.model_validate(t) for t in tasks],
    )


@router.post("/generate-plan", response_model=GeneratePlanResponse, status_code=201)
async def generate_plan(
    payload: GeneratePlanRequest | None = None,
    student_id: int = Depends(current_student_id),
    uow: UnitOfWork = Depends(get_uow),
):
    payload = payload or GeneratePlanRequest()
    from_date = payload.from_date or today()
    async with uow:
        plan = await PlanGenerator(uow.courses, uow.tasks, uow.events).generate(
            student_id, from_date, payload.to_date
        )
        response = GeneratePlanResponse(
            date=plan.day,
            generated=[TaskResponse.model_validate(t) for t in plan.generated],
            exams=plan.exams,
            message="Plan generated based on course priorities (at-risk first).",
        )
    return response


@router.post("/suggest-next", response_model=SuggestNextResponse)
async def suggest_next(
    payload: SuggestNextRequest | None = None,
    day: date | None = Query(default=None, alias="date"),
    student_id: int = Depends(current_student_id),
    uow: UnitOfWork = Depends(get_uow),
):
    target = (payload.date if payload else None) or day or today()
    async with uow:
        suggestion = await NextTaskSuggester(uow.courses, uow.tasks, uow.events).suggest(student_id, target)
        response = SuggestNextResponse(
            suggested=_task_response(suggestion.task),
            kind=suggestion.kind,
            message=suggestion.message,
        )
    return response


@router.get("/compare", response_model=CompareResponse)
async def compare(
    day: date | None = Query(default=None, alias="date"),
    student_id: int = Depends(current_student_id),
    uow: UnitOfWork = Depends(get_uow),
):
    comparison = await PlanFeedbackEngine(uow.courses, uow.tasks, uow.events).compare(student_id, day or today())
    return CompareResponse(
        date=comparison.day,
        app_plan=[TaskResponse.model_validate(t) for t in comparison.app_plan],
        student_plan=[TaskResponse.model_validate(t) for t in comparison.student_plan],
    )


@router.get("/feedback", response_model=FeedbackResponse)
async def feedback(
    day: date | None = Query(default=None, alias="date"),
    student_id: int = Depends(current_student_id),
    uow: UnitOfWork = Depends(get_uow),
):
    review = await PlanFeedbackEngine(uow.courses, uow.tasks, uow.events).review(student_id, day or today())
    return FeedbackResponse(
        date=review.day,
        summary=review.summary,
        completed_count=review.completed_count,
        total_count=review.total_count,
        completion_ratio=review.completion_ratio,
        feedback=[FeedbackItemResponse(**vars(item)) for item in review.feedback],
        details=[FeedbackDetailResponse(**vars(detail)) for detail in review.details],
        at_risk_courses=review.at_risk_courses,
        recommended_order=review.recommended_order,
        student_order=review.student_order,
    )
