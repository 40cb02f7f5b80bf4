"""
Plan feedback: critiques a student's own day plan against the risk-optimal order.

The engine reads one day's events and tasks, the nearest upcoming exam per
course and every active course's risk, then produces discrete feedback items
(machine-usable), titled detail sections and a one-paragraph summary.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date

from unipilot.core.logging import DOMAIN_PLANNING, get_domain_logger
from unipilot.models.entities import PlannerTask, StudentCourse
from unipilot.planning.risk import active_courses, course_risk, nearest_exams, rank_courses, risk_label
from unipilot.storage.repositories import CourseRepository, EventRepository, TaskRepository

logger = get_domain_logger(__name__, DOMAIN_PLANNING)

FOCUS_RISK = 2


@dataclass
class FeedbackItem:
    type: str  # "priority" | "exam"
    recommendation: str
    reason: str | None = None
    course_id: int | None = None
    course_name: str | None = None


@dataclass
class FeedbackDetail:
    title: str
    body: str


@dataclass
class PlanFeedback:
    day: date
    summary: str
    completed_count: int
    total_count: int
    completion_ratio: float
    feedback: list[FeedbackItem] = field(default_factory=list)
    details: list[FeedbackDetail] = field(default_factory=list)
    at_risk_courses: list[dict] = field(default_factory=list)
    recommended_order: list[int] = field(default_factory=list)
    student_order: list[int] = field(default_factory=list)


@dataclass
class PlanComparison:
    day: date
    app_plan: list[PlannerTask]
    student_plan: list[PlannerTask]


def _mark_text(mark: float | None) -> str:
    return f"{round(float(mark), 2):g}%" if mark is not None else "not set"


def _ordering_reason(
    first: StudentCourse, chosen: StudentCourse | None, exam_dates: dict[int, date]
) -> str | None:
    """Why ``first`` should come before the course the student started with, if anything concrete."""
    chosen_risk = course_risk(chosen) if chosen is not None else -1
    if course_risk(first) > chosen_risk:
        return f'"{first.course_name}" is more critical (lower or missing mark).'
    first_exam = exam_dates.get(first.id)
    chosen_exam = exam_dates.get(chosen.id) if chosen is not None else None
    if first_exam is not None and (chosen_exam is None or first_exam < chosen_exam):
        return f'The exam for "{first.course_name}" is sooner ({first_exam.isoformat()}).'
    return None


class PlanFeedbackEngine:
    def __init__(self, courses: CourseRepository, tasks: TaskRepository, events: EventRepository):
        self.courses = courses
        self.tasks = tasks
        self.events = events

    async def compare(self, student_id: int, day: date) -> PlanComparison:
        tasks = await self.tasks.list_for_day(student_id, day)
        return PlanComparison(
            day=day,
            app_plan=[t for t in tasks if t.source == "app"],
            student_plan=[t for t in tasks if t.source == "student"],
        )

    async def review(self, student_id: int, day: date) -> PlanFeedback:
        courses = active_courses(await self.courses.list_for_student(student_id))
        by_id = {c.id: c for c in courses}
        day_events = await self.events.list_overlapping(student_id, day, day)
        exam_dates = {
            course_id: exam_day
            for course_id, exam_day in nearest_exams(await self.events.list_exams_from(student_id, day)).items()
            if course_id in by_id
        }
        tasks = await self.tasks.list_for_day(student_id, day)
        student_tasks = [t for t in tasks if t.source == "student"]

        total = len(tasks)
        completed = sum(1 for t in tasks if t.completed)
        feedback: list[FeedbackItem] = []
        details: list[FeedbackDetail] = []

        if total > 0:
            percent = round(completed / total * 100)
            tail = (
                " Well done! Your plan for the day is complete."
                if completed >= total
                else f" {total - completed} task(s) remaining."
            )
            details.append(
                FeedbackDetail(
                    title="Task progress",
                    body=f"You completed {completed} of {total} tasks for this day ({percent}%).{tail}",
                )
            )

        at_risk = [c for c in courses if course_risk(c) >= FOCUS_RISK]
        if at_risk:
            details.append(
                FeedbackDetail(
                    title="Courses that need focus",
                    body=" ".join(
                        f'"{c.course_name}" (current mark: {_mark_text(c.current_mark)}, {risk_label(course_risk(c))}).'
                        for c in at_risk
                    ),
                )
            )

        student_order: list[int] = []
        for task in student_tasks:
            if task.course_id in by_id and task.course_id not in student_order:
                student_order.append(task.course_id)
        recommended = rank_courses([by_id[cid] for cid in student_order], exam_dates)

        if len(recommended) >= 2:
            first = recommended[0]
            if student_order[0] != first.id:
                reason = _ordering_reason(first, by_id.get(student_order[0]), exam_dates)
            else:
                reason = None
            if reason:
                feedback.append(
                    FeedbackItem(
                        type="priority",
                        course_id=first.id,
                        course_name=first.course_name,
                        reason=reason,
                        recommendation=f'We recommend starting with "{first.course_name}" first.',
                    )
                )
                details.append(
                    FeedbackDetail(
                        title="Priority order",
                        body=f"{reason} We recommend starting with this course first.",
                    )
                )
            else:
                details.append(
                    FeedbackDetail(
                        title="Priority order",
                        body="Your order makes sense: you started with the highest-priority course. Keep it up.",
                    )
                )

        if exam_dates:
            names = ", ".join(
                f"{by_id[cid].course_name} ({exam_day.isoformat()})"
                for cid, exam_day in sorted(exam_dates.items(), key=lambda kv: (kv[1], kv[0]))
            )
            feedback.append(
                FeedbackItem(
                    type="exam",
                    recommendation=f"You have upcoming exams: {names}. Prepare according to how close each date is.",
                )
            )
            details.append(
                FeedbackDetail(
                    title="Upcoming exams",
                    body=f"You have exams on: {names}. Set aside review time before each date.",
                )
            )

        if day_events:
            details.append(
                FeedbackDetail(
                    title="Today's events",
                    body=f"You have {len(day_events)} event(s) today. Balance your time between events and tasks.",
                )
            )

        if not details and total == 0:
            details.append(
                FeedbackDetail(
                    title="No tasks for this day",
                    body="No tasks or events for this day. Add an event or generate a smart plan to get started.",
                )
            )

        if feedback:
            summary = " ".join(item.recommendation or item.reason or "" for item in feedback).strip()
        elif total > 0:
            summary = (
                "Well done! Today's tasks are complete. You can ask for extra tasks once the suggested ones are done."
                if completed >= total
                else "Your plan looks good. Work through the tasks by priority."
            )
        elif day_events:
            summary = "Balance your time around today's events and add review tasks for your priority courses."
        else:
            summary = "No tasks or events for this day. Generate a smart plan to get started."

        logger.info(
            "Plan feedback | student_id=%s day=%s tasks=%s completed=%s feedback_items=%s",
            student_id,
            day.isoformat(),
            total,
            completed,
            len(feedback),
        )
        return PlanFeedback(
            day=day,
            summary=summary,
            completed_count=completed,
            total_count=total,
            completion_ratio=(completed / total) if total else 0.0,
            feedback=feedback,
            details=details,
            at_risk_courses=[
                {
                    "course_id": c.id,
                    "course_name": c.course_name,
                    "mark": c.current_mark,
                    "risk": course_risk(c),
                }
                for c in at_risk
            ],
            recommended_order=[c.id for c in recommended],
            student_order=student_order,
        )
