"""
Plan generator: one app-sourced review task per active course for a day, riskiest first.

Re-running on unchanged input inserts nothing: a course that already has an
app task on the anchor date is skipped.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date

from unipilot.core.errors import InvalidInputError
from unipilot.core.logging import DOMAIN_PLANNING, get_domain_logger
from unipilot.models.entities import PlannerTask, StudentCourse
from unipilot.planning.risk import active_courses, nearest_exams, priority_for, rank_courses
from unipilot.storage.repositories import CourseRepository, EventRepository, TaskRepository

logger = get_domain_logger(__name__, DOMAIN_PLANNING)


def review_title(course: StudentCourse) -> str:
    return f"Review: {course.course_name}"


def extra_practice_title(course: StudentCourse) -> str:
    return f"Extra practice: {course.course_name}"


def app_task(student_id: int, course: StudentCourse, day: date, title: str, sort_order: int) -> PlannerTask:
    return PlannerTask(
        student_id=student_id,
        course_id=course.id,
        title=title,
        due_date=day,
        due_time=None,
        priority=priority_for(course),
        completed=False,
        source="app",
        sort_order=sort_order,
    )


@dataclass
class GeneratedPlan:
    day: date
    generated: list[PlannerTask] = field(default_factory=list)
    # Exam dates inside the range, per course. Context only: they do not
    # change the generated titles or dates.
    exams: dict[int, date] = field(default_factory=dict)


class PlanGenerator:
    def __init__(self, courses: CourseRepository, tasks: TaskRepository, events: EventRepository):
        self.courses = courses
        self.tasks = tasks
        self.events = events

    async def generate(self, student_id: int, from_date: date, to_date: date | None = None) -> GeneratedPlan:
        to_date = to_date or from_date
        if to_date < from_date:
            raise InvalidInputError("to_date must not be before from_date.")

        courses = active_courses(await self.courses.list_for_student(student_id))
        exams = nearest_exams(await self.events.list_overlapping(student_id, from_date, to_date))
        ranked = rank_courses(courses, exams)

        day = from_date
        planned = {
            t.course_id for t in await self.tasks.list_for_day(student_id, day) if t.source == "app"
        }
        plan = GeneratedPlan(day=day, exams=exams)
        sort_order = await self.tasks.next_sort_order(student_id)
        for course in ranked:
            if course.id in planned:
                continue
            task = await self.tasks.add(app_task(student_id, course, day, review_title(course), sort_order))
            sort_order += 1
            plan.generated.append(task)

        logger.info(
            "Plan generated | student_id=%s day=%s courses=%s generated=%s",
            student_id,
            day.isoformat(),
            len(ranked),
            len(plan.generated),
        )
        return plan
