"""
Next-task suggester: proposes at most one new app task per call.

Courses are walked in risk order and the first match wins:
- no app task on the day yet: a review task;
- every app task on the day completed: an extra-practice task.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date

from unipilot.core.logging import DOMAIN_PLANNING, get_domain_logger
from unipilot.models.entities import PlannerTask
from unipilot.planning.generator import app_task, extra_practice_title, review_title
from unipilot.planning.risk import active_courses, nearest_exams, rank_courses
from unipilot.storage.repositories import CourseRepository, EventRepository, TaskRepository

logger = get_domain_logger(__name__, DOMAIN_PLANNING)

KIND_REVIEW = "review"
KIND_EXTRA_PRACTICE = "extra_practice"


@dataclass
class Suggestion:
    task: PlannerTask | None
    kind: str | None
    message: str


class NextTaskSuggester:
    def __init__(self, courses: CourseRepository, tasks: TaskRepository, events: EventRepository):
        self.courses = courses
        self.tasks = tasks
        self.events = events

    async def suggest(self, student_id: int, day: date) -> Suggestion:
        courses = active_courses(await self.courses.list_for_student(student_id))
        exams = nearest_exams(await self.events.list_exams_from(student_id, day))

        app_by_course: dict[int, list[PlannerTask]] = {}
        for task in await self.tasks.list_for_day(student_id, day):
            if task.source == "app" and task.course_id is not None:
                app_by_course.setdefault(task.course_id, []).append(task)

        for course in rank_courses(courses, exams):
            app_tasks = app_by_course.get(course.id, [])
            if not app_tasks:
                kind, title, message = KIND_REVIEW, review_title(course), "New task suggested."
            elif all(t.completed for t in app_tasks):
                kind, title, message = KIND_EXTRA_PRACTICE, extra_practice_title(course), "Follow-up task suggested."
            else:
                continue
            sort_order = await self.tasks.next_sort_order(student_id)
            task = await self.tasks.add(app_task(student_id, course, day, title, sort_order))
            logger.info(
                "Task suggested | student_id=%s course_id=%s day=%s kind=%s",
                student_id,
                course.id,
                day.isoformat(),
                kind,
            )
            return Suggestion(task=task, kind=kind, message=message)

        return Suggestion(task=None, kind=None, message="No new suggestion for now.")
