from __future__ import annotations

from datetime import date
from typing import Iterable

from unipilot.models.entities import PlannerEvent, StudentCourse

MIN_PRIORITY = 1
MAX_PRIORITY = 5

RISK_LABELS = {3: "at risk", 2: "needs focus", 1: "good", 0: "excellent"}


def risk_score(mark: float | None) -> int:
    """0 (safe) to 3 (critical). A course with no mark yet sits in the middle at 2."""
    if mark is None:
        return 2
    if mark >= 80:
        return 0
    if mark >= 70:
        return 1
    if mark >= 60:
        return 2
    return 3


def course_risk(course: StudentCourse) -> int:
    return risk_score(course.current_mark)


def risk_label(risk: int) -> str:
    return RISK_LABELS[max(0, min(3, risk))]


def clamp_priority(value: int) -> int:
    return max(MIN_PRIORITY, min(MAX_PRIORITY, int(value)))


def priority_for(course: StudentCourse) -> int:
    """Riskier courses get higher task priority."""
    return clamp_priority(MAX_PRIORITY - course_risk(course))


def nearest_exams(events: Iterable[PlannerEvent]) -> dict[int, date]:
    """Earliest exam start date per linked course."""
    exams: dict[int, date] = {}
    for event in events:
        if event.event_type != "exam" or event.course_id is None:
            continue
        current = exams.get(event.course_id)
        if current is None or event.start_date < current:
            exams[event.course_id] = event.start_date
    return exams


def rank_courses(
    courses: Iterable[StudentCourse], exam_dates: dict[int, date] | None = None
) -> list[StudentCourse]:
    """Sort by risk (highest first), then soonest known exam, then input order.

    Courses without a known exam sort after those with one at the same risk.
    """
    exam_dates = exam_dates or {}

    def key(course: StudentCourse):
        exam = exam_dates.get(course.id)
        return (-course_risk(course), exam is None, exam or date.max)

    return sorted(courses, key=key)


def active_courses(courses: Iterable[StudentCourse]) -> list[StudentCourse]:
    """Courses still in progress; finalized courses are no longer planned for."""
    return [c for c in courses if not c.is_finalized]
