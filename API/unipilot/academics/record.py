"""
Academic record aggregation.

The record is a running, credit-weighted mean: each finalized course folds
into the stored aggregate once, and history is never rescanned. Failed
courses only add to carried credits; they contribute no grade-point term.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone

from unipilot.academics.grading import mark_to_letter, mark_to_points
from unipilot.core.logging import DOMAIN_RECORD, get_domain_logger
from unipilot.models.entities import AcademicRecord, StudentCourse
from unipilot.storage.repositories import AcademicRecordRepository

logger = get_domain_logger(__name__, DOMAIN_RECORD)


def incremental_mean(old_mean: float, old_weight: float, value: float, weight: float) -> float:
    """Fold ``value`` with ``weight`` into a mean that currently covers ``old_weight``."""
    total = old_weight + weight
    if total <= 0:
        return old_mean
    return (old_mean * old_weight + value * weight) / total


class AcademicRecordAggregator:
    def __init__(self, records: AcademicRecordRepository):
        self.records = records

    async def get_or_create(self, student_id: int) -> AcademicRecord:
        record = await self.records.get_for_student(student_id, for_update=True)
        if record is None:
            record = await self.records.add(
                AcademicRecord(
                    student_id=student_id,
                    cgpa=0.0,
                    cumulative_percent=0.0,
                    total_credits_completed=0.0,
                    total_credits_carried=0.0,
                )
            )
            logger.info("Created academic record | student_id=%s", student_id)
        return record

    async def apply_finalized(self, course: StudentCourse, mark: float) -> AcademicRecord | None:
        """Credit one finalized course into the student's record.

        Must be called at most once per course; the finalizer guarantees that.
        Courses without positive credit hours leave the record untouched.
        """
        hours = float(course.credit_hours or 0.0)
        if hours <= 0:
            logger.info("Skipping aggregation for zero-credit course | course_id=%s", course.id)
            return None

        record = await self.get_or_create(course.student_id)
        completed = float(record.total_credits_completed or 0.0)
        if course.passed:
            points = mark_to_points(mark)
            record.cgpa = incremental_mean(float(record.cgpa or 0.0), completed, points, hours)
            record.cumulative_percent = incremental_mean(
                float(record.cumulative_percent or 0.0), completed, float(mark), hours
            )
            record.total_credits_completed = completed + hours
        else:
            record.total_credits_carried = float(record.total_credits_carried or 0.0) + hours
        record.updated_at = datetime.now(timezone.utc)

        logger.info(
            "Academic record updated | student_id=%s course_id=%s passed=%s cgpa=%.3f completed=%s carried=%s",
            course.student_id,
            course.id,
            course.passed,
            record.cgpa,
            record.total_credits_completed,
            record.total_credits_carried,
        )
        return record


# ── Read-only snapshot for dashboards ────────────────────────────────────────

@dataclass
class RecordSnapshot:
    cgpa: float
    cumulative_percent: float
    record_cgpa: float
    record_cumulative_percent: float
    semester_gpa: float
    semester_percent: float
    credits_completed: float
    credits_carried: float
    credits_current: float
    completed_courses: list[dict] = field(default_factory=list)
    carried_courses: list[dict] = field(default_factory=list)


def _course_outcome(course: StudentCourse) -> dict:
    mark = course.current_mark
    return {
        "course_id": course.id,
        "course_name": course.course_name,
        "course_code": course.course_code,
        "percent": mark,
        "gpa_points": mark_to_points(mark) if mark is not None else None,
        "letter_grade": mark_to_letter(mark) if mark is not None else None,
    }


def semester_averages(courses: list[StudentCourse]) -> tuple[float, float]:
    """Credit-weighted grade points and percent over courses that have a mark."""
    points_sum = percent_sum = hours_sum = 0.0
    for course in courses:
        hours = float(course.credit_hours or 0.0)
        if course.current_mark is None or hours <= 0:
            continue
        points_sum += mark_to_points(course.current_mark) * hours
        percent_sum += float(course.current_mark) * hours
        hours_sum += hours
    if hours_sum <= 0:
        return 0.0, 0.0
    return points_sum / hours_sum, percent_sum / hours_sum


def build_snapshot(record: AcademicRecord | None, courses: list[StudentCourse]) -> RecordSnapshot:
    """Project the stored record forward with the in-progress semester folded in."""
    cgpa = float(record.cgpa or 0.0) if record else 0.0
    cum_percent = float(record.cumulative_percent or 0.0) if record else 0.0
    completed = float(record.total_credits_completed or 0.0) if record else 0.0
    carried = float(record.total_credits_carried or 0.0) if record else 0.0

    current = [c for c in courses if not c.is_finalized]
    semester_gpa, semester_percent = semester_averages(current)
    credits_current = sum(float(c.credit_hours or 0.0) for c in current)
    graded_hours = sum(
        float(c.credit_hours or 0.0) for c in current if c.current_mark is not None and (c.credit_hours or 0) > 0
    )

    return RecordSnapshot(
        cgpa=incremental_mean(cgpa, completed, semester_gpa, graded_hours),
        cumulative_percent=incremental_mean(cum_percent, completed, semester_percent, graded_hours),
        record_cgpa=cgpa,
        record_cumulative_percent=cum_percent,
        semester_gpa=semester_gpa,
        semester_percent=semester_percent,
        credits_completed=completed,
        credits_carried=carried,
        credits_current=credits_current,
        completed_courses=[_course_outcome(c) for c in courses if c.is_finalized and c.passed],
        carried_courses=[_course_outcome(c) for c in courses if c.is_finalized and c.passed is False],
    )
