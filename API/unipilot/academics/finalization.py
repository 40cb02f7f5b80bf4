"""
Course finalizer: the in_progress → finalized_passed | finalized_failed transition.

Two triggers share one finalize action:
- automatic, after a grade mutation, once item weights reach the threshold
  and a mark exists;
- manual, on request, whenever a mark exists (partial weight is fine).

``finalized_at`` is written once. Re-finalizing reports ``already=True`` and
changes nothing, which is what keeps the record aggregation at-most-once.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable

from unipilot.academics.grading import compute_mark, total_weight
from unipilot.academics.record import AcademicRecordAggregator
from unipilot.core.errors import InvalidStateError
from unipilot.core.logging import DOMAIN_GRADES, get_domain_logger
from unipilot.core.settings import settings
from unipilot.models.entities import StudentCourse
from unipilot.storage.repositories import GradeItemRepository

logger = get_domain_logger(__name__, DOMAIN_GRADES)

IN_PROGRESS = "in_progress"
FINALIZED_PASSED = "finalized_passed"
FINALIZED_FAILED = "finalized_failed"

NEEDS_GRADE_MESSAGE = "Enter at least one grade before marking the course as finished."


def course_state(course: StudentCourse) -> str:
    if course.finalized_at is None:
        return IN_PROGRESS
    return FINALIZED_PASSED if course.passed else FINALIZED_FAILED


def is_passing(mark: float) -> bool:
    return float(mark) >= settings.pass_mark


@dataclass
class FinalizeOutcome:
    finalized: bool
    already: bool
    passed: bool | None
    trigger: str | None = None


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CourseFinalizer:
    def __init__(
        self,
        grades: GradeItemRepository,
        aggregator: AcademicRecordAggregator,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.grades = grades
        self.aggregator = aggregator
        self.clock = clock

    async def maybe_finalize(self, course: StudentCourse) -> FinalizeOutcome | None:
        """Automatic trigger. Returns None when the course stays in progress."""
        if course.is_finalized:
            return None
        items = await self.grades.list_for_course(course.id)
        if total_weight(items) < settings.finalize_weight_threshold or course.current_mark is None:
            return None
        return await self._finalize(course, float(course.current_mark), trigger="automatic")

    async def finalize(self, course: StudentCourse) -> FinalizeOutcome:
        """Manual trigger. Recomputes the mark first; no weight requirement."""
        if course.is_finalized:
            return FinalizeOutcome(finalized=True, already=True, passed=course.passed)
        items = await self.grades.list_for_course(course.id)
        course.current_mark = compute_mark(items)
        if course.current_mark is None:
            raise InvalidStateError(NEEDS_GRADE_MESSAGE)
        return await self._finalize(course, float(course.current_mark), trigger="manual")

    async def _finalize(self, course: StudentCourse, mark: float, *, trigger: str) -> FinalizeOutcome:
        course.finalized_at = self.clock()
        course.passed = is_passing(mark)
        logger.info(
            "Course finalized | course_id=%s student_id=%s trigger=%s mark=%.3f state=%s",
            course.id,
            course.student_id,
            trigger,
            mark,
            course_state(course),
        )
        await self.aggregator.apply_finalized(course, mark)
        return FinalizeOutcome(finalized=True, already=False, passed=course.passed, trigger=trigger)
