"""
Gradebook: grade CRUD with the mandatory recompute → finalize → advisory cascade.

Every mutation runs inside the caller's unit of work, so the mark, the
finalize transition, the academic record and the notes commit together.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from unipilot.academics.advisory import AdvisoryNoteGenerator
from unipilot.academics.finalization import CourseFinalizer, FinalizeOutcome
from unipilot.academics.grading import compute_mark
from unipilot.academics.record import AcademicRecordAggregator
from unipilot.core.errors import InvalidStateError, NotFoundError
from unipilot.core.logging import DOMAIN_GRADES, get_domain_logger
from unipilot.models.entities import GradeItem, StudentCourse
from unipilot.storage.unit_of_work import UnitOfWork

logger = get_domain_logger(__name__, DOMAIN_GRADES)

EDITABLE_FIELDS = ("item_type", "title", "score", "max_score", "weight")
FINALIZED_LOCK_MESSAGE = "This course is finalized; its grades can no longer be changed."


@dataclass
class MutationResult:
    course: StudentCourse
    mark: float | None
    finalize: FinalizeOutcome | None = None


class Gradebook:
    def __init__(self, uow: UnitOfWork):
        self.uow = uow
        self.finalizer = CourseFinalizer(uow.grades, AcademicRecordAggregator(uow.records))
        self.advisory = AdvisoryNoteGenerator(uow.notes, uow.courses)

    async def _owned_course(self, student_id: int, course_id: int, *, for_update: bool = False) -> StudentCourse:
        course = await self.uow.courses.get_owned(course_id, student_id, for_update=for_update)
        if course is None:
            raise NotFoundError()
        return course

    async def _owned_item(self, student_id: int, item_id: int) -> tuple[GradeItem, StudentCourse]:
        item = await self.uow.grades.get(item_id)
        if item is None:
            raise NotFoundError()
        course = await self.uow.courses.get_owned(item.course_id, student_id, for_update=True)
        if course is None:
            raise NotFoundError()
        return item, course

    @staticmethod
    def _ensure_editable(course: StudentCourse) -> None:
        if course.is_finalized:
            raise InvalidStateError(FINALIZED_LOCK_MESSAGE)

    async def _after_mutation(self, course: StudentCourse) -> MutationResult:
        items = await self.uow.grades.list_for_course(course.id)
        course.current_mark = compute_mark(items)
        outcome = await self.finalizer.maybe_finalize(course)
        await self.advisory.after_mark_change(course)
        return MutationResult(course=course, mark=course.current_mark, finalize=outcome)

    async def list_grades(self, student_id: int, course_id: int) -> list[GradeItem]:
        course = await self._owned_course(student_id, course_id)
        return await self.uow.grades.list_for_course(course.id)

    async def add_grade(
        self,
        student_id: int,
        course_id: int,
        *,
        title: str,
        score: float,
        max_score: float,
        weight: float,
        item_type: str = "quiz",
    ) -> tuple[GradeItem, MutationResult]:
        course = await self._owned_course(student_id, course_id, for_update=True)
        self._ensure_editable(course)
        item = await self.uow.grades.add(
            GradeItem(
                course_id=course.id,
                item_type=item_type,
                title=title,
                score=score,
                max_score=max_score,
                weight=weight,
            )
        )
        result = await self._after_mutation(course)
        logger.info(
            "Grade added | course_id=%s item_id=%s mark=%s", course.id, item.id, result.mark
        )
        return item, result

    async def update_grade(
        self, student_id: int, item_id: int, changes: dict[str, Any]
    ) -> tuple[GradeItem, MutationResult]:
        item, course = await self._owned_item(student_id, item_id)
        self._ensure_editable(course)
        for field_name in EDITABLE_FIELDS:
            if changes.get(field_name) is not None:
                setattr(item, field_name, changes[field_name])
        result = await self._after_mutation(course)
        logger.info(
            "Grade updated | course_id=%s item_id=%s mark=%s", course.id, item.id, result.mark
        )
        return item, result

    async def delete_grade(self, student_id: int, item_id: int) -> MutationResult:
        item, course = await self._owned_item(student_id, item_id)
        self._ensure_editable(course)
        await self.uow.grades.delete(item)
        result = await self._after_mutation(course)
        logger.info("Grade deleted | course_id=%s item_id=%s mark=%s", course.id, item_id, result.mark)
        return result

    async def finalize_course(self, student_id: int, course_id: int) -> FinalizeOutcome:
        course = await self._owned_course(student_id, course_id, for_update=True)
        outcome = await self.finalizer.finalize(course)
        if not outcome.already:
            await self.advisory.after_mark_change(course)
        return outcome
