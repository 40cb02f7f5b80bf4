"""Repository interfaces for the academic and planning core, with SQLAlchemy implementations.

Each component receives the repositories it needs instead of a global
connection, so the core can run against an in-memory store in tests.
"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from datetime import date

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from unipilot.models.entities import (
    AcademicRecord,
    GradeItem,
    Note,
    PlannerEvent,
    PlannerTask,
    StudentCourse,
)

logger = logging.getLogger(__name__)


class CourseRepository(ABC):
    @abstractmethod
    async def get_owned(self, course_id: int, student_id: int, *, for_update: bool = False) -> StudentCourse | None:
        raise NotImplementedError

    @abstractmethod
    async def list_for_student(self, student_id: int) -> list[StudentCourse]:
        raise NotImplementedError

    @abstractmethod
    async def find_by_catalog(self, student_id: int, catalog_course_id: int) -> StudentCourse | None:
        raise NotImplementedError

    @abstractmethod
    async def add(self, course: StudentCourse) -> StudentCourse:
        raise NotImplementedError

    @abstractmethod
    async def delete(self, course: StudentCourse) -> None:
        raise NotImplementedError


class GradeItemRepository(ABC):
    @abstractmethod
    async def get(self, item_id: int) -> GradeItem | None:
        raise NotImplementedError

    @abstractmethod
    async def list_for_course(self, course_id: int) -> list[GradeItem]:
        raise NotImplementedError

    @abstractmethod
    async def add(self, item: GradeItem) -> GradeItem:
        raise NotImplementedError

    @abstractmethod
    async def delete(self, item: GradeItem) -> None:
        raise NotImplementedError


class AcademicRecordRepository(ABC):
    @abstractmethod
    async def get_for_student(self, student_id: int, *, for_update: bool = False) -> AcademicRecord | None:
        raise NotImplementedError

    @abstractmethod
    async def add(self, record: AcademicRecord) -> AcademicRecord:
        """Insert the student's record, or return the row a concurrent transaction inserted first."""
        raise NotImplementedError


class NoteRepository(ABC):
    @abstractmethod
    async def get_app_note(self, student_id: int, course_id: int | None) -> Note | None:
        """Return the app note keyed by (student, course); ``course_id=None`` is the general note."""
        raise NotImplementedError

    @abstractmethod
    async def list_for_student(self, student_id: int, note_type: str | None = None) -> list[Note]:
        raise NotImplementedError

    @abstractmethod
    async def add(self, note: Note) -> Note:
        raise NotImplementedError

    @abstractmethod
    async def delete(self, note: Note) -> None:
        raise NotImplementedError


class TaskRepository(ABC):
    @abstractmethod
    async def get_owned(self, task_id: int, student_id: int) -> PlannerTask | None:
        raise NotImplementedError

    @abstractmethod
    async def list_for_day(self, student_id: int, day: date) -> list[PlannerTask]:
        """Tasks due on ``day``, ordered by sort order, then priority (high first), then id."""
        raise NotImplementedError

    @abstractmethod
    async def list_for_student(self, student_id: int) -> list[PlannerTask]:
        raise NotImplementedError

    @abstractmethod
    async def next_sort_order(self, student_id: int) -> int:
        raise NotImplementedError

    @abstractmethod
    async def add(self, task: PlannerTask) -> PlannerTask:
        raise NotImplementedError

    @abstractmethod
    async def delete(self, task: PlannerTask) -> None:
        raise NotImplementedError


class EventRepository(ABC):
    @abstractmethod
    async def get_owned(self, event_id: int, student_id: int) -> PlannerEvent | None:
        raise NotImplementedError

    @abstractmethod
    async def list_for_student(self, student_id: int) -> list[PlannerEvent]:
        raise NotImplementedError

    @abstractmethod
    async def list_overlapping(self, student_id: int, start: date, end: date) -> list[PlannerEvent]:
        """Events whose [start_date, end_date] span intersects [start, end]."""
        raise NotImplementedError

    @abstractmethod
    async def list_exams_from(self, student_id: int, day: date) -> list[PlannerEvent]:
        """Exam events starting on or after ``day``."""
        raise NotImplementedError

    @abstractmethod
    async def add(self, event: PlannerEvent) -> PlannerEvent:
        raise NotImplementedError

    @abstractmethod
    async def delete(self, event: PlannerEvent) -> None:
        raise NotImplementedError


# ── SQLAlchemy implementations ────────────────────────────────────────────────

class _SqlRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def _add(self, row):
        self.session.add(row)
        await self.session.flush()
        return row

    async def _delete(self, row) -> None:
        await self.session.delete(row)
        await self.session.flush()


class SqlCourseRepository(_SqlRepository, CourseRepository):
    async def get_owned(self, course_id: int, student_id: int, *, for_update: bool = False) -> StudentCourse | None:
        stmt = select(StudentCourse).where(
            StudentCourse.id == course_id, StudentCourse.student_id == student_id
        )
        if for_update:
            stmt = stmt.with_for_update()
        return (await self.session.execute(stmt)).scalar_one_or_none()

    async def list_for_student(self, student_id: int) -> list[StudentCourse]:
        stmt = select(StudentCourse).where(StudentCourse.student_id == student_id).order_by(StudentCourse.id)
        return list((await self.session.execute(stmt)).scalars().all())

    async def find_by_catalog(self, student_id: int, catalog_course_id: int) -> StudentCourse | None:
        stmt = select(StudentCourse).where(
            StudentCourse.student_id == student_id,
            StudentCourse.catalog_course_id == catalog_course_id,
        )
        return (await self.session.execute(stmt)).scalars().first()

    async def add(self, course: StudentCourse) -> StudentCourse:
        return await self._add(course)

    async def delete(self, course: StudentCourse) -> None:
        # Grade items cascade at the database level; app notes would otherwise
        # be orphaned into look-alikes of the general note.
        await self.session.execute(delete(GradeItem).where(GradeItem.course_id == course.id))
        await self.session.execute(
            delete(Note).where(Note.course_id == course.id, Note.note_type == "app")
        )
        await self._delete(course)


class SqlGradeItemRepository(_SqlRepository, GradeItemRepository):
    async def get(self, item_id: int) -> GradeItem | None:
        return await self.session.get(GradeItem, item_id)

    async def list_for_course(self, course_id: int) -> list[GradeItem]:
        stmt = select(GradeItem).where(GradeItem.course_id == course_id).order_by(GradeItem.id)
        return list((await self.session.execute(stmt)).scalars().all())

    async def add(self, item: GradeItem) -> GradeItem:
        return await self._add(item)

    async def delete(self, item: GradeItem) -> None:
        await self._delete(item)


class SqlAcademicRecordRepository(_SqlRepository, AcademicRecordRepository):
    async def get_for_student(self, student_id: int, *, for_update: bool = False) -> AcademicRecord | None:
        stmt = select(AcademicRecord).where(AcademicRecord.student_id == student_id)
        if for_update:
            stmt = stmt.with_for_update()
        return (await self.session.execute(stmt)).scalar_one_or_none()

    async def add(self, record: AcademicRecord) -> AcademicRecord:
        # student_id is unique: two first finalizations for one student can both
        # miss the FOR UPDATE read. The loser of the insert race locks the winner's row.
        try:
            async with self.session.begin_nested():
                self.session.add(record)
        except IntegrityError:
            existing = await self.get_for_student(record.student_id, for_update=True)
            if existing is None:
                raise
            logger.info("Academic record already created concurrently | student_id=%s", record.student_id)
            return existing
        return record


class SqlNoteRepository(_SqlRepository, NoteRepository):
    async def get_app_note(self, student_id: int, course_id: int | None) -> Note | None:
        stmt = select(Note).where(Note.student_id == student_id, Note.note_type == "app")
        if course_id is None:
            stmt = stmt.where(Note.course_id.is_(None))
        else:
            stmt = stmt.where(Note.course_id == course_id)
        return (await self.session.execute(stmt.order_by(Note.id))).scalars().first()

    async def list_for_student(self, student_id: int, note_type: str | None = None) -> list[Note]:
        stmt = select(Note).where(Note.student_id == student_id)
        if note_type is not None:
            stmt = stmt.where(Note.note_type == note_type)
        stmt = stmt.order_by(Note.created_at.desc(), Note.id.desc())
        return list((await self.session.execute(stmt)).scalars().all())

    async def add(self, note: Note) -> Note:
        return await self._add(note)

    async def delete(self, note: Note) -> None:
        await self._delete(note)


class SqlTaskRepository(_SqlRepository, TaskRepository):
    async def get_owned(self, task_id: int, student_id: int) -> PlannerTask | None:
        stmt = select(PlannerTask).where(PlannerTask.id == task_id, PlannerTask.student_id == student_id)
        return (await self.session.execute(stmt)).scalar_one_or_none()

    async def list_for_day(self, student_id: int, day: date) -> list[PlannerTask]:
        stmt = (
            select(PlannerTask)
            .where(PlannerTask.student_id == student_id, PlannerTask.due_date == day)
            .order_by(PlannerTask.sort_order, PlannerTask.priority.desc(), PlannerTask.id)
        )
        return list((await self.session.execute(stmt)).scalars().all())

    async def list_for_student(self, student_id: int) -> list[PlannerTask]:
        stmt = (
            select(PlannerTask)
            .where(PlannerTask.student_id == student_id)
            .order_by(PlannerTask.sort_order, PlannerTask.priority.desc(), PlannerTask.id)
        )
        return list((await self.session.execute(stmt)).scalars().all())

    async def next_sort_order(self, student_id: int) -> int:
        stmt = select(func.coalesce(func.max(PlannerTask.sort_order), 0)).where(
            PlannerTask.student_id == student_id
        )
        return int((await self.session.execute(stmt)).scalar_one()) + 1

    async def add(self, task: PlannerTask) -> PlannerTask:
        return await self._add(task)

    async def delete(self, task: PlannerTask) -> None:
        await self._delete(task)


class SqlEventRepository(_SqlRepository, EventRepository):
    async def get_owned(self, event_id: int, student_id: int) -> PlannerEvent | None:
        stmt = select(PlannerEvent).where(PlannerEvent.id == event_id, PlannerEvent.student_id == student_id)
        return (await self.session.execute(stmt)).scalar_one_or_none()

    async def list_for_student(self, student_id: int) -> list[PlannerEvent]:
        stmt = (
            select(PlannerEvent)
            .where(PlannerEvent.student_id == student_id)
            .order_by(PlannerEvent.start_date, PlannerEvent.start_time, PlannerEvent.id)
        )
        return list((await self.session.execute(stmt)).scalars().all())

    async def list_overlapping(self, student_id: int, start: date, end: date) -> list[PlannerEvent]:
        stmt = (
            select(PlannerEvent)
            .where(
                PlannerEvent.student_id == student_id,
                PlannerEvent.start_date <= end,
                PlannerEvent.end_date >= start,
            )
            .order_by(PlannerEvent.start_time, PlannerEvent.id)
        )
        return list((await self.session.execute(stmt)).scalars().all())

    async def list_exams_from(self, student_id: int, day: date) -> list[PlannerEvent]:
        stmt = (
            select(PlannerEvent)
            .where(
                PlannerEvent.student_id == student_id,
                PlannerEvent.event_type == "exam",
                PlannerEvent.start_date >= day,
            )
            .order_by(PlannerEvent.start_date, PlannerEvent.id)
        )
        return list((await self.session.execute(stmt)).scalars().all())

    async def add(self, event: PlannerEvent) -> PlannerEvent:
        return await self._add(event)

    async def delete(self, event: PlannerEvent) -> None:
        await self._delete(event)
