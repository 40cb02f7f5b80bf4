from __future__ import annotations

import logging
from abc import ABC, abstractmethod

from sqlalchemy.ext.asyncio import AsyncSession

from unipilot.storage.repositories import (
    AcademicRecordRepository,
    CourseRepository,
    EventRepository,
    GradeItemRepository,
    NoteRepository,
    SqlAcademicRecordRepository,
    SqlCourseRepository,
    SqlEventRepository,
    SqlGradeItemRepository,
    SqlNoteRepository,
    SqlTaskRepository,
    TaskRepository,
)

logger = logging.getLogger(__name__)


class UnitOfWork(ABC):
    """One logical transaction over every repository the core touches.

    ``async with uow:`` commits when the block exits cleanly and rolls back on
    any exception, so a grade mutation and its finalize/aggregate cascade land
    together or not at all.
    """

    courses: CourseRepository
    grades: GradeItemRepository
    records: AcademicRecordRepository
    notes: NoteRepository
    tasks: TaskRepository
    events: EventRepository

    async def __aenter__(self) -> UnitOfWork:
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if exc_type is None:
            await self.commit()
        else:
            await self.rollback()

    @abstractmethod
    async def commit(self) -> None:
        raise NotImplementedError

    @abstractmethod
    async def rollback(self) -> None:
        raise NotImplementedError


class SqlAlchemyUnitOfWork(UnitOfWork):
    def __init__(self, session: AsyncSession):
        self.session = session
        self.courses = SqlCourseRepository(session)
        self.grades = SqlGradeItemRepository(session)
        self.records = SqlAcademicRecordRepository(session)
        self.notes = SqlNoteRepository(session)
        self.tasks = SqlTaskRepository(session)
        self.events = SqlEventRepository(session)

    async def commit(self) -> None:
        await self.session.commit()

    async def rollback(self) -> None:
        logger.debug("Rolling back unit of work")
        await self.session.rollback()
