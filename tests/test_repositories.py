from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import datetime, timezone

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from fakes import make_course
from unipilot.academics.record import AcademicRecordAggregator
from unipilot.models.base import Base
from unipilot.models.entities import AcademicRecord
from unipilot.storage.repositories import SqlAcademicRecordRepository


@asynccontextmanager
async def _sessions(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path}/records.db")
    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        yield async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)
    finally:
        await engine.dispose()


def _record(student_id: int, cgpa: float = 0.0, completed: float = 0.0) -> AcademicRecord:
    return AcademicRecord(
        student_id=student_id,
        cgpa=cgpa,
        cumulative_percent=0.0,
        total_credits_completed=completed,
        total_credits_carried=0.0,
    )


class StaleReadRepository(SqlAcademicRecordRepository):
    """Misses the first lookup, like a transaction that read before a concurrent insert committed."""

    def __init__(self, session):
        super().__init__(session)
        self.stale_reads = 1

    async def get_for_student(self, student_id, *, for_update=False):
        if self.stale_reads:
            self.stale_reads -= 1
            return None
        return await super().get_for_student(student_id, for_update=for_update)


@pytest.mark.asyncio
async def test_record_insert_returns_row_created_by_another_transaction(tmp_path):
    async with _sessions(tmp_path) as sessions:
        async with sessions() as first:
            winner = await SqlAcademicRecordRepository(first).add(_record(77, cgpa=3.3))
            await first.commit()

        async with sessions() as second:
            repo = SqlAcademicRecordRepository(second)
            stored = await repo.add(_record(77))

            assert stored.id == winner.id
            assert stored.cgpa == pytest.approx(3.3)


@pytest.mark.asyncio
async def test_finalization_folds_into_record_created_concurrently(tmp_path):
    async with _sessions(tmp_path) as sessions:
        async with sessions() as first:
            await SqlAcademicRecordRepository(first).add(_record(78, cgpa=4.0, completed=3.0))
            await first.commit()

        course = make_course(student_id=78, mark=72, credit_hours=3)
        course.id = 2
        course.finalized_at = datetime(2026, 5, 1, tzinfo=timezone.utc)
        course.passed = True

        async with sessions() as second:
            repo = StaleReadRepository(second)
            record = await AcademicRecordAggregator(repo).apply_finalized(course, 72)
            await second.commit()

        assert record.total_credits_completed == 6
        assert record.cgpa == pytest.approx((4.0 * 3 + 2.7 * 3) / 6)

        async with sessions() as check:
            count = await check.scalar(select(func.count()).select_from(AcademicRecord))
        assert count == 1
