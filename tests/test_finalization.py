from __future__ import annotations

from datetime import datetime, timezone

import pytest

from fakes import MemoryUnitOfWork, make_course
from unipilot.academics.finalization import (
    FINALIZED_FAILED,
    FINALIZED_PASSED,
    IN_PROGRESS,
    NEEDS_GRADE_MESSAGE,
    CourseFinalizer,
    course_state,
    is_passing,
)
from unipilot.academics.grading import compute_mark
from unipilot.academics.record import AcademicRecordAggregator
from unipilot.core.errors import InvalidStateError
from unipilot.models.entities import GradeItem

FIXED_NOW = datetime(2026, 5, 1, 12, 0, tzinfo=timezone.utc)


async def _setup(mark_items, credit_hours=3):
    uow = MemoryUnitOfWork()
    course = await uow.courses.add(make_course(student_id=1, credit_hours=credit_hours))
    for score, max_score, weight in mark_items:
        await uow.grades.add(
            GradeItem(course_id=course.id, item_type="exam", title="Item", score=score, max_score=max_score, weight=weight)
        )
    course.current_mark = compute_mark(await uow.grades.list_for_course(course.id))
    finalizer = CourseFinalizer(uow.grades, AcademicRecordAggregator(uow.records), clock=lambda: FIXED_NOW)
    return uow, course, finalizer


def test_pass_threshold_is_inclusive():
    assert is_passing(50.0)
    assert not is_passing(49.999)


@pytest.mark.asyncio
async def test_auto_finalize_waits_for_full_weight():
    uow, course, finalizer = await _setup([(45, 50, 60)])
    assert await finalizer.maybe_finalize(course) is None
    assert course_state(course) == IN_PROGRESS
    assert uow.records.rows == {}


@pytest.mark.asyncio
async def test_auto_finalize_at_threshold_credits_record_once():
    uow, course, finalizer = await _setup([(45, 50, 60), (30, 40, 40)])

    outcome = await finalizer.maybe_finalize(course)

    assert outcome is not None and outcome.trigger == "automatic"
    assert outcome.passed is True
    assert course.finalized_at == FIXED_NOW
    assert course_state(course) == FINALIZED_PASSED
    record = await uow.records.get_for_student(1)
    assert record.total_credits_completed == 3

    assert await finalizer.maybe_finalize(course) is None
    again = await finalizer.finalize(course)
    assert again.already is True
    assert record.total_credits_completed == 3


@pytest.mark.asyncio
async def test_auto_finalize_tolerates_rounded_weights():
    _, course, finalizer = await _setup([(10, 10, 33), (10, 10, 33), (10, 10, 33)])
    assert (await finalizer.maybe_finalize(course)) is None

    _, course, finalizer = await _setup([(10, 10, 33.3), (10, 10, 33.3), (10, 10, 33.3)])
    assert (await finalizer.maybe_finalize(course)).finalized is True


@pytest.mark.asyncio
async def test_manual_finalize_with_partial_weight_and_failing_mark():
    uow, course, finalizer = await _setup([(10, 50, 40)])

    outcome = await finalizer.finalize(course)

    assert outcome.trigger == "manual"
    assert outcome.passed is False
    assert course_state(course) == FINALIZED_FAILED
    record = await uow.records.get_for_student(1)
    assert record.total_credits_carried == 3
    assert record.total_credits_completed == 0


@pytest.mark.asyncio
async def test_manual_finalize_without_grades_is_rejected():
    uow, course, finalizer = await _setup([])

    with pytest.raises(InvalidStateError) as excinfo:
        await finalizer.finalize(course)

    assert excinfo.value.message == NEEDS_GRADE_MESSAGE
    assert course.finalized_at is None
    assert uow.records.rows == {}
