from __future__ import annotations

import pytest

from fakes import MemoryUnitOfWork, make_course
from unipilot.academics.gradebook import FINALIZED_LOCK_MESSAGE, Gradebook
from unipilot.core.errors import InvalidStateError, NotFoundError

STUDENT = 11


async def _gradebook(credit_hours=3):
    uow = MemoryUnitOfWork()
    course = await uow.courses.add(make_course(student_id=STUDENT, name="Statistics", credit_hours=credit_hours))
    return uow, Gradebook(uow), course


@pytest.mark.asyncio
async def test_add_grade_recomputes_mark_and_writes_note():
    uow, book, course = await _gradebook()

    item, result = await book.add_grade(STUDENT, course.id, title="Quiz 1", score=8, max_score=10, weight=20)

    assert item.id is not None
    assert result.mark == pytest.approx(16.0)
    assert course.current_mark == pytest.approx(16.0)
    assert result.finalize is None
    note = await uow.notes.get_app_note(STUDENT, course.id)
    assert note is not None and "Statistics" in note.content


@pytest.mark.asyncio
async def test_reaching_full_weight_finalizes_in_same_mutation():
    uow, book, course = await _gradebook()
    await book.add_grade(STUDENT, course.id, title="Midterm", score=35, max_score=50, weight=40)

    _, result = await book.add_grade(STUDENT, course.id, title="Final", score=54, max_score=60, weight=60)

    assert result.finalize is not None and result.finalize.passed is True
    assert course.is_finalized
    record = await uow.records.get_for_student(STUDENT)
    assert record.total_credits_completed == 3
    assert record.cumulative_percent == pytest.approx(28 + 54)


@pytest.mark.asyncio
async def test_finalized_course_rejects_grade_changes():
    _, book, course = await _gradebook()
    item, _ = await book.add_grade(STUDENT, course.id, title="All", score=90, max_score=100, weight=100)
    assert course.is_finalized

    with pytest.raises(InvalidStateError, match=FINALIZED_LOCK_MESSAGE):
        await book.add_grade(STUDENT, course.id, title="Late", score=1, max_score=1, weight=0)
    with pytest.raises(InvalidStateError):
        await book.update_grade(STUDENT, item.id, {"score": 10})
    with pytest.raises(InvalidStateError):
        await book.delete_grade(STUDENT, item.id)


@pytest.mark.asyncio
async def test_update_ignores_missing_fields():
    _, book, course = await _gradebook()
    item, _ = await book.add_grade(STUDENT, course.id, title="Lab", score=5, max_score=10, weight=30)

    updated, result = await book.update_grade(STUDENT, item.id, {"score": 10, "title": None})

    assert updated.title == "Lab"
    assert result.mark == pytest.approx(30.0)


@pytest.mark.asyncio
async def test_delete_last_grade_clears_mark():
    uow, book, course = await _gradebook()
    item, _ = await book.add_grade(STUDENT, course.id, title="Lab", score=5, max_score=10, weight=30)

    result = await book.delete_grade(STUDENT, item.id)

    assert result.mark is None
    assert course.current_mark is None
    note = await uow.notes.get_app_note(STUDENT, course.id)
    assert note.content.endswith("No grades entered yet.")


@pytest.mark.asyncio
async def test_other_students_course_is_not_found():
    _, book, course = await _gradebook()
    item, _ = await book.add_grade(STUDENT, course.id, title="Lab", score=5, max_score=10, weight=30)

    with pytest.raises(NotFoundError):
        await book.add_grade(STUDENT + 1, course.id, title="x", score=1, max_score=1, weight=1)
    with pytest.raises(NotFoundError):
        await book.update_grade(STUDENT + 1, item.id, {"score": 1})
    with pytest.raises(NotFoundError):
        await book.list_grades(STUDENT + 1, course.id)
    with pytest.raises(NotFoundError):
        await book.delete_grade(STUDENT, 999)


@pytest.mark.asyncio
async def test_manual_finalize_is_idempotent():
    uow, book, course = await _gradebook(credit_hours=4)
    await book.add_grade(STUDENT, course.id, title="Midterm", score=20, max_score=50, weight=40)

    first = await book.finalize_course(STUDENT, course.id)
    second = await book.finalize_course(STUDENT, course.id)

    assert first.already is False and first.passed is False
    assert second.already is True
    record = await uow.records.get_for_student(STUDENT)
    assert record.total_credits_carried == 4
