from __future__ import annotations

from datetime import date, datetime, timezone

import pytest

from fakes import MemoryUnitOfWork, make_course, make_exam, make_task
from unipilot.core.errors import InvalidInputError
from unipilot.planning.feedback import PlanFeedbackEngine
from unipilot.planning.generator import PlanGenerator
from unipilot.planning.suggester import KIND_EXTRA_PRACTICE, KIND_REVIEW, NextTaskSuggester

STUDENT = 21
DAY = date(2026, 3, 2)


async def _uow_with_courses(*marks):
    uow = MemoryUnitOfWork()
    courses = []
    for i, mark in enumerate(marks, start=1):
        courses.append(await uow.courses.add(make_course(student_id=STUDENT, name=f"Course {i}", mark=mark)))
    return uow, courses


def _generator(uow):
    return PlanGenerator(uow.courses, uow.tasks, uow.events)


def _suggester(uow):
    return NextTaskSuggester(uow.courses, uow.tasks, uow.events)


def _engine(uow):
    return PlanFeedbackEngine(uow.courses, uow.tasks, uow.events)


# ── Plan generator ────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_generate_plan_orders_tasks_by_risk():
    uow, (safe, critical, unknown) = await _uow_with_courses(88, 45, None)

    plan = await _generator(uow).generate(STUDENT, DAY)

    assert [t.course_id for t in plan.generated] == [critical.id, unknown.id, safe.id]
    assert [t.title for t in plan.generated][0] == "Review: Course 2"
    assert all(t.source == "app" and t.due_date == DAY for t in plan.generated)
    orders = [t.sort_order for t in plan.generated]
    assert orders == sorted(orders) and len(set(orders)) == 3
    assert [t.priority for t in plan.generated] == [2, 3, 5]


@pytest.mark.asyncio
async def test_generate_plan_is_idempotent_per_day():
    uow, _ = await _uow_with_courses(70, 50)
    await _generator(uow).generate(STUDENT, DAY)

    again = await _generator(uow).generate(STUDENT, DAY)

    assert again.generated == []
    assert len(uow.tasks.rows) == 2


@pytest.mark.asyncio
async def test_generate_plan_breaks_ties_on_sooner_exam_and_reports_exams():
    uow, (later, sooner) = await _uow_with_courses(None, None)
    await uow.events.add(make_exam(STUDENT, later.id, date(2026, 3, 6)))
    await uow.events.add(make_exam(STUDENT, sooner.id, date(2026, 3, 4)))

    plan = await _generator(uow).generate(STUDENT, DAY, date(2026, 3, 8))

    assert [t.course_id for t in plan.generated] == [sooner.id, later.id]
    assert plan.exams == {later.id: date(2026, 3, 6), sooner.id: date(2026, 3, 4)}


@pytest.mark.asyncio
async def test_generate_plan_skips_finalized_courses():
    uow, (done, active) = await _uow_with_courses(90, 60)
    done.finalized_at = datetime(2026, 1, 1, tzinfo=timezone.utc)
    done.passed = True

    plan = await _generator(uow).generate(STUDENT, DAY)

    assert [t.course_id for t in plan.generated] == [active.id]


@pytest.mark.asyncio
async def test_generate_plan_rejects_inverted_range():
    uow, _ = await _uow_with_courses(70)
    with pytest.raises(InvalidInputError):
        await _generator(uow).generate(STUDENT, DAY, date(2026, 3, 1))


@pytest.mark.asyncio
async def test_generate_plan_with_no_courses_is_empty():
    uow = MemoryUnitOfWork()
    plan = await _generator(uow).generate(STUDENT, DAY)
    assert plan.generated == []


# ── Next-task suggester ───────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_suggest_review_for_riskiest_unplanned_course():
    uow, (safe, critical) = await _uow_with_courses(85, 55)

    suggestion = await _suggester(uow).suggest(STUDENT, DAY)

    assert suggestion.kind == KIND_REVIEW
    assert suggestion.task.course_id == critical.id
    assert suggestion.task.title == "Review: Course 2"
    assert suggestion.message == "New task suggested."


@pytest.mark.asyncio
async def test_suggest_extra_practice_once_app_tasks_done():
    uow, (course,) = await _uow_with_courses(65)
    await uow.tasks.add(make_task(STUDENT, course.id, DAY, source="app", completed=True, sort_order=1))

    suggestion = await _suggester(uow).suggest(STUDENT, DAY)

    assert suggestion.kind == KIND_EXTRA_PRACTICE
    assert suggestion.task.title == "Extra practice: Course 1"
    assert suggestion.task.sort_order == 2


@pytest.mark.asyncio
async def test_suggest_nothing_while_app_tasks_pending():
    uow, (course,) = await _uow_with_courses(65)
    await uow.tasks.add(make_task(STUDENT, course.id, DAY, source="app", completed=False))

    suggestion = await _suggester(uow).suggest(STUDENT, DAY)

    assert suggestion.task is None
    assert suggestion.message == "No new suggestion for now."
    assert len(uow.tasks.rows) == 1


@pytest.mark.asyncio
async def test_student_tasks_do_not_count_as_planned():
    uow, (course,) = await _uow_with_courses(75)
    await uow.tasks.add(make_task(STUDENT, course.id, DAY, source="student", completed=True))

    suggestion = await _suggester(uow).suggest(STUDENT, DAY)

    assert suggestion.kind == KIND_REVIEW


# ── Compare and feedback ──────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_compare_splits_tasks_by_source():
    uow, (course,) = await _uow_with_courses(70)
    app = await uow.tasks.add(make_task(STUDENT, course.id, DAY, source="app", sort_order=1))
    own = await uow.tasks.add(make_task(STUDENT, course.id, DAY, source="student", sort_order=2))
    await uow.tasks.add(make_task(STUDENT, course.id, date(2026, 3, 3), source="student"))

    comparison = await _engine(uow).compare(STUDENT, DAY)

    assert comparison.app_plan == [app]
    assert comparison.student_plan == [own]


@pytest.mark.asyncio
async def test_feedback_recommends_riskier_course_first():
    uow, (safe, critical) = await _uow_with_courses(90, 40)
    await uow.tasks.add(make_task(STUDENT, safe.id, DAY, sort_order=1, title="Safe first"))
    await uow.tasks.add(make_task(STUDENT, critical.id, DAY, sort_order=2, title="Critical later"))

    review = await _engine(uow).review(STUDENT, DAY)

    assert review.student_order == [safe.id, critical.id]
    assert review.recommended_order == [critical.id, safe.id]
    priority = [f for f in review.feedback if f.type == "priority"]
    assert len(priority) == 1
    assert priority[0].course_id == critical.id
    assert priority[0].recommendation == 'We recommend starting with "Course 2" first.'
    assert "more critical" in priority[0].reason
    assert review.summary == priority[0].recommendation
    assert [c["course_id"] for c in review.at_risk_courses] == [critical.id]


@pytest.mark.asyncio
async def test_feedback_uses_sooner_exam_on_equal_risk():
    uow, (first, second) = await _uow_with_courses(None, None)
    await uow.events.add(make_exam(STUDENT, second.id, date(2026, 3, 5)))
    await uow.tasks.add(make_task(STUDENT, first.id, DAY, sort_order=1))
    await uow.tasks.add(make_task(STUDENT, second.id, DAY, sort_order=2))

    review = await _engine(uow).review(STUDENT, DAY)

    priority = [f for f in review.feedback if f.type == "priority"]
    assert priority[0].course_id == second.id
    assert "2026-03-05" in priority[0].reason
    assert any(f.type == "exam" for f in review.feedback)
    assert any(d.title == "Upcoming exams" for d in review.details)


@pytest.mark.asyncio
async def test_feedback_affirms_good_order():
    uow, (critical, safe) = await _uow_with_courses(40, 90)
    await uow.tasks.add(make_task(STUDENT, critical.id, DAY, sort_order=1, completed=True))
    await uow.tasks.add(make_task(STUDENT, safe.id, DAY, sort_order=2))

    review = await _engine(uow).review(STUDENT, DAY)

    assert review.feedback == []
    assert review.completed_count == 1 and review.total_count == 2
    assert review.completion_ratio == pytest.approx(0.5)
    order = next(d for d in review.details if d.title == "Priority order")
    assert order.body.startswith("Your order makes sense")
    assert review.summary == "Your plan looks good. Work through the tasks by priority."


@pytest.mark.asyncio
async def test_feedback_for_empty_day():
    uow = MemoryUnitOfWork()

    review = await _engine(uow).review(STUDENT, DAY)

    assert review.total_count == 0
    assert review.completion_ratio == 0.0
    assert [d.title for d in review.details] == ["No tasks for this day"]
    assert review.summary == "No tasks or events for this day. Generate a smart plan to get started."


@pytest.mark.asyncio
async def test_feedback_for_day_with_only_events():
    uow = MemoryUnitOfWork()
    await uow.events.add(make_exam(STUDENT, None, DAY, event_type="study"))

    review = await _engine(uow).review(STUDENT, DAY)

    titles = [d.title for d in review.details]
    assert "Today's events" in titles
    assert "No tasks for this day" not in titles
    assert review.summary == "Balance your time around today's events and add review tasks for your priority courses."


@pytest.mark.asyncio
async def test_feedback_for_day_with_courses_but_nothing_planned():
    uow, _ = await _uow_with_courses(85)

    review = await _engine(uow).review(STUDENT, DAY)

    assert [d.title for d in review.details] == ["No tasks for this day"]
    assert review.feedback == []
    assert review.summary == "No tasks or events for this day. Generate a smart plan to get started."
