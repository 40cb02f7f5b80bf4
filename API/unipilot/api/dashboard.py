"""Dashboard API: read-only academic record snapshot plus a derived per-course status list."""
from __future__ import annotations

from fastapi import APIRouter, Depends

from unipilot.academics.advisory import grade_status
from unipilot.academics.grading import mark_to_letter, mark_to_points
from unipilot.academics.record import build_snapshot
from unipilot.api.deps import get_uow
from unipilot.core.auth import current_student_id
from unipilot.schemas.academics import CourseStatus, DashboardSummaryResponse
from unipilot.storage.unit_of_work import UnitOfWork

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


@router.get("/summary", response_model=DashboardSummaryResponse)
async def dashboard_summary(student_id: int = Depends(current_student_id), uow: UnitOfWork = Depends(get_uow)):
    courses = await uow.courses.list_for_student(student_id)
    record = await uow.records.get_for_student(student_id)
    snapshot = build_snapshot(record, courses)
    return DashboardSummaryResponse(
        courses_count=len(courses),
        cgpa=snapshot.cgpa,
        cumulative_percent=snapshot.cumulative_percent,
        record_cgpa=snapshot.record_cgpa,
        record_cumulative_percent=snapshot.record_cumulative_percent,
        semester_gpa=snapshot.semester_gpa,
        semester_percent=snapshot.semester_percent,
        credits_completed=snapshot.credits_completed,
        credits_carried=snapshot.credits_carried,
        credits_current=snapshot.credits_current,
        completed_courses=snapshot.completed_courses,
        carried_courses=snapshot.carried_courses,
        courses=[
            CourseStatus(
                id=c.id,
                course_name=c.course_name,
                course_code=c.course_code,
                credit_hours=c.credit_hours,
                current_mark=c.current_mark,
                letter=mark_to_letter(c.current_mark) if c.current_mark is not None else None,
                gpa_points=mark_to_points(c.current_mark) if c.current_mark is not None else None,
                grade_status=grade_status(c.current_mark),
                finalized_at=c.finalized_at,
                passed=c.passed,
            )
            for c in courses
        ],
    )
