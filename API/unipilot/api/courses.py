"""
Courses API: enrollment records, grade CRUD and finalization.

Every grade mutation goes through the Gradebook, which recomputes the mark,
runs the automatic finalize check and resyncs advisory notes in the same
transaction.
"""
from __future__ import annotations

from fastapi import APIRouter, Depends, Path, Response

from unipilot.academics.advisory import AdvisoryNoteGenerator, grade_status
from unipilot.academics.finalization import course_state
from unipilot.academics.gradebook import Gradebook, MutationResult
from unipilot.api.deps import get_uow
from unipilot.core.auth import current_student_id
from unipilot.core.errors import InvalidInputError, NotFoundError
from unipilot.core.logging import DOMAIN_GRADES, get_domain_logger
from unipilot.models.entities import StudentCourse
from unipilot.schemas.academics import (
    CourseCreateRequest,
    CourseResponse,
    FinalizeResponse,
    GradeCreateRequest,
    GradeMutationResponse,
    GradeResponse,
    GradeUpdateRequest,
)
from unipilot.storage.unit_of_work import UnitOfWork

router = APIRouter(tags=["courses"])
logger = get_domain_logger(__name__, DOMAIN_GRADES)

DEFAULT_COURSE_NAME = "Course"


def _course_response(course: StudentCourse) -> CourseResponse:
    return CourseResponse(
        id=course.id,
        catalog_course_id=course.catalog_course_id,
        course_name=course.course_name,
        course_code=course.course_code,
        credit_hours=course.credit_hours,
        semester=course.semester,
        current_mark=course.current_mark,
        finalized_at=course.finalized_at,
        passed=course.passed,
        status=grade_status(course.current_mark),
        state=course_state(course),
    )


def _mutation_response(grade, result: MutationResult) -> GradeMutationResponse:
    return GradeMutationResponse(
        grade=GradeResponse.model_validate(grade) if grade is not None else None,
        course_mark=result.mark,
        finalized=result.course.is_finalized,
        passed=result.course.passed,
    )


# ── Enrollment ────────────────────────────────────────────────────────────────

@router.get("/student/courses", response_model=list[CourseResponse])
async def list_courses(student_id: int = Depends(current_student_id), uow: UnitOfWork = Depends(get_uow)):
    courses = await uow.courses.list_for_student(student_id)
    return [_course_response(c) for c in courses]


@router.get("/student/courses/{course_id}", response_model=CourseResponse)
async def get_course(
    course_id: int = Path(ge=1),
    student_id: int = Depends(current_student_id),
    uow: UnitOfWork = Depends(get_uow),
):
    course = await uow.courses.get_owned(course_id, student_id)
    if course is None:
        raise NotFoundError("Course not found")
    return _course_response(course)


@router.post("/student/courses", response_model=CourseResponse, status_code=201)
async def enroll_course(
    payload: CourseCreateRequest,
    student_id: int = Depends(current_student_id),
    uow: UnitOfWork = Depends(get_uow),
):
    async with uow:
        if payload.catalog_course_id is not None:
            if await uow.courses.find_by_catalog(student_id, payload.catalog_course_id):
                raise InvalidInputError("Already enrolled in this course")
        name = (payload.course_name or "").strip() or payload.course_code.strip() or DEFAULT_COURSE_NAME
        course = await uow.courses.add(
            StudentCourse(
                student_id=student_id,
                catalog_course_id=payload.catalog_course_id,
                course_name=name,
                course_code=payload.course_code.strip(),
                credit_hours=payload.credit_hours,
                semester=payload.semester,
                current_mark=None,
                finalized_at=None,
                passed=None,
            )
        )
        response = _course_response(course)
    logger.info("Course enrolled | student_id=%s course_id=%s", student_id, response.id)
    return response


@router.delete("/student/courses/{course_id}", status_code=204)
async def delete_course(
    course_id: int = Path(ge=1),
    student_id: int = Depends(current_student_id),
    uow: UnitOfWork = Depends(get_uow),
):
    async with uow:
        course = await uow.courses.get_owned(course_id, student_id, for_update=True)
        if course is None:
            raise NotFoundError("Course not found")
        await uow.courses.delete(course)
        await AdvisoryNoteGenerator(uow.notes, uow.courses).reconcile_general(student_id)
    return Response(status_code=204)


# ── Finalization ──────────────────────────────────────────────────────────────

@router.post("/courses/{course_id}/finalize", response_model=FinalizeResponse)
async def finalize_course(
    course_id: int = Path(ge=1),
    student_id: int = Depends(current_student_id),
    uow: UnitOfWork = Depends(get_uow),
):
    async with uow:
        outcome = await Gradebook(uow).finalize_course(student_id, course_id)
    return FinalizeResponse(finalized=outcome.finalized, already=outcome.already, passed=outcome.passed)


# ── Grades ────────────────────────────────────────────────────────────────────

@router.get("/courses/{course_id}/grades", response_model=list[GradeResponse])
async def list_grades(
    course_id: int = Path(ge=1),
    student_id: int = Depends(current_student_id),
    uow: UnitOfWork = Depends(get_uow),
):
    items = await Gradebook(uow).list_grades(student_id, course_id)
    return [GradeResponse.model_validate(i) for i in items]


@router.post("/courses/{course_id}/grades", response_model=GradeMutationResponse, status_code=201)
async def add_grade(
    payload: GradeCreateRequest,
    course_id: int = Path(ge=1),
    student_id: int = Depends(current_student_id),
    uow: UnitOfWork = Depends(get_uow),
):
    async with uow:
        item, result = await Gradebook(uow).add_grade(
            student_id,
            course_id,
            item_type=payload.item_type,
            title=payload.title.strip() or "Grade",
            score=payload.score,
            max_score=payload.max_score,
            weight=payload.weight,
        )
        response = _mutation_response(item, result)
    return response


@router.patch("/grades/{grade_id}", response_model=GradeMutationResponse)
async def update_grade(
    payload: GradeUpdateRequest,
    grade_id: int = Path(ge=1),
    student_id: int = Depends(current_student_id),
    uow: UnitOfWork = Depends(get_uow),
):
    async with uow:
        item, result = await Gradebook(uow).update_grade(student_id, grade_id, payload.model_dump())
        response = _mutation_response(item, result)
    return response


@router.delete("/grades/{grade_id}", status_code=204)
async def delete_grade(
    grade_id: int = Path(ge=1),
    student_id: int = Depends(current_student_id),
    uow: UnitOfWork = Depends(get_uow),
):
    async with uow:
        await Gradebook(uow).delete_grade(student_id, grade_id)
    return Response(status_code=204)
