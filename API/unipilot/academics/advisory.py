"""
Advisory notes: status, recommendation and encouragement text derived from marks.

Notes are derived state: one app note per (student, course), rewritten in place
whenever the mark changes, plus a general note that exists exactly while at
least two of the student's courses are at risk or worse.
"""
from __future__ import annotations

from unipilot.academics.grading import mark_to_letter
from unipilot.core.logging import DOMAIN_ADVISORY, get_domain_logger
from unipilot.core.settings import settings
from unipilot.models.entities import Note, StudentCourse
from unipilot.storage.repositories import CourseRepository, NoteRepository

logger = get_domain_logger(__name__, DOMAIN_ADVISORY)

STATUS_UNDEFINED = "undefined"
STATUS_SAFE = "safe"
STATUS_NORMAL = "normal"
STATUS_AT_RISK = "at_risk"
STATUS_HIGH_RISK = "high_risk"

RISKY_STATUSES = (STATUS_AT_RISK, STATUS_HIGH_RISK)

STATUS_LABELS = {
    STATUS_SAFE: "Safe",
    STATUS_NORMAL: "Normal",
    STATUS_AT_RISK: "At risk",
    STATUS_HIGH_RISK: "High risk",
}

RECOMMENDATIONS = {
    STATUS_HIGH_RISK: (
        "Recommendation: your mark in this course is very low. Review the material, "
        "increase your study hours and ask your instructor or use extra references."
    ),
    STATUS_AT_RISK: (
        "Recommendation: your mark needs improvement. Review the lessons and focus on "
        "your weak points to raise your average."
    ),
    "general": (
        "More than one course needs your attention. Prioritize your reviews and add "
        "study hours for the critical courses."
    ),
}

ENCOURAGEMENT = {
    STATUS_SAFE: "Encouragement: excellent work. Keep up this discipline, you are on the right track.",
    STATUS_NORMAL: "Encouragement: good performance. Keep reviewing steadily to hold and grow your progress.",
    STATUS_AT_RISK: "Encouragement: don't give up. Every improvement starts with one step; focus on what to fix and you will see the difference.",
    STATUS_HIGH_RISK: "Encouragement: feeling discouraged is normal, but you are stronger than it. Take it step by step, we are with you.",
}


def grade_status(mark: float | None) -> str:
    if mark is None:
        return STATUS_UNDEFINED
    if mark >= 80:
        return STATUS_SAFE
    if mark >= 70:
        return STATUS_NORMAL
    if mark >= 60:
        return STATUS_AT_RISK
    return STATUS_HIGH_RISK


def _format_mark(mark: float) -> str:
    return f"{round(float(mark), 2):g}"


def course_note_text(course_name: str, mark: float | None) -> str:
    """Render the app note for one course. Same inputs always give the same text."""
    if mark is None:
        return f"Course: {course_name}. No grades entered yet."
    status = grade_status(mark)
    parts = [
        f"Course: {course_name}. Mark: {_format_mark(mark)}, grade: {mark_to_letter(mark)}. "
        f"Status: {STATUS_LABELS[status]}."
    ]
    if status in RISKY_STATUSES:
        parts.append(RECOMMENDATIONS[status])
    parts.append(ENCOURAGEMENT[status])
    return "\n\n".join(parts)


def general_note_text() -> str:
    return RECOMMENDATIONS["general"] + "\n\n" + ENCOURAGEMENT[STATUS_HIGH_RISK]


class AdvisoryNoteGenerator:
    def __init__(self, notes: NoteRepository, courses: CourseRepository):
        self.notes = notes
        self.courses = courses

    async def upsert_app_note(self, student_id: int, course_id: int | None, content: str) -> Note:
        """Write the app note keyed by (student, course|None), replacing its text if it exists."""
        existing = await self.notes.get_app_note(student_id, course_id)
        if existing is not None:
            existing.content = content
            return existing
        return await self.notes.add(
            Note(student_id=student_id, course_id=course_id, content=content, note_type="app")
        )

    async def sync_course(self, course: StudentCourse) -> Note:
        return await self.upsert_app_note(
            course.student_id, course.id, course_note_text(course.course_name, course.current_mark)
        )

    async def reconcile_general(self, student_id: int, courses: list[StudentCourse] | None = None) -> Note | None:
        if courses is None:
            courses = await self.courses.list_for_student(student_id)
        risky = sum(1 for c in courses if grade_status(c.current_mark) in RISKY_STATUSES)
        if risky >= settings.general_note_risk_count:
            return await self.upsert_app_note(student_id, None, general_note_text())
        existing = await self.notes.get_app_note(student_id, None)
        if existing is not None:
            await self.notes.delete(existing)
            logger.info("Removed general note | student_id=%s risky_courses=%s", student_id, risky)
        return None

    async def after_mark_change(self, course: StudentCourse) -> None:
        """Derived-state step run after every mark change on ``course``."""
        await self.sync_course(course)
        await self.reconcile_general(course.student_id)

    async def sync_all(self, student_id: int) -> None:
        """Bring every graded course's note and the general note up to date."""
        courses = await self.courses.list_for_student(student_id)
        for course in courses:
            if course.current_mark is not None:
                await self.sync_course(course)
        await self.reconcile_general(student_id, courses)
