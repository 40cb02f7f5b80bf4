from datetime import date, datetime, time, timezone

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    Time,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from unipilot.models.base import Base

NOTE_TYPES = ("student", "app")
TASK_SOURCES = ("student", "app")
EVENT_TYPES = ("exam", "study", "project", "other")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class StudentCourse(Base):
    __tablename__ = "student_courses"
    __table_args__ = (
        UniqueConstraint("student_id", "catalog_course_id", name="uq_student_courses_student_catalog"),
        Index("idx_student_courses_student_id", "student_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    student_id: Mapped[int] = mapped_column(Integer, nullable=False)
    catalog_course_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    course_name: Mapped[str] = mapped_column(String(255), nullable=False)
    course_code: Mapped[str] = mapped_column(String(64), nullable=False, default="")
    credit_hours: Mapped[float] = mapped_column(Float, nullable=False, default=3)
    semester: Mapped[str | None] = mapped_column(String(64), nullable=True)
    current_mark: Mapped[float | None] = mapped_column(Float, nullable=True)
    finalized_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    passed: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, server_default=func.now())

    @property
    def is_finalized(self) -> bool:
        return self.finalized_at is not None


class GradeItem(Base):
    __tablename__ = "grade_items"
    __table_args__ = (
        Index("idx_grade_items_course_id", "course_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    course_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("student_courses.id", ondelete="CASCADE"), nullable=False
    )
    item_type: Mapped[str] = mapped_column(String(32), nullable=False, default="quiz")
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    score: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    max_score: Mapped[float] = mapped_column(Float, nullable=False, default=100.0)
    weight: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, server_default=func.now())


class AcademicRecord(Base):
    __tablename__ = "academic_records"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    student_id: Mapped[int] = mapped_column(Integer, nullable=False, unique=True)
    cgpa: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    cumulative_percent: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    total_credits_completed: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    total_credits_carried: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), onupdate=utcnow
    )


class Note(Base):
    __tablename__ = "notes"
    __table_args__ = (
        CheckConstraint("note_type IN ('student', 'app')", name="ck_notes_note_type"),
        Index("idx_notes_student_id", "student_id"),
        Index("idx_notes_student_course_type", "student_id", "course_id", "note_type"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    student_id: Mapped[int] = mapped_column(Integer, nullable=False)
    course_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("student_courses.id", ondelete="SET NULL"), nullable=True
    )
    content: Mapped[str] = mapped_column(Text, nullable=False)
    note_type: Mapped[str] = mapped_column(String(16), nullable=False, default="student")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), onupdate=utcnow
    )


class PlannerEvent(Base):
    __tablename__ = "planner_events"
    __table_args__ = (
        CheckConstraint("event_type IN ('exam', 'study', 'project', 'other')", name="ck_planner_events_type"),
        Index("idx_planner_events_student_id", "student_id"),
        Index("idx_planner_events_dates", "start_date", "end_date"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    student_id: Mapped[int] = mapped_column(Integer, nullable=False)
    course_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("student_courses.id", ondelete="SET NULL"), nullable=True
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    start_time: Mapped[time] = mapped_column(Time, nullable=False)
    end_time: Mapped[time] = mapped_column(Time, nullable=False)
    event_type: Mapped[str] = mapped_column(String(16), nullable=False, default="study")
    completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, server_default=func.now())


class PlannerTask(Base):
    __tablename__ = "planner_tasks"
    __table_args__ = (
        CheckConstraint("source IN ('student', 'app')", name="ck_planner_tasks_source"),
        CheckConstraint("priority BETWEEN 1 AND 5", name="ck_planner_tasks_priority"),
        Index("idx_planner_tasks_student_id", "student_id"),
        Index("idx_planner_tasks_student_due", "student_id", "due_date"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    student_id: Mapped[int] = mapped_column(Integer, nullable=False)
    course_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("student_courses.id", ondelete="SET NULL"), nullable=True
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    due_date: Mapped[date] = mapped_column(Date, nullable=False)
    due_time: Mapped[time | None] = mapped_column(Time, nullable=True)
    priority: Mapped[int] = mapped_column(Integer, nullable=False, default=3)
    completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    source: Mapped[str] = mapped_column(String(16), nullable=False, default="student")
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, server_default=func.now())
