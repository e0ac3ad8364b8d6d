"""Course content: modules, lessons and per-enrollment lesson completion."""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import DateTime, Enum, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from knowledge_chakra.db import Base
from knowledge_chakra.models.enums import LessonType


class CourseModule(Base):
    """Ordered section of a course."""

    __tablename__ = "course_modules"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    course_id: Mapped[int] = mapped_column(
        ForeignKey("courses.id", ondelete="CASCADE"), nullable=False, index=True
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    position: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    course = relationship("Course", back_populates="modules")
    lessons = relationship(
        "Lesson",
        back_populates="module",
        cascade="all, delete-orphan",
        order_by="[Lesson.position, Lesson.id]",
    )

    def __repr__(self) -> str:
        return f"<CourseModule(id={self.id}, course_id={self.course_id}, title={self.title})>"


class Lesson(Base):
    __tablename__ = "lessons"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    module_id: Mapped[int] = mapped_column(
        ForeignKey("course_modules.id", ondelete="CASCADE"), nullable=False, index=True
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)  # body text or URL
    type: Mapped[LessonType] = mapped_column(Enum(LessonType), nullable=False)
    duration: Mapped[Optional[int]] = mapped_column(Integer)  # minutes
    position: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    module = relationship("CourseModule", back_populates="lessons")
    completions = relationship(
        "LessonCompletion", back_populates="lesson", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<Lesson(id={self.id}, module_id={self.module_id}, type={self.type.value})>"


class LessonCompletion(Base):
    """A lesson a student has marked complete. One per (enrollment, lesson)."""

    __tablename__ = "lesson_completions"
    __table_args__ = (
        UniqueConstraint("enrollment_id", "lesson_id", name="uq_completion_enrollment_lesson"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    enrollment_id: Mapped[int] = mapped_column(
        ForeignKey("enrollments.id", ondelete="CASCADE"), nullable=False, index=True
    )
    lesson_id: Mapped[int] = mapped_column(
        ForeignKey("lessons.id", ondelete="CASCADE"), nullable=False, index=True
    )
    completed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    enrollment = relationship("Enrollment", back_populates="completions")
    lesson = relationship("Lesson", back_populates="completions")
