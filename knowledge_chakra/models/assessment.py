"""Assessment model - quizzes and assignments."""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import Boolean, DateTime, Enum, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.types import JSON

from knowledge_chakra.db import Base
from knowledge_chakra.models.enums import AssessmentType, SubmissionType


class Assessment(Base):
    """A quiz or assignment belonging to a course.

    Questions are embedded value objects; updating them rewrites the whole
    list.
    """

    __tablename__ = "assessments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    course_id: Mapped[int] = mapped_column(
        ForeignKey("courses.id", ondelete="CASCADE"), nullable=False, index=True
    )
    type: Mapped[AssessmentType] = mapped_column(
        Enum(AssessmentType), nullable=False, index=True
    )

    # Format: [{"id": "...", "text": "...", "type": "single_choice", "points": 1,
    #           "options": [{"id": "...", "text": "...", "is_correct": true}]}]
    questions_json: Mapped[List[Dict[str, Any]]] = mapped_column(JSON, default=list)

    due_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), index=True)
    time_limit: Mapped[Optional[int]] = mapped_column(Integer)  # minutes
    passing_score: Mapped[int] = mapped_column(Integer, nullable=False)  # percentage
    total_points: Mapped[int] = mapped_column(Integer, nullable=False)
    submission_type: Mapped[SubmissionType] = mapped_column(
        Enum(SubmissionType), nullable=False
    )

    published: Mapped[bool] = mapped_column(Boolean, default=False)
    published_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    created_by: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    course = relationship("Course", back_populates="assessments")
    creator = relationship("User", foreign_keys=[created_by])
    submissions = relationship(
        "Submission", back_populates="assessment", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<Assessment(id={self.id}, title={self.title}, type={self.type.value})>"
