"""Submission model - one student's attempt at one assessment."""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import (
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.types import JSON

from knowledge_chakra.db import Base
from knowledge_chakra.models.enums import SubmissionStatus


class Submission(Base):
    """A student's submission. Exactly one per (student, assessment)."""

    __tablename__ = "submissions"
    __table_args__ = (
        UniqueConstraint("student_id", "assessment_id", name="uq_submission_student_assessment"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    student_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    assessment_id: Mapped[int] = mapped_column(
        ForeignKey("assessments.id", ondelete="CASCADE"), nullable=False, index=True
    )

    # Format: [{"question_id": "...", "selected_options": ["..."], "text_answer": null,
    #           "is_correct": true, "points_earned": 5}]
    answers_json: Mapped[List[Dict[str, Any]]] = mapped_column(JSON, default=list)
    file_url: Mapped[Optional[str]] = mapped_column(String(1024))
    text_content: Mapped[Optional[str]] = mapped_column(Text)
    link_url: Mapped[Optional[str]] = mapped_column(String(1024))

    status: Mapped[SubmissionStatus] = mapped_column(
        Enum(SubmissionStatus), default=SubmissionStatus.DRAFT, nullable=False, index=True
    )
    score: Mapped[Optional[float]] = mapped_column(Float)  # 0-100
    feedback: Mapped[Optional[str]] = mapped_column(Text)
    graded_by: Mapped[Optional[int]] = mapped_column(ForeignKey("users.id"))

    submitted_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    graded_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
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

    assessment = relationship("Assessment", back_populates="submissions")
    student = relationship("User", foreign_keys=[student_id])
    grader = relationship("User", foreign_keys=[graded_by])

    def __repr__(self) -> str:
        return (
            f"<Submission(id={self.id}, assessment_id={self.assessment_id}, "
            f"status={self.status.value})>"
        )
