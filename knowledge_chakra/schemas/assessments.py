"""Embedded value types of an assessment: questions, options and answers.

These are stored as JSON on the owning row (``Assessment.questions_json``,
``Submission.answers_json``) and validated back into these models whenever
the services work with them.
"""

from __future__ import annotations

import uuid
from typing import Any, Dict, Iterable, List, Optional

from pydantic import BaseModel, Field

from knowledge_chakra.models.enums import QuestionType


def new_id() -> str:
    return uuid.uuid4().hex


class QuestionOptionIn(BaseModel):
    id: Optional[str] = None
    text: str = Field(min_length=1)
    is_correct: bool = False


class QuestionIn(BaseModel):
    """Question as authored. Missing ids and points are filled on creation."""

    id: Optional[str] = None
    text: str = Field(min_length=1)
    type: QuestionType
    options: List[QuestionOptionIn] = Field(default_factory=list)
    points: Optional[float] = Field(default=None, ge=0)


class QuestionOption(BaseModel):
    id: str = Field(default_factory=new_id)
    text: str
    # ``None`` only in views handed to students
    is_correct: Optional[bool] = False


class Question(BaseModel):
    id: str = Field(default_factory=new_id)
    text: str
    type: QuestionType
    options: List[QuestionOption] = Field(default_factory=list)
    points: float = 1

    @classmethod
    def from_input(cls, data: QuestionIn, default_points: float) -> "Question":
        """Build a stored question, keeping client ids and generating the rest."""

        return cls(
            id=data.id or new_id(),
            text=data.text,
            type=data.type,
            options=[
                QuestionOption(id=opt.id or new_id(), text=opt.text, is_correct=opt.is_correct)
                for opt in data.options
            ],
            points=default_points if data.points is None else data.points,
        )

    def correct_option_ids(self) -> set[str]:
        return {opt.id for opt in self.options if opt.is_correct}

    def without_answers(self) -> "Question":
        """Copy with option correctness hidden."""

        return self.model_copy(
            update={
                "options": [opt.model_copy(update={"is_correct": None}) for opt in self.options]
            }
        )


class AnswerIn(BaseModel):
    """Answer as sent by a student. Correctness is never accepted from clients."""

    question_id: str
    selected_options: List[str] = Field(default_factory=list)
    text_answer: Optional[str] = None


class Answer(AnswerIn):
    is_correct: Optional[bool] = None
    points_earned: Optional[float] = None


def load_questions(raw: Optional[Iterable[Dict[str, Any]]]) -> List[Question]:
    return [Question.model_validate(item) for item in (raw or [])]


def dump_questions(questions: Iterable[Question]) -> List[Dict[str, Any]]:
    return [q.model_dump(mode="json") for q in questions]


def load_answers(raw: Optional[Iterable[Dict[str, Any]]]) -> List[Answer]:
    return [Answer.model_validate(item) for item in (raw or [])]


def dump_answers(answers: Iterable[Answer]) -> List[Dict[str, Any]]:
    return [a.model_dump(mode="json") for a in answers]
