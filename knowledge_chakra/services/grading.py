"""Quiz auto-grading.

Only ``single_choice`` and ``multiple_choice`` questions are scored here.
``true_false`` and ``short_answer`` questions contribute their points to the
total but earn nothing until an instructor grades the submission manually.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

from knowledge_chakra.models.enums import QuestionType
from knowledge_chakra.schemas.assessments import Answer, Question

AUTO_GRADED_TYPES = frozenset({QuestionType.SINGLE_CHOICE, QuestionType.MULTIPLE_CHOICE})


@dataclass
class GradingResult:
    score: int  # percentage 0-100
    points_earned: float
    total_points: float
    answers: List[Answer] = field(default_factory=list)


def is_answer_correct(question: Question, answer: Answer) -> Optional[bool]:
    """Correctness of ``answer``, or None if ``question`` is not auto-graded."""

    if question.type not in AUTO_GRADED_TYPES:
        return None
    correct = question.correct_option_ids()
    if question.type == QuestionType.SINGLE_CHOICE:
        return bool(answer.selected_options) and answer.selected_options[0] in correct
    # Over- and under-selection both fail
    return set(answer.selected_options) == correct


def to_percentage(points_earned: float, total_points: float) -> int:
    """round-half-up(100 * earned / total); 0 when there is nothing to earn."""

    if total_points <= 0:
        return 0
    return int(100 * points_earned / total_points + 0.5)


def auto_grade(questions: Sequence[Question], answers: Sequence[Answer]) -> GradingResult:
    """Score ``answers`` against ``questions`` from scratch.

    Returns the percentage score and a copy of the answers with
    ``is_correct``/``points_earned`` filled in for auto-graded questions.
    """

    by_question: Dict[str, Answer] = {}
    for answer in answers:
        by_question.setdefault(answer.question_id, answer)

    outcomes: Dict[str, Tuple[bool, float]] = {}
    earned = 0.0
    total = 0.0
    for question in questions:
        total += question.points
        answer = by_question.get(question.id)
        if answer is None:
            continue
        correct = is_answer_correct(question, answer)
        if correct is None:
            continue
        awarded = question.points if correct else 0.0
        earned += awarded
        outcomes[question.id] = (correct, awarded)

    result_answers: List[Answer] = []
    for answer in answers:
        outcome = outcomes.get(answer.question_id)
        # only the first answer per question is scored
        if outcome is not None and by_question[answer.question_id] is answer:
            answer = answer.model_copy(
                update={"is_correct": outcome[0], "points_earned": outcome[1]}
            )
        result_answers.append(answer)

    return GradingResult(
        score=to_percentage(earned, total),
        points_earned=earned,
        total_points=total,
        answers=result_answers,
    )
