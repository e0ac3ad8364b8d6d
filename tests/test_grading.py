from knowledge_chakra.models import QuestionType
from knowledge_chakra.schemas.assessments import Answer, Question, QuestionOption
from knowledge_chakra.services.grading import auto_grade, is_answer_correct, to_percentage


def _choice(qid, qtype, correct, wrong=("x",), points=1):
    options = [QuestionOption(id=c, text=c, is_correct=True) for c in correct]
    options += [QuestionOption(id=w, text=w, is_correct=False) for w in wrong]
    return Question(id=qid, text=f"Question {qid}", type=qtype, options=options, points=points)


def test_single_choice_uses_first_selected_option():
    question = _choice("q1", QuestionType.SINGLE_CHOICE, ["a"], wrong=["b"])
    assert is_answer_correct(question, Answer(question_id="q1", selected_options=["a"])) is True
    assert is_answer_correct(question, Answer(question_id="q1", selected_options=["a", "b"])) is True
    assert is_answer_correct(question, Answer(question_id="q1", selected_options=["b", "a"])) is False
    assert is_answer_correct(question, Answer(question_id="q1", selected_options=[])) is False


def test_multiple_choice_requires_exact_set():
    question = _choice("q1", QuestionType.MULTIPLE_CHOICE, ["a", "b"], wrong=["c"])
    assert is_answer_correct(question, Answer(question_id="q1", selected_options=["b", "a"])) is True
    assert is_answer_correct(question, Answer(question_id="q1", selected_options=["a"])) is False
    assert is_answer_correct(question, Answer(question_id="q1", selected_options=["a", "b", "c"])) is False


def test_manual_question_types_are_not_auto_graded():
    question = Question(id="q1", text="Explain", type=QuestionType.SHORT_ANSWER, points=4)
    assert is_answer_correct(question, Answer(question_id="q1", text_answer="because")) is None


def test_to_percentage_rounds_half_up():
    assert to_percentage(1, 3) == 33
    assert to_percentage(2, 3) == 67
    assert to_percentage(1, 8) == 13
    assert to_percentage(5, 10) == 50
    assert to_percentage(3, 0) == 0


def test_auto_grade_half_correct_quiz():
    questions = [
        _choice("q1", QuestionType.SINGLE_CHOICE, ["a"], points=5),
        _choice("q2", QuestionType.SINGLE_CHOICE, ["a"], points=5),
    ]
    answers = [
        Answer(question_id="q1", selected_options=["a"]),
        Answer(question_id="q2", selected_options=["x"]),
    ]

    result = auto_grade(questions, answers)

    assert result.score == 50
    assert result.points_earned == 5
    assert result.total_points == 10
    assert [a.is_correct for a in result.answers] == [True, False]
    assert [a.points_earned for a in result.answers] == [5, 0]


def test_unanswered_and_manual_questions_count_toward_total():
    questions = [
        _choice("q1", QuestionType.SINGLE_CHOICE, ["a"], points=2),
        Question(id="q2", text="Essay", type=QuestionType.SHORT_ANSWER, points=2),
        _choice("q3", QuestionType.MULTIPLE_CHOICE, ["a", "b"], points=4),
    ]
    answers = [
        Answer(question_id="q1", selected_options=["a"]),
        Answer(question_id="q2", text_answer="My essay"),
    ]

    result = auto_grade(questions, answers)

    assert result.score == 25
    essay = result.answers[1]
    assert essay.is_correct is None
    assert essay.points_earned is None


def test_only_first_answer_per_question_is_scored():
    questions = [_choice("q1", QuestionType.SINGLE_CHOICE, ["a"], points=1)]
    answers = [
        Answer(question_id="q1", selected_options=["x"]),
        Answer(question_id="q1", selected_options=["a"]),
    ]

    result = auto_grade(questions, answers)

    assert result.score == 0
    assert result.answers[0].is_correct is False
    assert result.answers[1].is_correct is None


def test_answers_to_unknown_questions_are_ignored():
    questions = [_choice("q1", QuestionType.SINGLE_CHOICE, ["a"], points=1)]
    answers = [
        Answer(question_id="missing", selected_options=["a"]),
        Answer(question_id="q1", selected_options=["a"]),
    ]

    result = auto_grade(questions, answers)

    assert result.score == 100
    assert len(result.answers) == 2


def test_empty_quiz_scores_zero():
    assert auto_grade([], []).score == 0
