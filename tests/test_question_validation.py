import pytest
from models.question_model import QuestionType, validate_questions
from models.quiz_model import compute_total_points, effective_attempt_limit, student_view
from utils.errors import ValidationError
from tests.conftest import sample_questions


def test_valid_questions_are_built_with_derived_fields():
    questions = validate_questions(sample_questions())

    assert [q.type for q in questions] == [
        QuestionType.SINGLE_CHOICE,
        QuestionType.MULTI_CHOICE,
        QuestionType.NUMERIC,
        QuestionType.LONG_ANSWER,
    ]
    assert questions[0].correctAnswer == "Paris"
    assert questions[1].correctAnswer is None
    assert compute_total_points(questions) == 10


def test_missing_ids_are_generated_and_unique():
    raw = [
        {"text": "Upload your lab report", "type": "file_upload"},
        {"text": "Upload your diagram", "type": "file_upload"},
    ]
    questions = validate_questions(raw)
    assert questions[0].id != questions[1].id
    assert all(q.requiresUpload for q in questions)
    assert all(q.points == 1 for q in questions)


def test_empty_question_list_is_rejected():
    with pytest.raises(ValidationError, match="At least one question"):
        validate_questions([])


def test_every_offending_question_is_reported():
    raw = [
        {"text": "ok", "type": "single_choice", "options": [
            {"text": "a", "isCorrect": True}, {"text": "b", "isCorrect": True},
        ]},
        {"text": "fine", "type": "numeric", "numericAnswer": 2},
        {"text": "", "type": "long_answer"},
        {"text": "how much", "type": "numeric", "numericAnswer": "lots"},
        {"text": "pick", "type": "multi_choice", "options": [{"text": "a", "isCorrect": False}]},
    ]

    with pytest.raises(ValidationError) as exc_info:
        validate_questions(raw)

    details = exc_info.value.details
    assert {d["index"] for d in details} == {0, 2, 3, 4}
    reasons = [d["reason"] for d in details]
    assert "single choice questions need exactly one correct option" in reasons
    assert "guidelines are required for long answer questions" in reasons
    assert "question text is required" in reasons
    assert "numericAnswer must be a finite number" in reasons
    assert "at least two options are required" in reasons
    assert "at least one option must be marked correct" in reasons
    assert "Question 1:" in exc_info.value.message


@pytest.mark.parametrize("bad", [
    {"text": "x", "type": "essay"},
    {"text": "x", "type": "numeric", "numericAnswer": float("inf")},
    {"text": "x", "type": "numeric", "numericAnswer": 1, "numericTolerance": -0.5},
    {"text": "x", "type": "file_upload", "points": 0},
    {"text": "x", "type": "file_upload", "difficulty": "brutal"},
])
def test_single_problem_payloads(bad):
    with pytest.raises(ValidationError):
        validate_questions([bad])


def test_duplicate_question_ids_are_rejected():
    raw = [
        {"id": "same", "text": "one", "type": "file_upload"},
        {"id": "same", "text": "two", "type": "file_upload"},
    ]
    with pytest.raises(ValidationError) as exc_info:
        validate_questions(raw)
    assert exc_info.value.details == [{"index": 1, "reason": "duplicate question id same"}]


def test_numeric_answer_accepts_numeric_strings():
    [question] = validate_questions([
        {"text": "g", "type": "numeric", "numericAnswer": "9.81", "numericTolerance": "0.05"},
    ])
    assert question.numericAnswer == 9.81
    assert question.numericTolerance == 0.05


def test_student_view_hides_answer_keys():
    questions = [q.model_dump(mode="json") for q in validate_questions(sample_questions())]
    view = student_view({"title": "t", "questions": questions})

    for q in view["questions"]:
        assert "correctAnswer" not in q
        assert "explanation" not in q
        assert "numericAnswer" not in q
        for option in q.get("options", []):
            assert "isCorrect" not in option
    assert view["questions"][0]["options"] == [{"text": "London"}, {"text": "Paris"}]
    # source untouched
    assert questions[0]["correctAnswer"] == "Paris"


def test_effective_attempt_limit():
    assert effective_attempt_limit({"allowRetakes": True, "maxAttempts": 4}) == 4
    assert effective_attempt_limit({"allowRetakes": False, "maxAttempts": 4}) == 1
