import pytest
from models.attempt_model import (
    ChoiceAnswer,
    FileAnswer,
    MultiChoiceAnswer,
    NumericAnswer,
    TextAnswer,
    coerce_answer,
    round_half_up,
    summarize_score,
)
from models.question_model import Question, QuestionType


def question(qtype):
    return Question(id="q", text="t", type=qtype)


@pytest.mark.parametrize("qtype, raw, expected", [
    (QuestionType.SINGLE_CHOICE, "Paris", ChoiceAnswer(text="Paris")),
    (QuestionType.SINGLE_CHOICE, 3, ChoiceAnswer(text="")),
    (QuestionType.MULTI_CHOICE, ["A", "C"], MultiChoiceAnswer(selected=["A", "C"])),
    (QuestionType.MULTI_CHOICE, "A", MultiChoiceAnswer(selected=["A"])),
    (QuestionType.MULTI_CHOICE, None, MultiChoiceAnswer(selected=[])),
    (QuestionType.NUMERIC, 3.15, NumericAnswer(value=3.15)),
    (QuestionType.NUMERIC, " 42 ", NumericAnswer(value=42.0)),
    (QuestionType.NUMERIC, "forty", NumericAnswer(value=None)),
    (QuestionType.NUMERIC, True, NumericAnswer(value=None)),
    (QuestionType.LONG_ANSWER, "Because inertia.", TextAnswer(text="Because inertia.")),
    (QuestionType.FILE_UPLOAD, {"fileUrl": "/uploads/a.pdf", "fileName": "a.pdf"},
     FileAnswer(fileUrl="/uploads/a.pdf", fileName="a.pdf")),
    (QuestionType.FILE_UPLOAD, None, FileAnswer()),
])
def test_coerce_answer(qtype, raw, expected):
    assert coerce_answer(question(qtype), raw) == expected


def test_round_half_up_matches_classic_rounding():
    assert round_half_up(12.5) == 13
    assert round_half_up(2.5) == 3
    assert round_half_up(66.666) == 67
    assert round_half_up(33.333) == 33


def test_summarize_score_invariants():
    answers = [{"pointsEarned": 2}, {"pointsEarned": 0}, {"pointsEarned": 3}]
    summary = summarize_score(answers, max_score=8, passing_score=60)

    assert summary["totalScore"] == 5
    assert summary["percentage"] == round_half_up(100 * 5 / 8) == 63
    assert summary["passed"] is True


def test_summarize_score_pass_threshold_is_inclusive():
    assert summarize_score([{"pointsEarned": 7}], 10, 70)["passed"] is True
    assert summarize_score([{"pointsEarned": 6}], 10, 70)["passed"] is False


def test_summarize_score_with_zero_max_score():
    summary = summarize_score([], max_score=0, passing_score=0)
    assert summary == {"totalScore": 0, "percentage": 0, "passed": True}
