"""
Grading engine.

Maps a question and a typed answer to correctness, points and feedback.
Pure and deterministic; the attempt controller calls it once per answer.
Manual types (long answer, file upload) always score 0 and wait for an
instructor regrade.
"""
from dataclasses import dataclass
from decimal import Decimal
from typing import Callable, Dict
from models.question_model import Question, QuestionType

CORRECT = "Correct!"
INCORRECT = "Incorrect."
FILE_PENDING = "Submitted for instructor review."
TEXT_PENDING = "Submitted; instructor will grade."


@dataclass(frozen=True)
class GradeResult:
    isCorrect: bool
    pointsEarned: float
    feedback: str


def _all_or_nothing(question: Question, is_correct: bool, feedback: str = INCORRECT) -> GradeResult:
    if is_correct:
        return GradeResult(True, question.points, CORRECT)
    return GradeResult(False, 0, feedback)


def _exact(value: float) -> Decimal:
    # repr gives the shortest round-trip text, so 3.15 - 3.14 == 0.01 exactly
    return Decimal(repr(float(value)))


def _format_number(value: float) -> str:
    return f"{value:g}"


def grade_single_choice(question: Question, answer) -> GradeResult:
    return _all_or_nothing(question, answer.text.strip() == question.correctAnswer)


def grade_multi_choice(question: Question, answer) -> GradeResult:
    submitted = {text.strip() for text in answer.selected}
    expected = question.correct_option_texts()
    return _all_or_nothing(question, bool(submitted) and submitted == expected)


def grade_numeric(question: Question, answer) -> GradeResult:
    expected = question.numericAnswer
    tolerance = question.numericTolerance or 0
    is_correct = (
        answer.value is not None
        and abs(_exact(answer.value) - _exact(expected)) <= _exact(tolerance)
    )
    feedback = (
        f"Incorrect. Expected {_format_number(expected)} "
        f"± {_format_number(tolerance)}."
    )
    return _all_or_nothing(question, is_correct, feedback)


def grade_file_upload(question: Question, answer) -> GradeResult:
    return GradeResult(False, 0, FILE_PENDING)


def grade_long_answer(question: Question, answer) -> GradeResult:
    return GradeResult(False, 0, TEXT_PENDING)


GRADERS: Dict[QuestionType, Callable[[Question, object], GradeResult]] = {
    QuestionType.SINGLE_CHOICE: grade_single_choice,
    QuestionType.MULTI_CHOICE: grade_multi_choice,
    QuestionType.NUMERIC: grade_numeric,
    QuestionType.FILE_UPLOAD: grade_file_upload,
    QuestionType.LONG_ANSWER: grade_long_answer,
}

MANUALLY_GRADED = (QuestionType.FILE_UPLOAD, QuestionType.LONG_ANSWER)


def grade_answer(question: Question, answer) -> GradeResult:
    """Grade one typed answer. An answer of the wrong kind is incorrect."""
    if answer.kind != question.type.value:
        if question.type in MANUALLY_GRADED:
            return GRADERS[question.type](question, answer)
        return GradeResult(False, 0, INCORRECT)
    return GRADERS[question.type](question, answer)
