import math
from enum import Enum
from typing import Any, List, Optional
from bson import ObjectId
from pydantic import BaseModel
from pydantic import ValidationError as PayloadError
from utils.errors import ValidationError


class QuestionType(str, Enum):
    SINGLE_CHOICE = "single_choice"
    MULTI_CHOICE = "multi_choice"
    LONG_ANSWER = "long_answer"
    NUMERIC = "numeric"
    FILE_UPLOAD = "file_upload"


class Difficulty(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


CHOICE_TYPES = (QuestionType.SINGLE_CHOICE, QuestionType.MULTI_CHOICE)


class Option(BaseModel):
    text: str = ""
    isCorrect: bool = False


# Authoring payload. Kept loose so every problem can be reported by
# validate_questions instead of failing on the first bad field.
class QuestionIn(BaseModel):
    id: Optional[str] = None
    text: Any = ""
    type: Any = None
    options: List[Option] = []
    guidelines: Optional[str] = None
    numericAnswer: Any = None
    numericTolerance: Any = 0
    requiresUpload: Optional[bool] = None
    points: Any = 1
    difficulty: Any = Difficulty.MEDIUM.value
    explanation: Optional[str] = ""


class Question(BaseModel):
    id: str
    text: str
    type: QuestionType
    options: List[Option] = []
    correctAnswer: Optional[str] = None
    guidelines: Optional[str] = None
    numericAnswer: Optional[float] = None
    numericTolerance: float = 0
    requiresUpload: bool = False
    points: int = 1
    difficulty: Difficulty = Difficulty.MEDIUM
    explanation: str = ""

    def correct_option_texts(self) -> set:
        return {o.text for o in self.options if o.isCorrect}


def _parse_number(value) -> Optional[float]:
    if isinstance(value, bool) or value is None:
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def _parse_points(value) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if isinstance(value, int) and value > 0:
        return value
    return None


def _check_question(q: QuestionIn) -> tuple:
    """Return (problems, Question or None) for one authoring payload."""
    problems = []

    text = q.text.strip() if isinstance(q.text, str) else ""
    if not text:
        problems.append("question text is required")

    try:
        qtype = QuestionType(q.type)
    except ValueError:
        problems.append(f"unknown question type {q.type!r}")
        return problems, None

    points = _parse_points(q.points)
    if points is None:
        problems.append("points must be a positive integer")

    try:
        difficulty = Difficulty(q.difficulty or Difficulty.MEDIUM.value)
    except ValueError:
        problems.append(f"unknown difficulty {q.difficulty!r}")
        difficulty = Difficulty.MEDIUM

    fields = {}

    if qtype in CHOICE_TYPES:
        options = q.options
        correct = [o for o in options if o.isCorrect]
        if len(options) < 2:
            problems.append("at least two options are required")
        if any(not o.text.strip() for o in options):
            problems.append("option text must not be empty")
        if not correct:
            problems.append("at least one option must be marked correct")
        elif qtype == QuestionType.SINGLE_CHOICE and len(correct) != 1:
            problems.append("single choice questions need exactly one correct option")

        fields["options"] = [Option(text=o.text.strip(), isCorrect=o.isCorrect) for o in options]
        if qtype == QuestionType.SINGLE_CHOICE and len(correct) == 1:
            fields["correctAnswer"] = correct[0].text.strip()

    elif qtype == QuestionType.LONG_ANSWER:
        guidelines = (q.guidelines or "").strip()
        if not guidelines:
            problems.append("guidelines are required for long answer questions")
        fields["guidelines"] = guidelines

    elif qtype == QuestionType.NUMERIC:
        answer = _parse_number(q.numericAnswer)
        tolerance = _parse_number(q.numericTolerance if q.numericTolerance is not None else 0)
        if answer is None:
            problems.append("numericAnswer must be a finite number")
        if tolerance is None or tolerance < 0:
            problems.append("numericTolerance must be a non-negative number")
        fields["numericAnswer"] = answer
        fields["numericTolerance"] = tolerance if tolerance is not None else 0

    elif qtype == QuestionType.FILE_UPLOAD:
        fields["requiresUpload"] = True if q.requiresUpload is None else q.requiresUpload

    if problems:
        return problems, None

    question = Question(
        id=q.id or str(ObjectId()),
        text=text,
        type=qtype,
        points=points,
        difficulty=difficulty,
        explanation=q.explanation or "",
        **fields,
    )
    return problems, question


def validate_questions(raw_questions: List[Any]) -> List[Question]:
    """
    Validate authoring payloads and build the stored questions.

    Every offending question is reported in one ValidationError whose
    ``details`` hold ``{"index", "reason"}`` entries (0-based index).
    Question ids are generated where missing and must be unique.
    """
    if not raw_questions:
        raise ValidationError("At least one question is required")

    details = []
    questions = []
    seen_ids = set()

    for index, raw in enumerate(raw_questions):
        try:
            payload = raw if isinstance(raw, QuestionIn) else QuestionIn.model_validate(raw)
        except PayloadError:
            details.append({"index": index, "reason": "malformed question payload"})
            continue

        problems, question = _check_question(payload)

        if payload.id:
            if payload.id in seen_ids:
                problems.append(f"duplicate question id {payload.id}")
            seen_ids.add(payload.id)

        for reason in problems:
            details.append({"index": index, "reason": reason})
        if question is not None:
            questions.append(question)

    if details:
        summary = "; ".join(f"Question {d['index'] + 1}: {d['reason']}" for d in details)
        raise ValidationError(summary, details=details)

    return questions
