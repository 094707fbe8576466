import math
from enum import Enum
from typing import Annotated, Any, Iterable, List, Literal, Optional, Union
from pydantic import BaseModel, Field
from models.question_model import Question, QuestionType


class AttemptStatus(str, Enum):
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    ABANDONED = "abandoned"


# ---------- Typed answers, one per question type ----------

class ChoiceAnswer(BaseModel):
    kind: Literal["single_choice"] = "single_choice"
    text: str = ""


class MultiChoiceAnswer(BaseModel):
    kind: Literal["multi_choice"] = "multi_choice"
    selected: List[str] = []


class NumericAnswer(BaseModel):
    kind: Literal["numeric"] = "numeric"
    value: Optional[float] = None


class TextAnswer(BaseModel):
    kind: Literal["long_answer"] = "long_answer"
    text: str = ""


class FileAnswer(BaseModel):
    kind: Literal["file_upload"] = "file_upload"
    fileUrl: Optional[str] = None
    fileName: Optional[str] = None


TypedAnswer = Annotated[
    Union[ChoiceAnswer, MultiChoiceAnswer, NumericAnswer, TextAnswer, FileAnswer],
    Field(discriminator="kind"),
]


class Answer(BaseModel):
    questionId: str
    answer: TypedAnswer
    isCorrect: bool = False
    pointsEarned: float = 0
    feedback: str = ""
    timeSpentSeconds: int = 0


# ---------- Request bodies ----------

class AnswerSubmission(BaseModel):
    questionId: str
    answer: Any = None
    timeSpentSeconds: int = Field(0, ge=0)


class SubmitRequest(BaseModel):
    attemptId: str
    answers: List[AnswerSubmission] = []


class GradePatch(BaseModel):
    questionId: str
    pointsEarned: float = Field(..., ge=0)
    feedback: Optional[str] = None


class GradeRequest(BaseModel):
    grades: List[GradePatch] = Field(..., min_length=1)


# ---------- Rules ----------

def _as_number(value) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def coerce_answer(question: Question, raw: Any):
    """
    Build the typed answer for ``question`` from a raw submitted value.

    Malformed values become an empty answer of the right kind, which the
    grading engine treats as incorrect (or pending for manual types).
    """
    qtype = question.type

    if qtype == QuestionType.SINGLE_CHOICE:
        return ChoiceAnswer(text=raw if isinstance(raw, str) else "")

    if qtype == QuestionType.MULTI_CHOICE:
        if isinstance(raw, str):
            raw = [raw]
        if not isinstance(raw, list):
            raw = []
        return MultiChoiceAnswer(selected=[v for v in raw if isinstance(v, str)])

    if qtype == QuestionType.NUMERIC:
        return NumericAnswer(value=_as_number(raw))

    if qtype == QuestionType.LONG_ANSWER:
        return TextAnswer(text=raw if isinstance(raw, str) else "")

    # file upload
    if isinstance(raw, dict):
        return FileAnswer(fileUrl=raw.get("fileUrl"), fileName=raw.get("fileName"))
    if isinstance(raw, str) and raw:
        return FileAnswer(fileUrl=raw)
    return FileAnswer()


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def summarize_score(answers: Iterable[dict], max_score: float, passing_score: int) -> dict:
    """Derive totalScore, percentage and passed from the full answer set."""
    total = sum(a.get("pointsEarned", 0) or 0 for a in answers)
    percentage = round_half_up(100 * total / max_score) if max_score else 0
    return {
        "totalScore": total,
        "percentage": percentage,
        "passed": percentage >= passing_score,
    }
