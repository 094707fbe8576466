from pydantic import BaseModel, Field
from typing import List, Optional, Iterable
from models.question_model import Question, QuestionIn

STUDENT_HIDDEN_FIELDS = ("correctAnswer", "explanation", "numericAnswer", "numericTolerance")


class QuizPolicy(BaseModel):
    timeLimitMinutes: int = Field(30, ge=5, le=180)
    passingScorePercent: int = Field(70, ge=0, le=100)
    allowRetakes: bool = True
    maxAttempts: int = Field(3, ge=1, le=10)


class QuizCreate(QuizPolicy):
    title: str = Field(..., min_length=1)
    description: Optional[str] = ""
    learningPathId: str
    stepId: str
    questions: List[QuestionIn] = []


class QuizUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    questions: Optional[List[QuestionIn]] = None
    timeLimitMinutes: Optional[int] = Field(None, ge=5, le=180)
    passingScorePercent: Optional[int] = Field(None, ge=0, le=100)
    allowRetakes: Optional[bool] = None
    maxAttempts: Optional[int] = Field(None, ge=1, le=10)
    isActive: Optional[bool] = None


def compute_total_points(questions: Iterable[Question]) -> int:
    return sum(q.points for q in questions)


def effective_attempt_limit(quiz: dict) -> int:
    if not quiz.get("allowRetakes", True):
        return 1
    return quiz.get("maxAttempts", 3)


def student_view(quiz: dict) -> dict:
    """Copy of a serialized quiz with answer keys removed."""
    questions = []
    for q in quiz.get("questions", []):
        q = {k: v for k, v in q.items() if k not in STUDENT_HIDDEN_FIELDS}
        if "options" in q:
            q["options"] = [{"text": o.get("text", "")} for o in q["options"]]
        questions.append(q)

    return {**quiz, "questions": questions}
