import logging
from typing import Dict
from config.database import database
from controllers.access_controller import (
    ensure_learning_path_access,
    ensure_quiz_access,
    get_learning_path,
    owns,
)
from models.attempt_model import AttemptStatus, summarize_score
from models.question_model import Question, validate_questions
from models.quiz_model import QuizCreate, QuizUpdate, compute_total_points, student_view
from utils.errors import AuthorizationError, NotFoundError, ValidationError
from utils.helper import serialize_doc, to_object_id, utcnow

logger = logging.getLogger(__name__)

quizzes = database["quizzes"]
quiz_attempts = database["quiz_attempts"]
learning_paths = database["learning_paths"]


async def find_quiz(quiz_id) -> dict:
    quiz = await quizzes.find_one({"_id": to_object_id(quiz_id, "Quiz")})
    if not quiz:
        raise NotFoundError("Quiz not found")
    return quiz


def load_questions(quiz: dict) -> Dict[str, Question]:
    return {q["id"]: Question.model_validate(q) for q in quiz.get("questions", [])}


def _ensure_owner(quiz: dict, user):
    if not owns(quiz, user):
        raise AuthorizationError("Not authorized")


# ---------- Create quiz ----------
async def create_quiz_service(data: QuizCreate, user):
    learning_path = await get_learning_path(data.learningPathId)

    if not owns(learning_path, user):
        raise AuthorizationError("You can only create quizzes for your own learning paths")

    step_id = to_object_id(data.stepId, "Learning path step")
    step = next((s for s in learning_path.get("steps", []) if s.get("_id") == step_id), None)
    if step is None:
        raise NotFoundError("Learning path step not found")
    if step.get("quizId"):
        raise ValidationError("Step already has a quiz")

    questions = validate_questions(data.questions)

    now = utcnow()
    quiz_doc = {
        "title": data.title.strip(),
        "description": data.description or "",
        "learningPathId": learning_path["_id"],
        "stepId": step_id,
        "instructorId": to_object_id(user["id"], "Instructor"),
        "questions": [q.model_dump(mode="json") for q in questions],
        "totalPoints": compute_total_points(questions),
        "timeLimitMinutes": data.timeLimitMinutes,
        "passingScorePercent": data.passingScorePercent,
        "allowRetakes": data.allowRetakes,
        "maxAttempts": data.maxAttempts,
        "isActive": True,
        "createdAt": now,
        "updatedAt": now,
    }

    result = await quizzes.insert_one(quiz_doc)
    quiz_doc["_id"] = result.inserted_id

    # link the step back to its quiz
    await learning_paths.update_one(
        {"_id": learning_path["_id"], "steps._id": step_id},
        {"$set": {
            "steps.$.hasQuiz": True,
            "steps.$.quizId": quiz_doc["_id"],
            "steps.$.quizRequired": True,
            "steps.$.quizPassingScore": data.passingScorePercent,
        }},
    )

    logger.info(
        "Quiz %s created with %d questions (%d points)",
        quiz_doc["_id"], len(questions), quiz_doc["totalPoints"],
        extra={"user_id": user["id"], "quiz_id": str(quiz_doc["_id"])},
    )

    return serialize_doc(quiz_doc)


# ---------- Read quiz ----------
async def get_quiz_service(quiz_id: str, user):
    quiz = await find_quiz(quiz_id)
    is_owner = await ensure_quiz_access(quiz, user)

    data = serialize_doc(quiz)
    return data if is_owner else student_view(data)


async def list_learning_path_quizzes_service(learning_path_id: str, user):
    learning_path = await get_learning_path(learning_path_id)
    is_owner = await ensure_learning_path_access(learning_path, user)

    quizzes_list = await quizzes.find({
        "learningPathId": learning_path["_id"],
        "isActive": True,
    }).sort("createdAt", 1).to_list(None)

    result = [serialize_doc(q) for q in quizzes_list]
    return result if is_owner else [student_view(q) for q in result]


async def refresh_passed_flags(quiz_id, passing_score: int) -> int:
    """Re-derive ``passed`` on completed attempts after the threshold changed."""
    attempts = await quiz_attempts.find(
        {"quizId": quiz_id, "status": AttemptStatus.COMPLETED.value}
    ).to_list(None)

    changed = 0
    for attempt in attempts:
        summary = summarize_score(attempt.get("answers", []), attempt["maxScore"], passing_score)
        if summary["passed"] != attempt.get("passed"):
            await quiz_attempts.update_one(
                {"_id": attempt["_id"]}, {"$set": {"passed": summary["passed"]}}
            )
            changed += 1

    if changed:
        logger.info(
            "Passing score of quiz %s changed; %d attempts flipped", quiz_id, changed,
            extra={"quiz_id": str(quiz_id)},
        )
    return changed


# ---------- Update quiz ----------
async def update_quiz_service(quiz_id: str, data: QuizUpdate, user):
    quiz = await find_quiz(quiz_id)
    _ensure_owner(quiz, user)

    changes = {
        key: value
        for key, value in data.model_dump(exclude_unset=True, exclude={"questions"}).items()
        if value is not None
    }

    if data.questions is not None:
        questions = validate_questions(data.questions)
        changes["questions"] = [q.model_dump(mode="json") for q in questions]
        changes["totalPoints"] = compute_total_points(questions)

        existing = await quiz_attempts.count_documents({"quizId": quiz["_id"]})
        if existing:
            logger.warning(
                "Questions of quiz %s replaced while %d attempts reference it",
                quiz["_id"], existing,
                extra={"user_id": user["id"], "quiz_id": str(quiz["_id"])},
            )

    if "title" in changes:
        changes["title"] = changes["title"].strip()

    changes["updatedAt"] = utcnow()

    await quizzes.update_one({"_id": quiz["_id"]}, {"$set": changes})

    if "passingScorePercent" in changes:
        await learning_paths.update_one(
            {"_id": quiz["learningPathId"], "steps.quizId": quiz["_id"]},
            {"$set": {"steps.$.quizPassingScore": changes["passingScorePercent"]}},
        )
        await refresh_passed_flags(quiz["_id"], changes["passingScorePercent"])

    logger.info(
        "Quiz %s updated (%s)", quiz["_id"], ", ".join(sorted(changes)),
        extra={"user_id": user["id"], "quiz_id": str(quiz["_id"])},
    )

    return serialize_doc(await quizzes.find_one({"_id": quiz["_id"]}))


# ---------- Delete quiz ----------
async def delete_quiz_service(quiz_id: str, user):
    quiz = await find_quiz(quiz_id)
    _ensure_owner(quiz, user)

    # remove the step's reference before the quiz itself
    await learning_paths.update_one(
        {"_id": quiz["learningPathId"], "steps.quizId": quiz["_id"]},
        {"$set": {
            "steps.$.hasQuiz": False,
            "steps.$.quizId": None,
            "steps.$.quizRequired": False,
        }},
    )

    await quizzes.delete_one({"_id": quiz["_id"]})

    logger.info(
        "Quiz %s deleted", quiz["_id"],
        extra={"user_id": user["id"], "quiz_id": str(quiz["_id"])},
    )

    return {"success": True, "message": "Quiz deleted successfully"}


# ---------- Attempts of a quiz (instructor) ----------
async def list_quiz_attempts_service(quiz_id: str, user):
    quiz = await find_quiz(quiz_id)
    _ensure_owner(quiz, user)

    attempts = await quiz_attempts.find(
        {"quizId": quiz["_id"]}
    ).sort("createdAt", -1).to_list(None)

    return [serialize_doc(a) for a in attempts]
