import logging
from typing import Dict, Optional
from fastapi import UploadFile
from config.database import database
from controllers.access_controller import get_learning_path, is_enrolled, owns
from controllers.progress_controller import record_quiz_result
from controllers.quiz_controller import find_quiz, load_questions
from models.attempt_model import (
    Answer,
    AnswerSubmission,
    AttemptStatus,
    GradeRequest,
    SubmitRequest,
    coerce_answer,
    summarize_score,
)
from models.question_model import Question, QuestionType
from models.quiz_model import effective_attempt_limit
from utils.errors import (
    AttemptLimitExceeded,
    AuthorizationError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from utils.file_storage import save_answer_file
from utils.grading import grade_answer
from utils.helper import serialize_doc, to_object_id, utcnow

logger = logging.getLogger(__name__)

quiz_attempts = database["quiz_attempts"]


async def find_attempt(attempt_id) -> dict:
    attempt = await quiz_attempts.find_one({"_id": to_object_id(attempt_id, "Quiz attempt")})
    if not attempt:
        raise NotFoundError("Quiz attempt not found")
    return attempt


def attempt_points(attempt: dict, questions: Dict[str, Question]) -> Dict[str, int]:
    """Points per question id as snapshotted at start, else the quiz's current ones."""
    snapshot = attempt.get("questionPoints")
    if snapshot is None:
        return {qid: q.points for qid, q in questions.items()}
    return {entry["questionId"]: entry["points"] for entry in snapshot}


# ---------- Start ----------
async def start_attempt_service(quiz_id: str, user):
    quiz = await find_quiz(quiz_id)

    if not quiz.get("isActive", True):
        raise InvalidStateError("Quiz is not active")

    learning_path = await get_learning_path(quiz["learningPathId"])
    if user["role"] != "student" or not await is_enrolled(user["id"], learning_path.get("classroomId")):
        raise AuthorizationError("Access denied")

    student_id = to_object_id(user["id"], "Student")

    # count-then-insert; two concurrent starts can race past the limit
    counted = await quiz_attempts.count_documents({
        "quizId": quiz["_id"],
        "studentId": student_id,
        "status": {"$ne": AttemptStatus.ABANDONED.value},
    })
    if counted >= effective_attempt_limit(quiz):
        raise AttemptLimitExceeded("Maximum attempts exceeded for this quiz")

    previous = await quiz_attempts.count_documents({
        "quizId": quiz["_id"],
        "studentId": student_id,
    })

    now = utcnow()
    attempt_doc = {
        "studentId": student_id,
        "quizId": quiz["_id"],
        "learningPathId": quiz["learningPathId"],
        "stepId": quiz["stepId"],
        "answers": [],
        "totalScore": 0,
        "maxScore": quiz.get("totalPoints", 0),
        # points in force when the attempt began; later quiz edits don't rescale it
        "questionPoints": [
            {"questionId": q["id"], "points": q["points"]} for q in quiz.get("questions", [])
        ],
        "percentage": 0,
        "passed": False,
        "attemptNumber": previous + 1,
        "startedAt": now,
        "completedAt": None,
        "timeSpentSeconds": 0,
        "status": AttemptStatus.IN_PROGRESS.value,
        "createdAt": now,
    }

    result = await quiz_attempts.insert_one(attempt_doc)

    logger.info(
        "Attempt %d started on quiz %s", attempt_doc["attemptNumber"], quiz["_id"],
        extra={"user_id": user["id"], "quiz_id": str(quiz["_id"]), "attempt_id": str(result.inserted_id)},
    )

    # never expose answers here
    return {
        "message": "Quiz started",
        "attemptId": str(result.inserted_id),
        "attemptNumber": attempt_doc["attemptNumber"],
        "timeLimitMinutes": quiz.get("timeLimitMinutes"),
        "totalQuestions": len(quiz.get("questions", [])),
    }


# ---------- Submit ----------
async def submit_attempt_service(
    quiz_id: str,
    data: SubmitRequest,
    user,
    uploads: Optional[Dict[str, UploadFile]] = None,
):
    uploads = uploads or {}

    quiz = await find_quiz(quiz_id)
    attempt = await find_attempt(data.attemptId)

    if attempt["quizId"] != quiz["_id"]:
        raise NotFoundError("Quiz attempt not found")

    if str(attempt["studentId"]) != user["id"]:
        raise AuthorizationError("Not authorized")

    if attempt["status"] != AttemptStatus.IN_PROGRESS.value:
        raise InvalidStateError(f"Quiz already {attempt['status'].replace('_', ' ')}")

    questions = load_questions(quiz)
    submissions = list(data.answers)

    # a file part without a matching answers entry still counts as a submission
    answered = {s.questionId for s in submissions}
    for question_id in uploads:
        if question_id not in answered:
            submissions.append(AnswerSubmission(questionId=question_id))

    points = attempt_points(attempt, questions)

    graded = []
    graded_ids = set()
    for submission in submissions:
        question = questions.get(submission.questionId)
        if question is None or question.id not in points:
            logger.info(
                "Dropping answer for unknown question %s", submission.questionId,
                extra={"attempt_id": str(attempt["_id"])},
            )
            continue
        if question.id in graded_ids:
            logger.info(
                "Dropping duplicate answer for question %s", question.id,
                extra={"attempt_id": str(attempt["_id"])},
            )
            continue
        graded_ids.add(question.id)

        if question.points != points[question.id]:
            question = question.model_copy(update={"points": points[question.id]})

        raw = submission.answer
        if question.type == QuestionType.FILE_UPLOAD and question.id in uploads:
            raw = await save_answer_file(uploads[question.id], question.id)

        typed = coerce_answer(question, raw)
        result = grade_answer(question, typed)

        graded.append(Answer(
            questionId=question.id,
            answer=typed,
            isCorrect=result.isCorrect,
            pointsEarned=result.pointsEarned,
            feedback=result.feedback,
            timeSpentSeconds=submission.timeSpentSeconds,
        ).model_dump())

    completed_at = utcnow()
    summary = summarize_score(graded, attempt["maxScore"], quiz.get("passingScorePercent", 70))
    update_data = {
        "answers": graded,
        "status": AttemptStatus.COMPLETED.value,
        "completedAt": completed_at,
        "timeSpentSeconds": max(0, round((completed_at - attempt["startedAt"]).total_seconds())),
        **summary,
    }

    # guarded on status so a concurrent second submit cannot overwrite this one
    result = await quiz_attempts.update_one(
        {"_id": attempt["_id"], "status": AttemptStatus.IN_PROGRESS.value},
        {"$set": update_data},
    )
    if result.matched_count == 0:
        raise InvalidStateError("Quiz already completed")

    attempt.update(update_data)

    logger.info(
        "Attempt %s submitted: %s/%s (%d%%)",
        attempt["_id"], summary["totalScore"], attempt["maxScore"], summary["percentage"],
        extra={"user_id": user["id"], "quiz_id": str(quiz["_id"]), "attempt_id": str(attempt["_id"])},
    )

    await record_quiz_result(attempt)

    return {
        "message": "Quiz submitted successfully",
        "attemptId": str(attempt["_id"]),
        "attemptNumber": attempt["attemptNumber"],
        "score": summary["totalScore"],
        "maxScore": attempt["maxScore"],
        "percentage": summary["percentage"],
        "passed": summary["passed"],
        "timeSpentSeconds": update_data["timeSpentSeconds"],
        "answers": [
            {**a, "explanation": questions[a["questionId"]].explanation}
            for a in graded
        ],
    }


# ---------- Regrade (instructor) ----------
async def regrade_attempt_service(attempt_id: str, data: GradeRequest, user):
    attempt = await find_attempt(attempt_id)
    quiz = await find_quiz(attempt["quizId"])

    if not owns(quiz, user):
        raise AuthorizationError("Not authorized")

    if attempt["status"] != AttemptStatus.COMPLETED.value:
        raise InvalidStateError("Only completed attempts can be graded")

    points = attempt_points(attempt, load_questions(quiz))
    answers_by_question = {a["questionId"]: a for a in attempt.get("answers", [])}

    details = []
    for index, patch in enumerate(data.grades):
        if patch.questionId not in answers_by_question:
            details.append({
                "index": index,
                "questionId": patch.questionId,
                "reason": "attempt has no answer for this question",
            })
            continue
        cap = points.get(patch.questionId)
        if cap is not None and patch.pointsEarned > cap:
            details.append({
                "index": index,
                "questionId": patch.questionId,
                "reason": f"pointsEarned exceeds the question's {cap} points",
            })
    if details:
        raise ValidationError(
            "; ".join(f"Grade {d['index'] + 1}: {d['reason']}" for d in details),
            details=details,
        )

    # only score and feedback are ever patched
    for patch in data.grades:
        answer = answers_by_question[patch.questionId]
        answer["pointsEarned"] = patch.pointsEarned
        if patch.feedback is not None:
            answer["feedback"] = patch.feedback

    summary = summarize_score(attempt["answers"], attempt["maxScore"], quiz.get("passingScorePercent", 70))
    update_data = {
        "answers": attempt["answers"],
        "gradedAt": utcnow(),
        "gradedBy": to_object_id(user["id"], "Instructor"),
        **summary,
    }

    await quiz_attempts.update_one({"_id": attempt["_id"]}, {"$set": update_data})
    attempt.update(update_data)

    logger.info(
        "Attempt %s regraded: %s/%s (%d%%)",
        attempt["_id"], summary["totalScore"], attempt["maxScore"], summary["percentage"],
        extra={"user_id": user["id"], "quiz_id": str(quiz["_id"]), "attempt_id": str(attempt["_id"])},
    )

    await record_quiz_result(attempt)

    return {"success": True, "message": "Attempt graded", "attempt": serialize_doc(attempt)}


# ---------- Read attempts ----------
async def get_attempt_service(attempt_id: str, user):
    attempt = await find_attempt(attempt_id)

    if str(attempt["studentId"]) != user["id"]:
        quiz = await find_quiz(attempt["quizId"])
        if not owns(quiz, user):
            raise AuthorizationError("Not authorized")

    return serialize_doc(attempt)


async def list_my_attempts_service(quiz_id: str, user):
    quiz = await find_quiz(quiz_id)

    attempts = await quiz_attempts.find({
        "quizId": quiz["_id"],
        "studentId": to_object_id(user["id"], "Student"),
    }).sort("attemptNumber", 1).to_list(None)

    return [serialize_doc(a) for a in attempts]
