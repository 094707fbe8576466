import logging
from pymongo.errors import PyMongoError
from config.database import database
from controllers.access_controller import get_learning_path, ensure_learning_path_access
from utils.helper import serialize_doc, to_object_id, utcnow

logger = logging.getLogger(__name__)

learning_paths = database["learning_paths"]


async def record_quiz_result(attempt: dict) -> bool:
    """
    Append a summary of a graded attempt to the learner's quizResults.

    Never raises for database failures: the attempt is already stored and
    scored, so a failed append is logged and left for later reconciliation.
    """
    entry = {
        "stepId": attempt["stepId"],
        "quizId": attempt["quizId"],
        "attemptId": attempt["_id"],
        "bestScore": attempt["totalScore"],
        "attempts": attempt["attemptNumber"],
        "percentage": attempt["percentage"],
        "passed": attempt["passed"],
        "lastAttemptDate": utcnow(),
    }

    try:
        result = await learning_paths.update_one(
            {
                "_id": attempt["learningPathId"],
                "learners.learnerId": attempt["studentId"],
            },
            {"$push": {"learners.$.quizResults": entry}},
        )
    except PyMongoError:
        logger.exception(
            "Failed to record quiz result for attempt %s",
            attempt["_id"],
            extra={"attempt_id": str(attempt["_id"])},
        )
        return False

    if result.matched_count == 0:
        logger.warning(
            "Learner %s not found on learning path %s; quiz result not recorded",
            attempt["studentId"],
            attempt["learningPathId"],
            extra={"attempt_id": str(attempt["_id"])},
        )
        return False

    return True


def reduce_quiz_results(history: list) -> dict:
    """
    Collapse an append-only quizResults history into per-quiz summaries.

    ``best`` is the highest percentage (latest wins on ties), ``latest`` the
    most recent entry; entries are compared in history order.
    """
    summary = {}
    for entry in history:
        quiz_id = str(entry.get("quizId"))
        current = summary.setdefault(quiz_id, {"best": entry, "latest": entry, "entries": 0})
        current["entries"] += 1
        if entry.get("percentage", 0) >= current["best"].get("percentage", 0):
            current["best"] = entry
        current["latest"] = entry
    return summary


async def get_quiz_results_service(learning_path_id: str, user):
    learning_path = await get_learning_path(learning_path_id)
    await ensure_learning_path_access(learning_path, user)

    learner_id = to_object_id(user["id"], "Learner")
    learner = next(
        (l for l in learning_path.get("learners", []) if l.get("learnerId") == learner_id),
        None,
    )
    history = learner.get("quizResults", []) if learner else []

    summary = reduce_quiz_results(history)
    return {
        "learningPathId": str(learning_path["_id"]),
        "history": [serialize_doc(e) for e in history],
        "quizzes": {
            quiz_id: {
                "best": serialize_doc(s["best"]),
                "latest": serialize_doc(s["latest"]),
                "entries": s["entries"],
            }
            for quiz_id, s in summary.items()
        },
    }
