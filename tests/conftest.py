from types import SimpleNamespace
import pytest
from bson import ObjectId
from mongomock_motor import AsyncMongoMockClient
from pymongo.results import UpdateResult
import controllers.access_controller as access_controller
import controllers.attempt_controller as attempt_controller
import controllers.progress_controller as progress_controller
import controllers.quiz_controller as quiz_controller
from models.quiz_model import QuizCreate

COLLECTIONS = ("quizzes", "quiz_attempts", "learning_paths", "classrooms")

LEARNER_RESULTS = "learners.$.quizResults"


class LearningPathCollection:
    """
    mongomock cannot resolve the positional ``learners.$`` inside ``$push``,
    so that one update is applied as a read-modify-write here. Everything
    else goes straight to the mongomock collection.
    """

    def __init__(self, collection):
        self._collection = collection

    def __getattr__(self, name):
        return getattr(self._collection, name)

    async def update_one(self, filter, update, *args, **kwargs):
        push = update.get("$push", {})
        if list(update) != ["$push"] or list(push) != [LEARNER_RESULTS]:
            return await self._collection.update_one(filter, update, *args, **kwargs)

        learner_id = filter["learners.learnerId"]
        doc = await self._collection.find_one(filter)
        if doc is None:
            return UpdateResult({"n": 0, "nModified": 0}, acknowledged=True)

        learners = doc.get("learners", [])
        learner = next(l for l in learners if l.get("learnerId") == learner_id)
        learner.setdefault("quizResults", []).append(push[LEARNER_RESULTS])

        return await self._collection.update_one(
            {"_id": doc["_id"]}, {"$set": {"learners": learners}}
        )


@pytest.fixture
def db(monkeypatch):
    database = AsyncMongoMockClient()["test_learning_platform"]
    collections = {name: database[name] for name in COLLECTIONS}
    collections["learning_paths"] = LearningPathCollection(database["learning_paths"])

    for module in (access_controller, attempt_controller, progress_controller, quiz_controller):
        for name, collection in collections.items():
            if hasattr(module, name):
                monkeypatch.setattr(module, name, collection)
    return database


@pytest.fixture
async def world(db):
    instructor_id = ObjectId()
    other_instructor_id = ObjectId()
    student_id = ObjectId()
    outsider_id = ObjectId()
    classroom_id = ObjectId()
    learning_path_id = ObjectId()
    step_id = ObjectId()
    extra_step_id = ObjectId()

    await db["classrooms"].insert_one({
        "_id": classroom_id,
        "name": "Physics 101",
        "instructor": instructor_id,
        "students": [student_id],
    })
    await db["learning_paths"].insert_one({
        "_id": learning_path_id,
        "title": "Mechanics",
        "instructorId": instructor_id,
        "classroomId": classroom_id,
        "steps": [
            {"_id": step_id, "title": "Kinematics", "hasQuiz": False, "quizId": None},
            {"_id": extra_step_id, "title": "Dynamics", "hasQuiz": False, "quizId": None},
        ],
        "learners": [
            {"learnerId": student_id, "progress": 0, "quizResults": []},
        ],
    })

    return SimpleNamespace(
        db=db,
        learning_path_id=learning_path_id,
        step_id=step_id,
        extra_step_id=extra_step_id,
        classroom_id=classroom_id,
        instructor={"id": str(instructor_id), "role": "instructor"},
        other_instructor={"id": str(other_instructor_id), "role": "instructor"},
        student={"id": str(student_id), "role": "student"},
        outsider={"id": str(outsider_id), "role": "student"},
    )


def sample_questions():
    return [
        {
            "id": "q-capital",
            "text": "What is the capital of France?",
            "type": "single_choice",
            "options": [
                {"text": "London", "isCorrect": False},
                {"text": "Paris", "isCorrect": True},
            ],
            "points": 2,
            "explanation": "Paris has been the capital since 508 AD.",
        },
        {
            "id": "q-primes",
            "text": "Which are prime?",
            "type": "multi_choice",
            "options": [
                {"text": "A", "isCorrect": True},
                {"text": "B", "isCorrect": False},
                {"text": "C", "isCorrect": True},
            ],
            "points": 3,
        },
        {
            "id": "q-pi",
            "text": "Give pi to two decimals.",
            "type": "numeric",
            "numericAnswer": 3.14,
            "numericTolerance": 0.01,
            "points": 1,
        },
        {
            "id": "q-essay",
            "text": "Explain Newton's first law.",
            "type": "long_answer",
            "guidelines": "Mention inertia.",
            "points": 4,
        },
    ]


def quiz_payload(world, questions=None, step_id=None, **policy):
    return QuizCreate(
        title="Kinematics check",
        description="Short quiz",
        learningPathId=str(world.learning_path_id),
        stepId=str(step_id or world.step_id),
        questions=questions if questions is not None else sample_questions(),
        **policy,
    )


@pytest.fixture
async def quiz(world):
    return await quiz_controller.create_quiz_service(quiz_payload(world), world.instructor)
