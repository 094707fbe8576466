from config.database import database
from utils.errors import AuthorizationError, NotFoundError
from utils.helper import to_object_id

learning_paths = database["learning_paths"]
classrooms = database["classrooms"]


async def get_learning_path(learning_path_id) -> dict:
    learning_path = await learning_paths.find_one(
        {"_id": to_object_id(learning_path_id, "Learning path")}
    )
    if not learning_path:
        raise NotFoundError("Learning path not found")
    return learning_path


async def is_enrolled(student_id: str, classroom_id) -> bool:
    if classroom_id is None:
        return False
    count = await classrooms.count_documents({
        "_id": to_object_id(classroom_id, "Classroom"),
        "students": to_object_id(student_id, "Student"),
    })
    return count > 0


def owns(resource: dict, user) -> bool:
    return str(resource.get("instructorId")) == user["id"]


async def ensure_learning_path_access(learning_path: dict, user) -> bool:
    """
    Return True when the caller owns the learning path, False when they are an
    enrolled student. Anyone else is refused.
    """
    if owns(learning_path, user):
        return True

    if user["role"] == "student" and await is_enrolled(user["id"], learning_path.get("classroomId")):
        return False

    raise AuthorizationError("Access denied")


async def ensure_quiz_access(quiz: dict, user) -> bool:
    if owns(quiz, user):
        return True
    learning_path = await get_learning_path(quiz["learningPathId"])
    return await ensure_learning_path_access(learning_path, user)
