import json
from fastapi import APIRouter, Depends, Request
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError as PayloadError
from starlette.datastructures import UploadFile
from middlewares.auth_middlewares import protect, instructor_only, student_only
from controllers.quiz_controller import *
from controllers.attempt_controller import (
    start_attempt_service,
    submit_attempt_service,
    list_my_attempts_service,
)
from models.quiz_model import QuizCreate, QuizUpdate
from models.attempt_model import SubmitRequest
from utils.errors import ValidationError

router = APIRouter(prefix="/api/quizzes", tags=["Quizzes"])


async def read_submission(request: Request):
    """
    Parse a submission sent either as JSON or as multipart form data.

    Multipart bodies carry ``attemptId``, ``answers`` (a JSON string) and one
    file part per file-upload question, named by the question id.
    """
    uploads = {}
    content_type = request.headers.get("content-type", "")

    if content_type.startswith("multipart/form-data"):
        form = await request.form()
        attempt_id = form.get("attemptId")
        raw_answers = form.get("answers") or "[]"
        if not isinstance(raw_answers, str) or isinstance(attempt_id, UploadFile):
            raise ValidationError("Invalid answers format")

        for key, value in form.multi_items():
            if isinstance(value, UploadFile):
                uploads[key] = value
        try:
            answers = json.loads(raw_answers)
        except ValueError:
            raise ValidationError("Invalid answers format")
        payload = {"attemptId": attempt_id, "answers": answers}
    else:
        # ValueError covers both bad JSON and bodies that are not valid UTF-8
        try:
            payload = await request.json()
        except ValueError:
            raise ValidationError("Invalid request body")

    try:
        data = SubmitRequest.model_validate(payload)
    except PayloadError as e:
        raise RequestValidationError(e.errors())

    return data, uploads


@router.post("", status_code=201)
async def create_quiz(data: QuizCreate, user=Depends(instructor_only)):
    return await create_quiz_service(data, user)


@router.get("/learning-path/{learning_path_id}")
async def get_learning_path_quizzes(learning_path_id: str, user=Depends(protect)):
    return await list_learning_path_quizzes_service(learning_path_id, user)


@router.get("/{quiz_id}")
async def get_quiz(quiz_id: str, user=Depends(protect)):
    return await get_quiz_service(quiz_id, user)


@router.put("/{quiz_id}")
async def update_quiz(quiz_id: str, data: QuizUpdate, user=Depends(instructor_only)):
    return await update_quiz_service(quiz_id, data, user)


@router.delete("/{quiz_id}")
async def delete_quiz(quiz_id: str, user=Depends(instructor_only)):
    return await delete_quiz_service(quiz_id, user)


@router.post("/{quiz_id}/start")
async def start_quiz(quiz_id: str, user=Depends(student_only)):
    return await start_attempt_service(quiz_id, user)


@router.post("/{quiz_id}/submit")
async def submit_quiz(quiz_id: str, request: Request, user=Depends(student_only)):
    data, uploads = await read_submission(request)
    return await submit_attempt_service(quiz_id, data, user, uploads)


@router.get("/{quiz_id}/attempts")
async def get_quiz_attempts(quiz_id: str, user=Depends(instructor_only)):
    return await list_quiz_attempts_service(quiz_id, user)


@router.get("/{quiz_id}/my-attempts")
async def get_my_attempts(quiz_id: str, user=Depends(protect)):
    return await list_my_attempts_service(quiz_id, user)
