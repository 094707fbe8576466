from fastapi import APIRouter, Depends
from middlewares.auth_middlewares import protect, instructor_only
from controllers.attempt_controller import get_attempt_service, regrade_attempt_service
from models.attempt_model import GradeRequest

router = APIRouter(prefix="/api/attempts", tags=["Attempts"])


@router.get("/{attempt_id}")
async def get_attempt(attempt_id: str, user=Depends(protect)):
    return await get_attempt_service(attempt_id, user)


@router.put("/{attempt_id}/grade")
async def grade_attempt(attempt_id: str, data: GradeRequest, user=Depends(instructor_only)):
    return await regrade_attempt_service(attempt_id, data, user)
