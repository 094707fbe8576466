from fastapi import APIRouter, Depends
from middlewares.auth_middlewares import protect
from controllers.progress_controller import get_quiz_results_service

router = APIRouter(prefix="/api/learning-paths", tags=["Progress"])


@router.get("/{learning_path_id}/quiz-results")
async def get_quiz_results(learning_path_id: str, user=Depends(protect)):
    return await get_quiz_results_service(learning_path_id, user)
