import os
import logging
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from starlette.staticfiles import StaticFiles
from config.database import lifespan
from config.logging_config import setup_logging
from config.settings import CORS_ORIGINS, UPLOAD_DIR
from middlewares.request_tracker import request_tracker_middleware
from routes.quiz_routes import router as quiz_router
from routes.attempt_routes import router as attempt_router
from routes.progress_routes import router as progress_router
from utils.errors import AppError
from utils.helper import error_response

setup_logging()
logger = logging.getLogger(__name__)

app = FastAPI(title="Learning Platform Quiz API", lifespan=lifespan)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.middleware("http")(request_tracker_middleware)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    logger.info("%s on %s: %s", type(exc).__name__, request.url.path, exc.message)
    return error_response(exc.status_code, exc.message, exc.details)


# Static Files
os.makedirs(UPLOAD_DIR, exist_ok=True)
app.mount("/uploads", StaticFiles(directory=UPLOAD_DIR), name="uploads")

# Include Routers
app.include_router(quiz_router)
app.include_router(attempt_router)
app.include_router(progress_router)


@app.get("/")
async def root():
    return {"message": "API running successfully"}
