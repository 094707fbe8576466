import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from motor.motor_asyncio import AsyncIOMotorClient
from config.settings import MONGO_URI, DB_NAME

logger = logging.getLogger(__name__)

client = AsyncIOMotorClient(MONGO_URI)
database = client[DB_NAME]


@asynccontextmanager
async def lifespan(app: FastAPI):
    await database["quizzes"].create_index("learningPathId")
    await database["quiz_attempts"].create_index([("quizId", 1), ("studentId", 1)])
    logger.info("Connected to MongoDB database %s", DB_NAME)
    yield
    client.close()
    logger.info("MongoDB connection closed")
