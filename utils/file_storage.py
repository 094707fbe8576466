import os
import re
import time
import logging
from fastapi import UploadFile
from config.settings import UPLOAD_DIR, PUBLIC_URL, MAX_UPLOAD_BYTES
from utils.errors import ValidationError

logger = logging.getLogger(__name__)

ANSWER_SUBDIR = "quiz-answers"
CHUNK_SIZE = 64 * 1024


def _safe_name(filename: str) -> str:
    name = os.path.basename(filename or "upload")
    return re.sub(r"[^A-Za-z0-9._-]", "_", name) or "upload"


async def save_answer_file(upload: UploadFile, question_id: str) -> dict:
    """Stream an answer upload to disk and return its public reference."""
    directory = os.path.join(UPLOAD_DIR, ANSWER_SUBDIR)
    os.makedirs(directory, exist_ok=True)

    stored_name = f"{int(time.time() * 1000)}-{question_id}-{_safe_name(upload.filename)}"
    save_path = os.path.join(directory, stored_name)

    size = 0
    too_large = False
    with open(save_path, "wb") as f:
        while True:
            chunk = await upload.read(CHUNK_SIZE)
            if not chunk:
                break
            size += len(chunk)
            if size > MAX_UPLOAD_BYTES:
                too_large = True
                break
            f.write(chunk)

    if too_large:
        os.remove(save_path)
        raise ValidationError(
            f"File for question {question_id} exceeds the {MAX_UPLOAD_BYTES} byte limit"
        )

    logger.info("Stored answer upload %s (%d bytes)", save_path, size)

    return {
        "fileUrl": f"{PUBLIC_URL}/uploads/{ANSWER_SUBDIR}/{stored_name}",
        "fileName": upload.filename,
    }
