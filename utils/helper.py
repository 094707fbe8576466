from datetime import datetime, timezone
from fastapi.responses import JSONResponse
from bson import ObjectId
from bson.errors import InvalidId
from utils.errors import NotFoundError


def error_response(status_code: int, message: str, details=None):
    content = {"message": message}
    if details:
        content["details"] = details
    return JSONResponse(status_code=status_code, content=content)


def to_object_id(value, what: str = "Resource") -> ObjectId:
    if isinstance(value, ObjectId):
        return value
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        raise NotFoundError(f"{what} not found")


def _serialize_value(value):
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, dict):
        return serialize_doc(value)
    if isinstance(value, list):
        return [_serialize_value(v) for v in value]
    return value


def serialize_doc(doc: dict):
    if not doc:
        return doc

    # keep `_id`, expose it as `id` as well
    result = {key: _serialize_value(value) for key, value in doc.items()}
    if "_id" in result:
        result["id"] = result["_id"]

    return result


def utcnow() -> datetime:
    # naive UTC, matching what pymongo hands back
    return datetime.now(timezone.utc).replace(tzinfo=None)
