import jwt
from fastapi import Depends, HTTPException, Request
from utils.auth import decode_token, ROLES


async def protect(request: Request):
    token = request.headers.get("authorization")
    if token and token.startswith("Bearer "):
        token = token[7:]

    if not token:
        raise HTTPException(401, "No token, authorization denied")

    try:
        decoded = decode_token(token)
    except jwt.PyJWTError:
        raise HTTPException(401, "Token is not valid")

    user_id = decoded.get("id")
    role = decoded.get("role")
    if not user_id or role not in ROLES:
        raise HTTPException(401, "Token is not valid")

    return {"id": str(user_id), "role": role}


async def instructor_only(user=Depends(protect)):
    if user["role"] != "instructor":
        raise HTTPException(403, "Access denied. Instructor role required.")
    return user


async def student_only(user=Depends(protect)):
    if user["role"] != "student":
        raise HTTPException(403, "Access denied. Student role required.")
    return user
