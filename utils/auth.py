import jwt
from datetime import datetime, timedelta, timezone
from config.settings import JWT_SECRET, JWT_ALGORITHM

ROLES = ("student", "instructor")


def generate_token(user_id: str, role: str, expires_in: timedelta = timedelta(days=7)):
    payload = {
        "id": user_id,
        "role": role,
        "exp": datetime.now(timezone.utc) + expires_in,
    }
    return jwt.encode(payload, JWT_SECRET, algorithm=JWT_ALGORITHM)


def decode_token(token: str):
    return jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
