from datetime import datetime, timedelta, timezone
from fastapi import HTTPException, Request
from jose import jwt, JWTError, ExpiredSignatureError
from app.core.config import settings

ACCESS_TOKEN_TTL = timedelta(hours=12)


def create_access_token(data: dict, expires_delta: timedelta = ACCESS_TOKEN_TTL) -> str:
    payload = dict(data)
    payload["exp"] = datetime.now(timezone.utc) + expires_delta
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGO)


def get_bearer_token(request: Request) -> str:
    auth = request.headers.get("Authorization")
    if not auth or not auth.startswith("Bearer "):
        raise HTTPException(status_code=401, detail="Missing token")
    return auth.split(" ")[1]


def decode_token(token: str) -> dict:
    try:
        return jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGO])
    except ExpiredSignatureError:
        raise HTTPException(401, "Token expired")
    except JWTError:
        raise HTTPException(401, "Invalid token")
