import logging
from datetime import timedelta
from typing import Any, Dict, Optional
from uuid import uuid4

import jwt
from fastapi import Cookie, HTTPException, Response
from passlib.context import CryptContext

from config import settings
from database import get_collection, now_utc, to_object_id, serialize

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

MIN_PASSWORD_LENGTH = 6


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain: str, hashed: str) -> bool:
    if not hashed:
        return False
    return pwd_context.verify(plain, hashed)


def create_access_token(user_id: str) -> str:
    issued = now_utc()
    payload = {
        "_id": user_id,
        "jti": uuid4().hex,
        "iat": issued,
        "exp": issued + timedelta(days=settings.TOKEN_EXPIRE_DAYS),
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def issue_token(user: Dict[str, Any]) -> str:
    """Create a token for the user and append it to their token list."""
    token = create_access_token(str(user["_id"]))
    get_collection("user").update_one({"_id": user["_id"]}, {"$push": {"tokens": token}})
    return token


def set_auth_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=settings.COOKIE_NAME,
        value=token,
        max_age=int(timedelta(days=settings.TOKEN_EXPIRE_DAYS).total_seconds()),
        httponly=False,
        secure=settings.COOKIE_SECURE,
        samesite=settings.COOKIE_SAMESITE,
    )


def public_user(u: Dict[str, Any]) -> Dict[str, Any]:
    doc = serialize(u)
    doc.pop("password_hash", None)
    doc.pop("tokens", None)
    return doc


def get_current_user(token: Optional[str] = Cookie(None, alias=settings.COOKIE_NAME)):
    """Resolve the auth cookie to the user that still holds that exact token."""
    if not token:
        raise HTTPException(status_code=401, detail="No token found")
    try:
        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except jwt.PyJWTError:
        raise HTTPException(status_code=401, detail="Unauthorized: invalid token")

    user_oid = to_object_id(payload.get("_id"))
    if user_oid is None:
        raise HTTPException(status_code=401, detail="Unauthorized: invalid token")
    user = get_collection("user").find_one({"_id": user_oid, "tokens": token})
    if not user:
        raise HTTPException(status_code=401, detail="Unauthorized: token not recognised")

    return {
        "id": str(user["_id"]),
        "email": user.get("email"),
        "name": user.get("name"),
        "token": token,
        "user": user,
    }
