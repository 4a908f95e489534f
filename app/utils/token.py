from jose import jwt, ExpiredSignatureError, JWTError
from datetime import datetime, timedelta
from typing import Optional
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlmodel import Session
from app.config import settings
from app.database import get_session
from app.models.user import User
from app.utils.exceptions import ForbiddenError, UnauthorizedError

bearer_scheme = HTTPBearer(auto_error=False)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None):
    to_encode = data.copy()

    now = datetime.utcnow()
    expire = now + (
        expires_delta
        if expires_delta
        else timedelta(minutes=settings.access_token_expire_minutes)
    )

    to_encode.update({"exp": expire, "iat": now})

    encoded_jwt = jwt.encode(
        to_encode,
        settings.secret_key,
        algorithm=settings.algorithm
    )
    return encoded_jwt


def decode_access_token(token: str):
    try:
        payload = jwt.decode(
            token,
            settings.secret_key,
            algorithms=[settings.algorithm],
        )
        return payload
    except ExpiredSignatureError:
        raise UnauthorizedError(
            "Token expired", "TOKEN_EXPIRED", "Please login again to get a new token"
        )
    except JWTError:
        return None


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    session: Session = Depends(get_session)
) -> User:
    if credentials is None:
        raise UnauthorizedError(
            "Authorization header required",
            "MISSING_AUTH_HEADER",
            "Please provide Authorization header with Bearer token",
        )

    payload = decode_access_token(credentials.credentials)

    if payload is None:
        raise UnauthorizedError("Invalid token", "INVALID_TOKEN", "Token is invalid or malformed")

    user_id = payload.get("user_id") or payload.get("sub")

    if user_id is None:
        raise UnauthorizedError("Invalid user ID in token", "INVALID_USER_ID")

    try:
        user_id = int(user_id)
    except (TypeError, ValueError):
        raise UnauthorizedError("Invalid user ID in token", "INVALID_USER_ID")

    user = session.get(User, user_id)

    if user is None or user.deleted_at is not None:
        raise UnauthorizedError("User not found or inactive", "USER_NOT_FOUND")

    if not user.is_active:
        raise ForbiddenError("User account is disabled", "ACCOUNT_DISABLED")

    return user
