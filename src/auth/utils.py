from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt

from src.config import settings

def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Issue a signed token carrying the given claims"""
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)

def verify_token(token: str, credentials_exception: Exception) -> dict:
    """Decode a token and return its identity claims"""
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except jwt.PyJWTError:
        raise credentials_exception

    subject = payload.get("sub")
    if subject is None:
        raise credentials_exception

    try:
        user_id = int(subject)
    except (TypeError, ValueError):
        raise credentials_exception

    return {"user_id": user_id, "role": payload.get("role", "user")}
