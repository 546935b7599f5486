"""
Authentication Dependencies
JWT token handling and user authentication
"""

from datetime import datetime, timedelta, timezone
from typing import Optional
from fastapi import Depends, HTTPException, Query, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError, jwt
from app.config import settings
from app.database import database

# Security scheme
security = HTTPBearer()

STAFF_ROLES = ("staff", "admin")


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """
    Create JWT access token

    Args:
        data: Data to encode in token
        expires_delta: Token expiration time

    Returns:
        Encoded JWT token
    """
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(hours=settings.JWT_EXPIRATION_HOURS))
    to_encode.update({"exp": expire})

    return jwt.encode(
        to_encode,
        settings.JWT_SECRET_KEY,
        algorithm=settings.JWT_ALGORITHM
    )


def decode_access_token(token: str) -> dict:
    """
    Decode JWT access token

    Raises:
        HTTPException: If token is invalid
    """
    try:
        return jwt.decode(
            token,
            settings.JWT_SECRET_KEY,
            algorithms=[settings.JWT_ALGORITHM]
        )
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )


async def get_current_user(credentials: HTTPAuthorizationCredentials = Depends(security)) -> dict:
    """
    Resolve the bearer token to an internal user record

    The token carries either our user id ('user_id') or the identity
    provider subject ('sub'), which maps to users.external_id.

    Raises:
        HTTPException: If the token is invalid or the user is unknown
    """
    payload = decode_access_token(credentials.credentials)

    user_id = payload.get("user_id")
    subject = payload.get("sub")

    user = None
    if user_id:
        user = await database.fetch_one(
            "SELECT id, email, first_name, last_name, role FROM users WHERE id = :id",
            {"id": str(user_id)}
        )
    elif subject:
        user = await database.fetch_one(
            "SELECT id, email, first_name, last_name, role FROM users WHERE external_id = :sub",
            {"sub": str(subject)}
        )

    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication credentials"
        )

    return {
        "user_id": str(user["id"]),
        "email": user["email"],
        "first_name": user["first_name"],
        "last_name": user["last_name"],
        "role": user["role"],
    }


async def get_admin_user(current_user: dict = Depends(get_current_user)) -> dict:
    """
    Require staff or admin role

    Raises:
        HTTPException: If user is not staff
    """
    if current_user["role"] not in STAFF_ROLES:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not authorized. Staff access required."
        )

    return current_user


async def verify_cron_secret(request: Request, key: Optional[str] = Query(None)) -> None:
    """
    Guard scheduled endpoints

    Accepts the secret as 'Authorization: Bearer <secret>' or '?key='.
    Open when CRON_SECRET is not configured.
    """
    if not settings.CRON_SECRET:
        return

    header = request.headers.get("authorization", "")
    provided = header[7:] if header.lower().startswith("bearer ") else key
    if provided != settings.CRON_SECRET:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized"
        )
