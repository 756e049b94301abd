from datetime import datetime, timedelta
from typing import Optional
import logging

from fastapi import Depends, HTTPException, Request, Response, status
from sqlalchemy.orm import Session
from jose import JWTError, jwt
from passlib.context import CryptContext

from config import settings
from database import get_db
from dates import utcnow
from mailer import Mailer
from schemas import User, is_valid_id
from storage import Storage

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)

def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def get_storage(db: Session = Depends(get_db)) -> Storage:
    return Storage(db)

def get_mailer() -> Mailer:
    return Mailer(settings)


# Session cookies: the cookie carries a signed session id, the session
# itself lives in the sessions table.
def create_session_token(session_id: str, expires_at: datetime) -> str:
    to_encode = {"sid": session_id, "exp": expires_at}
    return jwt.encode(to_encode, settings.SESSION_SECRET, algorithm=ALGORITHM)

def read_session_token(token: str) -> Optional[str]:
    try:
        payload = jwt.decode(token, settings.SESSION_SECRET, algorithms=[ALGORITHM])
    except JWTError as e:
        logger.info(f"Rejected session cookie: {e}")
        return None
    session_id = payload.get("sid")
    return session_id if is_valid_id(session_id) else None

def start_session(response: Response, storage: Storage, user: User) -> None:
    expires_at = utcnow() + timedelta(seconds=settings.SESSION_MAX_AGE)
    session = storage.create_session(user, expires_at)
    response.set_cookie(
        key=settings.SESSION_COOKIE_NAME,
        value=create_session_token(session.id, expires_at),
        max_age=settings.SESSION_MAX_AGE,
        httponly=True,
        samesite="lax",
        secure=settings.SESSION_COOKIE_SECURE,
    )

def end_session(request: Request, response: Response, storage: Storage) -> None:
    token = request.cookies.get(settings.SESSION_COOKIE_NAME)
    session_id = read_session_token(token) if token else None
    if session_id:
        storage.delete_session(session_id)
    response.delete_cookie(settings.SESSION_COOKIE_NAME)


async def get_current_user(
    request: Request,
    storage: Storage = Depends(get_storage)
) -> Optional[User]:
    """Session user, or None for anonymous requests."""
    token = request.cookies.get(settings.SESSION_COOKIE_NAME)
    if not token:
        return None
    session_id = read_session_token(token)
    if not session_id:
        return None
    session = storage.get_session(session_id)
    return session.to_user() if session else None

async def require_user(current_user: Optional[User] = Depends(get_current_user)) -> User:
    if current_user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated"
        )
    return current_user

async def require_admin(current_user: Optional[User] = Depends(get_current_user)) -> User:
    if current_user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated"
        )
    if not current_user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin privileges required"
        )
    return current_user


async def check_admin_ip(request: Request):
    """
    Coarse gate for signup: only the configured peer address gets through.

    Forwarded headers are ignored, so behind a proxy this compares the proxy
    address.
    """
    client_ip = request.client.host if request.client else ""
    if client_ip != settings.ADMIN_SIGNUP_IP:
        logger.warning(f"Signup refused for {client_ip}")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Access denied. You are not authorized to access this resource."
        )


def validate_id(value: str, label: str) -> str:
    if not is_valid_id(value):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid {label} ID format"
        )
    return value
