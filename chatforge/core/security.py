"""Security utilities: password hashing, session tokens and the request guard."""
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional
from jose import JWTError, jwt
from passlib.context import CryptContext
from fastapi import Depends, HTTPException, Request, Response, status
from sqlalchemy.orm import Session

from chatforge.core.config import settings
from chatforge.db.sessions import get_db
from chatforge.models.user import User

logger = logging.getLogger(__name__)

# Password hashing context
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


@dataclass(frozen=True)
class SessionIdentity:
    """Caller identity carried inside a verified session token."""

    user_id: uuid.UUID
    email: Optional[str] = None


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a plain password against a hashed password."""
    return pwd_context.verify(_truncate_for_bcrypt(plain_password), hashed_password)


def get_password_hash(password: str) -> str:
    """Hash a password."""
    return pwd_context.hash(_truncate_for_bcrypt(password))


def _truncate_for_bcrypt(password: str) -> str:
    """Truncate password to bcrypt's 72-byte limit.

    Bcrypt rejects inputs longer than 72 bytes. We truncate on the UTF-8
    encoded bytes and decode with 'ignore' to avoid splitting multi-byte
    sequences.
    """
    b = password.encode("utf-8")[:72]
    return b.decode("utf-8", "ignore")


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create a signed session token. ``data`` must carry ``sub`` (user id)."""
    to_encode = data.copy()
    now = datetime.now(timezone.utc)

    if expires_delta:
        expire = now + expires_delta
    else:
        expire = now + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

    to_encode.update({"iat": now, "exp": expire})
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_token(token: str) -> Optional[SessionIdentity]:
    """Verify a session token.

    Returns ``None`` for a bad signature, an expired or malformed token, or a
    payload without a usable ``sub``.
    """
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        return None

    try:
        user_id = uuid.UUID(str(payload.get("sub")))
    except ValueError:
        return None

    return SessionIdentity(user_id=user_id, email=payload.get("email"))


def issue_session_token(user: User) -> str:
    return create_access_token(data={"sub": str(user.id), "email": user.email})


def set_session_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=settings.SESSION_COOKIE_NAME,
        value=token,
        max_age=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        path="/",
        httponly=True,
        secure=settings.COOKIE_SECURE,
        samesite=settings.COOKIE_SAMESITE,
    )


def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(
        key=settings.SESSION_COOKIE_NAME,
        path="/",
        httponly=True,
        secure=settings.COOKIE_SECURE,
        samesite=settings.COOKIE_SAMESITE,
    )


def get_optional_identity(request: Request) -> Optional[SessionIdentity]:
    """Resolve the caller from the session cookie; anonymous callers get ``None``.

    Only verifies the signature and expiry, never touches the database.
    """
    token = request.cookies.get(settings.SESSION_COOKIE_NAME)
    if not token:
        return None
    return decode_token(token)


def get_current_identity(
    identity: Optional[SessionIdentity] = Depends(get_optional_identity),
) -> SessionIdentity:
    """
    Dependency rejecting anonymous callers with 401.

    Declare it before ``get_db`` so unauthenticated requests never open a
    database session.
    """
    if identity is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )
    return identity


def get_current_user(
    identity: SessionIdentity = Depends(get_current_identity),
    db: Session = Depends(get_db),
) -> User:
    """
    Dependency to get the current authenticated user row.

    Usage:
        @router.get("/protected")
        def protected_route(current_user: User = Depends(get_current_user)):
            return {"user_id": current_user.id}
    """
    user = db.query(User).filter(User.id == identity.user_id).first()
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
        )

    return user
