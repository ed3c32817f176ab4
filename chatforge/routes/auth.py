"""Authentication routes."""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Response, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from pydantic import BaseModel, EmailStr

from chatforge.db.sessions import get_db
from chatforge.models.user import User
from chatforge.core.security import (
    SessionIdentity,
    clear_session_cookie,
    get_current_user,
    get_optional_identity,
    get_password_hash,
    issue_session_token,
    set_session_cookie,
    verify_password,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])

PASSWORD_MIN_LENGTH = 6


# Request/Response schemas
class RegisterRequest(BaseModel):
    name: str
    email: EmailStr
    password: str


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class UserSummary(BaseModel):
    id: str
    email: str
    name: str


class SessionResponse(BaseModel):
    message: str
    user: UserSummary


class UserProfile(UserSummary):
    created_at: str
    total_tokens_used: int
    prompt_tokens_used: int
    completion_tokens_used: int


class MeResponse(BaseModel):
    user: UserProfile


def _summary(user: User) -> UserSummary:
    return UserSummary(id=str(user.id), email=user.email, name=user.name)


def normalize_email(email: str) -> str:
    return email.strip().lower()


@router.post("/register", response_model=SessionResponse, status_code=status.HTTP_201_CREATED)
def register(request: RegisterRequest, response: Response, db: Session = Depends(get_db)):
    """
    Register a new user.

    - Creates user account with hashed password
    - Sets the session cookie
    """
    name = request.name.strip()
    if not name or not request.password:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Email, password, and name are required"
        )

    if len(request.password) < PASSWORD_MIN_LENGTH:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Password must be at least {PASSWORD_MIN_LENGTH} characters"
        )

    email = normalize_email(request.email)

    # Check if user already exists
    existing_user = db.query(User).filter(User.email == email).first()
    if existing_user:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="User with this email already exists"
        )

    user = User(
        name=name,
        email=email,
        password_hash=get_password_hash(request.password)
    )

    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("Registered user %s", user.id)

    set_session_cookie(response, issue_session_token(user))

    return SessionResponse(message="User registered successfully", user=_summary(user))


@router.post("/login", response_model=SessionResponse)
def login(request: LoginRequest, response: Response, db: Session = Depends(get_db)):
    """
    Login with email and password.

    - Validates credentials
    - Sets the session cookie
    """
    user = db.query(User).filter(User.email == normalize_email(request.email)).first()
    if not user or not verify_password(request.password, user.password_hash):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password"
        )

    set_session_cookie(response, issue_session_token(user))
    logger.info("User %s logged in", user.id)

    return SessionResponse(message="Logged in successfully", user=_summary(user))


@router.post("/logout")
def logout(response: Response):
    """Clear the session cookie. Tokens are not revoked server-side."""
    clear_session_cookie(response)
    return {"message": "Logged out successfully"}


@router.get("/me", response_model=MeResponse)
def get_me(current_user: User = Depends(get_current_user)):
    """
    Get current authenticated user information and token usage.

    Protected endpoint - requires a valid session cookie.
    """
    return MeResponse(
        user=UserProfile(
            id=str(current_user.id),
            name=current_user.name,
            email=current_user.email,
            created_at=current_user.created_at.isoformat(),
            total_tokens_used=current_user.total_tokens_used or 0,
            prompt_tokens_used=current_user.prompt_tokens_used or 0,
            completion_tokens_used=current_user.completion_tokens_used or 0,
        )
    )


@router.get("/check")
def check(identity: Optional[SessionIdentity] = Depends(get_optional_identity)):
    """Cheap session probe: verifies the cookie without a database lookup."""
    if identity is None:
        return JSONResponse(status_code=status.HTTP_401_UNAUTHORIZED, content={"authenticated": False})
    return {"authenticated": True}
