"""Authentication routes."""
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from pydantic import BaseModel, EmailStr

from app.db.sessions import get_db
from app.models.user import User
from app.core.config import Settings, get_settings
from app.core.errors import AuthError, ValidationError
from app.core.security import (
    get_password_hash,
    verify_password,
    create_access_token,
    get_current_user
)


router = APIRouter(prefix="/auth", tags=["Authentication"])


# Request/Response schemas
class RegisterRequest(BaseModel):
    name: str
    email: EmailStr
    password: str


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user_id: str
    name: str
    email: str


class UserResponse(BaseModel):
    id: str
    name: str
    email: str
    created_at: str


def _token_response(user: User, settings: Settings) -> TokenResponse:
    access_token = create_access_token(data={"sub": str(user.id)}, settings=settings)
    return TokenResponse(
        access_token=access_token,
        user_id=str(user.id),
        name=user.name,
        email=user.email
    )


@router.post("/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
def register(
    request: RegisterRequest,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    """
    Register a new user.

    - Creates user account with hashed password
    - Returns JWT access token
    """
    existing_user = db.query(User).filter(User.email == request.email).first()
    if existing_user:
        raise ValidationError("Email already registered")

    user = User(
        name=request.name,
        email=request.email,
        password_hash=get_password_hash(request.password)
    )

    db.add(user)
    db.commit()
    db.refresh(user)

    return _token_response(user, settings)


@router.post("/login", response_model=TokenResponse)
def login(
    request: LoginRequest,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    """
    Login with email and password.

    - Validates credentials
    - Returns JWT access token
    """
    user = db.query(User).filter(User.email == request.email).first()
    if not user or not verify_password(request.password, user.password_hash):
        raise AuthError("Incorrect email or password")

    return _token_response(user, settings)


@router.get("/me", response_model=UserResponse)
def get_me(current_user: User = Depends(get_current_user)):
    """
    Get current authenticated user information.

    Protected endpoint - requires valid JWT token.
    """
    return UserResponse(
        id=str(current_user.id),
        name=current_user.name,
        email=current_user.email,
        created_at=current_user.created_at.isoformat()
    )
