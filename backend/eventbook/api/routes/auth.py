"""
Authentication endpoints: register, login and logout.
"""

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from eventbook.core.config import get_settings
from eventbook.db.session import get_db
from eventbook.schemas.user import UserCreate, UserResponse, UserLogin, Token
from eventbook.services.auth_service import register_user, authenticate_user

settings = get_settings()
router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def register(user_data: UserCreate, db: AsyncSession = Depends(get_db)):
    """Register a new user account."""
    user = await register_user(db, user_data)
    return user


@router.post("/login", response_model=Token)
async def login(login_data: UserLogin, response: Response, db: AsyncSession = Depends(get_db)):
    """
    Authenticate and receive a JWT access token.
    The token is also set as an http-only cookie for the browser frontend.
    """
    token = await authenticate_user(db, login_data)
    response.set_cookie(
        key=settings.AUTH_COOKIE_NAME,
        value=token,
        httponly=True,
        secure=settings.ENVIRONMENT == "production",
        samesite="strict",
        max_age=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
    )
    return Token(access_token=token)


@router.post("/logout")
async def logout(response: Response):
    """Clear the auth cookie."""
    response.delete_cookie(
        key=settings.AUTH_COOKIE_NAME,
        httponly=True,
        secure=settings.ENVIRONMENT == "production",
        samesite="strict",
    )
    return {"message": "Logged out successfully"}
