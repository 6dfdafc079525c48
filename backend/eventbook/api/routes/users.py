"""
Profile endpoint for the authenticated user.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from eventbook.core.security import get_current_user_id
from eventbook.db.session import get_db
from eventbook.schemas.user import UserResponse
from eventbook.services.auth_service import get_user

router = APIRouter(prefix="/users", tags=["Users"])


@router.get("/me", response_model=UserResponse)
async def read_me(
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    return await get_user(db, user_id)
