from fastapi import APIRouter, Body, Depends
from sqlmodel.ext.asyncio.session import AsyncSession

from app.database import get_db
from app.models import UserPayload, UserResponse
from app.services.user_service import UserService

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/google", response_model=UserResponse)
async def google_login(
    user_data: UserPayload | None = Body(default=None),
    db: AsyncSession = Depends(get_db),
):
    """Store the signed-in Google user on first sight and return it"""
    return await UserService.upsert_google_user(user_data, db)
