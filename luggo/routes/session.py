"""Session exchange — verifies the identity-provider credential and returns the user."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from luggo.auth import get_current_user
from luggo.database import get_db
from luggo.logging_config import get_logger
from luggo.models import User
from luggo.schemas import SessionResponse, UserResponse

logger = get_logger(__name__)
router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/session", response_model=SessionResponse)
async def open_session(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Exchange a bearer credential for the local user profile."""
    await db.commit()
    logger.info("session_opened", uid=user.uid)
    return SessionResponse(user=UserResponse.model_validate(user))
