"""Reputation endpoint — karma and rank per author, derived on read."""

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from luggo.database import get_db
from luggo.models import Review
from luggo.schemas import ReputationEntry, ReputationResponse
from luggo.services.reputation import leaderboard

router = APIRouter(prefix="/reputation", tags=["reputation"])


@router.get("", response_model=ReputationResponse)
async def get_reputation(db: AsyncSession = Depends(get_db)):
    reviews = (await db.execute(select(Review).order_by(Review.created_at.desc()))).scalars().all()
    return ReputationResponse(
        reputation=[ReputationEntry(**entry) for entry in leaderboard(reviews)]
    )
