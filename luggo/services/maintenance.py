"""Maintenance operations behind the admin panel."""

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession

from luggo.logging_config import get_logger
from luggo.models import Place, Review
from luggo.services.vote_ledger import clear_votes

logger = get_logger(__name__)


async def reset_data(db: AsyncSession, seed_defaults: bool = False) -> dict[str, int]:
    """Delete votes, reviews and places (users are kept). Optionally re-seed demo data."""
    votes = await clear_votes(db)
    reviews = (await db.execute(delete(Review))).rowcount or 0
    places = (await db.execute(delete(Place))).rowcount or 0
    db.expunge_all()
    logger.warning("data_reset", votes=votes, reviews=reviews, places=places, seed_defaults=seed_defaults)

    if seed_defaults:
        from luggo.seed import seed_defaults as run_seed

        await run_seed(db)

    return {"reviews": reviews, "votes": votes, "places": places}
