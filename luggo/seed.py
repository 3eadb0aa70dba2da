"""Seed script — demo places and reviews so a fresh install looks alive.

Places are upserted by id on every run; reviews are only added while the
reviews table is empty. Seeded reviews start with zero counters, matching an
empty vote ledger.

Usage:
    python -m luggo.seed
"""

import asyncio
from datetime import datetime, timedelta, timezone

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from luggo.config import get_settings
from luggo.database import close_db, create_tables, get_db_session, init_db
from luggo.logging_config import configure_logging, get_logger
from luggo.models import Review, User
from luggo.services import place_registry

logger = get_logger(__name__)


def ago(**kwargs) -> datetime:
    """Helper: return a datetime offset from now."""
    return datetime.now(timezone.utc) - timedelta(**kwargs)


DEMO_USERS = [
    {"uid": "demo-usuario", "display_name": "Usuario Demo"},
    {"uid": "demo-maria", "display_name": "Maria"},
    {"uid": "demo-luis", "display_name": "Luis"},
]

DEFAULT_PLACES = [
    {
        "id": "cafe-aurora",
        "name": "Cafe Aurora",
        "address": "San Jose, CR",
        "lat": 9.9339,
        "lng": -84.0833,
        "photo": "https://images.unsplash.com/photo-1541167760496-1628856ab772?q=80&w=1200&auto=format&fit=crop",
    },
    {
        "id": "parque-sabana",
        "name": "Parque La Sabana",
        "address": "San Jose, CR",
        "lat": 9.938,
        "lng": -84.1008,
        "photo": "https://images.unsplash.com/photo-1558981359-219d6364c9b8?q=80&w=1200&auto=format&fit=crop",
    },
    {
        "id": "mercado-central",
        "name": "Mercado Central",
        "address": "San Jose, CR",
        "lat": 9.9343,
        "lng": -84.0818,
        "photo": "https://images.unsplash.com/photo-1542831371-29b0f74f9713?q=80&w=1200&auto=format&fit=crop",
    },
]

DEFAULT_REVIEWS = [
    {
        "place_id": "cafe-aurora",
        "author_uid": "demo-usuario",
        "rating": 5,
        "note": "Capuchino cremoso y terraza con sombra. Ideal para estudiar.",
        "tags": ["cafe", "wifi", "brunch"],
        "hours_ago": 6,
    },
    {
        "place_id": "parque-sabana",
        "author_uid": "demo-maria",
        "rating": 4,
        "note": "Buen lugar para correr al atardecer. Llevar repelente para mosquitos.",
        "tags": ["aire libre", "running"],
        "hours_ago": 24,
    },
    {
        "place_id": "mercado-central",
        "author_uid": "demo-luis",
        "rating": 5,
        "note": "Sodas tipicas ricas y baratas. Prueba el casado.",
        "tags": ["comida tipica", "barato"],
        "hours_ago": 30,
    },
]


async def _ensure_users(db: AsyncSession) -> dict[str, User]:
    users: dict[str, User] = {}
    for data in DEMO_USERS:
        user = await db.get(User, data["uid"])
        if user is None:
            user = User(uid=data["uid"], display_name=data["display_name"])
            db.add(user)
        users[user.uid] = user
    await db.flush()
    return users


async def seed_defaults(db: AsyncSession) -> dict[str, int]:
    """Upsert the default places and, on an empty table, their reviews.

    Runs in the caller's transaction; the caller commits.
    """
    users = await _ensure_users(db)

    places = {}
    for data in DEFAULT_PLACES:
        fields = place_registry.build_place_fields(
            name=data["name"],
            address=data["address"],
            coords={"lat": data["lat"], "lng": data["lng"]},
            photo=data["photo"],
        )
        places[data["id"]] = await place_registry.upsert_place(db, data["id"], fields)

    existing = (await db.execute(select(func.count()).select_from(Review))).scalar() or 0
    created = 0
    if existing == 0:
        for data in DEFAULT_REVIEWS:
            place = places[data["place_id"]]
            author = users[data["author_uid"]]
            db.add(
                Review(
                    place_id=place.id,
                    author_uid=author.uid,
                    author_name=author.display_name,
                    rating=data["rating"],
                    note=data["note"],
                    tags=list(data["tags"]),
                    photo=None,
                    city=place.address,
                    upvotes=0,
                    downvotes=0,
                    latitude=place.latitude,
                    longitude=place.longitude,
                    created_at=ago(hours=data["hours_ago"]),
                )
            )
            created += 1
        await db.flush()

    logger.info("seed_complete", places=len(places), reviews=created)
    return {"places": len(places), "reviews": created}


async def seed():
    """Create demo data."""
    settings = get_settings()
    configure_logging(settings)
    await init_db()
    if settings.database_auto_create:
        await create_tables()

    async with get_db_session() as db:
        counts = await seed_defaults(db)
        await db.commit()

    print("\n" + "=" * 60)
    print("SEED DATA CREATED SUCCESSFULLY")
    print("=" * 60)
    print(f"Places upserted: {counts['places']}")
    print(f"Reviews created: {counts['reviews']}")
    print("=" * 60)

    await close_db()


if __name__ == "__main__":
    asyncio.run(seed())
