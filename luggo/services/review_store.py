"""Review store — validated review records attached to a resolved place."""

from collections.abc import Iterable
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from luggo.errors import ValidationError
from luggo.logging_config import get_logger
from luggo.models import Place, Review, ReviewVote, User
from luggo.photos import clean_photo, resolve_photo
from luggo.services import place_registry
from luggo.services.place_registry import validate_coords

logger = get_logger(__name__)

MIN_RATING = 1
MAX_RATING = 5


@dataclass
class ReviewRow:
    """A review joined with its place and the viewer's recorded vote."""

    review: Review
    place: Place
    my_vote: int | None = None


def validate_rating(value: object) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationError("Rating must be a number between 1 and 5", "invalid_rating", field="rating")
    if isinstance(value, float) and not value.is_integer():
        raise ValidationError("Rating must be a whole number", "invalid_rating", field="rating")
    rating = int(value)
    if not MIN_RATING <= rating <= MAX_RATING:
        raise ValidationError("Rating must be between 1 and 5", "invalid_rating", field="rating")
    return rating


def normalize_tags(raw: str | Iterable[str] | None) -> list[str]:
    """Split on commas, trim, drop empties. Order and repeats are kept."""
    if raw is None:
        return []
    items = [raw] if isinstance(raw, str) else list(raw)
    tags: list[str] = []
    for item in items:
        for part in str(item).split(","):
            tag = part.strip()
            if tag:
                tags.append(tag)
    return tags


def resolve_coords(review_coords: dict | None, place: Place) -> tuple[float | None, float | None]:
    """Explicit review coordinates win over the place's."""
    lat, lng = validate_coords(review_coords)
    if lat is not None and lng is not None:
        return lat, lng
    return place.latitude, place.longitude


async def create_review(
    db: AsyncSession,
    author: User,
    place_input: dict,
    rating: object,
    note: str | None = None,
    tags: str | Iterable[str] | None = None,
    city: str | None = None,
    photo: str | None = None,
    coords: dict | None = None,
) -> tuple[Review, Place]:
    """Validate and insert a review, resolving (or registering) its place first.

    Runs in the caller's transaction: the place and its first review become
    visible together on commit. Counters start at zero.
    """
    checked_rating = validate_rating(rating)
    place = await place_registry.resolve_or_create(
        db,
        name=place_input.get("name"),
        address=place_input.get("address"),
        coords=place_input.get("coords"),
        photo=place_input.get("photo"),
        place_id=place_input.get("id"),
    )
    latitude, longitude = resolve_coords(coords, place)

    review = Review(
        place_id=place.id,
        author_uid=author.uid,
        author_name=author.display_name or place.name or "Autor",
        rating=checked_rating,
        note=(note or "").strip(),
        photo=clean_photo(photo),
        tags=normalize_tags(tags),
        city=(city or "").strip() or place.address or "",
        upvotes=0,
        downvotes=0,
        latitude=latitude,
        longitude=longitude,
    )
    db.add(review)
    await db.flush()

    logger.info(
        "review_created",
        review_id=review.id,
        place_id=place.id,
        author_uid=author.uid,
        rating=checked_rating,
    )
    return review, place


async def list_reviews(db: AsyncSession, viewer_uid: str | None = None) -> list[ReviewRow]:
    """All reviews, newest first, with the viewer's vote when known."""
    query = select(Review, Place).join(Place, Place.id == Review.place_id)
    if viewer_uid is not None:
        query = query.add_columns(ReviewVote.value).outerjoin(
            ReviewVote,
            (ReviewVote.review_id == Review.id) & (ReviewVote.voter_uid == viewer_uid),
        )
    query = query.order_by(Review.created_at.desc(), Review.id.desc())
    result = await db.execute(query)

    rows: list[ReviewRow] = []
    for row in result.all():
        if viewer_uid is None:
            review, place = row
            rows.append(ReviewRow(review, place))
        else:
            review, place, value = row
            rows.append(ReviewRow(review, place, value or 0))
    return rows


def display_photo(review: Review, place: Place) -> str | None:
    """Stored photo for the payload; the placeholder is left to the renderer."""
    return resolve_photo(review.photo, place.photo, place.name)
