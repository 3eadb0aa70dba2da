"""Review endpoints — feed, submission and voting."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from luggo.auth import get_current_user, get_current_user_optional
from luggo.database import get_db
from luggo.models import Place, Review, User
from luggo.schemas import (
    ReviewCreateRequest,
    ReviewCreateResponse,
    ReviewListResponse,
    ReviewResponse,
    VoteRequest,
    VoteResponse,
    epoch_millis,
    place_response,
)
from luggo.services import review_store, vote_ledger

router = APIRouter(prefix="/reviews", tags=["reviews"])


def review_response(review: Review, place: Place, my_vote: int | None = None) -> ReviewResponse:
    return ReviewResponse(
        id=review.id,
        place_id=review.place_id,
        place_name=place.name,
        author_uid=review.author_uid,
        user_name=review.author_name,
        rating=review.rating,
        note=review.note or "",
        tags=[tag for tag in (review.tags or []) if isinstance(tag, str)],
        photo=review_store.display_photo(review, place),
        city=review.city or place.address or "",
        up=review.upvotes,
        down=review.downvotes,
        created_at=epoch_millis(review.created_at),
        coords=review.coords or place.coords,
        my_vote=my_vote,
    )


@router.get("", response_model=ReviewListResponse)
async def list_reviews(
    db: AsyncSession = Depends(get_db),
    user: User | None = Depends(get_current_user_optional),
):
    """Feed of all reviews, newest first. ``myVote`` is filled for signed-in callers."""
    rows = await review_store.list_reviews(db, viewer_uid=user.uid if user else None)
    return ReviewListResponse(
        reviews=[review_response(row.review, row.place, row.my_vote) for row in rows]
    )


@router.post("", response_model=ReviewCreateResponse, status_code=201)
async def create_review(
    body: ReviewCreateRequest,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Submit a review; the place is resolved or registered in the same transaction."""
    review, place = await review_store.create_review(
        db,
        author=user,
        place_input={
            "id": body.place.id,
            "name": body.place.name,
            "address": body.place.address,
            "coords": body.place.coords.model_dump() if body.place.coords else None,
            "photo": body.place.photo,
        },
        rating=body.rating,
        note=body.note,
        tags=body.tags,
        city=body.city,
        photo=body.photo,
        coords=body.coords.model_dump() if body.coords else None,
    )
    await db.commit()
    return ReviewCreateResponse(
        review=review_response(review, place, my_vote=0),
        place=place_response(place),
    )


@router.post("/{review_id}/vote", response_model=VoteResponse)
async def cast_vote(
    review_id: int,
    body: VoteRequest,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Cast (1 / -1) or withdraw (0) the caller's vote. Repeating the recorded value is a no-op."""
    result = await vote_ledger.cast_vote(db, review_id, user.uid, body.value)
    await db.commit()
    return VoteResponse(review_id=result.review_id, up=result.up, down=result.down, my=result.my)
