"""Vote ledger — the authoritative per-voter record behind review counters.

Every counter change happens here, in the same transaction as the ledger row
change. The review row is locked first, so concurrent votes on one review
serialize; the (review_id, voter_uid) unique key backs that up on stores
without row locks.
"""

from dataclasses import dataclass

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from luggo.errors import AuthRequiredError, NotFoundError, ValidationError
from luggo.logging_config import get_logger
from luggo.models import Review, ReviewVote
from luggo.services.vote_states import VoteState, is_valid_intent, transition

logger = get_logger(__name__)


@dataclass(frozen=True)
class VoteResult:
    review_id: int
    up: int
    down: int
    my: int


async def _lock_review(db: AsyncSession, review_id: int) -> Review:
    result = await db.execute(
        select(Review)
        .where(Review.id == review_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    review = result.scalar_one_or_none()
    if review is None:
        raise NotFoundError(f"Review {review_id} not found", "review_not_found")
    return review


async def _recorded_vote(db: AsyncSession, review_id: int, voter_uid: str) -> ReviewVote | None:
    result = await db.execute(
        select(ReviewVote)
        .where(ReviewVote.review_id == review_id, ReviewVote.voter_uid == voter_uid)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def _write_vote(
    db: AsyncSession,
    review_id: int,
    voter_uid: str,
    existing: ReviewVote | None,
    state: VoteState,
) -> None:
    if state is VoteState.NO_VOTE:
        if existing is not None:
            await db.delete(existing)
        return
    if existing is not None:
        existing.value = int(state)
        return
    async with db.begin_nested():
        db.add(ReviewVote(review_id=review_id, voter_uid=voter_uid, value=int(state)))


async def get_vote(db: AsyncSession, review_id: int, voter_uid: str) -> int:
    vote = await _recorded_vote(db, review_id, voter_uid)
    return vote.value if vote is not None else 0


async def cast_vote(db: AsyncSession, review_id: int, voter_uid: str | None, value: object) -> VoteResult:
    """Apply a vote intent (-1, 0, 1) for ``voter_uid`` and return the new counters.

    Resubmitting the recorded value returns the counters unchanged. The caller
    commits.
    """
    if not voter_uid:
        raise AuthRequiredError("Sign in to vote", "auth_required")
    if not is_valid_intent(value):
        raise ValidationError("Vote must be -1, 0 or 1", "invalid_vote", field="value")

    review = await _lock_review(db, review_id)

    for attempt in (1, 2):
        existing = await _recorded_vote(db, review_id, voter_uid)
        current = existing.value if existing is not None else 0
        outcome = transition(current, value)
        if not outcome.changed:
            break
        try:
            await _write_vote(db, review_id, voter_uid, existing, outcome.state)
        except IntegrityError:
            # A concurrent first vote by the same voter won the insert; re-read it.
            if attempt == 2:
                raise
            logger.warning("vote_insert_race", review_id=review_id, voter_uid=voter_uid)
            review = await _lock_review(db, review_id)
            continue
        review.upvotes += outcome.up_delta
        review.downvotes += outcome.down_delta
        await db.flush()
        break

    logger.info(
        "vote_cast",
        review_id=review_id,
        voter_uid=voter_uid,
        previous=current,
        value=value,
        changed=outcome.changed,
        up=review.upvotes,
        down=review.downvotes,
    )
    return VoteResult(review_id=review.id, up=review.upvotes, down=review.downvotes, my=int(outcome.state))


async def reconcile_counters(db: AsyncSession) -> int:
    """Recompute every review's counters from the ledger; returns rows corrected."""
    up_q = (
        select(ReviewVote.review_id, func.count())
        .where(ReviewVote.value == 1)
        .group_by(ReviewVote.review_id)
    )
    down_q = (
        select(ReviewVote.review_id, func.count())
        .where(ReviewVote.value == -1)
        .group_by(ReviewVote.review_id)
    )
    ups = {row[0]: row[1] for row in (await db.execute(up_q)).all()}
    downs = {row[0]: row[1] for row in (await db.execute(down_q)).all()}

    corrected = 0
    reviews = (
        await db.execute(select(Review).with_for_update().execution_options(populate_existing=True))
    ).scalars().all()
    for review in reviews:
        up, down = ups.get(review.id, 0), downs.get(review.id, 0)
        if review.upvotes != up or review.downvotes != down:
            logger.warning(
                "vote_counters_corrected",
                review_id=review.id,
                stored_up=review.upvotes,
                stored_down=review.downvotes,
                up=up,
                down=down,
            )
            review.upvotes, review.downvotes = up, down
            corrected += 1
    await db.flush()
    return corrected


async def clear_votes(db: AsyncSession) -> int:
    result = await db.execute(delete(ReviewVote))
    return result.rowcount or 0
