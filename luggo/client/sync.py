"""Client sync layer — optimistic votes reconciled against the server.

A vote is applied to the cache before the request is sent. The server's counts
overwrite the local ones on success; on failure the optimistic change is rolled
back and an inline status message is recorded for the review. At most one vote
request per review is in flight; a duplicate request awaits the pending one.
"""

import asyncio

from luggo.client.api import LuggoAPI
from luggo.client.cache import CachedReview, Identity, ReviewCache, ReviewDraft
from luggo.errors import AuthRequiredError, LuggoError, ValidationError
from luggo.logging_config import get_logger
from luggo.services import vote_states

logger = get_logger(__name__)

STATUS_VOTE_SAVED = "Voto registrado"
STATUS_VOTE_REMOVED = "Voto eliminado"
STATUS_LOGIN_REQUIRED = "Inicia sesión para votar"
STATUS_VOTE_PENDING = "Ya hay un voto en curso"


class SyncClient:
    """Keeps a ``ReviewCache`` consistent with the server."""

    def __init__(self, api: LuggoAPI, cache: ReviewCache | None = None):
        self.api = api
        self.cache = cache or ReviewCache()
        self._in_flight: dict[int, tuple[int, asyncio.Task]] = {}

    @property
    def identity(self) -> Identity | None:
        return self.cache.identity

    def is_voting(self, review_id: int) -> bool:
        return review_id in self._in_flight

    # --- Snapshot ---

    async def refresh(self) -> None:
        """Reload places and reviews from the server."""
        places = await self.api.list_places()
        reviews = await self.api.list_reviews()
        self.cache.replace_all(places, reviews)
        logger.debug("cache_refreshed", places=len(places), reviews=len(reviews))

    # --- Identity ---

    async def login(self, token: str) -> Identity:
        """Exchange an identity-provider credential and adopt the returned user."""
        self.api.set_token(token)
        try:
            user = await self.api.open_session()
        except LuggoError:
            self.api.set_token(None)
            raise
        identity = Identity.from_payload(user)
        self.cache.set_identity(identity)
        logger.info("client_logged_in", uid=identity.uid)
        await self.refresh()
        return identity

    def logout(self) -> None:
        """Drop the credential; ownership is re-derived without a round-trip."""
        self.api.set_token(None)
        self.cache.set_identity(None)
        logger.info("client_logged_out")

    # --- Reviews ---

    async def submit_review(self, draft: ReviewDraft | None = None) -> CachedReview:
        """Send the draft; on success the draft is discarded, on failure it is kept."""
        draft = draft or self.cache.draft
        if draft is None:
            raise ValidationError("Nothing to submit", "empty_draft")
        if self.identity is None:
            raise AuthRequiredError()

        result = await self.api.create_review(draft.to_payload())
        self.cache.upsert_place(result["place"])
        review = self.cache.add_review(result["review"])
        self.cache.discard_draft()
        return review

    # --- Votes ---

    async def toggle_vote(self, review_id: int, direction: int) -> dict | None:
        """Vote in ``direction``; repeating the recorded direction withdraws the vote."""
        if direction not in (1, -1):
            raise ValidationError("Vote direction must be 1 or -1", "invalid_vote")
        review = self.cache.get_review(review_id)
        current = review.my_vote if review else 0
        return await self.vote(review_id, 0 if current == direction else direction)

    async def vote(self, review_id: int, value: int) -> dict | None:
        """Cast ``value`` (-1, 0, 1) on a review.

        Returns the server's ``{reviewId, up, down, my}``, or ``None`` when the
        vote failed (the status message explains why). While a vote on the
        review is in flight, further calls await that request and return its
        result; a different ``value`` is not sent. Raises
        ``AuthRequiredError`` when no identity is active or the server rejects
        the credential.
        """
        if self.identity is None:
            self.cache.set_status(review_id, STATUS_LOGIN_REQUIRED)
            raise AuthRequiredError()
        if not vote_states.is_valid_intent(value):
            raise ValidationError(f"Invalid vote value {value!r}", "invalid_vote")

        pending = self._in_flight.get(review_id)
        if pending is not None:
            pending_value, pending_task = pending
            if pending_value != value:
                # Only the first intent is sent; the caller sees it and the status says why
                self.cache.set_status(review_id, STATUS_VOTE_PENDING)
                logger.info("vote_dropped_in_flight", review_id=review_id, pending=pending_value, value=value)
            else:
                logger.debug("vote_coalesced", review_id=review_id)
            return await asyncio.shield(pending_task)

        task = asyncio.create_task(self._send_vote(review_id, value))
        self._in_flight[review_id] = (value, task)
        task.add_done_callback(lambda done: self._release(review_id, done))
        return await asyncio.shield(task)

    def _release(self, review_id: int, task: asyncio.Task) -> None:
        pending = self._in_flight.get(review_id)
        if pending is not None and pending[1] is task:
            del self._in_flight[review_id]

    async def _send_vote(self, review_id: int, value: int) -> dict | None:
        snapshot = self.cache.apply_optimistic_vote(review_id, value)
        try:
            result = await self.api.vote(review_id, value)
        except AuthRequiredError as exc:
            self.cache.rollback_vote(review_id, snapshot)
            self.cache.set_status(review_id, STATUS_LOGIN_REQUIRED)
            logger.info("vote_rejected", review_id=review_id, error=exc.error_type)
            raise
        except LuggoError as exc:
            self.cache.rollback_vote(review_id, snapshot)
            self.cache.set_status(review_id, exc.message)
            logger.warning("vote_failed", review_id=review_id, error=exc.error_type, detail=exc.message)
            return None

        self.cache.apply_vote_counts(review_id, result["up"], result["down"], result["my"])
        self.cache.set_status(review_id, STATUS_VOTE_SAVED if result["my"] else STATUS_VOTE_REMOVED)
        return result
