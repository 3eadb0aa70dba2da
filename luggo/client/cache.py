"""Client-side mirror of places and reviews.

One ``ReviewCache`` is the single in-memory store a UI renders from. It holds
the server's records, the active identity, the reputation derived from the
cached reviews and at most one unsaved review draft. Ownership (``me``) and the
displayed author name are derived from the identity, so they flip locally when
the identity changes.
"""

from dataclasses import dataclass, field
from typing import Any

from luggo.photos import resolve_photo
from luggo.services import reputation, vote_states

SELF_LABEL = "Tú"
UNKNOWN_AUTHOR = "Autor"


@dataclass
class Identity:
    uid: str
    display_name: str = ""
    email: str | None = None

    @classmethod
    def from_payload(cls, data: dict) -> "Identity":
        return cls(
            uid=str(data["uid"]),
            display_name=data.get("displayName") or "",
            email=data.get("email"),
        )


@dataclass
class CachedPlace:
    id: str
    name: str
    address: str = ""
    coords: dict[str, float] | None = None
    photo: str | None = None

    @classmethod
    def from_payload(cls, data: dict) -> "CachedPlace":
        return cls(
            id=data["id"],
            name=data.get("name") or "",
            address=data.get("address") or "",
            coords=data.get("coords"),
            photo=data.get("photo"),
        )


@dataclass
class CachedReview:
    id: int
    place_id: str
    place_name: str = ""
    author_uid: str | None = None
    author_name: str = ""
    rating: int = 0
    note: str = ""
    tags: list[str] = field(default_factory=list)
    photo: str | None = None
    city: str = ""
    up: int = 0
    down: int = 0
    created_at: int = 0
    coords: dict[str, float] | None = None
    my_vote: int = 0
    # Derived from the active identity
    me: bool = False
    user_name: str = ""

    @classmethod
    def from_payload(cls, data: dict) -> "CachedReview":
        return cls(
            id=int(data["id"]),
            place_id=data["placeId"],
            place_name=data.get("placeName") or "",
            author_uid=data.get("authorUid"),
            author_name=data.get("userName") or "",
            rating=int(data.get("rating") or 0),
            note=data.get("note") or "",
            tags=list(data.get("tags") or []),
            photo=data.get("photo"),
            city=data.get("city") or "",
            up=int(data.get("up") or 0),
            down=int(data.get("down") or 0),
            created_at=int(data.get("createdAt") or 0),
            coords=data.get("coords"),
            my_vote=int(data.get("myVote") or 0),
        )


@dataclass
class ReviewDraft:
    """Unsaved review form state; discarded on submit or cancel."""

    place_name: str = ""
    place_id: str | None = None
    address: str = ""
    coords: dict[str, float] | None = None
    place_photo: str | None = None
    rating: int | None = None
    note: str = ""
    tags: str | list[str] = ""
    photo: str | None = None
    city: str | None = None

    def to_payload(self) -> dict[str, Any]:
        return {
            "place": {
                "id": self.place_id,
                "name": self.place_name,
                "address": self.address,
                "coords": self.coords,
                "photo": self.place_photo,
            },
            "rating": self.rating,
            "note": self.note,
            "tags": self.tags,
            "photo": self.photo,
            "city": self.city,
            "coords": self.coords,
        }


@dataclass(frozen=True)
class VoteSnapshot:
    up: int
    down: int
    my_vote: int


class ReviewCache:
    """Places, reviews, identity and derived reputation for one UI session."""

    def __init__(self):
        self.places_by_id: dict[str, CachedPlace] = {}
        self.reviews: list[CachedReview] = []
        self.identity: Identity | None = None
        self.reputation: dict[str, int] = {}
        self.draft: ReviewDraft | None = None
        self.status_by_review: dict[int, str] = {}

    # --- Lookups ---

    def get_review(self, review_id: int) -> CachedReview | None:
        for review in self.reviews:
            if review.id == review_id:
                return review
        return None

    def my_reviews(self) -> list[CachedReview]:
        return [review for review in self.reviews if review.me]

    def rank_for(self, uid: str) -> str:
        return reputation.rank_from_karma(self.reputation.get(uid, 0))

    def display_photo(self, review: CachedReview) -> str:
        place = self.places_by_id.get(review.place_id)
        return resolve_photo(
            review.photo,
            place.photo if place else None,
            place.name if place else review.place_name,
            placeholder=True,
        )

    # --- Server state ---

    def replace_all(self, places: list[dict], reviews: list[dict]) -> None:
        """Swap in a fresh server snapshot."""
        self.places_by_id = {}
        for data in places:
            place = CachedPlace.from_payload(data)
            self.places_by_id[place.id] = place
        self.reviews = [CachedReview.from_payload(data) for data in reviews]
        self.reviews.sort(key=lambda review: (review.created_at, review.id), reverse=True)
        self._derive_ownership()
        self._recompute_reputation()

    def upsert_place(self, data: dict) -> CachedPlace:
        place = CachedPlace.from_payload(data)
        self.places_by_id[place.id] = place
        return place

    def add_review(self, data: dict) -> CachedReview:
        """Insert (or replace) a review at the head of the feed."""
        review = CachedReview.from_payload(data)
        self.reviews = [existing for existing in self.reviews if existing.id != review.id]
        self.reviews.insert(0, review)
        self._derive_one(review)
        self._recompute_reputation()
        return review

    def apply_vote_counts(self, review_id: int, up: int, down: int, my_vote: int) -> CachedReview | None:
        """Overwrite local counters with the server's; the server always wins."""
        review = self.get_review(review_id)
        if review is None:
            return None
        review.up = up
        review.down = down
        review.my_vote = my_vote
        self._recompute_reputation()
        return review

    def invalidate(self) -> None:
        """Forget cached server records; the next refresh reloads them."""
        self.places_by_id = {}
        self.reviews = []
        self.reputation = {}
        self.status_by_review = {}

    # --- Optimistic votes ---

    def apply_optimistic_vote(self, review_id: int, intent: int) -> VoteSnapshot | None:
        """Apply ``intent`` locally; returns the prior counters for rollback."""
        review = self.get_review(review_id)
        if review is None:
            return None
        snapshot = VoteSnapshot(review.up, review.down, review.my_vote)
        outcome = vote_states.transition(review.my_vote, intent)
        review.up = max(0, review.up + outcome.up_delta)
        review.down = max(0, review.down + outcome.down_delta)
        review.my_vote = int(outcome.state)
        self._recompute_reputation()
        return snapshot

    def rollback_vote(self, review_id: int, snapshot: VoteSnapshot | None) -> None:
        review = self.get_review(review_id)
        if review is None or snapshot is None:
            return
        review.up = snapshot.up
        review.down = snapshot.down
        review.my_vote = snapshot.my_vote
        self._recompute_reputation()

    def set_status(self, review_id: int, message: str | None) -> None:
        if message:
            self.status_by_review[review_id] = message
        else:
            self.status_by_review.pop(review_id, None)

    def status_for(self, review_id: int) -> str | None:
        return self.status_by_review.get(review_id)

    # --- Identity ---

    def set_identity(self, identity: Identity | None) -> None:
        """Switch the active identity and re-derive ownership locally."""
        previous = self.identity.uid if self.identity else None
        self.identity = identity
        current = identity.uid if identity else None
        if previous != current:
            # Recorded votes belong to the previous identity.
            for review in self.reviews:
                review.my_vote = 0
        self._derive_ownership()
        self._recompute_reputation()

    # --- Drafts ---

    def start_draft(self, **fields: Any) -> ReviewDraft:
        self.draft = ReviewDraft(**fields)
        return self.draft

    def discard_draft(self) -> None:
        self.draft = None

    # --- Derived state ---

    def _derive_one(self, review: CachedReview) -> None:
        review.me = self.identity is not None and review.author_uid == self.identity.uid
        review.user_name = SELF_LABEL if review.me else (review.author_name or UNKNOWN_AUTHOR)

    def _derive_ownership(self) -> None:
        for review in self.reviews:
            self._derive_one(review)

    def _recompute_reputation(self) -> None:
        self.reputation = reputation.recompute(self.reviews)
