"""Pydantic v2 request/response schemas for all endpoints.

Wire names are camelCase (``placeId``, ``myVote``); Python attributes stay
snake_case and are populated by name.
"""

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, from_attributes=True)


# ---------------------------------------------------------------------------
# Places
# ---------------------------------------------------------------------------


class Coords(BaseModel):
    lat: float
    lng: float


class PlaceIn(WireModel):
    id: str | None = Field(default=None, max_length=120)
    name: str = Field(default="", max_length=300)
    address: str = Field(default="", max_length=500)
    coords: Coords | None = None
    photo: str | None = None


class PlaceResponse(WireModel):
    id: str
    name: str
    address: str = ""
    coords: Coords | None = None
    photo: str | None = None


class PlaceEnvelope(BaseModel):
    place: PlaceResponse


class PlaceListResponse(BaseModel):
    places: list[PlaceResponse]


# ---------------------------------------------------------------------------
# Reviews
# ---------------------------------------------------------------------------


class ReviewCreateRequest(WireModel):
    place: PlaceIn
    rating: Any = None
    note: str = Field(default="", max_length=5000)
    tags: list[str] | str | None = None
    city: str | None = Field(default=None, max_length=500)
    photo: str | None = None
    coords: Coords | None = None


class ReviewResponse(WireModel):
    id: int
    place_id: str = Field(alias="placeId")
    place_name: str = Field(default="", alias="placeName")
    author_uid: str | None = Field(default=None, alias="authorUid")
    user_name: str = Field(default="", alias="userName")
    rating: int
    note: str = ""
    tags: list[str] = Field(default_factory=list)
    photo: str | None = None
    city: str = ""
    up: int = 0
    down: int = 0
    created_at: int = Field(alias="createdAt", description="Epoch milliseconds")
    coords: Coords | None = None
    my_vote: int | None = Field(default=None, alias="myVote")


class ReviewListResponse(BaseModel):
    reviews: list[ReviewResponse]


class ReviewCreateResponse(BaseModel):
    review: ReviewResponse
    place: PlaceResponse


# ---------------------------------------------------------------------------
# Votes
# ---------------------------------------------------------------------------


class VoteRequest(BaseModel):
    value: Any = Field(..., description="-1 downvote, 1 upvote, 0 remove")


class VoteResponse(WireModel):
    review_id: int = Field(alias="reviewId")
    up: int
    down: int
    my: int


# ---------------------------------------------------------------------------
# Session / users
# ---------------------------------------------------------------------------


class UserResponse(WireModel):
    uid: str
    display_name: str = Field(default="", alias="displayName")
    email: str | None = None


class SessionResponse(BaseModel):
    user: UserResponse


# ---------------------------------------------------------------------------
# Reputation
# ---------------------------------------------------------------------------


class ReputationEntry(WireModel):
    uid: str
    user_name: str = Field(default="", alias="userName")
    karma: int
    rank: str


class ReputationResponse(BaseModel):
    reputation: list[ReputationEntry]


# ---------------------------------------------------------------------------
# Maintenance
# ---------------------------------------------------------------------------


class ResetRequest(WireModel):
    seed_defaults: bool = Field(default=False, alias="seedDefaults")


class ResetCounts(BaseModel):
    reviews: int = 0
    votes: int = 0
    places: int = 0


class ResetResponse(BaseModel):
    ok: bool = True
    cleared: ResetCounts


class ReconcileResponse(BaseModel):
    ok: bool = True
    corrected: int = 0


def epoch_millis(value: datetime | None) -> int:
    """Serialize a timestamp as epoch milliseconds; naive values are UTC."""
    if value is None:
        value = datetime.now(timezone.utc)
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return int(value.timestamp() * 1000)


def place_response(place) -> PlaceResponse:
    return PlaceResponse(
        id=place.id,
        name=place.name,
        address=place.address or "",
        coords=place.coords,
        photo=place.photo,
    )
