"""SQLAlchemy ORM models — users, places, reviews and the vote ledger."""

from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    CheckConstraint,
    Float,
    ForeignKey,
    Index,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from sqlalchemy.types import BigInteger, DateTime, Integer

# SQLite only autoincrements INTEGER PRIMARY KEY columns.
BigIntPK = BigInteger().with_variant(Integer(), "sqlite")
TagList = JSON().with_variant(JSONB(), "postgresql")


class Base(DeclarativeBase):
    pass


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        onupdate=utcnow,
        nullable=False,
    )


# ---------------------------------------------------------------------------
# Users — keyed by the identity provider's subject
# ---------------------------------------------------------------------------


class User(TimestampMixin, Base):
    __tablename__ = "users"

    uid: Mapped[str] = mapped_column(Text, primary_key=True)
    display_name: Mapped[str] = mapped_column(Text, nullable=False, default="")
    email: Mapped[str | None] = mapped_column(Text)


# ---------------------------------------------------------------------------
# Places
# ---------------------------------------------------------------------------


class Place(TimestampMixin, Base):
    __tablename__ = "places"
    __table_args__ = (Index("idx_places_name", "name"),)

    id: Mapped[str] = mapped_column(Text, primary_key=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    address: Mapped[str] = mapped_column(Text, nullable=False, default="")
    photo: Mapped[str | None] = mapped_column(Text)
    latitude: Mapped[float | None] = mapped_column(Float)
    longitude: Mapped[float | None] = mapped_column(Float)

    reviews: Mapped[list["Review"]] = relationship(back_populates="place")

    @property
    def coords(self) -> dict[str, float] | None:
        if self.latitude is None or self.longitude is None:
            return None
        return {"lat": self.latitude, "lng": self.longitude}


# ---------------------------------------------------------------------------
# Reviews
# ---------------------------------------------------------------------------


class Review(TimestampMixin, Base):
    __tablename__ = "reviews"
    __table_args__ = (
        Index("idx_reviews_place", "place_id"),
        Index("idx_reviews_author", "author_uid"),
        Index("idx_reviews_created", "created_at"),
        CheckConstraint("rating BETWEEN 1 AND 5", name="ck_review_rating"),
        CheckConstraint("upvotes >= 0", name="ck_review_upvotes"),
        CheckConstraint("downvotes >= 0", name="ck_review_downvotes"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    place_id: Mapped[str] = mapped_column(
        Text, ForeignKey("places.id", ondelete="CASCADE"), nullable=False
    )
    author_uid: Mapped[str | None] = mapped_column(
        Text, ForeignKey("users.uid", ondelete="SET NULL")
    )
    author_name: Mapped[str] = mapped_column(Text, nullable=False)
    rating: Mapped[int] = mapped_column(Integer, nullable=False)
    note: Mapped[str] = mapped_column(Text, nullable=False, default="")
    photo: Mapped[str | None] = mapped_column(Text)
    tags: Mapped[list[str]] = mapped_column(TagList, nullable=False, default=list)
    city: Mapped[str] = mapped_column(Text, nullable=False, default="")
    # Derived from review_votes; written only by the vote ledger.
    upvotes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    downvotes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    latitude: Mapped[float | None] = mapped_column(Float)
    longitude: Mapped[float | None] = mapped_column(Float)

    place: Mapped[Place] = relationship(back_populates="reviews")
    votes: Mapped[list["ReviewVote"]] = relationship(
        back_populates="review", cascade="all, delete-orphan", passive_deletes=True
    )

    @property
    def coords(self) -> dict[str, float] | None:
        if self.latitude is None or self.longitude is None:
            return None
        return {"lat": self.latitude, "lng": self.longitude}


# ---------------------------------------------------------------------------
# Vote ledger — one row per (review, voter); "no vote" is the absence of a row
# ---------------------------------------------------------------------------


class ReviewVote(TimestampMixin, Base):
    __tablename__ = "review_votes"
    __table_args__ = (
        UniqueConstraint("review_id", "voter_uid", name="uq_review_vote"),
        CheckConstraint("value IN (-1, 1)", name="ck_review_vote_value"),
        Index("idx_review_votes_voter", "voter_uid"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    review_id: Mapped[int] = mapped_column(
        BigIntPK, ForeignKey("reviews.id", ondelete="CASCADE"), nullable=False
    )
    voter_uid: Mapped[str] = mapped_column(
        Text, ForeignKey("users.uid", ondelete="CASCADE"), nullable=False
    )
    value: Mapped[int] = mapped_column(Integer, nullable=False)

    review: Mapped[Review] = relationship(back_populates="votes")
