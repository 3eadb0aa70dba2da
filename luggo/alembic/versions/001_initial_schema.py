"""Initial schema — users, places, reviews and the vote ledger.

Revision ID: 001
Revises:
Create Date: 2026-10-19
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # --- Users ---
    op.create_table(
        "users",
        sa.Column("uid", sa.Text(), primary_key=True),
        sa.Column("display_name", sa.Text(), nullable=False, server_default=sa.text("''")),
        sa.Column("email", sa.Text()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
    )

    # --- Places ---
    op.create_table(
        "places",
        sa.Column("id", sa.Text(), primary_key=True),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("address", sa.Text(), nullable=False, server_default=sa.text("''")),
        sa.Column("photo", sa.Text()),
        sa.Column("latitude", sa.Float()),
        sa.Column("longitude", sa.Float()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
    )
    op.create_index("idx_places_name", "places", ["name"])

    # --- Reviews ---
    op.create_table(
        "reviews",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("place_id", sa.Text(), sa.ForeignKey("places.id", ondelete="CASCADE"), nullable=False),
        sa.Column("author_uid", sa.Text(), sa.ForeignKey("users.uid", ondelete="SET NULL")),
        sa.Column("author_name", sa.Text(), nullable=False),
        sa.Column("rating", sa.Integer(), nullable=False),
        sa.Column("note", sa.Text(), nullable=False, server_default=sa.text("''")),
        sa.Column("photo", sa.Text()),
        sa.Column("tags", JSONB(), nullable=False, server_default=sa.text("'[]'::jsonb")),
        sa.Column("city", sa.Text(), nullable=False, server_default=sa.text("''")),
        sa.Column("upvotes", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("downvotes", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("latitude", sa.Float()),
        sa.Column("longitude", sa.Float()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.CheckConstraint("rating BETWEEN 1 AND 5", name="ck_review_rating"),
        sa.CheckConstraint("upvotes >= 0", name="ck_review_upvotes"),
        sa.CheckConstraint("downvotes >= 0", name="ck_review_downvotes"),
    )
    op.create_index("idx_reviews_place", "reviews", ["place_id"])
    op.create_index("idx_reviews_author", "reviews", ["author_uid"])
    op.create_index("idx_reviews_created", "reviews", ["created_at"])

    # --- Review votes (one row per voter and review) ---
    op.create_table(
        "review_votes",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("review_id", sa.BigInteger(), sa.ForeignKey("reviews.id", ondelete="CASCADE"), nullable=False),
        sa.Column("voter_uid", sa.Text(), sa.ForeignKey("users.uid", ondelete="CASCADE"), nullable=False),
        sa.Column("value", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.UniqueConstraint("review_id", "voter_uid", name="uq_review_vote"),
        sa.CheckConstraint("value IN (-1, 1)", name="ck_review_vote_value"),
    )
    op.create_index("idx_review_votes_voter", "review_votes", ["voter_uid"])


def downgrade() -> None:
    op.drop_table("review_votes")
    op.drop_table("reviews")
    op.drop_table("places")
    op.drop_table("users")
