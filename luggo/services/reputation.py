"""Reputation calculator — karma per author and the rank derived from it.

Karma is a view over the review collection: it is recomputed in full on every
change and never stored.
"""

from collections.abc import Iterable
from typing import Any

RANK_THRESHOLDS: tuple[tuple[int, str], ...] = (
    (10, "Expert"),
    (3, "Trusted"),
)
DEFAULT_RANK = "Novice"


def _field(review: Any, *names: str, default: Any = None) -> Any:
    for name in names:
        if isinstance(review, dict):
            if name in review:
                return review[name]
        elif hasattr(review, name):
            return getattr(review, name)
    return default


def recompute(reviews: Iterable[Any]) -> dict[str, int]:
    """Fold reviews into ``{author_uid: karma}``.

    Accepts ORM rows, client cache entries or plain dicts. Reviews without an
    author identity are skipped.
    """
    karma: dict[str, int] = {}
    for review in reviews:
        author = _field(review, "author_uid", "authorUid", "author")
        if author is None:
            continue
        up = int(_field(review, "up", "upvotes", default=0) or 0)
        down = int(_field(review, "down", "downvotes", default=0) or 0)
        karma[author] = karma.get(author, 0) + (up - down)
    return karma


def rank_from_karma(karma: int) -> str:
    """Map karma to a rank label; thresholds are inclusive lower bounds."""
    for threshold, label in RANK_THRESHOLDS:
        if karma >= threshold:
            return label
    return DEFAULT_RANK


def leaderboard(reviews: Iterable[Any]) -> list[dict[str, Any]]:
    """Karma and rank per author, best first."""
    reviews = list(reviews)
    names: dict[str, str] = {}
    for review in reviews:
        author = _field(review, "author_uid", "authorUid", "author")
        if author is not None and author not in names:
            names[author] = _field(review, "author_name", "user_name", "userName", default="") or ""

    scores = recompute(reviews)
    return [
        {"uid": uid, "user_name": names.get(uid, ""), "karma": karma, "rank": rank_from_karma(karma)}
        for uid, karma in sorted(scores.items(), key=lambda item: (-item[1], item[0]))
    ]
