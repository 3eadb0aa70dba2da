"""Integration tests for the vote ledger — counters always match the ledger."""

from unittest.mock import patch

import pytest
from sqlalchemy import func, select

from luggo.errors import AuthRequiredError, NotFoundError, ValidationError
from luggo.models import ReviewVote
from luggo.services import vote_ledger


async def _ledger_counts(db, review_id):
    rows = (
        await db.execute(
            select(ReviewVote.value, func.count()).where(ReviewVote.review_id == review_id).group_by(ReviewVote.value)
        )
    ).all()
    counts = dict(rows)
    return counts.get(1, 0), counts.get(-1, 0)


@pytest.mark.asyncio
class TestCastVote:
    async def test_upvote_then_repeat_then_switch(self, db_session, review, bob):
        result = await vote_ledger.cast_vote(db_session, review.id, bob.uid, 1)
        assert (result.up, result.down, result.my) == (1, 0, 1)

        result = await vote_ledger.cast_vote(db_session, review.id, bob.uid, 1)
        assert (result.up, result.down, result.my) == (1, 0, 1)

        result = await vote_ledger.cast_vote(db_session, review.id, bob.uid, -1)
        assert (result.up, result.down, result.my) == (0, 1, -1)
        assert await _ledger_counts(db_session, review.id) == (0, 1)

    async def test_toggle_off_removes_row(self, db_session, review, bob):
        await vote_ledger.cast_vote(db_session, review.id, bob.uid, -1)
        result = await vote_ledger.cast_vote(db_session, review.id, bob.uid, 0)
        assert (result.up, result.down, result.my) == (0, 0, 0)
        assert await vote_ledger.get_vote(db_session, review.id, bob.uid) == 0
        assert await _ledger_counts(db_session, review.id) == (0, 0)

    async def test_zero_without_vote_is_noop(self, db_session, review, bob):
        result = await vote_ledger.cast_vote(db_session, review.id, bob.uid, 0)
        assert (result.up, result.down, result.my) == (0, 0, 0)

    async def test_voters_are_independent(self, db_session, review, alice, bob):
        await vote_ledger.cast_vote(db_session, review.id, alice.uid, 1)
        result = await vote_ledger.cast_vote(db_session, review.id, bob.uid, 1)
        assert (result.up, result.down) == (2, 0)
        result = await vote_ledger.cast_vote(db_session, review.id, alice.uid, -1)
        assert (result.up, result.down, result.my) == (1, 1, -1)
        assert await _ledger_counts(db_session, review.id) == (1, 1)

    async def test_counters_match_ledger_over_sequence(self, db_session, review, alice, bob):
        sequence = [(alice, 1), (bob, -1), (alice, 1), (bob, 1), (alice, 0), (bob, -1), (alice, -1)]
        for voter, value in sequence:
            result = await vote_ledger.cast_vote(db_session, review.id, voter.uid, value)
            assert (result.up, result.down) == await _ledger_counts(db_session, review.id)
        assert (result.up, result.down) == (0, 2)

    async def test_invalid_value(self, db_session, review, bob):
        with pytest.raises(ValidationError) as exc_info:
            await vote_ledger.cast_vote(db_session, review.id, bob.uid, 2)
        assert exc_info.value.error_type == "invalid_vote"

    async def test_unknown_review(self, db_session, bob):
        with pytest.raises(NotFoundError) as exc_info:
            await vote_ledger.cast_vote(db_session, 9999, bob.uid, 1)
        assert exc_info.value.error_type == "review_not_found"

    async def test_anonymous_rejected(self, db_session, review):
        with pytest.raises(AuthRequiredError):
            await vote_ledger.cast_vote(db_session, review.id, None, 1)


@pytest.mark.asyncio
class TestReconcileCounters:
    async def test_repairs_drifted_counters(self, db_session, review, bob):
        await vote_ledger.cast_vote(db_session, review.id, bob.uid, 1)
        review.upvotes = 7
        review.downvotes = 2
        await db_session.flush()

        corrected = await vote_ledger.reconcile_counters(db_session)

        assert corrected == 1
        assert (review.upvotes, review.downvotes) == (1, 0)

    async def test_consistent_counters_untouched(self, db_session, review, bob):
        await vote_ledger.cast_vote(db_session, review.id, bob.uid, -1)
        assert await vote_ledger.reconcile_counters(db_session) == 0


def stale_first_read(real, stale):
    """Side effect returning ``stale`` on the first call, then delegating to ``real``."""
    calls = []

    async def side_effect(*args, **kwargs):
        calls.append(args)
        if len(calls) == 1:
            return stale
        return await real(*args, **kwargs)

    return side_effect


@pytest.mark.asyncio
class TestConcurrentFirstVote:
    async def test_lost_insert_is_replayed_against_the_winner(self, db_session, review, bob):
        # The winning request already recorded bob's upvote
        await vote_ledger.cast_vote(db_session, review.id, bob.uid, 1)
        review_id = review.id
        db_session.expunge_all()

        with patch.object(
            vote_ledger, "_recorded_vote", side_effect=stale_first_read(vote_ledger._recorded_vote, None)
        ):
            result = await vote_ledger.cast_vote(db_session, review_id, bob.uid, -1)

        assert (result.up, result.down, result.my) == (0, 1, -1)
        rows = (
            await db_session.execute(
                select(func.count()).select_from(ReviewVote).where(
                    ReviewVote.review_id == review_id, ReviewVote.voter_uid == bob.uid
                )
            )
        ).scalar()
        assert rows == 1
        assert await _ledger_counts(db_session, review_id) == (0, 1)

    async def test_lost_insert_with_same_value_counts_once(self, db_session, review, bob):
        await vote_ledger.cast_vote(db_session, review.id, bob.uid, 1)
        review_id = review.id
        db_session.expunge_all()

        with patch.object(
            vote_ledger, "_recorded_vote", side_effect=stale_first_read(vote_ledger._recorded_vote, None)
        ):
            result = await vote_ledger.cast_vote(db_session, review_id, bob.uid, 1)

        assert (result.up, result.down, result.my) == (1, 0, 1)
        assert await _ledger_counts(db_session, review_id) == (1, 0)
