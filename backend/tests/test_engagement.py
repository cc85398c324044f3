"""
Tests for the engagement scorer.
"""
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, patch

import pytest

from storefront.models.user import User
from storefront.services.engagement import (
    EngagementScorer,
    base_increment,
    compute_engagement_score,
    conversion_bonus,
    decay_factor,
    elapsed_days,
)

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


class TestScoreFormula:
    """Pure score computation."""

    def test_known_activity_increments(self):
        assert base_increment("page_view") == 1
        assert base_increment("product_view") == 2
        assert base_increment("add_to_cart") == 5
        assert base_increment("checkout_start") == 10
        assert base_increment("payment_success") == 20
        assert base_increment("register") == 5

    def test_unlisted_activity_defaults_to_one(self):
        assert base_increment("bookmark") == 1
        assert base_increment("session_end") == 1

    @pytest.mark.parametrize("value", [500, 501, 10_000])
    def test_conversion_bonus_is_capped(self, value):
        assert conversion_bonus(value) == 50

    def test_conversion_bonus_scales_below_cap(self):
        assert conversion_bonus(200) == 20
        assert conversion_bonus(0) == 0
        assert conversion_bonus(None) == 0

    @pytest.mark.parametrize("days", [10, 11, 30, 365])
    def test_decay_floor(self, days):
        assert decay_factor(days) == 0.9

    def test_decay_within_first_day(self):
        assert decay_factor(0) == 1.0
        assert decay_factor(0.5) == pytest.approx(0.95)

    def test_elapsed_days_without_history(self):
        assert elapsed_days(None, NOW) == 0

    def test_elapsed_days_ignores_future_timestamps(self):
        assert elapsed_days(NOW + timedelta(hours=3), NOW) == 0

    def test_elapsed_days_accepts_naive_utc(self):
        naive = (NOW - timedelta(days=2)).replace(tzinfo=None)
        assert elapsed_days(naive, NOW) == pytest.approx(2.0)

    def test_payment_after_five_idle_days(self):
        """10 * 0.9 + 20 + 20 = 49."""
        score = compute_engagement_score(
            prior_score=10,
            last_activity=NOW - timedelta(days=5),
            activity_type="payment_success",
            conversion_value=200,
            now=NOW,
        )
        assert score == pytest.approx(49.0)

    def test_new_user_starts_from_zero(self):
        score = compute_engagement_score(None, None, "product_view", 0, now=NOW)
        assert score == 2

    def test_score_is_capped_at_100(self):
        score = compute_engagement_score(95, NOW, "payment_success", 5000, now=NOW)
        assert score == 100

    def test_score_stays_in_range_over_many_events(self):
        score = 0.0
        last = None
        now = NOW
        for i in range(200):
            activity = ["page_view", "payment_success", "download", "bounce"][i % 4]
            score = compute_engagement_score(score, last, activity, (i % 7) * 150, now=now)
            assert 0 <= score <= 100
            last = now
            now = now + timedelta(days=i % 13)


class TestEngagementScorer:
    """Scorer against the user directory."""

    async def test_updates_score_and_last_activity(self, session_factory, create_user):
        user = await create_user(
            engagement_score=10.0,
            last_activity=datetime.now(timezone.utc) - timedelta(days=5),
        )

        async with session_factory() as session:
            new_score = await EngagementScorer(session).apply_event(user.id, "payment_success", 200)

        assert new_score == pytest.approx(49.0)

        async with session_factory() as session:
            stored = await session.get(User, user.id)
            assert stored.engagement_score == pytest.approx(49.0)
            assert stored.last_activity is not None

    async def test_unknown_user_is_skipped(self, session_factory):
        from uuid import uuid4

        async with session_factory() as session:
            result = await EngagementScorer(session).apply_event(uuid4(), "page_view", 0)

        assert result is None

    async def test_persistence_failure_is_swallowed(self, session_factory, create_user):
        user = await create_user()

        with patch(
            "storefront.services.engagement.UserRepository.update_engagement",
            new=AsyncMock(side_effect=RuntimeError("db down")),
        ):
            async with session_factory() as session:
                result = await EngagementScorer(session).apply_event(user.id, "page_view", 0)

        assert result is None

        async with session_factory() as session:
            stored = await session.get(User, user.id)
            assert stored.engagement_score == 0.0
