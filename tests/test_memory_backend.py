"""
Tests for the in-memory backend.
"""
from datetime import date, datetime, timedelta, timezone

import pytest

from quota_policy.backends import InMemoryBackend, SupabaseBackend, create_backend
from quota_policy.errors import TransientRemoteError
from quota_policy.models import RewardType
from config_manager import BackendConfig, RateLimitRule, RateLimitConfig, SwipeConfig


class FakeClock:
    """Settable clock."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock():
    return FakeClock(datetime(2026, 10, 19, 9, 0, tzinfo=timezone.utc))


class TestRateLimits:
    """Server-side rate limit checks."""

    def test_discovery_window_slides(self, clock):
        backend = InMemoryBackend(discovery_max_queries=2, discovery_window_minutes=5, clock=clock)

        assert backend.check_discovery_rate_limit("u1")
        assert backend.check_discovery_rate_limit("u1")
        assert not backend.check_discovery_rate_limit("u1")
        # other users are independent
        assert backend.check_discovery_rate_limit("u2")

        clock.advance(minutes=5, seconds=1)
        assert backend.check_discovery_rate_limit("u1")

    def test_generic_limit(self, clock):
        backend = InMemoryBackend(clock=clock)

        for _ in range(3):
            assert backend.check_generic_rate_limit("u1", "login", 3, 10)
        assert not backend.check_generic_rate_limit("u1", "login", 3, 10)
        assert backend.check_generic_rate_limit("u1", "signup", 3, 10)

    def test_count_recent_audited_actions(self, clock):
        backend = InMemoryBackend(clock=clock)
        backend.record_audited_action("u1", "login")
        clock.advance(minutes=30)
        backend.record_audited_action("u1", "login")

        assert backend.count_recent_audited_actions("u1", "login", clock() - timedelta(minutes=10)) == 1
        assert backend.count_recent_audited_actions("u1", "login", clock() - timedelta(hours=1)) == 2
        assert backend.count_recent_audited_actions("u1", "other", clock() - timedelta(hours=1)) == 0

    def test_audit_log_drops_entries_outside_every_window(self, clock):
        backend = InMemoryBackend(
            discovery_window_minutes=5, audit_retention_minutes=5, clock=clock
        )
        for _ in range(1000):
            assert backend.check_discovery_rate_limit("u1")
            clock.advance(minutes=10)

        assert len(backend._audit_log) == 1

    def test_default_retention_is_bounded(self, clock):
        backend = InMemoryBackend(discovery_window_minutes=5, clock=clock)
        for _ in range(1000):
            backend.check_discovery_rate_limit("u1")
            backend.check_generic_rate_limit("u1", "login", 3, 10)
            clock.advance(minutes=10)

        # one day of entries at ten minute spacing
        assert len(backend._audit_log) <= 145
        assert len(backend._attempts) <= 145

    def test_retention_covers_longest_window_counted(self, clock):
        backend = InMemoryBackend(audit_retention_minutes=5, clock=clock)
        backend.record_audited_action("u1", "report")
        assert backend.count_recent_audited_actions("u1", "report", clock() - timedelta(hours=2)) == 1

        clock.advance(minutes=90)
        backend.record_audited_action("u1", "report")
        assert backend.count_recent_audited_actions("u1", "report", clock() - timedelta(hours=2)) == 2


class TestSwipes:
    """Swipe counters."""

    def test_remaining_and_increment(self, clock):
        backend = InMemoryBackend(free_daily_limit=3, clock=clock)
        assert backend.get_daily_swipe_remaining("u1") == 3

        backend.increment_swipe_count("u1")
        assert backend.get_daily_swipe_remaining("u1") == 2
        assert backend.swipes_used_today("u1") == 1

    def test_counter_resets_next_day(self, clock):
        backend = InMemoryBackend(free_daily_limit=1, clock=clock)
        backend.increment_swipe_count("u1")
        assert backend.get_daily_swipe_remaining("u1") == 0

        clock.advance(days=1)
        assert backend.get_daily_swipe_remaining("u1") == 1

    def test_try_consume_free_is_capped(self, clock):
        backend = InMemoryBackend(free_daily_limit=1, clock=clock)

        assert backend.try_consume("u1", "swipe")
        assert not backend.try_consume("u1", "swipe")
        assert backend.swipes_used_today("u1") == 1

    def test_try_consume_paid_is_unlimited(self, clock):
        backend = InMemoryBackend(free_daily_limit=1, clock=clock)
        backend.set_subscription("u1", "premium")

        assert backend.try_consume("u1", "swipe")
        assert backend.try_consume("u1", "swipe")
        assert backend.swipes_used_today("u1") == 2

    def test_try_consume_unknown_resource(self):
        with pytest.raises(TransientRemoteError):
            InMemoryBackend().try_consume("u1", "boost")

    def test_past_days_are_dropped(self, clock):
        backend = InMemoryBackend(clock=clock)
        for uid in ("u1", "u2", "u3"):
            backend.increment_swipe_count(uid)

        clock.advance(days=1)
        backend.increment_swipe_count("u1")

        assert list(backend._swipes) == [("u1", clock().date().isoformat())]
        assert backend.swipes_used_today("u1") == 1

    def test_reset_daily_limits(self, clock):
        backend = InMemoryBackend(free_daily_limit=2, clock=clock)
        backend.increment_swipe_count("u1")
        backend.reset_daily_limits()
        assert backend.get_daily_swipe_remaining("u1") == 2


class TestSubscriptionsAndRewards:
    """Subscription rows, payment sessions and rewards."""

    def test_subscription_round_trip(self):
        backend = InMemoryBackend()
        assert backend.get_subscription("u1") is None

        backend.set_subscription("u1", "elite")
        assert backend.get_subscription("u1").tier == "elite"

        backend.remove_subscription("u1")
        assert backend.get_subscription("u1") is None

    def test_payment_urls(self):
        backend = InMemoryBackend(checkout_base_url="https://pay.example/")
        assert backend.create_checkout_session("price_basic_monthly").url == "https://pay.example/price_basic_monthly"
        assert backend.create_portal_session().url == "https://pay.example/portal"

    def test_reward_upsert_keeps_first_row(self):
        backend = InMemoryBackend()
        day = date(2026, 10, 19)

        first = backend.get_or_create_daily_reward("u1", day, RewardType.POINTS, 50)
        second = backend.get_or_create_daily_reward("u1", day, RewardType.BOOST, 1)

        assert second.id == first.id
        assert second.reward_type is RewardType.POINTS

    def test_old_rewards_are_dropped(self):
        backend = InMemoryBackend(reward_retention_days=7)
        start = date(2026, 10, 1)
        for offset in range(20):
            backend.get_or_create_daily_reward("u1", start + timedelta(days=offset), RewardType.POINTS, 50)

        kept = sorted(r.reward_date for r in backend.rewards_for("u1"))
        assert kept[0] == date(2026, 10, 13)
        assert kept[-1] == date(2026, 10, 20)
        assert len(kept) == 8

    def test_claim_unknown_reward(self):
        with pytest.raises(TransientRemoteError):
            InMemoryBackend().claim_daily_reward("missing")


class TestCreateBackend:
    """Backend selection from configuration."""

    def test_memory_uses_limits(self):
        backend = create_backend(
            BackendConfig(provider="memory", url="", api_key="", timeout=10),
            swipe_config=SwipeConfig(free_daily_limit=5, unlimited_display=999),
            rate_limit_config=RateLimitConfig(
                discovery=RateLimitRule(12, 3),
                generic=RateLimitRule(10, 60),
            ),
        )
        assert isinstance(backend, InMemoryBackend)
        assert backend.free_daily_limit == 5
        assert backend.discovery_max_queries == 12
        assert backend.discovery_window_minutes == 3

    def test_supabase(self):
        backend = create_backend(BackendConfig(
            provider="supabase", url="https://x.supabase.co", api_key="k", timeout=3,
            atomic_consume_rpc="try_consume_quota",
        ))
        assert isinstance(backend, SupabaseBackend)
        assert backend.timeout == 3
        assert backend.supports_atomic_consume

    def test_unknown_provider(self):
        with pytest.raises(ValueError):
            create_backend(BackendConfig(provider="redis", url="", api_key="", timeout=1))
