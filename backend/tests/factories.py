"""Record builders shared by the test modules."""
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional

from backend.app.subscriptions import (
    AccountUser,
    Subscription,
    SubscriptionStatus,
    SubscriptionTier,
    UsagePeriod,
)

NOW = datetime(2026, 3, 15, 12, 0, tzinfo=timezone.utc)
PERIOD_START = datetime(2026, 3, 1, tzinfo=timezone.utc)
PERIOD_END = datetime(2026, 3, 31, 23, 59, 59, tzinfo=timezone.utc)


def fixed_clock() -> datetime:
    return NOW


def one_day_ago() -> datetime:
    return NOW - timedelta(days=1)


def in_one_day() -> datetime:
    return NOW + timedelta(days=1)


def make_user(
    stores,
    user_id: int,
    tier: SubscriptionTier = SubscriptionTier.FREE,
    status: SubscriptionStatus = SubscriptionStatus.NONE,
    **overrides,
) -> AccountUser:
    user = AccountUser(
        id=user_id,
        email=f"user{user_id}@example.com",
        subscription_tier=tier,
        subscription_status=status,
        **overrides,
    )
    return stores.users.add(user)


def make_subscription(
    stores,
    user_id: int,
    tier: SubscriptionTier,
    *,
    subscription_id: Optional[int] = None,
    status: SubscriptionStatus = SubscriptionStatus.ACTIVE,
    period_start: datetime = PERIOD_START,
    period_end: datetime = PERIOD_END,
) -> Subscription:
    subscription = Subscription(
        id=subscription_id or user_id * 10,
        user_id=user_id,
        tier=tier,
        status=status,
        current_period_start=period_start,
        current_period_end=period_end,
    )
    stores.subscriptions.add(subscription)
    return subscription


def make_period(stores, subscription: Subscription, **counters) -> UsagePeriod:
    return stores.usage.add(
        UsagePeriod(
            subscription_id=subscription.id,
            user_id=subscription.user_id,
            period_start=subscription.current_period_start,
            period_end=subscription.current_period_end,
            **counters,
        )
    )


def paid_user(stores, user_id: int, tier: SubscriptionTier, **counters) -> AccountUser:
    """Active paid user with a current period holding ``counters``."""

    user = make_user(stores, user_id, tier, SubscriptionStatus.ACTIVE)
    subscription = make_subscription(stores, user_id, tier)
    make_period(stores, subscription, **counters)
    return user
