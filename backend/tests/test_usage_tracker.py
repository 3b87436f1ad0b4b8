from __future__ import annotations

from datetime import datetime, timezone

import pytest

from backend.app.subscriptions import ResourceType, SubscriptionStatus, SubscriptionTier, UsagePeriod, UsageSnapshot
from backend.tests.factories import NOW, make_period, make_subscription, make_user, paid_user


@pytest.mark.asyncio
async def test_usage_is_zero_without_subscription(access, stores) -> None:
    make_user(stores, 1)

    assert await access.usage.get_current_usage(1) == UsageSnapshot()
    assert await access.usage.get_current_period_usage(1) == 0


@pytest.mark.asyncio
async def test_usage_is_zero_without_period_covering_now(access, stores) -> None:
    make_user(stores, 1, SubscriptionTier.BASIC, SubscriptionStatus.ACTIVE)
    subscription = make_subscription(stores, 1, SubscriptionTier.BASIC)
    stores.usage.add(
        UsagePeriod(
            subscription_id=subscription.id,
            user_id=1,
            period_start=datetime(2026, 2, 1, tzinfo=timezone.utc),
            period_end=datetime(2026, 2, 28, tzinfo=timezone.utc),
            videos_processed=3,
        )
    )

    assert await access.usage.get_current_period_usage(1) == 0


@pytest.mark.asyncio
async def test_usage_reports_current_period_counters(access, stores) -> None:
    paid_user(stores, 1, SubscriptionTier.PREMIUM, videos_processed=5, ai_summaries_generated=12)

    snapshot = await access.usage.get_current_usage(1)

    assert snapshot.videos == 5
    assert snapshot.ai_summaries == 12
    assert snapshot.for_resource(ResourceType.API_CALLS) == 0
    assert await access.usage.get_current_period_usage(1, ResourceType.AI_SUMMARIES) == 12


@pytest.mark.asyncio
async def test_canceled_subscription_is_not_metered(access, stores) -> None:
    make_user(stores, 1, SubscriptionTier.BASIC, SubscriptionStatus.CANCELED)
    subscription = make_subscription(stores, 1, SubscriptionTier.BASIC, status=SubscriptionStatus.CANCELED)
    make_period(stores, subscription, videos_processed=4)

    assert await access.usage.get_current_period_usage(1) == 0


@pytest.mark.asyncio
async def test_most_recent_active_subscription_is_used(access, stores) -> None:
    make_user(stores, 1, SubscriptionTier.PREMIUM, SubscriptionStatus.ACTIVE)
    older = make_subscription(stores, 1, SubscriptionTier.BASIC, subscription_id=1)
    newer = make_subscription(stores, 1, SubscriptionTier.PREMIUM, subscription_id=2)
    make_period(stores, older, videos_processed=4)
    make_period(stores, newer, videos_processed=1)

    assert await access.usage.get_current_period_usage(1) == 1


@pytest.mark.asyncio
async def test_open_current_period_seeds_counter(access, stores) -> None:
    make_user(stores, 1, SubscriptionTier.BASIC, SubscriptionStatus.ACTIVE)
    subscription = make_subscription(stores, 1, SubscriptionTier.BASIC)

    period = await access.usage.open_current_period(subscription, ResourceType.API_CALLS, 3)

    assert period.id is not None
    assert period.api_calls_made == 3
    assert period.videos_processed == 0
    assert period.contains(NOW)
    assert await access.usage.get_current_period_usage(1, ResourceType.API_CALLS) == 3


@pytest.mark.asyncio
async def test_opening_same_period_twice_accumulates(access, stores) -> None:
    make_user(stores, 1, SubscriptionTier.BASIC, SubscriptionStatus.ACTIVE)
    subscription = make_subscription(stores, 1, SubscriptionTier.BASIC)

    await access.usage.open_current_period(subscription, ResourceType.VIDEOS, 1)
    period = await access.usage.open_current_period(subscription, ResourceType.VIDEOS, 2)

    assert len(stores.usage.periods) == 1
    assert period.videos_processed == 3


@pytest.mark.asyncio
async def test_open_current_period_refuses_stale_subscription(access, stores) -> None:
    make_user(stores, 1, SubscriptionTier.BASIC, SubscriptionStatus.ACTIVE)
    subscription = make_subscription(
        stores,
        1,
        SubscriptionTier.BASIC,
        period_start=datetime(2026, 1, 1, tzinfo=timezone.utc),
        period_end=datetime(2026, 1, 31, tzinfo=timezone.utc),
    )

    with pytest.raises(LookupError):
        await access.usage.open_current_period(subscription, ResourceType.VIDEOS, 1)
    assert stores.usage.periods == []
