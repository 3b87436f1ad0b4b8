from __future__ import annotations

import pytest

from backend.app.subscriptions import (
    GrantCreate,
    GrantType,
    SubscriptionStatus,
    SubscriptionTier,
)
from backend.app.subscriptions.info import usage_percentage
from backend.tests.factories import NOW, make_user, paid_user


@pytest.mark.parametrize(
    "usage,limit,expected",
    [
        (0, 4, 0.0),
        (2, 4, 50.0),
        (9, 4, 100.0),
        (5, -1, 0.0),
        (0, 0, 0.0),
        (1, 0, 100.0),
    ],
)
def test_usage_percentage(usage, limit, expected) -> None:
    assert usage_percentage(usage, limit) == pytest.approx(expected)


@pytest.mark.asyncio
async def test_info_for_paid_user(access, stores) -> None:
    user = paid_user(stores, 1, SubscriptionTier.BASIC, videos_processed=3, ai_summaries_generated=5)

    info = await access.info.build(user)

    assert info.tier == SubscriptionTier.BASIC
    assert info.effective_tier == SubscriptionTier.BASIC
    assert info.status == SubscriptionStatus.ACTIVE
    assert info.has_admin_grant is False
    assert info.grant is None
    assert info.features["videoLimit"] == 4
    assert info.features["analyticsAccess"] is False
    assert "4 videos/month" in info.highlights
    assert info.usage.videos == 3
    assert info.limits["videos"] == 4
    assert info.usage_percentages["videos"] == pytest.approx(75.0)
    assert info.usage_percentages["ai_summaries"] == pytest.approx(25.0)
    assert info.remaining_videos == 1
    assert info.free_video_available is False
    assert info.generated_at == NOW


@pytest.mark.asyncio
async def test_info_for_free_user_shows_trial_credit(access, stores) -> None:
    user = make_user(stores, 1)

    info = await access.info.build(user)

    assert info.free_video_available is True
    assert info.free_video_used is False
    assert info.remaining_videos == 0
    assert info.usage_percentages["videos"] == 0.0


@pytest.mark.asyncio
async def test_full_access_grant_changes_effective_tier(access, stores) -> None:
    make_user(stores, 1)
    await access.grants.create_grant(
        GrantCreate(
            user_id=1,
            grant_type=GrantType.FULL_ACCESS,
            tier_override=SubscriptionTier.PREMIUM,
            granted_by_id=99,
        )
    )
    user = await stores.users.get_user(1)

    info = await access.info.build(user)

    assert info.has_admin_grant is True
    assert info.grant.grant_type == GrantType.FULL_ACCESS
    assert info.effective_tier == SubscriptionTier.PREMIUM
    assert info.features["analyticsAccess"] is True
    assert info.limits["videos"] == 8
    assert info.free_video_available is False


@pytest.mark.asyncio
async def test_unlimited_grant_reports_unlimited_videos(access, stores) -> None:
    user = paid_user(stores, 1, SubscriptionTier.BASIC, videos_processed=12)
    await access.grants.create_grant(
        GrantCreate(user_id=1, grant_type=GrantType.UNLIMITED_VIDEOS, granted_by_id=99)
    )

    info = await access.info.build(user)

    assert info.limits["videos"] == -1
    assert info.features["videoLimit"] == -1
    assert info.usage_percentages["videos"] == 0.0
    assert info.remaining_videos is None


@pytest.mark.asyncio
async def test_safe_build_returns_none_on_errors(access, stores, monkeypatch) -> None:
    user = make_user(stores, 1)

    async def broken(_user_id):
        raise RuntimeError("boom")

    monkeypatch.setattr(stores.grants, "get_active_grant", broken)

    assert await access.info.safe_build(user) is None
    assert await access.info.safe_build(None) is None
