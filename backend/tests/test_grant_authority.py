from __future__ import annotations

import pytest
from pydantic import ValidationError

from backend.app.subscriptions import (
    ConfigurationMissing,
    Grant,
    GrantAuthority,
    GrantCreate,
    GrantType,
    PlanDefinition,
    StaticPlanCatalog,
    SubscriptionTier,
)
from backend.tests.factories import NOW, fixed_clock, in_one_day, make_user, one_day_ago


@pytest.mark.asyncio
async def test_no_grant_reports_no_override(access, stores) -> None:
    make_user(stores, 1)

    result = await access.grants.check_grant_access(1)

    assert result.has_grant is False
    assert result.video_limit is None
    assert result.unlimited is False


@pytest.mark.asyncio
async def test_expired_grant_is_ignored_even_if_stored_active(access, stores) -> None:
    make_user(stores, 1)
    stores.grants.add(
        Grant(
            id=5,
            user_id=1,
            grant_type=GrantType.UNLIMITED_VIDEOS,
            is_active=True,
            expires_at=one_day_ago(),
            granted_by_id=99,
        )
    )

    result = await access.grants.check_grant_access(1)

    assert result.has_grant is False


@pytest.mark.asyncio
async def test_grant_expiring_exactly_now_is_expired(access, stores) -> None:
    make_user(stores, 1)
    stores.grants.add(
        Grant(id=5, user_id=1, grant_type=GrantType.TRIAL_EXTENSION, expires_at=NOW, granted_by_id=99)
    )

    assert (await access.grants.check_grant_access(1)).has_grant is False


@pytest.mark.asyncio
async def test_grant_type_mapping(access, stores) -> None:
    for user_id in (1, 2, 3, 4):
        make_user(stores, user_id)

    await access.grants.create_grant(
        GrantCreate(user_id=1, grant_type=GrantType.UNLIMITED_VIDEOS, granted_by_id=99)
    )
    await access.grants.create_grant(
        GrantCreate(
            user_id=2,
            grant_type=GrantType.VIDEO_LIMIT_OVERRIDE,
            video_limit_override=25,
            granted_by_id=99,
        )
    )
    await access.grants.create_grant(
        GrantCreate(
            user_id=3,
            grant_type=GrantType.FULL_ACCESS,
            tier_override=SubscriptionTier.ENTERPRISE,
            granted_by_id=99,
            expires_at=in_one_day(),
        )
    )
    await access.grants.create_grant(
        GrantCreate(user_id=4, grant_type=GrantType.TRIAL_EXTENSION, granted_by_id=99)
    )

    unlimited = await access.grants.check_grant_access(1)
    override = await access.grants.check_grant_access(2)
    full_access = await access.grants.check_grant_access(3)
    trial = await access.grants.check_grant_access(4)

    assert unlimited.unlimited is True and unlimited.video_limit is None
    assert override.video_limit == 25 and override.unlimited is False
    assert full_access.video_limit == 16
    assert full_access.tier_override == SubscriptionTier.ENTERPRISE
    assert full_access.expires_at == in_one_day()
    assert trial.video_limit == 1


@pytest.mark.asyncio
async def test_full_access_to_unlimited_plan_is_unlimited(access, stores) -> None:
    make_user(stores, 1)
    await access.grants.create_grant(
        GrantCreate(
            user_id=1,
            grant_type=GrantType.FULL_ACCESS,
            tier_override=SubscriptionTier.CREATOR,
            granted_by_id=99,
        )
    )

    result = await access.grants.check_grant_access(1)

    assert result.unlimited is True
    assert result.video_limit is None


@pytest.mark.asyncio
async def test_full_access_without_plan_is_configuration_error(stores) -> None:
    catalog = StaticPlanCatalog(
        {SubscriptionTier.FREE: PlanDefinition(tier=SubscriptionTier.FREE, display_name="Free", video_limit=0)}
    )
    authority = GrantAuthority(stores.grants, catalog, clock=fixed_clock)
    make_user(stores, 1)
    await authority.create_grant(
        GrantCreate(
            user_id=1,
            grant_type=GrantType.FULL_ACCESS,
            tier_override=SubscriptionTier.PREMIUM,
            granted_by_id=99,
        )
    )

    with pytest.raises(ConfigurationMissing):
        await authority.check_grant_access(1)


@pytest.mark.asyncio
async def test_create_grant_leaves_exactly_one_active(access, stores) -> None:
    make_user(stores, 1)

    first = await access.grants.create_grant(
        GrantCreate(user_id=1, grant_type=GrantType.UNLIMITED_VIDEOS, granted_by_id=99)
    )
    second = await access.grants.create_grant(
        GrantCreate(
            user_id=1,
            grant_type=GrantType.VIDEO_LIMIT_OVERRIDE,
            video_limit_override=3,
            granted_by_id=98,
        )
    )

    active = [grant for grant in stores.grants.grants if grant.user_id == 1 and grant.is_active]
    assert [grant.id for grant in active] == [second.id]

    superseded = await stores.grants.get_grant(first.id)
    assert superseded.is_active is False
    assert superseded.revoked_by_id == 98
    assert superseded.revoked_at == NOW

    result = await access.grants.check_grant_access(1)
    assert result.grant_id == second.id
    assert result.video_limit == 3


@pytest.mark.asyncio
async def test_full_access_grant_sets_and_revoke_resets_tier(access, stores) -> None:
    make_user(stores, 1)

    grant = await access.grants.create_grant(
        GrantCreate(
            user_id=1,
            grant_type=GrantType.FULL_ACCESS,
            tier_override=SubscriptionTier.PREMIUM,
            granted_by_id=99,
        )
    )
    assert (await stores.users.get_user(1)).subscription_tier == SubscriptionTier.PREMIUM

    revoked = await access.grants.revoke_grant(grant.id, revoked_by_id=99)

    assert revoked.is_active is False
    assert revoked.revoked_by_id == 99
    assert (await stores.users.get_user(1)).subscription_tier == SubscriptionTier.FREE
    assert (await access.grants.check_grant_access(1)).has_grant is False


@pytest.mark.asyncio
async def test_full_access_for_unknown_user_writes_nothing(access, stores) -> None:
    make_user(stores, 1)
    kept = await access.grants.create_grant(
        GrantCreate(user_id=1, grant_type=GrantType.UNLIMITED_VIDEOS, granted_by_id=99)
    )

    with pytest.raises(LookupError):
        await access.grants.create_grant(
            GrantCreate(
                user_id=404,
                grant_type=GrantType.FULL_ACCESS,
                tier_override=SubscriptionTier.PREMIUM,
                granted_by_id=99,
            )
        )

    assert [grant.id for grant in stores.grants.grants] == [kept.id]
    assert (await stores.grants.get_grant(kept.id)).is_active is True


@pytest.mark.asyncio
async def test_revoking_other_grant_types_keeps_tier(access, stores) -> None:
    make_user(stores, 1, SubscriptionTier.BASIC)
    grant = await access.grants.create_grant(
        GrantCreate(user_id=1, grant_type=GrantType.UNLIMITED_VIDEOS, granted_by_id=99)
    )

    await access.grants.revoke_grant(grant.id, revoked_by_id=99)

    assert (await stores.users.get_user(1)).subscription_tier == SubscriptionTier.BASIC


@pytest.mark.asyncio
async def test_revoke_unknown_or_inactive_grant_raises_lookup_error(access, stores) -> None:
    make_user(stores, 1)
    grant = await access.grants.create_grant(
        GrantCreate(user_id=1, grant_type=GrantType.TRIAL_EXTENSION, granted_by_id=99)
    )
    await access.grants.revoke_grant(grant.id, revoked_by_id=99)

    with pytest.raises(LookupError, match="Grant not found"):
        await access.grants.revoke_grant(grant.id, revoked_by_id=99)
    with pytest.raises(LookupError):
        await access.grants.revoke_grant(12345, revoked_by_id=99)


@pytest.mark.asyncio
async def test_list_grants_returns_history_newest_first(access, stores) -> None:
    make_user(stores, 1)
    first = await access.grants.create_grant(
        GrantCreate(user_id=1, grant_type=GrantType.TRIAL_EXTENSION, granted_by_id=99)
    )
    second = await access.grants.create_grant(
        GrantCreate(user_id=1, grant_type=GrantType.UNLIMITED_VIDEOS, granted_by_id=99)
    )

    history = await access.grants.list_grants(1)

    assert [grant.id for grant in history] == [second.id, first.id]


@pytest.mark.parametrize(
    "kwargs",
    [
        {"grant_type": GrantType.FULL_ACCESS},
        {"grant_type": GrantType.UNLIMITED_VIDEOS, "tier_override": SubscriptionTier.PREMIUM},
        {"grant_type": GrantType.VIDEO_LIMIT_OVERRIDE},
        {"grant_type": GrantType.VIDEO_LIMIT_OVERRIDE, "video_limit_override": -1},
        {"grant_type": GrantType.TRIAL_EXTENSION, "video_limit_override": 5},
    ],
)
def test_grant_create_validates_overrides(kwargs) -> None:
    with pytest.raises(ValidationError):
        GrantCreate(user_id=1, granted_by_id=99, **kwargs)
