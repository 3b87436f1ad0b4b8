"""Admit/deny decisions for metered actions."""
from __future__ import annotations

import logging
from typing import Optional, Union

from .catalog import UNLIMITED, PlanCatalog
from .exceptions import AuthenticationRequired, ConfigurationMissing, FeatureGateError, QuotaExceeded
from .grants import GrantAuthority
from .models import AccountUser, GrantAccess, ResourceType, SubscriptionTier, UsageInfo
from .tiers import DEFAULT_BILLING_URL, DEFAULT_UPGRADE_URL, require_subscription
from .usage import UsagePeriodTracker

logger = logging.getLogger("subscriptions.enforcement")

FREE_TRIAL_CREDITS = 1


def validate_increment(increment: int) -> int:
    if isinstance(increment, bool) or not isinstance(increment, int) or increment < 1:
        raise ValueError(f"increment must be a positive integer, got {increment!r}")
    return increment


class QuotaEnforcer:
    """Applies grant, free-trial and plan-tier precedence to metered actions.

    The enforcer only reads counters. The caller attaches the returned
    :class:`UsageInfo` to the request and hands it to the usage recorder once
    the protected action has succeeded. Two concurrent requests may both pass
    against the same pre-increment value; that overshoot is accepted.
    """

    def __init__(
        self,
        grant_authority: GrantAuthority,
        usage_tracker: UsagePeriodTracker,
        plan_catalog: PlanCatalog,
        *,
        upgrade_url: str = DEFAULT_UPGRADE_URL,
        billing_url: str = DEFAULT_BILLING_URL,
    ) -> None:
        self._grant_authority = grant_authority
        self._usage_tracker = usage_tracker
        self._plan_catalog = plan_catalog
        self._upgrade_url = upgrade_url
        self._billing_url = billing_url

    @property
    def upgrade_url(self) -> str:
        return self._upgrade_url

    def require_subscription(
        self,
        user: Optional[AccountUser],
        min_tier: Union[SubscriptionTier, str],
    ) -> AccountUser:
        return require_subscription(
            user,
            min_tier,
            upgrade_url=self._upgrade_url,
            billing_url=self._billing_url,
        )

    async def check_usage_limit(
        self,
        user: Optional[AccountUser],
        resource: Union[ResourceType, str] = ResourceType.VIDEOS,
        increment: int = 1,
    ) -> UsageInfo:
        """Return the decision context for an admitted action or raise a denial."""

        if user is None:
            raise AuthenticationRequired()

        resource = ResourceType(resource)
        increment = validate_increment(increment)

        grant = await self._grant_authority.check_grant_access(user.id)
        if grant.has_grant:
            return await self._check_grant_limit(user, grant, resource, increment)

        if user.subscription_tier == SubscriptionTier.FREE and resource == ResourceType.VIDEOS:
            return self._check_free_trial_credit(user, increment)

        plan = self._plan_catalog.get_plan(user.subscription_tier)
        if plan is None:
            logger.error("No plan configured for tier %s", user.subscription_tier.value)
            raise ConfigurationMissing()

        limit = plan.limit_for(resource)
        if limit == UNLIMITED:
            return UsageInfo(user_id=user.id, resource=resource, increment=increment)

        current_usage = await self._usage_tracker.get_current_period_usage(user.id, resource)
        if current_usage + increment > limit:
            raise QuotaExceeded(
                message=f"{resource.value} limit exceeded",
                detail={
                    "current_usage": current_usage,
                    "limit": limit,
                    "resource_type": resource.value,
                    "upgrade_url": self._upgrade_url,
                },
            )

        return UsageInfo(
            user_id=user.id,
            resource=resource,
            increment=increment,
            current_usage=current_usage,
            limit=limit,
        )

    async def can_process_video(self, user: Optional[AccountUser]) -> bool:
        """Advisory check for UI hints; fails open on unexpected errors."""

        if user is None:
            return False
        try:
            await self.check_usage_limit(user, ResourceType.VIDEOS, 1)
        except FeatureGateError:
            return False
        except Exception:
            logger.exception("Video eligibility check failed for user %s; allowing", user.id)
            return True
        return True

    async def _check_grant_limit(
        self,
        user: AccountUser,
        grant: GrantAccess,
        resource: ResourceType,
        increment: int,
    ) -> UsageInfo:
        # Grant limits are expressed in videos; the plan limit is never consulted here.
        if grant.unlimited:
            return UsageInfo(
                user_id=user.id,
                resource=resource,
                increment=increment,
                has_admin_grant=True,
                grant_type=grant.grant_type,
            )

        limit = int(grant.video_limit or 0)
        current_usage = await self._usage_tracker.get_current_period_usage(user.id, ResourceType.VIDEOS)
        if current_usage + increment > limit:
            raise QuotaExceeded(
                message="Video limit exceeded for your granted access",
                detail={
                    "current_usage": current_usage,
                    "limit": limit,
                    "resource_type": ResourceType.VIDEOS.value,
                    "upgrade_url": self._upgrade_url,
                    "has_admin_grant": True,
                },
            )
        return UsageInfo(
            user_id=user.id,
            resource=resource,
            increment=increment,
            current_usage=current_usage,
            limit=limit,
            has_admin_grant=True,
            grant_type=grant.grant_type,
        )

    def _check_free_trial_credit(self, user: AccountUser, increment: int) -> UsageInfo:
        if user.free_video_used:
            raise QuotaExceeded(
                message="Free video credit already used",
                detail={
                    "current_usage": FREE_TRIAL_CREDITS,
                    "limit": FREE_TRIAL_CREDITS,
                    "resource_type": ResourceType.VIDEOS.value,
                    "upgrade_url": self._upgrade_url,
                    "free_credit_used": True,
                },
            )
        return UsageInfo(
            user_id=user.id,
            resource=ResourceType.VIDEOS,
            increment=increment,
            current_usage=0,
            limit=FREE_TRIAL_CREDITS,
            is_free_trial_user=True,
        )


__all__ = ["FREE_TRIAL_CREDITS", "QuotaEnforcer", "validate_increment"]
