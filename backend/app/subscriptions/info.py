"""Read-only subscription summary for client display."""
from __future__ import annotations

import logging
from typing import Dict, Optional

from .catalog import UNLIMITED, PlanCatalog
from .grants import GrantAuthority
from .models import (
    AccountUser,
    GrantType,
    ResourceType,
    SubscriptionInfo,
    SubscriptionTier,
    UsageSnapshot,
)
from .usage import UsagePeriodTracker

logger = logging.getLogger("subscriptions.info")


def usage_percentage(usage: int, limit: int) -> float:
    """Percentage of ``limit`` consumed, capped at 100.

    Unlimited resources report 0. A zero limit reports 0 until something is
    used and 100 afterwards.
    """

    if limit == UNLIMITED:
        return 0.0
    if limit <= 0:
        return 100.0 if usage > 0 else 0.0
    return min(usage / limit * 100, 100.0)


class SubscriptionInfoAggregator:
    def __init__(
        self,
        grant_authority: GrantAuthority,
        usage_tracker: UsagePeriodTracker,
        plan_catalog: PlanCatalog,
    ) -> None:
        self._grant_authority = grant_authority
        self._usage_tracker = usage_tracker
        self._plan_catalog = plan_catalog

    async def build(self, user: AccountUser) -> SubscriptionInfo:
        grant = await self._grant_authority.check_grant_access(user.id)
        effective_tier = user.subscription_tier
        if grant.has_grant and grant.grant_type == GrantType.FULL_ACCESS and grant.tier_override:
            effective_tier = grant.tier_override

        plan = self._plan_catalog.get_plan(effective_tier)
        features = plan.feature_flags() if plan else {}
        highlights = list(plan.highlights) if plan else []
        limits: Dict[str, int] = (
            {resource.value: plan.limit_for(resource) for resource in ResourceType} if plan else {}
        )
        if grant.has_grant:
            video_limit = UNLIMITED if grant.unlimited else int(grant.video_limit or 0)
            limits[ResourceType.VIDEOS.value] = video_limit
            features["videoLimit"] = video_limit

        usage = await self._usage_tracker.get_current_usage(user.id)
        percentages = {
            name: usage_percentage(usage.for_resource(ResourceType(name)), limit)
            for name, limit in limits.items()
        }

        return SubscriptionInfo(
            tier=user.subscription_tier,
            effective_tier=effective_tier,
            status=user.subscription_status,
            has_admin_grant=grant.has_grant,
            grant=grant if grant.has_grant else None,
            features=features,
            highlights=highlights,
            usage=usage,
            limits=limits,
            usage_percentages=percentages,
            remaining_videos=self._remaining_videos(limits, usage),
            free_video_used=user.free_video_used,
            free_video_available=(
                user.subscription_tier == SubscriptionTier.FREE
                and not grant.has_grant
                and not user.free_video_used
            ),
            generated_at=self._usage_tracker.now(),
        )

    async def safe_build(self, user: Optional[AccountUser]) -> Optional[SubscriptionInfo]:
        """Like :meth:`build` but never raises; ``None`` when unavailable."""

        if user is None:
            return None
        try:
            return await self.build(user)
        except Exception:
            logger.exception("Failed to build subscription info for user %s", user.id)
            return None

    @staticmethod
    def _remaining_videos(
        limits: Dict[str, int],
        usage: UsageSnapshot,
    ) -> Optional[int]:
        limit = limits.get(ResourceType.VIDEOS.value)
        if limit is None:
            return 0
        if limit == UNLIMITED:
            return None
        return max(0, limit - usage.videos)


__all__ = ["SubscriptionInfoAggregator", "usage_percentage"]
