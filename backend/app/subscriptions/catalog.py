"""Static plan catalog mapping subscription tiers to limits and feature flags."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Mapping, Optional, Protocol, Tuple, Union

from .models import ResourceType, SubscriptionTier

UNLIMITED = -1


@dataclass(frozen=True)
class PlanDefinition:
    """Describes a tier's per-period resource limits and feature flags."""

    tier: SubscriptionTier
    display_name: str
    video_limit: int
    api_call_limit: int = 0
    storage_limit_mb: int = 0
    ai_summary_limit: int = 0
    analytics_view_limit: int = 0
    analytics_access: bool = False
    api_access: bool = False
    priority_support: bool = False
    highlights: Tuple[str, ...] = ()

    def limit_for(self, resource: ResourceType) -> int:
        """Return the per-period limit for ``resource`` (``-1`` means unlimited)."""

        limits = {
            ResourceType.VIDEOS: self.video_limit,
            ResourceType.API_CALLS: self.api_call_limit,
            ResourceType.STORAGE: self.storage_limit_mb,
            ResourceType.AI_SUMMARIES: self.ai_summary_limit,
            ResourceType.ANALYTICS: self.analytics_view_limit,
        }
        return limits[resource]

    def is_unlimited(self, resource: ResourceType) -> bool:
        return self.limit_for(resource) == UNLIMITED

    def feature_flags(self) -> Dict[str, Union[int, bool]]:
        """Serialize the plan to the flag names clients consume."""

        return {
            "videoLimit": self.video_limit,
            "apiLimit": self.api_call_limit,
            "storageLimit": self.storage_limit_mb,
            "aiSummaryLimit": self.ai_summary_limit,
            "analyticsViewLimit": self.analytics_view_limit,
            "analyticsAccess": self.analytics_access,
            "apiAccess": self.api_access,
            "prioritySupport": self.priority_support,
        }


class PlanCatalog(Protocol):
    """Lookup of plan definitions by tier."""

    def get_plan(self, tier: Union[SubscriptionTier, str]) -> Optional[PlanDefinition]:
        ...


PLAN_CATALOG: Dict[SubscriptionTier, PlanDefinition] = {
    SubscriptionTier.FREE: PlanDefinition(
        tier=SubscriptionTier.FREE,
        display_name="Free",
        video_limit=0,
        storage_limit_mb=100,
        ai_summary_limit=3,
        highlights=("Browse content", "Basic AI summaries", "Community support"),
    ),
    SubscriptionTier.BASIC: PlanDefinition(
        tier=SubscriptionTier.BASIC,
        display_name="Basic",
        video_limit=4,
        storage_limit_mb=1024,
        ai_summary_limit=20,
        highlights=("4 videos/month", "Basic AI summaries", "Email support"),
    ),
    SubscriptionTier.PREMIUM: PlanDefinition(
        tier=SubscriptionTier.PREMIUM,
        display_name="Premium",
        video_limit=8,
        storage_limit_mb=5120,
        ai_summary_limit=100,
        analytics_view_limit=UNLIMITED,
        analytics_access=True,
        priority_support=True,
        highlights=("8 videos/month", "Advanced AI content", "Analytics dashboard", "Priority support"),
    ),
    SubscriptionTier.ENTERPRISE: PlanDefinition(
        tier=SubscriptionTier.ENTERPRISE,
        display_name="Enterprise",
        video_limit=16,
        api_call_limit=10000,
        storage_limit_mb=20480,
        ai_summary_limit=UNLIMITED,
        analytics_view_limit=UNLIMITED,
        analytics_access=True,
        api_access=True,
        priority_support=True,
        highlights=("16 videos/month", "Priority processing", "API access", "Dedicated support"),
    ),
    SubscriptionTier.CREATOR: PlanDefinition(
        tier=SubscriptionTier.CREATOR,
        display_name="Creator",
        video_limit=UNLIMITED,
        api_call_limit=10000,
        storage_limit_mb=51200,
        ai_summary_limit=UNLIMITED,
        analytics_view_limit=UNLIMITED,
        analytics_access=True,
        api_access=True,
        priority_support=True,
        highlights=("Unlimited videos", "Priority processing", "API access", "Dedicated support"),
    ),
}


class StaticPlanCatalog:
    """Plan catalog backed by an in-process mapping."""

    def __init__(self, plans: Optional[Mapping[SubscriptionTier, PlanDefinition]] = None) -> None:
        self._plans: Dict[SubscriptionTier, PlanDefinition] = dict(
            PLAN_CATALOG if plans is None else plans
        )

    def get_plan(self, tier: Union[SubscriptionTier, str]) -> Optional[PlanDefinition]:
        try:
            key = SubscriptionTier(tier)
        except ValueError:
            return None
        return self._plans.get(key)


__all__ = [
    "PLAN_CATALOG",
    "PlanCatalog",
    "PlanDefinition",
    "StaticPlanCatalog",
    "UNLIMITED",
]
