"""Named feature checks evaluated against the plan catalog."""
from __future__ import annotations

from typing import Callable, Dict, List, Optional, Union

from .catalog import UNLIMITED, PlanCatalog, PlanDefinition
from .exceptions import AuthenticationRequired, ConfigurationMissing, FeatureLocked
from .models import AccountUser, SubscriptionTier
from .tiers import DEFAULT_UPGRADE_URL

FeaturePredicate = Callable[[PlanDefinition], bool]

FEATURE_PREDICATES: Dict[str, FeaturePredicate] = {
    "analytics": lambda plan: plan.analytics_access is True,
    "api": lambda plan: plan.api_access is True,
    "unlimited_videos": lambda plan: plan.video_limit == UNLIMITED,
    "priority_support": lambda plan: plan.priority_support is True,
}


class FeatureGate:
    def __init__(self, plan_catalog: PlanCatalog, *, upgrade_url: str = DEFAULT_UPGRADE_URL) -> None:
        self._plan_catalog = plan_catalog
        self._upgrade_url = upgrade_url

    def has_feature(self, tier: Union[SubscriptionTier, str], feature: str) -> bool:
        """Return whether ``tier`` unlocks ``feature``; unknown names are locked."""

        plan = self._plan_catalog.get_plan(tier)
        if plan is None:
            raise ConfigurationMissing()
        predicate = FEATURE_PREDICATES.get(feature)
        return predicate is not None and predicate(plan)

    def available_features(self, tier: Union[SubscriptionTier, str]) -> List[str]:
        return [name for name in FEATURE_PREDICATES if self.has_feature(tier, name)]

    def require_feature(self, user: Optional[AccountUser], feature: str) -> AccountUser:
        if user is None:
            raise AuthenticationRequired()

        if not self.has_feature(user.subscription_tier, feature):
            raise FeatureLocked(
                message=f"{feature} feature requires upgrade",
                detail={
                    "feature": feature,
                    "current_tier": user.subscription_tier.value,
                    "upgrade_url": self._upgrade_url,
                },
            )
        return user


__all__ = ["FEATURE_PREDICATES", "FeatureGate"]
