"""Composition root bundling the access-control services."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from .catalog import PlanCatalog, StaticPlanCatalog
from .enforcement import QuotaEnforcer
from .features import FeatureGate
from .grants import GrantAuthority
from .info import SubscriptionInfoAggregator
from .recorder import UsageRecorder
from .stores import GrantStore, SubscriptionStore, UsagePeriodStore, UserStore
from .tiers import DEFAULT_BILLING_URL, DEFAULT_UPGRADE_URL
from .usage import UsagePeriodTracker


@dataclass(frozen=True)
class AccessControl:
    """Services sharing one set of stores and one plan catalog."""

    user_store: UserStore
    grants: GrantAuthority
    usage: UsagePeriodTracker
    enforcer: QuotaEnforcer
    recorder: UsageRecorder
    features: FeatureGate
    info: SubscriptionInfoAggregator


def build_access_control(
    *,
    subscription_store: SubscriptionStore,
    usage_store: UsagePeriodStore,
    grant_store: GrantStore,
    user_store: UserStore,
    plan_catalog: Optional[PlanCatalog] = None,
    upgrade_url: str = DEFAULT_UPGRADE_URL,
    billing_url: str = DEFAULT_BILLING_URL,
    clock: Optional[Callable[[], datetime]] = None,
) -> AccessControl:
    catalog = plan_catalog or StaticPlanCatalog()
    grants = GrantAuthority(grant_store, catalog, clock=clock)
    usage = UsagePeriodTracker(subscription_store, usage_store, clock=clock)
    return AccessControl(
        user_store=user_store,
        grants=grants,
        usage=usage,
        enforcer=QuotaEnforcer(
            grants,
            usage,
            catalog,
            upgrade_url=upgrade_url,
            billing_url=billing_url,
        ),
        recorder=UsageRecorder(user_store, usage, usage_store),
        features=FeatureGate(catalog, upgrade_url=upgrade_url),
        info=SubscriptionInfoAggregator(grants, usage, catalog),
    )


__all__ = ["AccessControl", "build_access_control"]
