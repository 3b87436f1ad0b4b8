"""Subscription tiers, usage metering and administrator grants."""
from .catalog import PLAN_CATALOG, UNLIMITED, PlanCatalog, PlanDefinition, StaticPlanCatalog
from .enforcement import QuotaEnforcer
from .exceptions import (
    AuthenticationRequired,
    ConfigurationMissing,
    FeatureGateError,
    FeatureLocked,
    QuotaExceeded,
    SubscriptionInactive,
    TierInsufficient,
    TransientTrackingFailure,
    UsageCheckFailed,
)
from .features import FEATURE_PREDICATES, FeatureGate
from .grants import GrantAuthority
from .identifiers import Email, Identifier, LegacyId, NumericId, parse_identifier
from .info import SubscriptionInfoAggregator
from .models import (
    AccountUser,
    Grant,
    GrantAccess,
    GrantCreate,
    GrantType,
    ResourceType,
    Subscription,
    SubscriptionInfo,
    SubscriptionStatus,
    SubscriptionTier,
    UsageInfo,
    UsagePeriod,
    UsageSnapshot,
)
from .recorder import UsageRecorder
from .service import AccessControl, build_access_control
from .tiers import TIER_HIERARCHY, require_subscription, tier_rank
from .usage import UsagePeriodTracker

__all__ = [
    "AccessControl",
    "AccountUser",
    "AuthenticationRequired",
    "ConfigurationMissing",
    "Email",
    "FEATURE_PREDICATES",
    "FeatureGate",
    "FeatureGateError",
    "FeatureLocked",
    "Grant",
    "GrantAccess",
    "GrantAuthority",
    "GrantCreate",
    "GrantType",
    "Identifier",
    "LegacyId",
    "NumericId",
    "PLAN_CATALOG",
    "PlanCatalog",
    "PlanDefinition",
    "QuotaEnforcer",
    "QuotaExceeded",
    "ResourceType",
    "StaticPlanCatalog",
    "Subscription",
    "SubscriptionInactive",
    "SubscriptionInfo",
    "SubscriptionInfoAggregator",
    "SubscriptionStatus",
    "SubscriptionTier",
    "TIER_HIERARCHY",
    "TierInsufficient",
    "TransientTrackingFailure",
    "UNLIMITED",
    "UsageCheckFailed",
    "UsageInfo",
    "UsagePeriod",
    "UsagePeriodTracker",
    "UsageRecorder",
    "UsageSnapshot",
    "build_access_control",
    "parse_identifier",
    "require_subscription",
    "tier_rank",
]
