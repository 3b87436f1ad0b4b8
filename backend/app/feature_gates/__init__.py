"""Request-pipeline gates enforcing subscription tiers, quotas and features."""
from ..subscriptions.exceptions import (
    AuthenticationRequired,
    ConfigurationMissing,
    FeatureGateError,
    FeatureLocked,
    QuotaExceeded,
    SubscriptionInactive,
    TierInsufficient,
    UsageCheckFailed,
)
from .dependencies import (
    access_control,
    add_subscription_info,
    check_usage_limit,
    current_account,
    increment_usage,
    require_feature,
    require_subscription,
    track_usage,
)
from .middleware import UsageRecordingMiddleware
from .responses import (
    feature_gate_exception_handler,
    gate_exception_handler,
    render_gate_error,
    wants_json,
)

__all__ = [
    "AuthenticationRequired",
    "ConfigurationMissing",
    "FeatureGateError",
    "FeatureLocked",
    "QuotaExceeded",
    "SubscriptionInactive",
    "TierInsufficient",
    "UsageCheckFailed",
    "UsageRecordingMiddleware",
    "access_control",
    "add_subscription_info",
    "check_usage_limit",
    "current_account",
    "feature_gate_exception_handler",
    "gate_exception_handler",
    "increment_usage",
    "render_gate_error",
    "require_feature",
    "require_subscription",
    "track_usage",
    "wants_json",
]
