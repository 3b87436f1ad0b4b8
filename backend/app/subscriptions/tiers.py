"""Tier ordering and the minimum-tier subscription requirement."""
from __future__ import annotations

from typing import Dict, Optional, Union

from .exceptions import AuthenticationRequired, SubscriptionInactive, TierInsufficient
from .models import ACTIVE_LIKE_STATUSES, AccountUser, SubscriptionStatus, SubscriptionTier

# Product ordering, not price ordering: creator ranks above enterprise.
TIER_HIERARCHY: Dict[SubscriptionTier, int] = {
    SubscriptionTier.FREE: 0,
    SubscriptionTier.BASIC: 1,
    SubscriptionTier.PREMIUM: 2,
    SubscriptionTier.ENTERPRISE: 3,
    SubscriptionTier.CREATOR: 4,
}

DEFAULT_UPGRADE_URL = "/subscription/upgrade"
DEFAULT_BILLING_URL = "/subscription/billing"


def tier_rank(tier: Union[SubscriptionTier, str]) -> int:
    """Return the rank of ``tier``, raising ``ValueError`` for unknown names."""

    return TIER_HIERARCHY[SubscriptionTier(tier)]


def has_active_status(status: Union[SubscriptionStatus, str]) -> bool:
    return SubscriptionStatus(status) in ACTIVE_LIKE_STATUSES


def require_subscription(
    user: Optional[AccountUser],
    min_tier: Union[SubscriptionTier, str],
    *,
    upgrade_url: str = DEFAULT_UPGRADE_URL,
    billing_url: str = DEFAULT_BILLING_URL,
) -> AccountUser:
    """Admit ``user`` when their tier and subscription status satisfy ``min_tier``.

    Raises
    ------
    AuthenticationRequired
        No authenticated user.
    TierInsufficient
        The user's tier ranks below ``min_tier``.
    SubscriptionInactive
        The tier is sufficient but a paid subscription is not active, trialing
        or paused.
    """

    if user is None:
        raise AuthenticationRequired()

    required = SubscriptionTier(min_tier)
    tier = user.subscription_tier
    if tier_rank(tier) < tier_rank(required):
        raise TierInsufficient(
            detail={
                "current_tier": tier.value,
                "required_tier": required.value,
                "upgrade_url": upgrade_url,
            },
        )

    if tier != SubscriptionTier.FREE and not has_active_status(user.subscription_status):
        raise SubscriptionInactive(
            detail={
                "current_status": user.subscription_status.value,
                "billing_url": billing_url,
            },
        )
    return user


__all__ = [
    "DEFAULT_BILLING_URL",
    "DEFAULT_UPGRADE_URL",
    "TIER_HIERARCHY",
    "has_active_status",
    "require_subscription",
    "tier_rank",
]
