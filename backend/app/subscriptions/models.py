"""Domain models for subscription tiers, usage periods and admin grants."""
from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Dict, FrozenSet, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator


class SubscriptionTier(str, Enum):
    """Canonical subscription tiers, in declaration order."""

    FREE = "free"
    BASIC = "basic"
    PREMIUM = "premium"
    ENTERPRISE = "enterprise"
    CREATOR = "creator"


class SubscriptionStatus(str, Enum):
    """Lifecycle state mirrored from the billing provider."""

    ACTIVE = "active"
    TRIALING = "trialing"
    PAUSED = "paused"
    CANCELED = "canceled"
    NONE = "none"


ACTIVE_LIKE_STATUSES: FrozenSet[SubscriptionStatus] = frozenset(
    {SubscriptionStatus.ACTIVE, SubscriptionStatus.TRIALING, SubscriptionStatus.PAUSED}
)


class ResourceType(str, Enum):
    """Metered resources tracked per billing period."""

    VIDEOS = "videos"
    API_CALLS = "api_calls"
    STORAGE = "storage"
    AI_SUMMARIES = "ai_summaries"
    ANALYTICS = "analytics"

    @property
    def counter_field(self) -> str:
        """Name of the usage-period column holding this resource's counter."""

        return _COUNTER_FIELDS[self]


_COUNTER_FIELDS: Dict[ResourceType, str] = {
    ResourceType.VIDEOS: "videos_processed",
    ResourceType.API_CALLS: "api_calls_made",
    ResourceType.STORAGE: "storage_used_mb",
    ResourceType.AI_SUMMARIES: "ai_summaries_generated",
    ResourceType.ANALYTICS: "analytics_views",
}


class GrantType(str, Enum):
    """Kinds of administrator-issued quota overrides."""

    UNLIMITED_VIDEOS = "unlimited_videos"
    VIDEO_LIMIT_OVERRIDE = "video_limit_override"
    FULL_ACCESS = "full_access"
    TRIAL_EXTENSION = "trial_extension"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AccountUser(BaseModel):
    """Authenticated principal as seen by the request pipeline."""

    id: int
    email: Optional[str] = None
    legacy_id: Optional[str] = None
    role: str = "user"
    subscription_tier: SubscriptionTier = SubscriptionTier.FREE
    subscription_status: SubscriptionStatus = SubscriptionStatus.NONE
    free_video_used: bool = False

    model_config = ConfigDict(frozen=True)

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


class Subscription(BaseModel):
    """Subscription record synchronized by external billing-event handling."""

    id: int
    user_id: int
    tier: SubscriptionTier
    status: SubscriptionStatus
    current_period_start: datetime
    current_period_end: datetime

    model_config = ConfigDict(frozen=True)

    @property
    def is_active_like(self) -> bool:
        return self.status in ACTIVE_LIKE_STATUSES

    def covers(self, moment: datetime) -> bool:
        """Return ``True`` when ``moment`` lies inside the current billing period."""

        return self.current_period_start <= moment <= self.current_period_end


class UsagePeriod(BaseModel):
    """Per-resource usage counters for one billing period of a subscription."""

    id: Optional[int] = None
    subscription_id: int
    user_id: int
    period_start: datetime
    period_end: datetime
    videos_processed: int = Field(default=0, ge=0)
    api_calls_made: int = Field(default=0, ge=0)
    storage_used_mb: int = Field(default=0, ge=0)
    ai_summaries_generated: int = Field(default=0, ge=0)
    analytics_views: int = Field(default=0, ge=0)

    model_config = ConfigDict(frozen=True)

    def contains(self, moment: datetime) -> bool:
        return self.period_start <= moment <= self.period_end

    def counter(self, resource: ResourceType) -> int:
        return int(getattr(self, resource.counter_field))


class Grant(BaseModel):
    """Administrator-issued override superseding plan-derived quotas."""

    id: int
    user_id: int
    grant_type: GrantType
    tier_override: Optional[SubscriptionTier] = None
    video_limit_override: Optional[int] = None
    is_active: bool = True
    expires_at: Optional[datetime] = None
    granted_by_id: int
    reason: Optional[str] = None
    created_at: datetime = Field(default_factory=_utcnow)
    revoked_at: Optional[datetime] = None
    revoked_by_id: Optional[int] = None

    model_config = ConfigDict(frozen=True)

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at is not None and self.expires_at <= now


class GrantCreate(BaseModel):
    """Validated input for issuing a new grant."""

    user_id: int
    grant_type: GrantType
    granted_by_id: int
    tier_override: Optional[SubscriptionTier] = None
    video_limit_override: Optional[int] = Field(default=None, ge=0)
    expires_at: Optional[datetime] = None
    reason: Optional[str] = None

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def _check_overrides(self) -> "GrantCreate":
        if self.grant_type == GrantType.FULL_ACCESS:
            if self.tier_override is None:
                raise ValueError("full_access grants require tier_override")
        elif self.tier_override is not None:
            raise ValueError("tier_override is only allowed for full_access grants")

        if self.grant_type == GrantType.VIDEO_LIMIT_OVERRIDE:
            if self.video_limit_override is None:
                raise ValueError("video_limit_override grants require video_limit_override")
        elif self.video_limit_override is not None:
            raise ValueError("video_limit_override is only allowed for video_limit_override grants")
        return self


class GrantAccess(BaseModel):
    """Effective quota override resolved from a user's active grant."""

    has_grant: bool = False
    grant_id: Optional[int] = None
    grant_type: Optional[GrantType] = None
    video_limit: Optional[int] = None
    unlimited: bool = False
    tier_override: Optional[SubscriptionTier] = None
    expires_at: Optional[datetime] = None

    model_config = ConfigDict(frozen=True)


NO_GRANT = GrantAccess()


class UsageSnapshot(BaseModel):
    """Current-period usage per resource; zeros when nothing is tracked yet."""

    videos: int = 0
    api_calls: int = 0
    storage: int = 0
    ai_summaries: int = 0
    analytics: int = 0

    model_config = ConfigDict(frozen=True)

    @classmethod
    def from_period(cls, period: UsagePeriod) -> "UsageSnapshot":
        return cls(**{resource.value: period.counter(resource) for resource in ResourceType})

    def for_resource(self, resource: ResourceType) -> int:
        return int(getattr(self, resource.value))


class UsageInfo(BaseModel):
    """Decision context attached to a request admitted by the quota enforcer."""

    user_id: int
    resource: ResourceType
    increment: int = 1
    current_usage: Optional[int] = None
    limit: Optional[int] = None
    is_free_trial_user: bool = False
    has_admin_grant: bool = False
    grant_type: Optional[GrantType] = None

    model_config = ConfigDict(frozen=True)


class SubscriptionInfo(BaseModel):
    """Read-only projection of a user's subscription for client display."""

    tier: SubscriptionTier
    effective_tier: SubscriptionTier
    status: SubscriptionStatus
    has_admin_grant: bool = False
    grant: Optional[GrantAccess] = None
    features: Dict[str, Union[int, bool]] = Field(default_factory=dict)
    highlights: List[str] = Field(default_factory=list)
    usage: UsageSnapshot = Field(default_factory=UsageSnapshot)
    limits: Dict[str, int] = Field(default_factory=dict)
    usage_percentages: Dict[str, float] = Field(default_factory=dict)
    remaining_videos: Optional[int] = None
    free_video_used: bool = False
    free_video_available: bool = False
    generated_at: datetime = Field(default_factory=_utcnow)

    model_config = ConfigDict(frozen=True)


__all__ = [
    "ACTIVE_LIKE_STATUSES",
    "AccountUser",
    "Grant",
    "GrantAccess",
    "GrantCreate",
    "GrantType",
    "NO_GRANT",
    "ResourceType",
    "Subscription",
    "SubscriptionInfo",
    "SubscriptionStatus",
    "SubscriptionTier",
    "UsageInfo",
    "UsagePeriod",
    "UsageSnapshot",
]
