"""API schemas for subscription and grant endpoints."""
from __future__ import annotations

from datetime import datetime
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from ..subscriptions import Grant, GrantAccess, GrantType, SubscriptionInfo, SubscriptionTier


class SubscriptionInfoResponse(BaseModel):
    subscription: Optional[SubscriptionInfo] = None


class VideoEligibilityResponse(BaseModel):
    allowed: bool


class GrantCreateRequest(BaseModel):
    user_identifier: Union[int, str] = Field(alias="userIdentifier")
    grant_type: GrantType = Field(alias="grantType")
    tier_override: Optional[SubscriptionTier] = Field(alias="tierOverride", default=None)
    video_limit_override: Optional[int] = Field(alias="videoLimitOverride", default=None, ge=0)
    expires_at: Optional[datetime] = Field(alias="expiresAt", default=None)
    reason: Optional[str] = Field(default=None, max_length=500)

    model_config = ConfigDict(populate_by_name=True)


class GrantResponse(BaseModel):
    id: int
    user_id: int = Field(alias="userId")
    grant_type: GrantType = Field(alias="grantType")
    tier_override: Optional[SubscriptionTier] = Field(alias="tierOverride", default=None)
    video_limit_override: Optional[int] = Field(alias="videoLimitOverride", default=None)
    is_active: bool = Field(alias="isActive")
    expires_at: Optional[datetime] = Field(alias="expiresAt", default=None)
    granted_by_id: int = Field(alias="grantedById")
    reason: Optional[str] = None
    created_at: datetime = Field(alias="createdAt")
    revoked_at: Optional[datetime] = Field(alias="revokedAt", default=None)
    revoked_by_id: Optional[int] = Field(alias="revokedById", default=None)

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_grant(cls, grant: Grant) -> "GrantResponse":
        return cls(**grant.model_dump())


class GrantHistoryResponse(BaseModel):
    user_id: int = Field(alias="userId")
    access: GrantAccess
    grants: List[GrantResponse]

    model_config = ConfigDict(populate_by_name=True)
