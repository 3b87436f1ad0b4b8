"""API routes exposing the caller's subscription state."""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends

from ..feature_gates import access_control, add_subscription_info, current_account
from ..subscriptions import (
    AccessControl,
    AccountUser,
    AuthenticationRequired,
    SubscriptionInfo,
    UsageSnapshot,
)
from ..schemas.subscriptions import SubscriptionInfoResponse, VideoEligibilityResponse

router = APIRouter(prefix="/api/subscription", tags=["subscriptions"])


@router.get("/info", response_model=SubscriptionInfoResponse)
async def read_subscription_info(
    info: Optional[SubscriptionInfo] = Depends(add_subscription_info),
) -> SubscriptionInfoResponse:
    return SubscriptionInfoResponse(subscription=info)


@router.get("/usage", response_model=UsageSnapshot)
async def read_current_usage(
    user: Optional[AccountUser] = Depends(current_account),
    access: AccessControl = Depends(access_control),
) -> UsageSnapshot:
    if user is None:
        raise AuthenticationRequired()
    return await access.usage.get_current_usage(user.id)


@router.get("/can-process-video", response_model=VideoEligibilityResponse)
async def read_video_eligibility(
    user: Optional[AccountUser] = Depends(current_account),
    access: AccessControl = Depends(access_control),
) -> VideoEligibilityResponse:
    allowed = await access.enforcer.can_process_video(user)
    return VideoEligibilityResponse(allowed=allowed)
