"""FastAPI dependencies gating routes on subscription tier, quota and features.

Gates run before the route handler and attach their decision to
``request.state``. The post-success hooks (:func:`increment_usage` and
:func:`track_usage`) queue bookkeeping for
:class:`~.middleware.UsageRecordingMiddleware`, which only runs it once the
handler has returned a 2xx response.
"""
from __future__ import annotations

import logging
import os
from functools import partial
from typing import Awaitable, Callable, Optional, Union

from fastapi import Cookie, Depends, Request

from ...app_context import get_optional_current_user
from ..services.subscriptions import get_access_control
from ..subscriptions import (
    AccessControl,
    AccountUser,
    FeatureGateError,
    ResourceType,
    SubscriptionInfo,
    SubscriptionTier,
    UsageCheckFailed,
    UsageInfo,
)
from ..subscriptions.enforcement import validate_increment
from .middleware import defer_usage_hook

logger = logging.getLogger("subscriptions.gates")

_SESSION_COOKIE_NAME = os.getenv("SESSION_COOKIE_NAME", "session")


async def current_account(
    request: Request,
    session_token: Optional[str] = Cookie(None, alias=_SESSION_COOKIE_NAME),
) -> Optional[AccountUser]:
    """Resolve the optional principal and remember it for error rendering."""

    user = None
    if session_token:
        user = await get_optional_current_user(session_token=session_token)
    request.state.user = user
    return user


def access_control() -> AccessControl:
    return get_access_control()


def require_subscription(
    min_tier: Union[SubscriptionTier, str],
) -> Callable[..., AccountUser]:
    required = SubscriptionTier(min_tier)

    def dependency(
        request: Request,
        user: Optional[AccountUser] = Depends(current_account),
        access: AccessControl = Depends(access_control),
    ) -> AccountUser:
        admitted = access.enforcer.require_subscription(user, required)
        request.state.user_tier = admitted.subscription_tier.value
        request.state.user_subscription_status = admitted.subscription_status.value
        return admitted

    return dependency


def check_usage_limit(
    resource: Union[ResourceType, str] = ResourceType.VIDEOS,
    increment: int = 1,
) -> Callable[..., Awaitable[UsageInfo]]:
    """Build a dependency admitting the request only within the user's quota.

    ``increment`` is validated here, so a misconfigured route fails at import
    time rather than on the first request.
    """

    metered = ResourceType(resource)
    amount = validate_increment(increment)

    async def dependency(
        request: Request,
        user: Optional[AccountUser] = Depends(current_account),
        access: AccessControl = Depends(access_control),
    ) -> UsageInfo:
        try:
            usage_info = await access.enforcer.check_usage_limit(user, metered, amount)
        except FeatureGateError:
            raise
        except Exception as exc:
            logger.exception("Usage limit check failed for %s", metered.value)
            raise UsageCheckFailed() from exc
        request.state.usage_info = usage_info
        return usage_info

    return dependency


def require_feature(feature: str) -> Callable[..., AccountUser]:
    def dependency(
        user: Optional[AccountUser] = Depends(current_account),
        access: AccessControl = Depends(access_control),
    ) -> AccountUser:
        try:
            return access.features.require_feature(user, feature)
        except FeatureGateError:
            raise
        except Exception as exc:
            logger.exception("Feature access check failed for %s", feature)
            raise UsageCheckFailed(message="Feature check failed") from exc

    return dependency


async def add_subscription_info(
    request: Request,
    user: Optional[AccountUser] = Depends(current_account),
    access: AccessControl = Depends(access_control),
) -> Optional[SubscriptionInfo]:
    """Attach the user's subscription summary; never denies the request."""

    info = await access.info.safe_build(user)
    request.state.subscription_info = info
    return info


def increment_usage(
    request: Request,
    access: AccessControl = Depends(access_control),
) -> None:
    """Record the admitted action once the handler has returned a 2xx response.

    Declare after :func:`check_usage_limit`. The decision context is read when
    the hook runs, so a handler may clear ``request.state.usage_info`` to skip
    recording.
    """

    async def record() -> None:
        await access.recorder.increment_usage(getattr(request.state, "usage_info", None))

    defer_usage_hook(request, record)


def track_usage(
    resource: Union[ResourceType, str],
    increment: int = 1,
) -> Callable[..., None]:
    metered = ResourceType(resource)
    amount = validate_increment(increment)

    def dependency(
        request: Request,
        user: Optional[AccountUser] = Depends(current_account),
        access: AccessControl = Depends(access_control),
    ) -> None:
        if user is None:
            return
        defer_usage_hook(request, partial(access.recorder.track_usage, user.id, metered, amount))

    return dependency


__all__ = [
    "access_control",
    "add_subscription_info",
    "check_usage_limit",
    "current_account",
    "increment_usage",
    "require_feature",
    "require_subscription",
    "track_usage",
]
