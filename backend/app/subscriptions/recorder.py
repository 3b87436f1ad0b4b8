"""Post-success usage bookkeeping."""
from __future__ import annotations

import logging
from typing import Optional, Union

from .exceptions import TransientTrackingFailure
from .models import ResourceType, UsageInfo
from .stores import UsagePeriodStore, UserStore
from .usage import UsagePeriodTracker

logger = logging.getLogger("subscriptions.recorder")


class UsageRecorder:
    """Applies the side effect of an admitted action.

    Recording never fails the request that triggered it: every error is
    logged and absorbed, so a request that already succeeded is never turned
    into a failure by bookkeeping.
    """

    def __init__(
        self,
        user_store: UserStore,
        usage_tracker: UsagePeriodTracker,
        usage_store: UsagePeriodStore,
    ) -> None:
        self._user_store = user_store
        self._usage_tracker = usage_tracker
        self._usage_store = usage_store

    async def increment_usage(self, usage_info: Optional[UsageInfo]) -> None:
        if usage_info is None:
            return

        try:
            if usage_info.is_free_trial_user:
                await self._consume_free_credit(usage_info.user_id)
            else:
                await self._record(usage_info.user_id, usage_info.resource, usage_info.increment)
        except TransientTrackingFailure as exc:
            logger.warning("Usage for user %s not recorded: %s", usage_info.user_id, exc)
        except Exception:
            logger.exception(
                "Failed to record %s usage for user %s",
                usage_info.resource.value,
                usage_info.user_id,
            )

    async def track_usage(
        self,
        user_id: int,
        resource: Union[ResourceType, str],
        increment: int = 1,
    ) -> None:
        """Record usage for an action that was metered but not gated."""

        try:
            resource = ResourceType(resource)
            await self._record(user_id, resource, increment)
        except TransientTrackingFailure as exc:
            logger.warning("Usage for user %s not tracked: %s", user_id, exc)
        except Exception:
            logger.exception("Failed to track %s usage for user %s", resource, user_id)

    async def _consume_free_credit(self, user_id: int) -> None:
        flipped = await self._user_store.mark_free_video_used(user_id)
        if not flipped:
            logger.debug("Free video credit for user %s was already consumed", user_id)
            return
        logger.info("Free video credit consumed by user %s", user_id)

    async def _record(self, user_id: int, resource: ResourceType, increment: int) -> None:
        subscription, period = await self._usage_tracker.resolve_current_period(user_id)
        if subscription is None:
            raise TransientTrackingFailure(f"no active subscription for user {user_id}")

        if period is not None and period.id is not None:
            await self._usage_store.increment_counter(period.id, resource, increment)
            return

        await self._usage_tracker.open_current_period(subscription, resource, increment)
        logger.debug("Opened usage period for subscription %s", subscription.id)


__all__ = ["UsageRecorder"]
