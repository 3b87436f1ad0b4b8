"""Resolution of the usage-counter record for the current billing period."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable, Optional, Tuple

from .models import ResourceType, Subscription, UsagePeriod, UsageSnapshot
from .stores import SubscriptionStore, UsagePeriodStore


class UsagePeriodTracker:
    """Looks up (and lazily opens) the usage period containing "now".

    Periods are owned by the subscription's billing cycle; this class never
    schedules or rolls periods itself. A user without an active-like
    subscription, or a subscription without a matching period, simply has
    zero usage.
    """

    def __init__(
        self,
        subscription_store: SubscriptionStore,
        usage_store: UsagePeriodStore,
        *,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._subscription_store = subscription_store
        self._usage_store = usage_store
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def now(self) -> datetime:
        return self._clock()

    async def resolve_current_period(
        self,
        user_id: int,
    ) -> Tuple[Optional[Subscription], Optional[UsagePeriod]]:
        subscription = await self._subscription_store.get_active_subscription(user_id)
        if subscription is None:
            return None, None
        period = await self._usage_store.find_period(subscription.id, self.now())
        return subscription, period

    async def get_current_usage(self, user_id: int) -> UsageSnapshot:
        _, period = await self.resolve_current_period(user_id)
        if period is None:
            return UsageSnapshot()
        return UsageSnapshot.from_period(period)

    async def get_current_period_usage(
        self,
        user_id: int,
        resource: ResourceType = ResourceType.VIDEOS,
    ) -> int:
        _, period = await self.resolve_current_period(user_id)
        if period is None:
            return 0
        return period.counter(resource)

    async def open_current_period(
        self,
        subscription: Subscription,
        resource: ResourceType,
        increment: int,
    ) -> UsagePeriod:
        """Materialise the current period from the subscription, seeded with ``increment``."""

        now = self.now()
        if not subscription.covers(now):
            raise LookupError(
                f"Subscription {subscription.id} billing period does not cover {now.isoformat()}"
            )
        period = UsagePeriod(
            subscription_id=subscription.id,
            user_id=subscription.user_id,
            period_start=subscription.current_period_start,
            period_end=subscription.current_period_end,
            **{resource.counter_field: increment},
        )
        return await self._usage_store.create_period(period)


__all__ = ["UsagePeriodTracker"]
