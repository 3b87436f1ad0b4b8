"""In-memory store implementations suitable for tests and local development."""
from __future__ import annotations

from datetime import datetime, timezone
from itertools import count
from typing import Callable, Dict, List, Optional, Sequence

from .identifiers import Email, Identifier, LegacyId, NumericId
from .models import (
    AccountUser,
    Grant,
    GrantCreate,
    GrantType,
    ResourceType,
    Subscription,
    SubscriptionTier,
    UsagePeriod,
)


def _default_clock() -> datetime:
    return datetime.now(timezone.utc)


class InMemorySubscriptionStore:
    def __init__(self) -> None:
        self._subscriptions: Dict[int, Subscription] = {}

    def add(self, subscription: Subscription) -> None:
        self._subscriptions[subscription.id] = subscription

    async def get_active_subscription(self, user_id: int) -> Optional[Subscription]:
        candidates = [
            subscription
            for subscription in self._subscriptions.values()
            if subscription.user_id == user_id and subscription.is_active_like
        ]
        if not candidates:
            return None
        return max(candidates, key=lambda subscription: subscription.id)


class InMemoryUsagePeriodStore:
    def __init__(self) -> None:
        self._periods: Dict[int, UsagePeriod] = {}
        self._ids = count(1)

    @property
    def periods(self) -> List[UsagePeriod]:
        return list(self._periods.values())

    def add(self, period: UsagePeriod) -> UsagePeriod:
        stored = period if period.id is not None else period.model_copy(update={"id": next(self._ids)})
        self._periods[stored.id] = stored
        return stored

    async def find_period(self, subscription_id: int, at: datetime) -> Optional[UsagePeriod]:
        for period in self._periods.values():
            if period.subscription_id == subscription_id and period.contains(at):
                return period
        return None

    async def create_period(self, period: UsagePeriod) -> UsagePeriod:
        for existing in self._periods.values():
            if (
                existing.subscription_id == period.subscription_id
                and existing.period_start == period.period_start
            ):
                merged = existing.model_copy(
                    update={
                        resource.counter_field: existing.counter(resource) + period.counter(resource)
                        for resource in ResourceType
                    }
                )
                self._periods[existing.id] = merged
                return merged
        return self.add(period)

    async def increment_counter(
        self,
        period_id: int,
        resource: ResourceType,
        amount: int,
    ) -> UsagePeriod:
        period = self._periods.get(period_id)
        if period is None:
            raise LookupError(f"Usage period {period_id} not found")
        field = resource.counter_field
        updated = period.model_copy(update={field: getattr(period, field) + amount})
        self._periods[period_id] = updated
        return updated


class InMemoryGrantStore:
    """Grant rows; full_access tier changes are applied to ``users``."""

    def __init__(
        self,
        users: InMemoryUserStore,
        *,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._grants: Dict[int, Grant] = {}
        self._users = users
        self._ids = count(1)
        self._clock = clock or _default_clock

    @property
    def grants(self) -> List[Grant]:
        return list(self._grants.values())

    def add(self, grant: Grant) -> Grant:
        self._grants[grant.id] = grant
        return grant

    async def get_active_grant(self, user_id: int) -> Optional[Grant]:
        active = [
            grant
            for grant in self._grants.values()
            if grant.user_id == user_id and grant.is_active
        ]
        if not active:
            return None
        return max(active, key=lambda grant: grant.id)

    async def get_grant(self, grant_id: int) -> Optional[Grant]:
        return self._grants.get(grant_id)

    async def replace_active_grant(self, data: GrantCreate) -> Grant:
        sets_tier = data.grant_type == GrantType.FULL_ACCESS and data.tier_override is not None
        if sets_tier:
            self._users.require(data.user_id)

        now = self._clock()
        for grant in list(self._grants.values()):
            if grant.user_id == data.user_id and grant.is_active:
                self._grants[grant.id] = grant.model_copy(
                    update={"is_active": False, "revoked_at": now, "revoked_by_id": data.granted_by_id}
                )

        grant_id = next(self._ids)
        while grant_id in self._grants:
            grant_id = next(self._ids)
        grant = Grant(id=grant_id, created_at=now, **data.model_dump())
        self._grants[grant_id] = grant
        if sets_tier:
            self._users.set_tier(data.user_id, data.tier_override)
        return grant

    async def deactivate_grant(self, grant_id: int, revoked_by_id: int) -> Optional[Grant]:
        grant = self._grants.get(grant_id)
        if grant is None or not grant.is_active:
            return None
        full_access = grant.grant_type == GrantType.FULL_ACCESS
        if full_access:
            self._users.require(grant.user_id)

        updated = grant.model_copy(
            update={"is_active": False, "revoked_at": self._clock(), "revoked_by_id": revoked_by_id}
        )
        self._grants[grant_id] = updated
        if full_access:
            self._users.set_tier(grant.user_id, SubscriptionTier.FREE)
        return updated

    async def list_grants(self, user_id: int) -> Sequence[Grant]:
        history = [grant for grant in self._grants.values() if grant.user_id == user_id]
        return sorted(history, key=lambda grant: grant.id, reverse=True)


class InMemoryUserStore:
    def __init__(self) -> None:
        self._users: Dict[int, AccountUser] = {}

    def add(self, user: AccountUser) -> AccountUser:
        self._users[user.id] = user
        return user

    async def get_user(self, user_id: int) -> Optional[AccountUser]:
        return self._users.get(user_id)

    async def resolve_user_id(self, identifier: Identifier) -> Optional[int]:
        if isinstance(identifier, NumericId):
            return identifier.value if identifier.value in self._users else None
        for user in self._users.values():
            if isinstance(identifier, Email) and (user.email or "").lower() == identifier.value:
                return user.id
            if isinstance(identifier, LegacyId) and user.legacy_id == identifier.value:
                return user.id
        return None

    def require(self, user_id: int) -> AccountUser:
        user = self._users.get(user_id)
        if user is None:
            raise LookupError(f"User {user_id} not found")
        return user

    def set_tier(self, user_id: int, tier: SubscriptionTier) -> None:
        user = self.require(user_id)
        self._users[user_id] = user.model_copy(update={"subscription_tier": tier})

    async def mark_free_video_used(self, user_id: int) -> bool:
        user = self.require(user_id)
        if user.free_video_used:
            return False
        self._users[user_id] = user.model_copy(update={"free_video_used": True})
        return True


__all__ = [
    "InMemoryGrantStore",
    "InMemorySubscriptionStore",
    "InMemoryUsagePeriodStore",
    "InMemoryUserStore",
]
