"""Storage interfaces consumed by the access-control services."""
from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from .identifiers import Identifier
from .models import (
    AccountUser,
    Grant,
    GrantCreate,
    ResourceType,
    Subscription,
    UsagePeriod,
)


class SubscriptionStore(Protocol):
    """Read access to subscription records."""

    async def get_active_subscription(self, user_id: int) -> Optional[Subscription]:
        """Return the most recent active, trialing or paused subscription."""


class UsagePeriodStore(Protocol):
    """Persistence for per-period usage counters."""

    async def find_period(self, subscription_id: int, at: datetime) -> Optional[UsagePeriod]:
        """Return the period whose ``[period_start, period_end]`` contains ``at``."""

    async def create_period(self, period: UsagePeriod) -> UsagePeriod:
        """Insert ``period``, or add its counters to the row already opened for the same start."""

    async def increment_counter(
        self,
        period_id: int,
        resource: ResourceType,
        amount: int,
    ) -> UsagePeriod:
        ...


class GrantStore(Protocol):
    """Persistence for administrator grants."""

    async def get_active_grant(self, user_id: int) -> Optional[Grant]:
        ...

    async def get_grant(self, grant_id: int) -> Optional[Grant]:
        ...

    async def replace_active_grant(self, data: GrantCreate) -> Grant:
        """Deactivate every active grant of the user and insert ``data`` atomically.

        A full_access grant with a tier override also sets the user's tier in
        the same transaction; ``LookupError`` for an unknown user leaves
        nothing written.
        """

    async def deactivate_grant(self, grant_id: int, revoked_by_id: int) -> Optional[Grant]:
        """Deactivate an active grant, returning ``None`` if none matched.

        Revoking a full_access grant reverts the user to the free tier atomically.
        """

    async def list_grants(self, user_id: int) -> Sequence[Grant]:
        ...


class UserStore(Protocol):
    """Account data needed for gating decisions."""

    async def get_user(self, user_id: int) -> Optional[AccountUser]:
        ...

    async def resolve_user_id(self, identifier: Identifier) -> Optional[int]:
        ...

    async def mark_free_video_used(self, user_id: int) -> bool:
        """Flip ``free_video_used`` to true; return ``False`` if it already was."""


__all__ = ["GrantStore", "SubscriptionStore", "UsagePeriodStore", "UserStore"]
