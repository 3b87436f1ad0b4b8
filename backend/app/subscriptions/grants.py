"""Administrator grants overriding plan-derived video quotas."""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable, Optional, Sequence, Tuple

from .catalog import UNLIMITED, PlanCatalog
from .exceptions import ConfigurationMissing
from .models import (
    NO_GRANT,
    Grant,
    GrantAccess,
    GrantCreate,
    GrantType,
)
from .stores import GrantStore

logger = logging.getLogger("subscriptions.grants")

TRIAL_EXTENSION_VIDEO_LIMIT = 1


class GrantAuthority:
    """Resolves, issues and revokes the single active grant per user."""

    def __init__(
        self,
        grant_store: GrantStore,
        plan_catalog: PlanCatalog,
        *,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._grant_store = grant_store
        self._plan_catalog = plan_catalog
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    async def check_grant_access(self, user_id: int) -> GrantAccess:
        """Return the effective override for ``user_id`` or ``NO_GRANT``.

        Expiry is re-checked here; a stored ``is_active`` flag on a grant whose
        ``expires_at`` has passed is ignored.
        """

        grant = await self._grant_store.get_active_grant(user_id)
        if grant is None or not grant.is_active:
            return NO_GRANT
        if grant.is_expired(self._clock()):
            logger.debug("Ignoring expired grant %s for user %s", grant.id, user_id)
            return NO_GRANT

        video_limit, unlimited = self._resolve_video_limit(grant)
        return GrantAccess(
            has_grant=True,
            grant_id=grant.id,
            grant_type=grant.grant_type,
            video_limit=video_limit,
            unlimited=unlimited,
            tier_override=grant.tier_override,
            expires_at=grant.expires_at,
        )

    async def create_grant(self, data: GrantCreate) -> Grant:
        """Issue ``data`` as the user's only active grant.

        A full_access grant moves the user to its tier override in the same
        store transaction.
        """

        grant = await self._grant_store.replace_active_grant(data)

        logger.info(
            "Grant %s (%s) issued to user %s by %s expires_at=%s",
            grant.id,
            grant.grant_type.value,
            grant.user_id,
            grant.granted_by_id,
            grant.expires_at,
        )
        return grant

    async def revoke_grant(self, grant_id: int, revoked_by_id: int) -> Grant:
        grant = await self._grant_store.deactivate_grant(grant_id, revoked_by_id)
        if grant is None:
            raise LookupError("Grant not found")

        logger.info("Grant %s revoked for user %s by %s", grant.id, grant.user_id, revoked_by_id)
        return grant

    async def list_grants(self, user_id: int) -> Sequence[Grant]:
        return await self._grant_store.list_grants(user_id)

    def _resolve_video_limit(self, grant: Grant) -> Tuple[Optional[int], bool]:
        if grant.grant_type == GrantType.UNLIMITED_VIDEOS:
            return None, True
        if grant.grant_type == GrantType.VIDEO_LIMIT_OVERRIDE:
            return int(grant.video_limit_override or 0), False
        if grant.grant_type == GrantType.TRIAL_EXTENSION:
            return TRIAL_EXTENSION_VIDEO_LIMIT, False

        tier = grant.tier_override
        plan = self._plan_catalog.get_plan(tier) if tier else None
        if plan is None:
            raise ConfigurationMissing(
                message=f"No plan defined for grant tier override {tier.value if tier else None}",
            )
        if plan.video_limit == UNLIMITED:
            return None, True
        return plan.video_limit, False


__all__ = ["GrantAuthority", "TRIAL_EXTENSION_VIDEO_LIMIT"]
