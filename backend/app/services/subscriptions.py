"""Application wiring for the access-control engine."""
from __future__ import annotations

import logging
from functools import lru_cache

from ...access_config import load_access_config
from ..subscriptions import AccessControl, build_access_control
from ..subscriptions.repository import (
    PostgresGrantStore,
    PostgresSubscriptionStore,
    PostgresUsagePeriodStore,
    PostgresUserStore,
)

logger = logging.getLogger("subscriptions")


@lru_cache(maxsize=1)
def get_access_control() -> AccessControl:
    config = load_access_config()
    access = build_access_control(
        subscription_store=PostgresSubscriptionStore(),
        usage_store=PostgresUsagePeriodStore(),
        grant_store=PostgresGrantStore(),
        user_store=PostgresUserStore(),
        upgrade_url=config.upgrade_url,
        billing_url=config.billing_url,
    )
    logger.debug("Access control wired against PostgreSQL stores")
    return access


__all__ = ["get_access_control"]
