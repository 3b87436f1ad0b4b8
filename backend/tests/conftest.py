from __future__ import annotations

from types import SimpleNamespace

import pytest

from backend.app.subscriptions import AccessControl, build_access_control
from backend.app.subscriptions.memory import (
    InMemoryGrantStore,
    InMemorySubscriptionStore,
    InMemoryUsagePeriodStore,
    InMemoryUserStore,
)
from backend.tests.factories import fixed_clock


@pytest.fixture
def stores() -> SimpleNamespace:
    users = InMemoryUserStore()
    return SimpleNamespace(
        subscriptions=InMemorySubscriptionStore(),
        usage=InMemoryUsagePeriodStore(),
        grants=InMemoryGrantStore(users, clock=fixed_clock),
        users=users,
    )


@pytest.fixture
def access(stores) -> AccessControl:
    return build_access_control(
        subscription_store=stores.subscriptions,
        usage_store=stores.usage,
        grant_store=stores.grants,
        user_store=stores.users,
        clock=fixed_clock,
    )
