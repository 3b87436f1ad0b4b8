"""PostgreSQL persistence for subscriptions, usage periods, grants and users."""
from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Callable, Iterator, Optional, Sequence, TypeVar

import psycopg2
import psycopg2.extras
from psycopg2 import sql
from psycopg2.extensions import connection as PgConnection
from psycopg2.extensions import cursor as PgCursor
from starlette.concurrency import run_in_threadpool

from ...app_context import get_conn
from .identifiers import Email, Identifier, LegacyId, NumericId
from .models import (
    ACTIVE_LIKE_STATUSES,
    AccountUser,
    Grant,
    GrantCreate,
    GrantType,
    ResourceType,
    Subscription,
    SubscriptionStatus,
    SubscriptionTier,
    UsagePeriod,
)

T = TypeVar("T")

_ACTIVE_LIKE_VALUES = tuple(sorted(status.value for status in ACTIVE_LIKE_STATUSES))


@contextmanager
def managed_connection(conn: Optional[PgConnection] = None):
    """Context manager that manages transaction boundaries for optional connections."""

    if conn is not None:
        yield conn, False
        return

    connection = get_conn()
    try:
        yield connection, True
        connection.commit()
    except Exception:
        connection.rollback()
        raise
    finally:
        connection.close()


def _row_to_subscription(row: dict) -> Subscription:
    return Subscription(
        id=int(row["id"]),
        user_id=int(row["user_id"]),
        tier=SubscriptionTier(row["tier"]),
        status=SubscriptionStatus(row["status"]),
        current_period_start=row["current_period_start"],
        current_period_end=row["current_period_end"],
    )


def _row_to_usage_period(row: dict) -> UsagePeriod:
    return UsagePeriod(
        id=int(row["id"]),
        subscription_id=int(row["user_subscriptions_id"]),
        user_id=int(row["user_id"]),
        period_start=row["period_start"],
        period_end=row["period_end"],
        videos_processed=int(row.get("videos_processed") or 0),
        api_calls_made=int(row.get("api_calls_made") or 0),
        storage_used_mb=int(row.get("storage_used_mb") or 0),
        ai_summaries_generated=int(row.get("ai_summaries_generated") or 0),
        analytics_views=int(row.get("analytics_views") or 0),
    )


def _row_to_grant(row: dict) -> Grant:
    tier_override = row.get("tier_override")
    video_limit_override = row.get("video_limit_override")
    return Grant(
        id=int(row["id"]),
        user_id=int(row["user_id"]),
        grant_type=GrantType(row["grant_type"]),
        tier_override=SubscriptionTier(tier_override) if tier_override else None,
        video_limit_override=int(video_limit_override) if video_limit_override is not None else None,
        is_active=bool(row["is_active"]),
        expires_at=row.get("expires_at"),
        granted_by_id=int(row["granted_by_id"]),
        reason=row.get("reason"),
        created_at=row["created_at"],
        revoked_at=row.get("revoked_at"),
        revoked_by_id=row.get("revoked_by_id"),
    )


def _row_to_user(row: dict) -> AccountUser:
    return AccountUser(
        id=int(row["id"]),
        email=row.get("email"),
        legacy_id=row.get("legacy_id"),
        role=row.get("role") or "user",
        subscription_tier=SubscriptionTier(row.get("subscription_tier") or SubscriptionTier.FREE.value),
        subscription_status=SubscriptionStatus(row.get("subscription_status") or SubscriptionStatus.NONE.value),
        free_video_used=bool(row.get("free_video_used")),
    )


def _set_user_tier(cursor: PgCursor, user_id: int, tier: SubscriptionTier) -> None:
    cursor.execute(
        "UPDATE users SET subscription_tier = %s WHERE id = %s",
        (tier.value, user_id),
    )
    if cursor.rowcount == 0:
        raise LookupError(f"User {user_id} not found")


class _PostgresStore:
    """Shared cursor handling; blocking psycopg2 calls run in the threadpool."""

    def __init__(self, *, conn: Optional[PgConnection] = None) -> None:
        self._conn = conn

    @contextmanager
    def _cursor(self) -> Iterator[PgCursor]:
        with managed_connection(self._conn) as (connection, _managed):
            cursor = connection.cursor(cursor_factory=psycopg2.extras.RealDictCursor)
            try:
                yield cursor
            finally:
                cursor.close()

    async def _run(self, func: Callable[..., T], *args: Any) -> T:
        return await run_in_threadpool(func, *args)


class PostgresSubscriptionStore(_PostgresStore):
    """Reads ``user_subscriptions`` rows maintained by billing-event handling."""

    async def get_active_subscription(self, user_id: int) -> Optional[Subscription]:
        return await self._run(self._get_active_subscription, user_id)

    def _get_active_subscription(self, user_id: int) -> Optional[Subscription]:
        with self._cursor() as cursor:
            cursor.execute(
                """
                SELECT id, user_id, tier, status, current_period_start, current_period_end
                FROM user_subscriptions
                WHERE user_id = %s AND status IN %s
                ORDER BY created_at DESC, id DESC
                LIMIT 1
                """,
                (user_id, _ACTIVE_LIKE_VALUES),
            )
            row = cursor.fetchone()
            return _row_to_subscription(row) if row else None


class PostgresUsagePeriodStore(_PostgresStore):
    """Concrete store persisting usage counters in ``subscription_usage``."""

    async def find_period(self, subscription_id: int, at) -> Optional[UsagePeriod]:
        return await self._run(self._find_period, subscription_id, at)

    async def create_period(self, period: UsagePeriod) -> UsagePeriod:
        return await self._run(self._create_period, period)

    async def increment_counter(
        self,
        period_id: int,
        resource: ResourceType,
        amount: int,
    ) -> UsagePeriod:
        return await self._run(self._increment_counter, period_id, resource, amount)

    def _find_period(self, subscription_id: int, at) -> Optional[UsagePeriod]:
        with self._cursor() as cursor:
            cursor.execute(
                """
                SELECT *
                FROM subscription_usage
                WHERE user_subscriptions_id = %s
                  AND period_start <= %s
                  AND period_end >= %s
                ORDER BY period_start DESC
                LIMIT 1
                """,
                (subscription_id, at, at),
            )
            row = cursor.fetchone()
            return _row_to_usage_period(row) if row else None

    def _create_period(self, period: UsagePeriod) -> UsagePeriod:
        with self._cursor() as cursor:
            cursor.execute(
                """
                INSERT INTO subscription_usage (
                    user_subscriptions_id,
                    user_id,
                    period_start,
                    period_end,
                    videos_processed,
                    api_calls_made,
                    storage_used_mb,
                    ai_summaries_generated,
                    analytics_views
                )
                VALUES (%(subscription_id)s, %(user_id)s, %(period_start)s, %(period_end)s,
                        %(videos_processed)s, %(api_calls_made)s, %(storage_used_mb)s,
                        %(ai_summaries_generated)s, %(analytics_views)s)
                ON CONFLICT (user_subscriptions_id, period_start) DO UPDATE SET
                    videos_processed = COALESCE(subscription_usage.videos_processed, 0) + EXCLUDED.videos_processed,
                    api_calls_made = COALESCE(subscription_usage.api_calls_made, 0) + EXCLUDED.api_calls_made,
                    storage_used_mb = COALESCE(subscription_usage.storage_used_mb, 0) + EXCLUDED.storage_used_mb,
                    ai_summaries_generated =
                        COALESCE(subscription_usage.ai_summaries_generated, 0) + EXCLUDED.ai_summaries_generated,
                    analytics_views = COALESCE(subscription_usage.analytics_views, 0) + EXCLUDED.analytics_views,
                    updated_at = NOW()
                RETURNING *
                """,
                {
                    "subscription_id": period.subscription_id,
                    "user_id": period.user_id,
                    "period_start": period.period_start,
                    "period_end": period.period_end,
                    "videos_processed": period.videos_processed,
                    "api_calls_made": period.api_calls_made,
                    "storage_used_mb": period.storage_used_mb,
                    "ai_summaries_generated": period.ai_summaries_generated,
                    "analytics_views": period.analytics_views,
                },
            )
            row = cursor.fetchone()
            if not row:
                raise RuntimeError("Failed to persist usage period")
            return _row_to_usage_period(row)

    def _increment_counter(self, period_id: int, resource: ResourceType, amount: int) -> UsagePeriod:
        column = sql.Identifier(resource.counter_field)
        statement = sql.SQL(
            """
            UPDATE subscription_usage
            SET {column} = COALESCE({column}, 0) + %s,
                updated_at = NOW()
            WHERE id = %s
            RETURNING *
            """
        ).format(column=column)
        with self._cursor() as cursor:
            cursor.execute(statement, (amount, period_id))
            row = cursor.fetchone()
            if not row:
                raise LookupError(f"Usage period {period_id} not found")
            return _row_to_usage_period(row)


class PostgresGrantStore(_PostgresStore):
    """Concrete store for ``user_grants``."""

    async def get_active_grant(self, user_id: int) -> Optional[Grant]:
        return await self._run(self._get_active_grant, user_id)

    async def get_grant(self, grant_id: int) -> Optional[Grant]:
        return await self._run(self._get_grant, grant_id)

    async def replace_active_grant(self, data: GrantCreate) -> Grant:
        return await self._run(self._replace_active_grant, data)

    async def deactivate_grant(self, grant_id: int, revoked_by_id: int) -> Optional[Grant]:
        return await self._run(self._deactivate_grant, grant_id, revoked_by_id)

    async def list_grants(self, user_id: int) -> Sequence[Grant]:
        return await self._run(self._list_grants, user_id)

    def _get_active_grant(self, user_id: int) -> Optional[Grant]:
        with self._cursor() as cursor:
            cursor.execute(
                """
                SELECT *
                FROM user_grants
                WHERE user_id = %s AND is_active = TRUE
                ORDER BY created_at DESC, id DESC
                LIMIT 1
                """,
                (user_id,),
            )
            row = cursor.fetchone()
            return _row_to_grant(row) if row else None

    def _get_grant(self, grant_id: int) -> Optional[Grant]:
        with self._cursor() as cursor:
            cursor.execute("SELECT * FROM user_grants WHERE id = %s LIMIT 1", (grant_id,))
            row = cursor.fetchone()
            return _row_to_grant(row) if row else None

    def _replace_active_grant(self, data: GrantCreate) -> Grant:
        # Every statement shares one cursor, so they commit or roll back together.
        with self._cursor() as cursor:
            cursor.execute(
                """
                UPDATE user_grants
                SET is_active = FALSE,
                    revoked_at = NOW(),
                    revoked_by_id = %s
                WHERE user_id = %s AND is_active = TRUE
                """,
                (data.granted_by_id, data.user_id),
            )
            cursor.execute(
                """
                INSERT INTO user_grants (
                    user_id,
                    grant_type,
                    tier_override,
                    video_limit_override,
                    is_active,
                    expires_at,
                    granted_by_id,
                    reason
                )
                VALUES (%(user_id)s, %(grant_type)s, %(tier_override)s, %(video_limit_override)s,
                        TRUE, %(expires_at)s, %(granted_by_id)s, %(reason)s)
                RETURNING *
                """,
                {
                    "user_id": data.user_id,
                    "grant_type": data.grant_type.value,
                    "tier_override": data.tier_override.value if data.tier_override else None,
                    "video_limit_override": data.video_limit_override,
                    "expires_at": data.expires_at,
                    "granted_by_id": data.granted_by_id,
                    "reason": data.reason,
                },
            )
            row = cursor.fetchone()
            if not row:
                raise RuntimeError("Failed to persist grant")
            grant = _row_to_grant(row)
            if grant.grant_type == GrantType.FULL_ACCESS and grant.tier_override is not None:
                _set_user_tier(cursor, grant.user_id, grant.tier_override)
            return grant

    def _deactivate_grant(self, grant_id: int, revoked_by_id: int) -> Optional[Grant]:
        with self._cursor() as cursor:
            cursor.execute(
                """
                UPDATE user_grants
                SET is_active = FALSE,
                    revoked_at = NOW(),
                    revoked_by_id = %s
                WHERE id = %s AND is_active = TRUE
                RETURNING *
                """,
                (revoked_by_id, grant_id),
            )
            row = cursor.fetchone()
            if not row:
                return None
            grant = _row_to_grant(row)
            if grant.grant_type == GrantType.FULL_ACCESS:
                _set_user_tier(cursor, grant.user_id, SubscriptionTier.FREE)
            return grant

    def _list_grants(self, user_id: int) -> Sequence[Grant]:
        with self._cursor() as cursor:
            cursor.execute(
                """
                SELECT *
                FROM user_grants
                WHERE user_id = %s
                ORDER BY created_at DESC, id DESC
                """,
                (user_id,),
            )
            rows = cursor.fetchall() or []
            return [_row_to_grant(row) for row in rows]


class PostgresUserStore(_PostgresStore):
    """Account columns relevant to gating on the ``users`` table."""

    async def get_user(self, user_id: int) -> Optional[AccountUser]:
        return await self._run(self._get_user, user_id)

    async def resolve_user_id(self, identifier: Identifier) -> Optional[int]:
        return await self._run(self._resolve_user_id, identifier)

    async def mark_free_video_used(self, user_id: int) -> bool:
        return await self._run(self._mark_free_video_used, user_id)

    def _get_user(self, user_id: int) -> Optional[AccountUser]:
        with self._cursor() as cursor:
            cursor.execute(
                """
                SELECT id, email, legacy_id, role, subscription_tier,
                       subscription_status, free_video_used
                FROM users
                WHERE id = %s
                """,
                (user_id,),
            )
            row = cursor.fetchone()
            return _row_to_user(row) if row else None

    def _resolve_user_id(self, identifier: Identifier) -> Optional[int]:
        if isinstance(identifier, NumericId):
            query, params = "SELECT id FROM users WHERE id = %s", (identifier.value,)
        elif isinstance(identifier, Email):
            query, params = "SELECT id FROM users WHERE LOWER(email) = LOWER(%s)", (identifier.value,)
        elif isinstance(identifier, LegacyId):
            query, params = "SELECT id FROM users WHERE legacy_id = %s", (identifier.value,)
        else:
            raise TypeError(f"Unsupported identifier: {identifier!r}")

        with self._cursor() as cursor:
            cursor.execute(query, params)
            row = cursor.fetchone()
            return int(row["id"]) if row else None

    def _mark_free_video_used(self, user_id: int) -> bool:
        with self._cursor() as cursor:
            cursor.execute(
                """
                UPDATE users
                SET free_video_used = TRUE
                WHERE id = %s AND COALESCE(free_video_used, FALSE) = FALSE
                """,
                (user_id,),
            )
            return cursor.rowcount > 0


__all__ = [
    "PostgresGrantStore",
    "PostgresSubscriptionStore",
    "PostgresUsagePeriodStore",
    "PostgresUserStore",
    "managed_connection",
]
