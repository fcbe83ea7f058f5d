"""Subscription persistence.

Two layers:

- sync helpers taking an open connection (used by the webhook handlers, inside one
  transaction per event)
- `SubscriptionStore`, the async boundary the client-side sync engine talks to. Failures
  surface as `StoreError`; a missing row is `StoreError(NO_ROWS)`, which callers treat
  as an empty result rather than a failure.
"""

from __future__ import annotations

import asyncio
import uuid
from typing import Any, Callable, Optional, TypeVar

from snackpdf.config import Config
from snackpdf.db import connect
from snackpdf.models import Subscription, is_subscription_active

T = TypeVar("T")

# Same code PostgREST uses for "no rows returned" on a single-row select.
NO_ROWS = "PGRST116"
STORE_UNAVAILABLE = "store_unavailable"


class StoreError(Exception):
    def __init__(self, code: str, message: str = "") -> None:
        super().__init__(message or code)
        self.code = code
        self.message = message or code


# -----------------------------
# Sync helpers (one connection)
# -----------------------------


def get_subscription_row(conn: Any, user_id: str) -> Optional[Any]:
    return conn.execute("SELECT * FROM subscriptions WHERE user_id=?", (str(user_id),)).fetchone()


def upsert_subscription(
    conn: Any,
    *,
    user_id: str,
    status: str,
    updated_at: str,
    stripe_subscription_id: str | None = None,
    stripe_customer_id: str | None = None,
    price_id: str | None = None,
    current_period_start: str | None = None,
    current_period_end: str | None = None,
    cancel_at_period_end: bool = False,
) -> bool:
    """Write the full subscription state for *user_id* (one row per user).

    Every column is overwritten, never patched, so replaying an event converges on the
    same row. `updated_at` is the provider's event time; a write older than the stored
    row is skipped. Returns whether the row was written.
    """
    cur = conn.execute(
        """
        INSERT INTO subscriptions (
            id, user_id, stripe_subscription_id, stripe_customer_id, status, price_id,
            current_period_start, current_period_end, cancel_at_period_end, created_at, updated_at
        ) VALUES (?,?,?,?,?,?,?,?,?,?,?)
        ON CONFLICT(user_id) DO UPDATE SET
            stripe_subscription_id=excluded.stripe_subscription_id,
            stripe_customer_id=excluded.stripe_customer_id,
            status=excluded.status,
            price_id=excluded.price_id,
            current_period_start=excluded.current_period_start,
            current_period_end=excluded.current_period_end,
            cancel_at_period_end=excluded.cancel_at_period_end,
            updated_at=excluded.updated_at
        WHERE excluded.updated_at >= subscriptions.updated_at
        """,
        (
            uuid.uuid4().hex,
            str(user_id),
            stripe_subscription_id,
            stripe_customer_id,
            status,
            price_id,
            current_period_start,
            current_period_end,
            1 if cancel_at_period_end else 0,
            updated_at,
            updated_at,
        ),
    )
    return cur.rowcount > 0


def mark_subscription_cancelled(conn: Any, *, user_id: str, updated_at: str) -> bool:
    """Set status to 'cancelled' (the row is kept). Same stale-write rule as the upsert."""
    cur = conn.execute(
        """
        UPDATE subscriptions
        SET status='cancelled', updated_at=?
        WHERE user_id=? AND updated_at <= ?
        """,
        (updated_at, str(user_id), updated_at),
    )
    return cur.rowcount > 0


def get_file_size_limit(conn: Any, cfg: Config, user_id: str) -> float:
    """Upload ceiling in MB: explicit override, else pro limit for paying users, else free."""
    row = conn.execute(
        "SELECT max_file_size_mb FROM user_file_limits WHERE user_id=?",
        (str(user_id),),
    ).fetchone()
    if row is not None and row["max_file_size_mb"] is not None:
        return float(row["max_file_size_mb"])

    if cfg.BILLING_DEV_BYPASS:
        return float(cfg.PRO_FILE_SIZE_LIMIT_MB)

    sub = get_subscription_row(conn, user_id)
    if sub is not None and is_subscription_active(sub["status"]):
        return float(cfg.PRO_FILE_SIZE_LIMIT_MB)
    return float(cfg.FREE_FILE_SIZE_LIMIT_MB)


def set_file_size_limit(conn: Any, *, user_id: str, max_file_size_mb: float, updated_at: str) -> None:
    conn.execute(
        """
        INSERT INTO user_file_limits (user_id, max_file_size_mb, updated_at) VALUES (?,?,?)
        ON CONFLICT(user_id) DO UPDATE SET
            max_file_size_mb=excluded.max_file_size_mb, updated_at=excluded.updated_at
        """,
        (str(user_id), float(max_file_size_mb), updated_at),
    )


def can_upload_file(conn: Any, cfg: Config, user_id: str, file_size_mb: float) -> bool:
    size = float(file_size_mb)
    return 0 <= size <= get_file_size_limit(conn, cfg, user_id)


# -----------------------------
# Async boundary
# -----------------------------


class SubscriptionStore:
    """What the subscription sync engine needs from persistence."""

    async def get_subscription(self, user_id: str) -> Subscription:
        raise NotImplementedError

    async def get_file_size_limit(self, user_id: str) -> Optional[float]:
        raise NotImplementedError

    async def can_upload_file(self, user_id: str, file_size_mb: float) -> bool:
        raise NotImplementedError


class DbSubscriptionStore(SubscriptionStore):
    """`SubscriptionStore` on the app database; queries run in a worker thread."""

    def __init__(self, cfg: Config) -> None:
        self._cfg = cfg

    async def _run(self, fn: Callable[[Any], T]) -> T:
        def _call() -> T:
            with connect(self._cfg.DB_DSN) as conn:
                return fn(conn)

        try:
            return await asyncio.to_thread(_call)
        except StoreError:
            raise
        except Exception as e:
            raise StoreError(STORE_UNAVAILABLE, str(e)) from e

    async def get_subscription(self, user_id: str) -> Subscription:
        row = await self._run(lambda conn: get_subscription_row(conn, user_id))
        if row is None:
            raise StoreError(NO_ROWS, "no subscription row")
        return Subscription.from_row(row)

    async def get_file_size_limit(self, user_id: str) -> Optional[float]:
        return await self._run(lambda conn: get_file_size_limit(conn, self._cfg, user_id))

    async def can_upload_file(self, user_id: str, file_size_mb: float) -> bool:
        return await self._run(lambda conn: can_upload_file(conn, self._cfg, user_id, file_size_mb))
