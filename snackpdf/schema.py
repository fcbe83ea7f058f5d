"""Database schema for SnackPDF.

SQLite is the default engine; Postgres is supported for hosted deployments.

Timestamps are ISO-8601 TEXT (UTC, with 'Z'). ISO strings sort lexicographically in
time order, which the subscription upsert relies on for its stale-write guard
(`excluded.updated_at >= subscriptions.updated_at`).

NOTE: The Postgres schema is generated from the SQLite schema with a small set of
transformations (types + pragmas).
"""

from __future__ import annotations

import re


SCHEMA_SQLITE = r"""
PRAGMA foreign_keys = ON;

CREATE TABLE IF NOT EXISTS app_config (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL
);

-- Users (local identity provider)
-- user_id is an opaque string (uuid hex) so it can come from any identity provider.
CREATE TABLE IF NOT EXISTS users (
    user_id TEXT PRIMARY KEY,
    email TEXT NOT NULL UNIQUE,
    password_hash TEXT NOT NULL,
    name TEXT,
    avatar TEXT,
    is_active INTEGER NOT NULL DEFAULT 1,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    last_login_at TEXT
);

-- Subscriptions: exactly one row per user, overwritten by every Stripe event (last full state wins).
CREATE TABLE IF NOT EXISTS subscriptions (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL UNIQUE,
    stripe_subscription_id TEXT,
    stripe_customer_id TEXT,
    status TEXT NOT NULL DEFAULT 'inactive', -- active|inactive|cancelled|past_due|trialing
    price_id TEXT,
    current_period_start TEXT,
    current_period_end TEXT,
    cancel_at_period_end INTEGER NOT NULL DEFAULT 0,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_subscriptions_status ON subscriptions (status);
CREATE INDEX IF NOT EXISTS idx_subscriptions_customer ON subscriptions (stripe_customer_id);

-- Per-user upload ceiling overrides (support / enterprise deals)
CREATE TABLE IF NOT EXISTS user_file_limits (
    user_id TEXT PRIMARY KEY,
    max_file_size_mb REAL NOT NULL,
    updated_at TEXT NOT NULL
);

-- Stripe webhook delivery bookkeeping
CREATE TABLE IF NOT EXISTS stripe_events (
    event_id TEXT PRIMARY KEY,
    event_type TEXT NOT NULL,
    received_at TEXT NOT NULL
);
"""


def _sqlite_to_postgres(ddl: str) -> str:
    lines = [ln for ln in ddl.splitlines() if not ln.strip().upper().startswith("PRAGMA ")]
    out = "\n".join(lines)
    return re.sub(r"\bREAL\b", "DOUBLE PRECISION", out)


SCHEMA_POSTGRES = _sqlite_to_postgres(SCHEMA_SQLITE)


def get_schema_sql(dialect: str) -> str:
    d = (dialect or "").lower()
    if d.startswith("post"):
        return SCHEMA_POSTGRES
    return SCHEMA_SQLITE
