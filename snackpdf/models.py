from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional


# Subscription statuses as stored in the `subscriptions` table.
SUBSCRIPTION_STATUSES = ("active", "inactive", "cancelled", "past_due", "trialing")
ACTIVE_STATUSES = ("active", "trialing")


def is_subscription_active(status: str | None) -> bool:
    """True iff the status grants paid features (active or trialing)."""
    return (status or "") in ACTIVE_STATUSES


@dataclass(frozen=True)
class Route:
    """A registered page. Identity is `path` (the pattern, may contain `:param` segments).

    `loader` is an opaque handle supplied by the UI layer (lazy page component).
    """

    path: str
    title: str
    requires_auth: bool = False
    breadcrumb: str = ""
    loader: Optional[Callable[[], Any]] = field(default=None, compare=False, repr=False)


@dataclass(frozen=True)
class User:
    id: str
    email: str
    created_at: str
    name: str | None = None
    avatar: str | None = None


@dataclass(frozen=True)
class AuthSession:
    access_token: str
    user: User


@dataclass
class AuthState:
    user: Optional[User] = None
    is_authenticated: bool = False
    is_loading: bool = True
    error: str | None = None


@dataclass(frozen=True)
class Subscription:
    id: str
    user_id: str
    status: str
    price_id: str | None
    current_period_start: str | None
    current_period_end: str | None
    cancel_at_period_end: bool
    created_at: str
    updated_at: str

    @classmethod
    def from_row(cls, row: Any | Dict[str, Any]) -> "Subscription":
        d = dict(row)
        return cls(
            id=str(d["id"]),
            user_id=str(d["user_id"]),
            status=str(d.get("status") or "inactive"),
            price_id=d.get("price_id"),
            current_period_start=d.get("current_period_start"),
            current_period_end=d.get("current_period_end"),
            cancel_at_period_end=bool(d.get("cancel_at_period_end") or 0),
            created_at=str(d["created_at"]),
            updated_at=str(d["updated_at"]),
        )

    @property
    def is_active(self) -> bool:
        return is_subscription_active(self.status)


@dataclass
class SubscriptionState:
    """Read-through cache of the signed-in user's subscription.

    `is_subscribed` is derived from the cached row, never stored.
    """

    subscription: Optional[Subscription] = None
    is_loading: bool = True
    error: str | None = None

    @property
    def is_subscribed(self) -> bool:
        return self.subscription is not None and self.subscription.is_active
