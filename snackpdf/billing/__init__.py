"""Billing: Stripe checkout + webhooks on the server, subscription sync on the client side."""

from .store import NO_ROWS, DbSubscriptionStore, StoreError, SubscriptionStore
from .sync import DEFAULT_FILE_SIZE_LIMIT_MB, SubscriptionSync

__all__ = [
    "DEFAULT_FILE_SIZE_LIMIT_MB",
    "DbSubscriptionStore",
    "NO_ROWS",
    "StoreError",
    "SubscriptionStore",
    "SubscriptionSync",
]
