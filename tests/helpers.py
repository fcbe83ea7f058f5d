"""Builders for Stripe payloads, users and a scriptable identity provider."""

from __future__ import annotations

import hashlib
import hmac
import json
import time
from typing import Any, Dict, List, Optional

from snackpdf.auth.provider import AuthError, IdentityProvider
from snackpdf.models import AuthSession, User

WEBHOOK_SECRET = "whsec_test_secret"


def sign_payload(payload: bytes, secret: str = WEBHOOK_SECRET, timestamp: Optional[int] = None) -> str:
    """Build a Stripe-Signature header for *payload*."""
    ts = int(time.time()) if timestamp is None else timestamp
    signed = f"{ts}.".encode() + payload
    sig = hmac.new(secret.encode(), signed, hashlib.sha256).hexdigest()
    return f"t={ts},v1={sig}"


def make_event(event_type: str, obj: Dict[str, Any], *, event_id: str = "evt_1", created: int = 1_700_000_000) -> bytes:
    return json.dumps(
        {
            "id": event_id,
            "object": "event",
            "type": event_type,
            "created": created,
            "data": {"object": obj},
        }
    ).encode()


def make_subscription(
    *,
    sub_id: str = "sub_1",
    user_id: Optional[str] = "user-1",
    status: str = "active",
    price_id: str = "price_pro_monthly",
    cancel_at_period_end: bool = False,
) -> Dict[str, Any]:
    return {
        "id": sub_id,
        "object": "subscription",
        "customer": "cus_1",
        "status": status,
        "cancel_at_period_end": cancel_at_period_end,
        "current_period_start": 1_700_000_000,
        "current_period_end": 1_702_592_000,
        "metadata": {"user_id": user_id} if user_id else {},
        "items": {"object": "list", "data": [{"id": "si_1", "price": {"id": price_id}}]},
    }


def make_user(user_id: str = "user-1", email: str = "alice@example.com") -> User:
    return User(id=user_id, email=email, created_at="2024-01-01T00:00:00Z")


class FakeIdentityProvider(IdentityProvider):
    """Provider whose notifications are pushed by the test."""

    def __init__(self, session: Optional[AuthSession] = None, sign_out_error: Optional[str] = None) -> None:
        self.session = session
        self.sign_out_error = sign_out_error
        self.listeners: List[Any] = []

    def on_auth_state_change(self, callback):
        self.listeners.append(callback)

        def unsubscribe() -> None:
            if callback in self.listeners:
                self.listeners.remove(callback)

        return unsubscribe

    async def get_session(self):
        return self.session

    async def sign_out(self) -> None:
        if self.sign_out_error:
            raise AuthError(self.sign_out_error)
        self.session = None

    def emit(self, event: str, session: Optional[AuthSession]) -> None:
        self.session = session
        for listener in list(self.listeners):
            listener(event, session)

    def sign_in_as(self, user: User) -> None:
        self.emit("SIGNED_IN", AuthSession(access_token=f"token-{user.id}", user=user))
