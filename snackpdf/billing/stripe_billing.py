from __future__ import annotations

import json
from typing import Any, Dict, Optional, Tuple

import stripe

from snackpdf.config import Config
from snackpdf.db import connect
from snackpdf.util.time import ts_to_iso, utcnow_iso

from .store import mark_subscription_cancelled, upsert_subscription


def _debug(msg: str) -> None:
    print(f"[billing] {msg}")


# Stripe's vocabulary -> the statuses we store.
_STATUS_MAP = {
    "active": "active",
    "trialing": "trialing",
    "past_due": "past_due",
    "canceled": "cancelled",
    "cancelled": "cancelled",
    "unpaid": "inactive",
    "incomplete": "inactive",
    "incomplete_expired": "inactive",
    "paused": "inactive",
}


class WebhookSignatureError(Exception):
    """The webhook request could not be proven to come from Stripe."""


def _get_stripe(cfg: Config) -> Any:
    if not cfg.STRIPE_SECRET_KEY:
        raise RuntimeError("stripe_secret_key_missing")
    stripe.api_key = cfg.STRIPE_SECRET_KEY
    stripe.api_version = cfg.STRIPE_API_VERSION
    return stripe


def _as_dict(obj: Any) -> Dict[str, Any]:
    if isinstance(obj, dict):
        return obj
    return obj.to_dict()


def normalize_status(status: str | None) -> str:
    return _STATUS_MAP.get((status or "").strip().lower(), "inactive")


# -----------------------------
# Checkout
# -----------------------------


def create_checkout_session(
    cfg: Config,
    *,
    price_id: str,
    user_id: str,
    user_email: str,
    origin: str | None = None,
) -> str:
    """Create a Stripe Checkout Session for the Pro subscription; returns the session id."""
    client = _get_stripe(cfg)
    base = (origin or cfg.PUBLIC_APP_URL).rstrip("/")

    session = client.checkout.Session.create(
        mode="subscription",
        payment_method_types=["card"],
        line_items=[{"price": price_id, "quantity": 1}],
        success_url=f"{base}/#/subscription/success",
        cancel_url=f"{base}/#/subscription",
        customer_email=user_email,
        # user_id on both objects lets every later webhook map back to our user.
        metadata={"user_id": user_id},
        subscription_data={"metadata": {"user_id": user_id}},
    )
    session_id = getattr(session, "id", None)
    if not session_id:
        raise RuntimeError("stripe_session_id_missing")
    return str(session_id)


# -----------------------------
# Webhooks
# -----------------------------


def verify_webhook(cfg: Config, *, payload_bytes: bytes, signature: str | None) -> Dict[str, Any]:
    """Check the Stripe-Signature header and return the event payload as plain dicts."""
    client = _get_stripe(cfg)
    if not cfg.STRIPE_WEBHOOK_SECRET:
        raise RuntimeError("stripe_webhook_secret_missing")

    if not signature:
        raise WebhookSignatureError("No signature")

    try:
        client.Webhook.construct_event(payload_bytes, signature, cfg.STRIPE_WEBHOOK_SECRET)
    except (ValueError, stripe.SignatureVerificationError) as e:
        raise WebhookSignatureError(f"Webhook Error: {e}") from e

    # The bytes are trusted from here on; work on plain JSON rather than StripeObjects.
    return json.loads(payload_bytes)


def process_stripe_webhook(
    cfg: Config,
    *,
    payload_bytes: bytes,
    signature: str | None,
) -> Tuple[str, bool]:
    """Verify + process a Stripe webhook.

    Returns: (event_id, processed). processed is False for a redelivered event id.
    """
    event = verify_webhook(cfg, payload_bytes=payload_bytes, signature=signature)
    event_id = str(event.get("id") or "")
    event_type = str(event.get("type") or "")
    _debug(f"received event: {event_type} id={event_id}")

    # Delivery bookkeeping: remember the event id first; a repeat is acknowledged as-is.
    with connect(cfg.DB_DSN) as conn:
        seen = conn.execute("SELECT 1 FROM stripe_events WHERE event_id=?", (event_id,)).fetchone()
        if seen is not None:
            return event_id, False
        conn.execute(
            "INSERT INTO stripe_events (event_id, event_type, received_at) VALUES (?,?,?)",
            (event_id, event_type, utcnow_iso()),
        )

    # If a handler raises, forget the event id so Stripe's retry is processed again.
    try:
        handle_event(cfg, event)
    except Exception:
        # Best-effort: a failed cleanup must not mask the handler error.
        try:
            with connect(cfg.DB_DSN) as conn:
                conn.execute("DELETE FROM stripe_events WHERE event_id=?", (event_id,))
        except Exception as cleanup_error:
            _debug(f"could not forget event {event_id}: {cleanup_error!r}")
        raise

    return event_id, True


def handle_event(cfg: Config, event: Dict[str, Any]) -> None:
    """Dispatch one verified event by type."""
    event_type = str(event.get("type") or "")
    obj = (event.get("data") or {}).get("object") or {}
    event_at = ts_to_iso(event.get("created")) or utcnow_iso()

    if event_type == "checkout.session.completed":
        _handle_checkout_completed(cfg, obj, event_at=event_at)
    elif event_type in ("customer.subscription.created", "customer.subscription.updated"):
        _handle_subscription_update(cfg, obj, event_at=event_at)
    elif event_type == "customer.subscription.deleted":
        _handle_subscription_deleted(cfg, obj, event_at=event_at)
    elif event_type == "invoice.payment_succeeded":
        _debug(f"payment succeeded for invoice: {obj.get('id')}")
    elif event_type == "invoice.payment_failed":
        _debug(f"payment failed for invoice: {obj.get('id')}")
    else:
        _debug(f"unhandled event type: {event_type}")


def _metadata_user_id(obj: Dict[str, Any]) -> Optional[str]:
    user_id = (obj.get("metadata") or {}).get("user_id")
    return str(user_id) if user_id else None


def _handle_checkout_completed(cfg: Config, session: Dict[str, Any], *, event_at: str) -> None:
    user_id = _metadata_user_id(session)
    subscription_id = session.get("subscription")
    if not user_id or not subscription_id:
        _debug("checkout.session.completed: missing user_id or subscription id in session metadata")
        return

    # The session only carries the id; fetch the full subscription.
    sub = _as_dict(_get_stripe(cfg).Subscription.retrieve(str(subscription_id)))
    _upsert_from_stripe(cfg, user_id, sub, event_at=event_at)


def _handle_subscription_update(cfg: Config, sub: Dict[str, Any], *, event_at: str) -> None:
    user_id = _metadata_user_id(sub)
    if not user_id:
        _debug(f"subscription {sub.get('id')}: missing user_id in metadata")
        return
    _upsert_from_stripe(cfg, user_id, sub, event_at=event_at)


def _handle_subscription_deleted(cfg: Config, sub: Dict[str, Any], *, event_at: str) -> None:
    user_id = _metadata_user_id(sub)
    if not user_id:
        _debug(f"subscription {sub.get('id')}: missing user_id in metadata")
        return
    with connect(cfg.DB_DSN) as conn:
        if not mark_subscription_cancelled(conn, user_id=user_id, updated_at=event_at):
            _debug(f"cancel skipped (no row or newer state) user_id={user_id}")


def subscription_fields(sub: Dict[str, Any]) -> Dict[str, Any]:
    """Full stored state for one Stripe subscription object."""
    items = (sub.get("items") or {}).get("data") or []
    first = items[0] if items else {}
    price = first.get("price") or {}

    customer = sub.get("customer")
    if isinstance(customer, dict):
        customer = customer.get("id")

    # Newer API versions moved the billing period onto the subscription items.
    period_start = sub.get("current_period_start") or first.get("current_period_start")
    period_end = sub.get("current_period_end") or first.get("current_period_end")

    return {
        "stripe_subscription_id": sub.get("id"),
        "stripe_customer_id": str(customer) if customer else None,
        "status": normalize_status(sub.get("status")),
        "price_id": price.get("id"),
        "current_period_start": ts_to_iso(period_start),
        "current_period_end": ts_to_iso(period_end),
        "cancel_at_period_end": bool(sub.get("cancel_at_period_end")),
    }


def _upsert_from_stripe(cfg: Config, user_id: str, sub: Dict[str, Any], *, event_at: str) -> None:
    fields = subscription_fields(sub)
    with connect(cfg.DB_DSN) as conn:
        written = upsert_subscription(conn, user_id=user_id, updated_at=event_at, **fields)
    if written:
        _debug(f"upserted subscription for user: {user_id} status={fields['status']}")
    else:
        _debug(f"skipped older subscription state for user: {user_id}")
