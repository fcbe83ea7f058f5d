"""Tests for snackpdf.billing.stripe_billing: webhook processing and checkout sessions."""

import json
from dataclasses import replace
from types import SimpleNamespace

import pytest
import stripe

from snackpdf.billing import stripe_billing
from snackpdf.billing.store import get_subscription_row
from snackpdf.billing.stripe_billing import (
    WebhookSignatureError,
    create_checkout_session,
    normalize_status,
    process_stripe_webhook,
    subscription_fields,
)
from snackpdf.db import connect

from .helpers import make_event, make_subscription, sign_payload


def _deliver(cfg, payload: bytes):
    return process_stripe_webhook(cfg, payload_bytes=payload, signature=sign_payload(payload))


def _row(cfg, user_id="user-1"):
    with connect(cfg.DB_DSN) as conn:
        row = get_subscription_row(conn, user_id)
        return dict(row) if row is not None else None


def _event_ids(cfg):
    with connect(cfg.DB_DSN) as conn:
        return [r["event_id"] for r in conn.execute("SELECT event_id FROM stripe_events").fetchall()]


class TestNormalizeStatus:
    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("active", "active"),
            ("trialing", "trialing"),
            ("past_due", "past_due"),
            ("canceled", "cancelled"),
            ("unpaid", "inactive"),
            ("incomplete_expired", "inactive"),
            ("something_new", "inactive"),
            (None, "inactive"),
        ],
    )
    def test_mapping(self, raw, expected) -> None:
        assert normalize_status(raw) == expected


class TestSubscriptionFields:
    def test_reads_subscription(self) -> None:
        fields = subscription_fields(make_subscription(cancel_at_period_end=True))
        assert fields["stripe_subscription_id"] == "sub_1"
        assert fields["stripe_customer_id"] == "cus_1"
        assert fields["price_id"] == "price_pro_monthly"
        assert fields["current_period_start"] == "2023-11-14T22:13:20Z"
        assert fields["cancel_at_period_end"] is True

    def test_period_falls_back_to_items(self) -> None:
        sub = make_subscription()
        del sub["current_period_start"]
        del sub["current_period_end"]
        sub["items"]["data"][0]["current_period_start"] = 1_700_000_000
        sub["items"]["data"][0]["current_period_end"] = 1_702_592_000
        fields = subscription_fields(sub)
        assert fields["current_period_start"] == "2023-11-14T22:13:20Z"
        assert fields["current_period_end"] is not None

    def test_expanded_customer_and_no_items(self) -> None:
        sub = make_subscription()
        sub["customer"] = {"id": "cus_9", "object": "customer"}
        sub["items"] = {"data": []}
        fields = subscription_fields(sub)
        assert fields["stripe_customer_id"] == "cus_9"
        assert fields["price_id"] is None


class TestSubscriptionEvents:
    def test_updated_creates_row(self, cfg) -> None:
        event_id, processed = _deliver(cfg, make_event("customer.subscription.updated", make_subscription()))
        assert (event_id, processed) == ("evt_1", True)

        row = _row(cfg)
        assert row["status"] == "active"
        assert row["stripe_subscription_id"] == "sub_1"
        assert row["updated_at"] == "2023-11-14T22:13:20Z"

    def test_redelivery_is_acknowledged_without_processing(self, cfg) -> None:
        payload = make_event("customer.subscription.created", make_subscription())
        _deliver(cfg, payload)
        assert _deliver(cfg, payload) == ("evt_1", False)
        assert _event_ids(cfg) == ["evt_1"]

    def test_same_content_under_new_id_is_idempotent(self, cfg) -> None:
        _deliver(cfg, make_event("customer.subscription.updated", make_subscription(), event_id="evt_1"))
        once = _row(cfg)
        _deliver(cfg, make_event("customer.subscription.updated", make_subscription(), event_id="evt_2"))
        assert _row(cfg) == once

    def test_out_of_order_delivery_keeps_newest(self, cfg) -> None:
        newer = make_event(
            "customer.subscription.updated",
            make_subscription(status="past_due"),
            event_id="evt_new",
            created=1_700_000_500,
        )
        older = make_event("customer.subscription.updated", make_subscription(), event_id="evt_old")
        _deliver(cfg, newer)
        _deliver(cfg, older)
        assert _row(cfg)["status"] == "past_due"

    def test_missing_user_metadata_is_dropped(self, cfg) -> None:
        _, processed = _deliver(cfg, make_event("customer.subscription.updated", make_subscription(user_id=None)))
        assert processed
        with connect(cfg.DB_DSN) as conn:
            n = conn.execute("SELECT COUNT(*) AS n FROM subscriptions").fetchone()["n"]
        assert n == 0

    def test_deleted_marks_cancelled_and_keeps_row(self, cfg) -> None:
        _deliver(cfg, make_event("customer.subscription.created", make_subscription(), event_id="evt_1"))
        _deliver(
            cfg,
            make_event(
                "customer.subscription.deleted",
                make_subscription(status="canceled"),
                event_id="evt_2",
                created=1_700_100_000,
            ),
        )
        row = _row(cfg)
        assert row["status"] == "cancelled"
        assert row["stripe_subscription_id"] == "sub_1"
        assert row["price_id"] == "price_pro_monthly"

    def test_null_data_is_accepted_as_noop(self, cfg) -> None:
        payload = json.dumps(
            {"id": "evt_null", "object": "event", "type": "customer.subscription.updated", "created": 1_700_000_000, "data": None}
        ).encode()
        assert _deliver(cfg, payload) == ("evt_null", True)
        assert _row(cfg) is None

    @pytest.mark.parametrize("event_type", ["invoice.payment_succeeded", "invoice.payment_failed", "charge.refunded"])
    def test_other_events_change_nothing(self, cfg, event_type) -> None:
        _, processed = _deliver(cfg, make_event(event_type, {"id": "in_1", "object": "invoice"}))
        assert processed
        assert _row(cfg) is None


class TestCheckoutCompleted:
    def test_fetches_subscription_and_upserts(self, cfg, monkeypatch) -> None:
        requested = []

        def fake_retrieve(sub_id, **kwargs):
            requested.append(sub_id)
            return make_subscription(sub_id=sub_id, user_id="user-1", status="trialing")

        monkeypatch.setattr(stripe.Subscription, "retrieve", fake_retrieve)
        session = {"id": "cs_1", "object": "checkout.session", "subscription": "sub_42", "metadata": {"user_id": "user-1"}}

        _deliver(cfg, make_event("checkout.session.completed", session))

        assert requested == ["sub_42"]
        row = _row(cfg)
        assert row["status"] == "trialing"
        assert row["stripe_subscription_id"] == "sub_42"

    def test_missing_subscription_id_is_dropped(self, cfg, monkeypatch) -> None:
        def fail_retrieve(sub_id, **kwargs):
            raise AssertionError("should not fetch")

        monkeypatch.setattr(stripe.Subscription, "retrieve", fail_retrieve)
        session = {"id": "cs_1", "object": "checkout.session", "subscription": None, "metadata": {"user_id": "user-1"}}

        _, processed = _deliver(cfg, make_event("checkout.session.completed", session))

        assert processed
        assert _row(cfg) is None

    def test_handler_failure_forgets_event(self, cfg, monkeypatch) -> None:
        def broken_retrieve(sub_id, **kwargs):
            raise RuntimeError("stripe unavailable")

        monkeypatch.setattr(stripe.Subscription, "retrieve", broken_retrieve)
        session = {"id": "cs_1", "object": "checkout.session", "subscription": "sub_1", "metadata": {"user_id": "user-1"}}
        payload = make_event("checkout.session.completed", session)

        with pytest.raises(RuntimeError):
            _deliver(cfg, payload)
        assert _event_ids(cfg) == []

    def test_cleanup_failure_keeps_handler_error(self, cfg, monkeypatch) -> None:
        def broken_retrieve(sub_id, **kwargs):
            # The database goes away together with Stripe.
            def no_db(dsn):
                raise OSError("database unavailable")

            monkeypatch.setattr(stripe_billing, "connect", no_db)
            raise RuntimeError("stripe unavailable")

        monkeypatch.setattr(stripe.Subscription, "retrieve", broken_retrieve)
        session = {"id": "cs_1", "object": "checkout.session", "subscription": "sub_1", "metadata": {"user_id": "user-1"}}

        with pytest.raises(RuntimeError, match="stripe unavailable"):
            _deliver(cfg, make_event("checkout.session.completed", session))


class TestSignature:
    def test_missing_signature(self, cfg) -> None:
        payload = make_event("customer.subscription.updated", make_subscription())
        with pytest.raises(WebhookSignatureError, match="No signature"):
            process_stripe_webhook(cfg, payload_bytes=payload, signature=None)
        assert _event_ids(cfg) == []

    def test_wrong_secret(self, cfg) -> None:
        payload = make_event("customer.subscription.updated", make_subscription())
        with pytest.raises(WebhookSignatureError, match="Webhook Error"):
            process_stripe_webhook(cfg, payload_bytes=payload, signature=sign_payload(payload, secret="whsec_other"))
        assert _row(cfg) is None
        assert _event_ids(cfg) == []

    def test_tampered_payload(self, cfg) -> None:
        payload = make_event("customer.subscription.updated", make_subscription())
        signature = sign_payload(payload)
        tampered = make_event("customer.subscription.updated", make_subscription(status="trialing"))
        with pytest.raises(WebhookSignatureError):
            process_stripe_webhook(cfg, payload_bytes=tampered, signature=signature)

    def test_missing_webhook_secret(self, cfg) -> None:
        payload = make_event("customer.subscription.updated", make_subscription())
        with pytest.raises(RuntimeError, match="stripe_webhook_secret_missing"):
            process_stripe_webhook(
                replace(cfg, STRIPE_WEBHOOK_SECRET=None), payload_bytes=payload, signature=sign_payload(payload)
            )


class TestCreateCheckoutSession:
    def test_builds_subscription_session(self, cfg, monkeypatch) -> None:
        captured = {}

        def fake_create(**kwargs):
            captured.update(kwargs)
            return SimpleNamespace(id="cs_test_1")

        monkeypatch.setattr(stripe.checkout.Session, "create", fake_create)

        session_id = create_checkout_session(
            cfg, price_id="price_pro_monthly", user_id="user-1", user_email="alice@example.com"
        )

        assert session_id == "cs_test_1"
        assert captured["mode"] == "subscription"
        assert captured["line_items"] == [{"price": "price_pro_monthly", "quantity": 1}]
        assert captured["customer_email"] == "alice@example.com"
        assert captured["metadata"] == {"user_id": "user-1"}
        assert captured["subscription_data"] == {"metadata": {"user_id": "user-1"}}
        assert captured["success_url"] == "https://app.example.com/#/subscription/success"
        assert captured["cancel_url"] == "https://app.example.com/#/subscription"

    def test_origin_overrides_public_url(self, cfg, monkeypatch) -> None:
        captured = {}

        def fake_create(**kwargs):
            captured.update(kwargs)
            return SimpleNamespace(id="cs_test_2")

        monkeypatch.setattr(stripe.checkout.Session, "create", fake_create)

        create_checkout_session(
            cfg, price_id="price_x", user_id="u", user_email="u@example.com", origin="http://localhost:5173/"
        )

        assert captured["success_url"] == "http://localhost:5173/#/subscription/success"

    def test_requires_secret_key(self, cfg) -> None:
        with pytest.raises(RuntimeError, match="stripe_secret_key_missing"):
            create_checkout_session(
                replace(cfg, STRIPE_SECRET_KEY=None), price_id="p", user_id="u", user_email="u@example.com"
            )
