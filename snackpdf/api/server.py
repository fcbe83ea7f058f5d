from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import Body, FastAPI, Header, Request
from fastapi.responses import JSONResponse, PlainTextResponse, Response
from pydantic import BaseModel

from snackpdf.billing.plans import billing_enabled, get_price_id
from snackpdf.billing.stripe_billing import (
    WebhookSignatureError,
    create_checkout_session,
    process_stripe_webhook,
)
from snackpdf.config import Config, load_config, missing_stripe_settings
from snackpdf.db import init_db


def _debug(msg: str) -> None:
    print(f"[api] {msg}")


app = FastAPI(title="SnackPDF", version="0.1.0")
cfg: Config = load_config()

# Browser calls to the payment endpoints come straight from the SPA, any origin.
# Not CORSMiddleware: it only answers preflights that carry Origin and
# Access-Control-Request-Method, and a bare OPTIONS must still get 200 here. The
# same headers go on both preflights and every checkout response, 400/500 included.
CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
}


@app.on_event("startup")
def _on_startup() -> None:
    # Without Stripe secrets this process cannot do its job; refuse to start.
    missing = missing_stripe_settings(cfg)
    if missing:
        raise RuntimeError(f"missing required settings: {', '.join(missing)}")

    init_db(cfg.DB_DSN)


def _error(status_code: int, message: str, *, cors: bool = False) -> JSONResponse:
    headers = dict(CORS_HEADERS) if cors else None
    return JSONResponse(status_code=status_code, content={"error": message}, headers=headers)


# -----------------------------
# Health
# -----------------------------


@app.get("/health")
def health() -> Dict[str, Any]:
    return {"status": "ok"}


@app.get("/billing/plans")
def billing_plans() -> Dict[str, Any]:
    """Expose the Pro price ID + publishable key so the frontend can render pricing."""
    return {
        "price_id": get_price_id(cfg),
        "publishable_key": cfg.STRIPE_PUBLISHABLE_KEY,
        "enabled": billing_enabled(cfg),
    }


# -----------------------------
# Checkout
# -----------------------------


class CheckoutSessionRequest(BaseModel):
    priceId: Optional[str] = None
    userId: Optional[str] = None
    userEmail: Optional[str] = None


@app.options("/create-checkout-session")
def checkout_session_preflight() -> Response:
    return PlainTextResponse("ok", headers=CORS_HEADERS)


@app.post("/create-checkout-session")
def checkout_session(
    payload: Optional[CheckoutSessionRequest] = Body(default=None),
    origin: Optional[str] = Header(default=None),
) -> Response:
    """Create a Stripe Checkout session; the browser redirects with the returned id."""
    if payload is None or not (payload.priceId and payload.userId and payload.userEmail):
        return _error(400, "Missing required fields", cors=True)

    try:
        session_id = create_checkout_session(
            cfg,
            price_id=payload.priceId,
            user_id=payload.userId,
            user_email=payload.userEmail,
            origin=origin,
        )
    except Exception as e:
        _debug(f"error creating checkout session: {e!r}")
        return _error(500, str(e), cors=True)

    return JSONResponse(status_code=200, content={"sessionId": session_id}, headers=CORS_HEADERS)


# -----------------------------
# Stripe webhook
# -----------------------------


@app.options("/stripe-webhook")
def stripe_webhook_preflight() -> Response:
    return PlainTextResponse("ok", headers=CORS_HEADERS)


@app.post("/stripe-webhook")
async def stripe_webhook(
    request: Request,
    stripe_signature: Optional[str] = Header(default=None, alias="Stripe-Signature"),
) -> Response:
    """Stripe webhook endpoint.

    Configure this in Stripe as:
      https://YOUR_DOMAIN/stripe-webhook
    with the checkout.session.completed, customer.subscription.* and invoice.payment_* events.
    """
    payload_bytes = await request.body()
    try:
        event_id, processed = process_stripe_webhook(cfg, payload_bytes=payload_bytes, signature=stripe_signature)
    except WebhookSignatureError as e:
        _debug(f"webhook signature verification failed: {e}")
        return PlainTextResponse(str(e), status_code=400)
    except Exception as e:
        _debug(f"webhook error: {e!r}")
        return _error(500, str(e))

    if not processed:
        _debug(f"event already processed: {event_id}")
    return JSONResponse(status_code=200, content={"received": True})
