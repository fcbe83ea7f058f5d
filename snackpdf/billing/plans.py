from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from snackpdf.config import Config


def get_price_id(cfg: Config) -> Optional[str]:
    """Price ID of the SnackPDF Pro subscription, or None when billing is not configured."""
    return (cfg.STRIPE_PRICE_ID or "").strip() or None


def billing_enabled(cfg: Config) -> bool:
    return bool(cfg.STRIPE_SECRET_KEY and get_price_id(cfg))


def format_amount(amount_in_pence: int) -> str:
    """Stripe amounts are integer minor units; render pence as pounds, e.g. 1234 -> £12.34."""
    pounds = (Decimal(int(amount_in_pence)) / 100).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    sign = "-" if pounds < 0 else ""
    return f"{sign}£{abs(pounds):,.2f}"
