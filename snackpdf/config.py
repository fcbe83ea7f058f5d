import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

# Optional local .env file; a missing file is not an error.
load_dotenv()


def _env_bool(name: str, default: Optional[bool] = None) -> Optional[bool]:
    """Parse a boolean environment variable.

    Returns:
      - True/False if the env var is set to a recognizable value
      - default if unset or unrecognized

    Accepted truthy: 1, true, yes, y, on
    Accepted falsy:  0, false, no, n, off
    """

    raw = os.environ.get(name)
    if raw is None:
        return default
    v = raw.strip().lower()
    if v in ("1", "true", "yes", "y", "on"):
        return True
    if v in ("0", "false", "no", "n", "off"):
        return False
    return default


@dataclass(frozen=True)
class Config:
    """Runtime configuration.

    IMPORTANT: Provide API keys via environment variables or a .env file.
    Do not hardcode secrets in source code.
    """

    # -----------------
    # Core
    # -----------------
    # Preferred: set SNACKPDF_DATABASE_URL (or DATABASE_URL) to use Postgres.
    # Fallback: SNACKPDF_DB_PATH for SQLite.
    DB_DSN: str = (
        os.environ.get("SNACKPDF_DATABASE_URL")
        or os.environ.get("DATABASE_URL")
        or os.environ.get("SNACKPDF_DB_PATH", "./snackpdf.sqlite")
    )

    APP_NAME: str = os.environ.get("APP_NAME", "SnackPDF")

    # Used for Stripe redirect URLs when the request carries no Origin header.
    PUBLIC_APP_URL: str = os.environ.get(
        "PUBLIC_APP_URL",
        "https://snackpdf-46e2f908f9d6.herokuapp.com",
    )

    # -----------------
    # Auth (JWT)
    # -----------------
    # NOTE: In dev, this defaults to a fixed string so you can get started.
    # In production, you MUST set AUTH_JWT_SECRET to a strong random value.
    AUTH_JWT_SECRET: str = os.environ.get("AUTH_JWT_SECRET", "dev_change_me")
    AUTH_TOKEN_EXPIRE_MINUTES: int = int(os.environ.get("AUTH_TOKEN_EXPIRE_MINUTES", "10080"))  # 7 days

    # -----------------
    # Billing (Stripe)
    # -----------------
    STRIPE_SECRET_KEY: str | None = os.environ.get("STRIPE_SECRET_KEY")
    STRIPE_WEBHOOK_SECRET: str | None = os.environ.get("STRIPE_WEBHOOK_SECRET")
    STRIPE_PUBLISHABLE_KEY: str | None = os.environ.get("STRIPE_PUBLISHABLE_KEY")

    # Price ID of the SnackPDF Pro subscription (Subscription mode).
    STRIPE_PRICE_ID: str | None = os.environ.get("STRIPE_PRICE_ID")
    STRIPE_API_VERSION: str = os.environ.get("STRIPE_API_VERSION", "2023-10-16")

    # -----------------
    # Upload limits
    # -----------------
    # Everyone without a subscription (including anonymous visitors) gets the free ceiling.
    FREE_FILE_SIZE_LIMIT_MB: float = float(os.environ.get("FREE_FILE_SIZE_LIMIT_MB", "1.0"))
    PRO_FILE_SIZE_LIMIT_MB: float = float(os.environ.get("PRO_FILE_SIZE_LIMIT_MB", "100.0"))

    # Optional: allow a free internal bypass for development.
    # If set to 1, every signed-in user gets the pro upload limit.
    BILLING_DEV_BYPASS: bool = _env_bool("BILLING_DEV_BYPASS", False) is True


def load_config() -> Config:
    return Config()


def missing_stripe_settings(cfg: Config) -> list[str]:
    """Names of the Stripe settings the payment endpoints cannot run without."""
    missing: list[str] = []
    if not cfg.STRIPE_SECRET_KEY:
        missing.append("STRIPE_SECRET_KEY")
    if not cfg.STRIPE_WEBHOOK_SECRET:
        missing.append("STRIPE_WEBHOOK_SECRET")
    return missing
