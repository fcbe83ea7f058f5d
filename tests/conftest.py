from __future__ import annotations

import pytest

from snackpdf.config import Config
from snackpdf.db import init_db

from .helpers import WEBHOOK_SECRET


@pytest.fixture
def cfg(tmp_path) -> Config:
    c = Config(
        DB_DSN=str(tmp_path / "snackpdf.sqlite"),
        AUTH_JWT_SECRET="test-jwt-secret",
        STRIPE_SECRET_KEY="sk_test_123",
        STRIPE_WEBHOOK_SECRET=WEBHOOK_SECRET,
        STRIPE_PRICE_ID="price_pro_monthly",
        PUBLIC_APP_URL="https://app.example.com",
        FREE_FILE_SIZE_LIMIT_MB=1.0,
        PRO_FILE_SIZE_LIMIT_MB=100.0,
        BILLING_DEV_BYPASS=False,
    )
    init_db(c.DB_DSN)
    return c
