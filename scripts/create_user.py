"""Create a user (and optionally a per-user upload limit) in the app DB.

Usage:
  python scripts/create_user.py --email alice@example.com --password '...' [--name Alice] [--max-file-size-mb 250]

NOTE: This is intended for local/dev.
"""

import argparse
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from snackpdf.auth.crud import create_user
from snackpdf.billing.store import set_file_size_limit
from snackpdf.config import load_config
from snackpdf.db import connect, init_db
from snackpdf.util.time import utcnow_iso


def main() -> None:
    ap = argparse.ArgumentParser()
    ap.add_argument("--email", required=True)
    ap.add_argument("--password", required=True)
    ap.add_argument("--name", default=None)
    ap.add_argument("--max-file-size-mb", type=float, default=None)
    args = ap.parse_args()

    cfg = load_config()
    init_db(cfg.DB_DSN)

    with connect(cfg.DB_DSN) as conn:
        u = create_user(conn, email=args.email, password=args.password, name=args.name)
        if args.max_file_size_mb is not None:
            set_file_size_limit(conn, user_id=u.id, max_file_size_mb=args.max_file_size_mb, updated_at=utcnow_iso())

    print("Created user:")
    print(u)


if __name__ == "__main__":
    main()
