from __future__ import annotations

import uuid
from typing import Any, Optional

from snackpdf.models import User
from snackpdf.util.time import utcnow_iso

from .security import hash_password, verify_password


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def user_from_row(row: Any) -> User:
    d = dict(row)
    return User(
        id=str(d["user_id"]),
        email=str(d["email"]),
        created_at=str(d["created_at"]),
        name=d.get("name"),
        avatar=d.get("avatar"),
    )


def get_user_by_email(conn: Any, email: str) -> Optional[Any]:
    e = normalize_email(email)
    if not e:
        return None
    return conn.execute("SELECT * FROM users WHERE email=?", (e,)).fetchone()


def get_user_by_id(conn: Any, user_id: str) -> Optional[Any]:
    return conn.execute("SELECT * FROM users WHERE user_id=?", (str(user_id),)).fetchone()


def verify_user_credentials(conn: Any, email: str, password: str) -> Optional[Any]:
    row = get_user_by_email(conn, email)
    if row is None:
        return None
    if int(row["is_active"] or 0) != 1:
        return None
    if not verify_password(password, str(row["password_hash"])):
        return None
    return row


def create_user(
    conn: Any,
    *,
    email: str,
    password: str,
    name: str | None = None,
    avatar: str | None = None,
) -> User:
    e = normalize_email(email)
    if not e or "@" not in e:
        raise ValueError("email_invalid")

    if get_user_by_email(conn, e) is not None:
        raise ValueError("email_exists")

    now = utcnow_iso()
    user_id = uuid.uuid4().hex
    conn.execute(
        """
        INSERT INTO users (user_id, email, password_hash, name, avatar, is_active, created_at, updated_at)
        VALUES (?,?,?,?,?,1,?,?)
        """,
        (user_id, e, hash_password(password), name, avatar, now, now),
    )
    row = get_user_by_id(conn, user_id)
    assert row is not None
    return user_from_row(row)


def touch_last_login(conn: Any, user_id: str) -> None:
    now = utcnow_iso()
    conn.execute(
        "UPDATE users SET last_login_at=?, updated_at=? WHERE user_id=?",
        (now, now, str(user_id)),
    )
