"""Identity provider boundary.

Consumers only see three things:

- a notification stream of ``(event, session)`` pairs (session is None after sign-out)
- a one-shot `get_session()`
- `sign_out()`, which raises `AuthError` when the provider refuses

`LocalIdentityProvider` implements it on our own `users` table: passlib password
hashes plus PyJWT access tokens, so a browser can keep the token and `restore()` it
on the next visit.
"""

from __future__ import annotations

import asyncio
from typing import Callable, Dict, Optional

import jwt

from snackpdf.config import Config
from snackpdf.db import connect
from snackpdf.models import AuthSession, User

from .crud import create_user, get_user_by_id, touch_last_login, user_from_row, verify_user_credentials
from .security import create_access_token, decode_access_token

AuthListener = Callable[[str, Optional[AuthSession]], None]

INITIAL_SESSION = "INITIAL_SESSION"
SIGNED_IN = "SIGNED_IN"
SIGNED_OUT = "SIGNED_OUT"


def _debug(msg: str) -> None:
    print(f"[auth] {msg}")


class AuthError(Exception):
    """A refused identity-provider call (bad credentials, expired token, ...)."""


class IdentityProvider:
    def on_auth_state_change(self, callback: AuthListener) -> Callable[[], None]:
        raise NotImplementedError

    async def get_session(self) -> Optional[AuthSession]:
        raise NotImplementedError

    async def sign_out(self) -> None:
        raise NotImplementedError


class LocalIdentityProvider(IdentityProvider):
    def __init__(self, cfg: Config) -> None:
        self._cfg = cfg
        self._session: Optional[AuthSession] = None
        self._listeners: Dict[object, AuthListener] = {}

    def on_auth_state_change(self, callback: AuthListener) -> Callable[[], None]:
        token = object()
        self._listeners[token] = callback

        def unsubscribe() -> None:
            self._listeners.pop(token, None)

        return unsubscribe

    async def get_session(self) -> Optional[AuthSession]:
        return self._session

    async def sign_up(self, email: str, password: str, *, name: str | None = None) -> AuthSession:
        def _create() -> User:
            with connect(self._cfg.DB_DSN) as conn:
                return create_user(conn, email=email, password=password, name=name)

        try:
            user = await asyncio.to_thread(_create)
        except ValueError as e:
            raise AuthError(str(e)) from e
        return self._start_session(user, SIGNED_IN)

    async def sign_in(self, email: str, password: str) -> AuthSession:
        def _verify() -> Optional[User]:
            with connect(self._cfg.DB_DSN) as conn:
                row = verify_user_credentials(conn, email, password)
                if row is None:
                    return None
                touch_last_login(conn, str(row["user_id"]))
                return user_from_row(row)

        user = await asyncio.to_thread(_verify)
        if user is None:
            raise AuthError("invalid_credentials")
        return self._start_session(user, SIGNED_IN)

    async def restore(self, access_token: str) -> AuthSession:
        """Resume a session from a previously issued access token."""
        try:
            payload = decode_access_token(token=access_token, secret=self._cfg.AUTH_JWT_SECRET)
        except jwt.ExpiredSignatureError as e:
            raise AuthError("token_expired") from e
        except (jwt.InvalidTokenError, ValueError) as e:
            raise AuthError("token_invalid") from e

        user_id = str(payload.get("sub") or "")
        if not user_id:
            raise AuthError("token_missing_sub")

        def _load() -> Optional[User]:
            with connect(self._cfg.DB_DSN) as conn:
                row = get_user_by_id(conn, user_id)
                if row is None or int(row["is_active"] or 0) != 1:
                    return None
                return user_from_row(row)

        user = await asyncio.to_thread(_load)
        if user is None:
            raise AuthError("user_not_found")

        self._session = AuthSession(access_token=access_token, user=user)
        self._emit(INITIAL_SESSION, self._session)
        return self._session

    async def sign_out(self) -> None:
        self._session = None
        self._emit(SIGNED_OUT, None)

    def _start_session(self, user: User, event: str) -> AuthSession:
        token = create_access_token(
            secret=self._cfg.AUTH_JWT_SECRET,
            user_id=user.id,
            email=user.email,
            expires_minutes=int(self._cfg.AUTH_TOKEN_EXPIRE_MINUTES),
        )
        self._session = AuthSession(access_token=token, user=user)
        self._emit(event, self._session)
        return self._session

    def _emit(self, event: str, session: Optional[AuthSession]) -> None:
        _debug(f"auth state changed: {event}")
        for listener in list(self._listeners.values()):
            listener(event, session)
