from __future__ import annotations

from dataclasses import replace
from typing import Callable, Dict, Optional

from snackpdf.models import AuthSession, AuthState, User

from .provider import AuthError, IdentityProvider

AuthStateListener = Callable[[AuthState], None]


def _debug(msg: str) -> None:
    print(f"[auth] {msg}")


class AuthManager:
    """Owns `AuthState`.

    State only moves on identity-provider notifications (and `sign_out`). Every move is
    pushed to `on_change` listeners as a copy, so listeners cannot write it back.
    """

    def __init__(self, provider: IdentityProvider) -> None:
        self._provider = provider
        self.state = AuthState()
        self._listeners: Dict[object, AuthStateListener] = {}

    @property
    def current_user(self) -> Optional[User]:
        return self.state.user

    @property
    def is_authenticated(self) -> bool:
        return self.state.is_authenticated

    @property
    def is_loading(self) -> bool:
        return self.state.is_loading

    def on_change(self, callback: AuthStateListener) -> Callable[[], None]:
        token = object()
        self._listeners[token] = callback

        def unsubscribe() -> None:
            self._listeners.pop(token, None)

        return unsubscribe

    async def start(self) -> Callable[[], None]:
        """Follow the provider and pick up an existing session. Returns the cleanup hook."""
        detach = self._provider.on_auth_state_change(self._on_provider_event)

        try:
            session = await self._provider.get_session()
        except AuthError as e:
            _debug(f"get_session failed: {e}")
            self._apply(self.state.user, error=str(e))
            return detach

        if session is not None and session.user is not None:
            self._apply(session.user)
        else:
            self._apply(self.state.user)
        return detach

    async def sign_out(self) -> Optional[str]:
        """Sign out; returns None on success or the provider's error message."""
        try:
            await self._provider.sign_out()
        except AuthError as e:
            self.state.error = str(e)
            self._notify()
            return str(e)

        self._apply(None)
        return None

    def _on_provider_event(self, event: str, session: Optional[AuthSession]) -> None:
        user = session.user if session is not None else None
        self._apply(user)

    def _apply(self, user: Optional[User], *, error: str | None = None) -> None:
        self.state.user = user
        self.state.is_authenticated = user is not None
        self.state.is_loading = False
        self.state.error = error
        self._notify()

    def _notify(self) -> None:
        snapshot = replace(self.state)
        for listener in list(self._listeners.values()):
            try:
                listener(snapshot)
            except Exception as e:
                _debug(f"auth listener failed: {e!r}")
