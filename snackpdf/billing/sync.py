"""Client-side subscription state.

`SubscriptionSync` follows the `AuthManager`: when a user signs in it fetches their
subscription row and caches it, when they sign out the cache is dropped. It also
answers the two upload questions the tool pages ask (size limit, may I upload).

Each fetch is tagged with a generation number, bumped on every fetch and sign-out.
Only the newest fetch, for the user still signed in, may apply its result; anything
older is thrown away when it lands.
"""

from __future__ import annotations

import asyncio
from typing import Callable, Dict, Optional, Set

from snackpdf.auth.state import AuthManager
from snackpdf.models import AuthState, Subscription, SubscriptionState

from .store import NO_ROWS, StoreError, SubscriptionStore

# Ceiling for anonymous visitors and the fallback when the limit lookup fails.
DEFAULT_FILE_SIZE_LIMIT_MB = 1.0

LOAD_ERROR_MESSAGE = "Failed to load subscription status"

SubscriptionListener = Callable[[SubscriptionState], None]


def _debug(msg: str) -> None:
    print(f"[subscription] {msg}")


class SubscriptionSync:
    def __init__(self, auth: AuthManager, store: SubscriptionStore) -> None:
        self._auth = auth
        self._store = store
        self.state = SubscriptionState()
        self._listeners: Dict[object, SubscriptionListener] = {}
        self._tasks: Set[asyncio.Task] = set()
        # Bumped for every fetch and sign-out; only the newest fetch may apply its result.
        self._generation = 0

    # -----------------------------
    # Wiring
    # -----------------------------

    def start(self) -> Callable[[], None]:
        """Follow auth changes (and apply the current auth state now).

        Must be called with a running event loop; fetches run as tasks on it.
        """
        detach = self._auth.on_change(self._on_auth_change)
        if not self._auth.is_loading:
            self._on_auth_change(self._auth.state)
        return detach

    def on_change(self, callback: SubscriptionListener) -> Callable[[], None]:
        token = object()
        self._listeners[token] = callback

        def unsubscribe() -> None:
            self._listeners.pop(token, None)

        return unsubscribe

    async def wait_idle(self) -> None:
        """Wait for every in-flight fetch to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))

    def _on_auth_change(self, auth_state: AuthState) -> None:
        user = auth_state.user
        if auth_state.is_authenticated and user is not None:
            generation = self._begin_loading()
            task = asyncio.get_running_loop().create_task(self._load(user.id, generation))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)
            return

        self._generation += 1
        self.state.subscription = None
        self.state.is_loading = False
        self.state.error = None
        self._notify()

    # -----------------------------
    # Fetching
    # -----------------------------

    def _is_current(self, user_id: str, generation: int) -> bool:
        user = self._auth.current_user
        return (
            generation == self._generation
            and self._auth.is_authenticated
            and user is not None
            and user.id == user_id
        )

    def _begin_loading(self) -> int:
        self._generation += 1
        self.state.is_loading = True
        self.state.error = None
        self._notify()
        return self._generation

    async def fetch_subscription(self, user_id: str) -> None:
        generation = self._begin_loading()
        await self._load(user_id, generation)

    async def _load(self, user_id: str, generation: int) -> None:
        found: Optional[Subscription] = None
        failed = False
        try:
            found = await self._store.get_subscription(user_id)
        except StoreError as e:
            if e.code != NO_ROWS:
                _debug(f"fetch failed user_id={user_id} code={e.code}: {e.message}")
                failed = True
        except Exception as e:
            _debug(f"fetch failed user_id={user_id}: {e!r}")
            failed = True

        if not self._is_current(user_id, generation):
            _debug(f"discarding stale subscription result for user_id={user_id}")
            return

        if failed:
            self.state.error = LOAD_ERROR_MESSAGE
        else:
            self.state.subscription = found
        self.state.is_loading = False
        self._notify()

    async def refresh(self) -> None:
        user = self._auth.current_user
        if user is None:
            return
        await self.fetch_subscription(user.id)

    # -----------------------------
    # Queries
    # -----------------------------

    @property
    def subscription(self) -> Optional[Subscription]:
        return self.state.subscription

    @property
    def is_subscribed(self) -> bool:
        return self.state.is_subscribed

    @property
    def is_loading(self) -> bool:
        return self.state.is_loading

    async def get_user_file_size_limit(self) -> float:
        """Live lookup of the signed-in user's ceiling in MB (not read from the cache)."""
        user = self._auth.current_user
        if user is None:
            return DEFAULT_FILE_SIZE_LIMIT_MB
        try:
            limit = await self._store.get_file_size_limit(user.id)
        except Exception as e:
            _debug(f"file size limit lookup failed user_id={user.id}: {e!r}")
            return DEFAULT_FILE_SIZE_LIMIT_MB
        return float(limit) if limit else DEFAULT_FILE_SIZE_LIMIT_MB

    async def can_upload_file(self, file_size_mb: float) -> bool:
        """Server decides for signed-in users; any failure falls back to the anonymous rule."""
        user = self._auth.current_user
        if user is None:
            return file_size_mb <= DEFAULT_FILE_SIZE_LIMIT_MB
        try:
            allowed = await self._store.can_upload_file(user.id, file_size_mb)
        except Exception as e:
            _debug(f"upload permission check failed user_id={user.id}: {e!r}")
            return file_size_mb <= DEFAULT_FILE_SIZE_LIMIT_MB
        return allowed is True

    def _notify(self) -> None:
        for listener in list(self._listeners.values()):
            try:
                listener(self.state)
            except Exception as e:
                _debug(f"subscription listener failed: {e!r}")
