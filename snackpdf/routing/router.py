from __future__ import annotations

from collections import deque
from typing import Callable, Deque, Dict, Optional

from snackpdf.models import Route
from snackpdf.routing.history import NavigationHost, normalize_path
from snackpdf.routing.patterns import extract_params
from snackpdf.routing.table import RouteTable

RouteListener = Callable[[str], None]


def _debug(msg: str) -> None:
    print(f"[router] {msg}")


class Router:
    """Hash router.

    `current_path` only changes through `navigate` or a location notification from the
    host; every change runs the same pipeline: resolve the route, set the page title,
    then call each listener (in subscription order) with the new path.

    Construct one per app and pass it to whatever needs navigation.
    """

    def __init__(self, host: NavigationHost, table: RouteTable | None = None) -> None:
        self._host = host
        self.table = table if table is not None else RouteTable()
        self._current_path = normalize_path(host.current_path())
        self._listeners: Dict[object, RouteListener] = {}
        self._pending: Deque[str] = deque()
        self._dispatching = False
        self._detach = host.add_listener(self._on_location_change)

    @property
    def current_path(self) -> str:
        return self._current_path

    def close(self) -> None:
        """Stop listening to the host."""
        self._detach()

    # -----------------------------
    # Navigation
    # -----------------------------

    def navigate(self, path: str, replace: bool = False) -> None:
        target = normalize_path(path)
        latest = self._pending[-1] if self._pending else self._current_path
        if target == latest:
            return

        if replace:
            self._host.replace(target)
        else:
            self._host.push(target)

        self._schedule(target)

    def back(self) -> None:
        # current_path follows when the host reports the location change.
        self._host.back()

    def forward(self) -> None:
        self._host.forward()

    def _on_location_change(self, kind: str) -> None:
        self._schedule(normalize_path(self._host.current_path()))

    def _schedule(self, path: str) -> None:
        # Navigation from inside a listener runs after the current pipeline finishes.
        self._pending.append(path)
        if self._dispatching:
            return
        self._dispatching = True
        try:
            while self._pending:
                self._update(self._pending.popleft())
        finally:
            self._dispatching = False

    def _update(self, path: str) -> None:
        self._current_path = path

        route = self.table.resolve(path)
        if route is not None and route.title:
            self._host.title = route.title

        # Snapshot: (un)subscribing inside a listener only affects the next update.
        for token, listener in list(self._listeners.items()):
            try:
                listener(path)
            except Exception as e:
                _debug(f"route listener failed path={path} listener={getattr(listener, '__name__', token)}: {e!r}")

    # -----------------------------
    # Listeners
    # -----------------------------

    def on_route_change(self, callback: RouteListener) -> Callable[[], None]:
        """Register *callback*; the returned function removes it (safe to call twice)."""
        token = object()
        self._listeners[token] = callback

        def unsubscribe() -> None:
            self._listeners.pop(token, None)

        return unsubscribe

    # -----------------------------
    # Queries
    # -----------------------------

    def current_route(self) -> Optional[Route]:
        return self.table.resolve(self._current_path)

    def params(self, pattern: str, path: str | None = None) -> Dict[str, str]:
        return extract_params(pattern, self._current_path if path is None else path)

    def is_active(self, path: str) -> bool:
        return self._current_path == path

    def is_active_prefix(self, prefix: str) -> bool:
        return self._current_path.startswith(prefix)
