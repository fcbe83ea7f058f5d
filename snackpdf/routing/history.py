"""Navigation host boundary.

The router never touches a browser directly. It talks to a `NavigationHost`, which
owns the hash location, the history stack and the page title, and tells the router
when the location changed under it (back/forward, or a hand-edited URL).

`MemoryHistory` is the in-process host used by the server-side renderer and tests.
"""

from __future__ import annotations

from typing import Callable, List

LocationListener = Callable[[str], None]

POPSTATE = "popstate"
HASHCHANGE = "hashchange"


def normalize_path(raw: str | None) -> str:
    """Turn a hash fragment (``#/files/1``) or bare path into ``/files/1``."""
    s = (raw or "").strip()
    s = s.lstrip("#")
    # "#/a#" or "#/a#section" - keep only the route part.
    s = s.split("#", 1)[0]
    if not s:
        return "/"
    if not s.startswith("/"):
        s = "/" + s
    return s


class NavigationHost:
    title: str = ""

    def current_path(self) -> str:
        raise NotImplementedError

    def push(self, path: str) -> None:
        raise NotImplementedError

    def replace(self, path: str) -> None:
        raise NotImplementedError

    def back(self) -> None:
        raise NotImplementedError

    def forward(self) -> None:
        raise NotImplementedError

    def add_listener(self, listener: LocationListener) -> Callable[[], None]:
        raise NotImplementedError


class MemoryHistory(NavigationHost):
    """History stack kept in memory.

    push/replace are silent, like ``history.pushState``. back/forward move the
    cursor and then notify listeners with ``popstate``; `set_hash` simulates the
    user typing a new fragment and notifies with ``hashchange``.
    """

    def __init__(self, initial: str = "/") -> None:
        self._entries: List[str] = [normalize_path(initial)]
        self._index = 0
        self._listeners: List[LocationListener] = []
        self.title = ""

    @property
    def entries(self) -> List[str]:
        return list(self._entries)

    @property
    def index(self) -> int:
        return self._index

    def current_path(self) -> str:
        return self._entries[self._index]

    @property
    def hash(self) -> str:
        return "#" + self.current_path()

    def push(self, path: str) -> None:
        # Pushing drops any forward entries.
        del self._entries[self._index + 1 :]
        self._entries.append(normalize_path(path))
        self._index += 1

    def replace(self, path: str) -> None:
        self._entries[self._index] = normalize_path(path)

    def back(self) -> None:
        if self._index == 0:
            return
        self._index -= 1
        self._emit(POPSTATE)

    def forward(self) -> None:
        if self._index >= len(self._entries) - 1:
            return
        self._index += 1
        self._emit(POPSTATE)

    def set_hash(self, fragment: str) -> None:
        self.push(fragment)
        self._emit(HASHCHANGE)

    def add_listener(self, listener: LocationListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    def _emit(self, kind: str) -> None:
        for listener in list(self._listeners):
            listener(kind)
