from __future__ import annotations

from typing import Dict, Iterable, List, Optional

from snackpdf.models import Route
from snackpdf.routing.patterns import match


class RouteTable:
    """Routes keyed by path pattern.

    Lookup order is load-bearing: an exact pattern hit wins, otherwise patterns are
    tried in the order they were first registered and the first match is returned.
    With ``/user/:id`` registered before ``/:section/active`` the path ``/user/active``
    resolves to ``/user/:id``; swap the registrations and it resolves to the other.
    There is no specificity ranking.
    """

    def __init__(self, routes: Iterable[Route] = ()) -> None:
        # dicts keep insertion order; re-registering a pattern keeps its original slot
        self._routes: Dict[str, Route] = {}
        for route in routes:
            self.register(route)

    def register(self, route: Route) -> None:
        self._routes[route.path] = route

    def __len__(self) -> int:
        return len(self._routes)

    def resolve(self, path: str) -> Optional[Route]:
        exact = self._routes.get(path)
        if exact is not None:
            return exact
        for pattern, route in self._routes.items():
            if match(pattern, path):
                return route
        return None

    def requires_auth(self, path: str) -> bool:
        """Exact-match lookup only; unknown paths do not require auth."""
        route = self._routes.get(path)
        return bool(route and route.requires_auth)

    def breadcrumbs(self, path: str) -> List[Dict[str, str]]:
        trail = [{"label": "Dashboard", "path": "/"}]
        if path == "/":
            return trail
        route = self._routes.get(path)
        if route is not None and route.breadcrumb:
            trail.append({"label": route.breadcrumb, "path": path})
        return trail
