"""Hash routing: patterns, the route table, the router and its host."""

from .history import MemoryHistory, NavigationHost, normalize_path
from .patterns import extract_params, match
from .router import Router
from .routes import ROUTES
from .table import RouteTable

__all__ = [
    "MemoryHistory",
    "NavigationHost",
    "ROUTES",
    "RouteTable",
    "Router",
    "create_router",
    "extract_params",
    "match",
    "normalize_path",
]


def create_router(host: NavigationHost) -> Router:
    """Router over the app's page list."""
    return Router(host, RouteTable(ROUTES))
