from __future__ import annotations

from typing import Callable

from snackpdf.auth.state import AuthManager
from snackpdf.models import AuthState
from snackpdf.routing.router import Router
from snackpdf.routing.routes import SIGN_IN_PATH


class AuthGuard:
    """Sends signed-out visitors of protected pages to the sign-in page.

    Checked on every route change and again on every auth change, so a cold start
    onto a protected page and a sign-out while on one both end at sign-in.
    """

    def __init__(self, router: Router, auth: AuthManager, *, sign_in_path: str = SIGN_IN_PATH) -> None:
        self._router = router
        self._auth = auth
        self._sign_in_path = sign_in_path

    def attach(self) -> Callable[[], None]:
        """Start guarding; the returned function detaches from both router and auth."""
        detach_router = self._router.on_route_change(self.check)
        detach_auth = self._auth.on_change(self._on_auth_change)

        def detach() -> None:
            detach_router()
            detach_auth()

        return detach

    def _on_auth_change(self, auth_state: AuthState) -> None:
        self.check(self._router.current_path)

    def check(self, path: str) -> None:
        if self._auth.is_loading or self._auth.is_authenticated:
            return
        route = self._router.table.resolve(path)
        if route is not None and route.requires_auth:
            self._router.navigate(self._sign_in_path, replace=True)
