"""Authentication.

- `LocalIdentityProvider`: email/password users + JWT access tokens.
- `AuthManager`: the app-side `AuthState` that other parts (route guard,
  subscription sync) listen to.
"""

from .provider import AuthError, IdentityProvider, LocalIdentityProvider
from .state import AuthManager

__all__ = [
    "AuthError",
    "AuthManager",
    "IdentityProvider",
    "LocalIdentityProvider",
]
