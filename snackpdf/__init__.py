"""SnackPDF - Backend.

The browser app is a thin shell around a few well-defined pieces that live here:
- A hash router (route table + pattern matching + navigation listeners).
- Subscription state kept in sync with the signed-in user.
- Stripe webhook / checkout handlers that write one subscription row per user.

See DESIGN.md for setup and usage.
"""

__all__ = ["__version__"]

__version__ = "0.1.0"
