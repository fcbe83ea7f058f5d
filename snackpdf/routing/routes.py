"""The app's page list, registered once at startup."""

from __future__ import annotations

from typing import Callable, List

from snackpdf.models import Route

SIGN_IN_PATH = "/auth/signin"


def _page(component: str) -> Callable[[], str]:
    # The UI layer maps the returned component path to a lazily loaded page.
    def load() -> str:
        return component

    return load


ROUTES: List[Route] = [
    Route("/", "Dashboard - SnackPDF", True, "Dashboard", _page("pages/Dashboard")),
    Route("/organise", "Organise PDFs - SnackPDF", True, "Organise", _page("pages/Organise")),
    Route("/convert-to-pdf", "Convert to PDF - SnackPDF", True, "Convert to PDF", _page("pages/ConvertToPDF")),
    Route("/convert-from-pdf", "Convert from PDF - SnackPDF", True, "Convert from PDF", _page("pages/ConvertFromPDF")),
    Route("/sign-security", "Sign and Security - SnackPDF", True, "Sign and Security", _page("pages/SignAndSecurity")),
    Route("/view-edit", "View and Edit - SnackPDF", True, "View and Edit", _page("pages/ViewAndEdit")),
    Route("/advanced", "Advanced Tools - SnackPDF", True, "Advanced", _page("pages/Advanced")),
    Route(SIGN_IN_PATH, "Sign In - SnackPDF", False, "Sign In", _page("components/Auth/SignIn")),
    Route("/auth/signup", "Sign Up - SnackPDF", False, "Sign Up", _page("components/Auth/SignUp")),
    Route("/auth/forgot-password", "Forgot Password - SnackPDF", False, "Forgot Password", _page("components/Auth/ForgotPassword")),
    Route("/auth/reset-password", "Reset Password - SnackPDF", False, "Reset Password", _page("components/Auth/ResetPassword")),
    # Subscription and legal pages reuse the dashboard shell for now.
    Route("/subscription", "Subscription - SnackPDF", True, "Subscription", _page("pages/Dashboard")),
    Route("/subscription/success", "Subscription Confirmed - SnackPDF", True, "Subscription", _page("pages/Dashboard")),
    Route("/privacy-policy", "Privacy Policy - SnackPDF", False, "Privacy Policy", _page("pages/Dashboard")),
    Route("/terms-conditions", "Terms & Conditions - SnackPDF", False, "Terms & Conditions", _page("pages/Dashboard")),
    Route("/cookie-policy", "Cookie Policy - SnackPDF", False, "Cookie Policy", _page("pages/Dashboard")),
    Route("/data-protection", "Data Protection - SnackPDF", False, "Data Protection", _page("pages/Dashboard")),
]
