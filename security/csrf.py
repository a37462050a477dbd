"""
Double-submit CSRF check for cookie-authenticated requests.

Login drops a JS-readable ``csrf_token`` cookie; every state-changing call
from a logged-in browser must echo it in ``X-CSRF-Token``.
"""
import secrets

from flask import current_app, g, request

from utils.errors import Forbidden

CSRF_COOKIE = "csrf_token"
CSRF_HEADER = "X-CSRF-Token"
UNSAFE_METHODS = frozenset({"POST", "PUT", "PATCH", "DELETE"})

# bootstrap endpoints, plus the gateway webhook which is authenticated by
# its HMAC signature rather than a browser session
CSRF_EXEMPT_PATHS = frozenset({
    "/auth/login",
    "/auth/register",
    "/health",
    "/webhooks/razorpay",
})


def issue_csrf_token(resp):
    resp.set_cookie(
        CSRF_COOKIE,
        secrets.token_urlsafe(32),
        httponly=False,
        secure=current_app.config.get("SESSION_COOKIE_SECURE", False),
        samesite=current_app.config.get("SESSION_COOKIE_SAMESITE", "Lax"),
        path="/",
    )
    return resp


def require_csrf():
    cookie_token = request.cookies.get(CSRF_COOKIE) or ""
    header_token = request.headers.get(CSRF_HEADER) or ""
    if not cookie_token or not secrets.compare_digest(cookie_token, header_token):
        raise Forbidden("CSRF validation failed")


def csrf_protect():
    """before_request hook. Anonymous callers have no cookie to forge."""
    if request.method not in UNSAFE_METHODS or request.path in CSRF_EXEMPT_PATHS:
        return
    if getattr(g, "user", None) is not None:
        require_csrf()
