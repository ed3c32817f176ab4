"""Redirect browser navigation based on the session cookie.

API routes handle their own auth (401); this only concerns HTML page loads.
"""
from urllib.parse import urlencode

from fastapi import Request
from fastapi.responses import RedirectResponse

from chatforge.core.security import get_optional_identity

# Pages that require a session
PROTECTED_PAGES = ("/dashboard", "/chat")

# Pages an authenticated user is sent away from
AUTH_PAGES = ("/login", "/register")

LOGIN_PAGE = "/login"
HOME_PAGE = "/dashboard"


def is_page_navigation(request: Request) -> bool:
    if request.method not in ("GET", "HEAD"):
        return False
    return "text/html" in request.headers.get("accept", "")


def is_protected_page(path: str) -> bool:
    return any(path == page or path.startswith(f"{page}/") for page in PROTECTED_PAGES)


async def page_gate(request: Request, call_next):
    if not is_page_navigation(request):
        return await call_next(request)

    path = request.url.path
    authenticated = get_optional_identity(request) is not None

    if is_protected_page(path) and not authenticated:
        query = urlencode({"redirect": path})
        return RedirectResponse(url=f"{LOGIN_PAGE}?{query}")

    if path in AUTH_PAGES and authenticated:
        return RedirectResponse(url=HOME_PAGE)

    return await call_next(request)
