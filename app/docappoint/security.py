import secrets

from flask import Flask, Request, render_template, request, session


# Form posts that happen before a session exists (or that replace it).
CSRF_EXEMPT_ENDPOINTS = frozenset({"users.login_post", "users.register_post"})
_UNGUARDED_PREFIXES = ("/static/", "/health", "/healthz")


def ensure_csrf_token() -> str:
    """Ensure a CSRF token exists in the session and return it."""
    token = session.get("csrf_token")
    if not token:
        token = secrets.token_urlsafe(32)
        session["csrf_token"] = token
    return token


def validate_csrf(req: Request) -> bool:
    """Validate CSRF token from form field or header."""
    token = req.headers.get("X-CSRF-Token") or req.form.get("csrf_token")
    expected = session.get("csrf_token") or ""
    return bool(token and expected and secrets.compare_digest(token.encode(), expected.encode()))


def init_csrf(app: Flask) -> None:
    @app.context_processor
    def _inject_csrf() -> dict:
        return {"csrf_token": ensure_csrf_token()}

    @app.before_request
    def _csrf_guard():
        if request.path.startswith(_UNGUARDED_PREFIXES):
            return None
        ensure_csrf_token()
        session.permanent = True
        if request.method in ("POST", "PUT", "PATCH", "DELETE"):
            if (request.endpoint or "") in CSRF_EXEMPT_ENDPOINTS:
                return None
            if not validate_csrf(request):
                app.logger.warning("CSRF check failed for %s %s", request.method, request.path)
                return (
                    render_template(
                        "error.html",
                        status_code=400,
                        message="CSRF token missing or invalid.",
                    ),
                    400,
                )
        return None
