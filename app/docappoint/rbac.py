from collections.abc import Callable
from functools import wraps
from typing import Any

from flask import abort, flash, g, redirect, request, url_for

from app.docappoint.constants import ROLE_HOME_ENDPOINTS
from app.docappoint.models import User


def user_has_role(user: User | None, *roles: str) -> bool:
    if not user or not user.is_active:
        return False
    return user.role in roles


def role_home_url(user: User) -> str:
    return url_for(ROLE_HOME_ENDPOINTS.get(user.role, "routes.index"))


def require_role(*roles: str) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    def decorator(fn: Callable[..., Any]) -> Callable[..., Any]:
        @wraps(fn)
        def wrapped(*args: Any, **kwargs: Any):
            user: User | None = getattr(g, "current_user", None)
            # Unauthenticated → redirect to login
            if not user or not user.is_active:
                nxt = request.full_path or request.path
                # Avoid trailing '?' from full_path when there is no query string.
                if nxt.endswith("?"):
                    nxt = nxt[:-1]
                flash("You must be signed in first!", "error")
                return redirect(url_for("users.login_get", next=nxt))
            # Authenticated but wrong role → 403
            if not user_has_role(user, *roles):
                g.missing_role = ", ".join(roles)
                abort(403)
            return fn(*args, **kwargs)

        return wrapped

    return decorator
