from __future__ import annotations

import secrets
import uuid
from collections import defaultdict
from datetime import datetime, timedelta

from flask import Blueprint, current_app, flash, g, redirect, render_template, request, session, url_for
from sqlalchemy.exc import IntegrityError

from app.docappoint import oauth
from app.docappoint.audit import record_event
from app.docappoint.db import db_session
from app.docappoint.errors import OAuthError
from app.docappoint.models import User
from app.docappoint.modules.accounts.service import (
    authenticate,
    link_or_create_google_user,
    normalize_email,
    register_user,
    validate_registration_payload,
)
from app.docappoint.rbac import role_home_url

bp = Blueprint("users", __name__)
_login_attempts: dict[str, list[datetime]] = defaultdict(list)
_LOGIN_RATE_LIMIT = 5
_LOGIN_RATE_WINDOW = 300  # seconds


def _check_rate_limit(ip: str) -> bool:
    now = datetime.utcnow()
    cutoff = now - timedelta(seconds=_LOGIN_RATE_WINDOW)
    _login_attempts[ip] = [t for t in _login_attempts[ip] if t > cutoff]
    return len(_login_attempts[ip]) >= _LOGIN_RATE_LIMIT


def _record_attempt(ip: str) -> None:
    _login_attempts[ip].append(datetime.utcnow())


def _safe_next(nxt: str) -> str | None:
    # Only allow local paths to avoid open redirects.
    if nxt.startswith("/") and not nxt.startswith("//"):
        return nxt
    return None


def login_user(user: User) -> None:
    session.pop("oauth_state", None)
    session["user_id"] = user.id
    session.permanent = True
    g.current_user = user


def load_current_user() -> None:
    """
    Loads g.current_user from the signed session cookie.
    Also assigns a simple per-request request_id (for audit/log correlation).
    """
    if not getattr(g, "request_id", None):
        g.request_id = uuid.uuid4().hex
    if request.path.startswith(("/static/", "/health", "/healthz")):
        g.current_user = None
        return

    user_id = session.get("user_id")
    if not user_id:
        g.current_user = None
        return

    s = db_session()
    user = s.get(User, int(user_id))
    if not user or not user.is_active:
        session.pop("user_id", None)
        g.current_user = None
        return
    g.current_user = user


# ---------- Register ----------
@bp.get("/register")
def register_get():
    return render_template("users/register.html")


@bp.post("/register")
def register_post():
    s = db_session()
    payload = {
        "email": request.form.get("email"),
        "username": request.form.get("username"),
        "name": request.form.get("name"),
        "password": request.form.get("password"),
        "confirm_password": request.form.get("confirm_password"),
    }
    errors = validate_registration_payload(payload)
    if errors:
        for e in errors:
            flash(e, "error")
        return redirect(url_for("users.register_get"))

    try:
        user = register_user(s, payload)
        s.commit()
    except ValueError as e:
        flash(str(e), "error")
        return redirect(url_for("users.register_get"))
    except IntegrityError:
        # lost a race with a concurrent signup for the same email
        s.rollback()
        flash("A user with the given email is already registered.", "error")
        return redirect(url_for("users.register_get"))

    login_user(user)
    current_app.logger.info("New client registered (user_id=%s)", user.id)
    flash("Welcome to DocAppoint!", "success")
    return redirect(role_home_url(user))


# ---------- Login / Logout ----------
@bp.get("/login")
def login_get():
    nxt = (request.args.get("next") or "").strip()
    return render_template("users/login.html", next=nxt, google_enabled=_google_client() is not None)


@bp.post("/login")
def login_post():
    email = normalize_email(request.form.get("email"))
    password = request.form.get("password") or ""
    nxt = (request.form.get("next") or "").strip()
    ip = request.remote_addr or "unknown"

    if _check_rate_limit(ip):
        flash("Too many login attempts. Please wait 5 minutes.", "error")
        return redirect(url_for("users.login_get"))

    _record_attempt(ip)

    s = db_session()
    user = authenticate(s, email, password)
    if not user:
        record_event(
            s,
            actor=None,
            action="auth.login_failed",
            entity_type="User",
            entity_id=email,
            reason="Invalid credentials",
        )
        s.commit()
        current_app.logger.warning("Login failed (email=%s request_id=%s)", email, getattr(g, "request_id", None))
        flash("Invalid email or password.", "error")
        return redirect(url_for("users.login_get", next=nxt) if nxt else url_for("users.login_get"))

    login_user(user)
    _login_attempts[ip].clear()
    record_event(s, actor=user, action="auth.login", entity_type="User", entity_id=str(user.id))
    s.commit()
    flash("Welcome back!", "success")
    return redirect(_safe_next(nxt) or role_home_url(user))


@bp.get("/logout")
def logout():
    s = db_session()
    user = getattr(g, "current_user", None)
    if user:
        record_event(s, actor=user, action="auth.logout", entity_type="User", entity_id=str(user.id))
        s.commit()
    session.pop("user_id", None)
    g.current_user = None
    flash("Goodbye!", "success")
    return redirect(url_for("routes.index"))


# ---------- Google OAuth ----------
def _google_client() -> oauth.GoogleOAuthClient | None:
    return oauth.google_client_from_config(current_app.config)


@bp.get("/auth/google")
def google_login():
    client = _google_client()
    if client is None:
        flash("Google sign-in is not configured.", "error")
        return redirect(url_for("users.login_get"))
    state = secrets.token_urlsafe(24)
    session["oauth_state"] = state
    return redirect(client.authorization_url(state))


@bp.get("/auth/google/callback")
def google_callback():
    client = _google_client()
    if client is None:
        flash("Google sign-in is not configured.", "error")
        return redirect(url_for("users.login_get"))

    expected_state = session.pop("oauth_state", None)
    state = request.args.get("state") or ""
    if request.args.get("error"):
        flash("Google sign-in was cancelled.", "error")
        return redirect(url_for("users.login_get"))
    if not expected_state or not secrets.compare_digest(state.encode(), expected_state.encode()):
        current_app.logger.warning("OAuth state mismatch (request_id=%s)", getattr(g, "request_id", None))
        flash("Google sign-in failed. Please try again.", "error")
        return redirect(url_for("users.login_get"))

    code = request.args.get("code") or ""
    if not code:
        flash("Google sign-in failed. Please try again.", "error")
        return redirect(url_for("users.login_get"))

    s = db_session()
    try:
        profile = client.fetch_profile(client.exchange_code(code))
        user = link_or_create_google_user(s, profile)
    except OAuthError as e:
        current_app.logger.error("Google OAuth error: %s", e.message)
        flash("Google sign-in failed. Please try again.", "error")
        return redirect(url_for("users.login_get"))
    except ValueError as e:
        s.rollback()
        flash(str(e), "error")
        return redirect(url_for("users.login_get"))
    except IntegrityError:
        s.rollback()
        current_app.logger.warning("Google account conflict (request_id=%s)", getattr(g, "request_id", None))
        flash("Google sign-in failed. Please try again.", "error")
        return redirect(url_for("users.login_get"))

    if not user.is_active:
        s.rollback()
        flash("This account has been deactivated.", "error")
        return redirect(url_for("users.login_get"))

    record_event(s, actor=user, action="auth.login", entity_type="User", entity_id=str(user.id), metadata={"via": "google"})
    try:
        s.commit()
    except IntegrityError:
        s.rollback()
        current_app.logger.warning("Google account conflict on commit (request_id=%s)", getattr(g, "request_id", None))
        flash("Google sign-in failed. Please try again.", "error")
        return redirect(url_for("users.login_get"))
    login_user(user)
    flash("Welcome back!", "success")
    return redirect(role_home_url(user))
