from __future__ import annotations

import re
from typing import TYPE_CHECKING

from werkzeug.security import check_password_hash, generate_password_hash

from app.docappoint.audit import record_event
from app.docappoint.constants import ROLE_CLIENT, ROLE_DOCTOR, ROLES
from app.docappoint.models import User

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from app.docappoint.oauth import GoogleProfile


EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
MIN_PASSWORD_LENGTH = 6


def normalize_email(raw: str | None) -> str:
    return (raw or "").strip().lower()


def find_by_email(s: "Session", email: str) -> User | None:
    return s.query(User).filter(User.email == normalize_email(email)).one_or_none()


def validate_registration_payload(payload: dict) -> list[str]:
    """Validate signup form. Returns list of errors."""
    errors = []
    email = normalize_email(payload.get("email"))
    if not email:
        errors.append("Email is required.")
    elif not EMAIL_RE.match(email):
        errors.append("Email address is not valid.")
    if not (payload.get("username") or "").strip():
        errors.append("Username is required.")
    password = payload.get("password") or ""
    if len(password) < MIN_PASSWORD_LENGTH:
        errors.append(f"Password must be at least {MIN_PASSWORD_LENGTH} characters.")
    elif password != (payload.get("confirm_password") or ""):
        errors.append("Passwords do not match.")
    return errors


def register_user(s: "Session", payload: dict, *, role: str = ROLE_CLIENT, actor: User | None = None) -> User:
    """
    Create a local (email + password) account. The caller validates and commits.
    Raises ValueError when the email is already registered.
    `actor` is the admin creating the account; self-signups audit as the new user.
    """
    if role not in ROLES:
        raise ValueError(f"Unknown role: {role}")
    email = normalize_email(payload.get("email"))
    if find_by_email(s, email):
        raise ValueError("A user with the given email is already registered.")

    user = User(
        email=email,
        username=(payload.get("username") or "").strip() or email,
        name=(payload.get("name") or "").strip() or None,
        password_hash=generate_password_hash(payload.get("password") or ""),
        role=role,
        is_active=True,
    )
    s.add(user)
    s.flush()
    record_event(s, actor=actor or user, action="auth.register", entity_type="User", entity_id=str(user.id))
    return user


def authenticate(s: "Session", email: str, password: str) -> User | None:
    """Email is the login identifier. Google-only accounts have no password and never match."""
    user = find_by_email(s, email)
    if not user or not user.is_active or not user.password_hash:
        return None
    if not check_password_hash(user.password_hash, password):
        return None
    return user


def link_or_create_google_user(s: "Session", profile: "GoogleProfile") -> User:
    """
    Resolve a Google login to a local user.

    An existing account with the same email gets the Google id attached (or
    refreshed). Otherwise a new client account is created from the profile.
    The caller commits.

    A Google id belongs to at most one user. If the Google account's email
    changed since it was linked, the linked user signs in unless the new email
    belongs to a different account, which raises ValueError.
    """
    if not profile.email:
        raise ValueError("Google account has no email address.")
    email = normalize_email(profile.email)

    existing = find_by_email(s, email)
    linked = s.query(User).filter(User.google_id == profile.id).one_or_none()
    if linked is not None and (existing is None or existing.id == linked.id):
        return linked
    if linked is not None:
        raise ValueError("This Google account is already linked to another user.")

    if existing:
        if existing.google_id != profile.id:
            existing.google_id = profile.id
            record_event(s, actor=existing, action="auth.google_link", entity_type="User", entity_id=str(existing.id))
        return existing

    user = User(
        email=email,
        username=email,
        google_id=profile.id,
        name=profile.display_name,
        role=ROLE_CLIENT,
        is_active=True,
    )
    s.add(user)
    s.flush()
    record_event(s, actor=user, action="auth.google_signup", entity_type="User", entity_id=str(user.id))
    return user


def update_account(s: "Session", user: User, payload: dict) -> list[str]:
    """Self-service profile edit (name, username). Returns list of errors."""
    username = (payload.get("username") or "").strip()
    if not username:
        return ["Username is required."]
    changes = {}
    name = (payload.get("name") or "").strip() or None
    if name != user.name:
        changes["name"] = {"old": user.name, "new": name}
        user.name = name
    if username != user.username:
        changes["username"] = {"old": user.username, "new": username}
        user.username = username
    if changes:
        record_event(s, actor=user, action="user.edit", entity_type="User", entity_id=str(user.id), metadata=changes)
    return []


def change_role(s: "Session", user: User, new_role: str, actor: User) -> None:
    """
    Admin role change. Promoting to doctor ensures a doctor profile exists.
    Raises ValueError on an unknown role or when an admin demotes themselves.
    """
    from app.docappoint.modules.doctors.service import ensure_doctor_profile

    if new_role not in ROLES:
        raise ValueError(f"Invalid role. Must be one of: {', '.join(ROLES)}")
    if user.id == actor.id and new_role != user.role:
        raise ValueError("You cannot change your own role.")
    old_role = user.role
    if old_role == new_role:
        return
    user.role = new_role
    if new_role == ROLE_DOCTOR:
        ensure_doctor_profile(s, user)
    record_event(
        s,
        actor=actor,
        action="user.role_change",
        entity_type="User",
        entity_id=str(user.id),
        metadata={"old": old_role, "new": new_role},
    )


def set_active(s: "Session", user: User, active: bool, actor: User) -> None:
    if user.id == actor.id and not active:
        raise ValueError("You cannot deactivate your own account.")
    user.is_active = active
    record_event(
        s,
        actor=actor,
        action="user.activate" if active else "user.deactivate",
        entity_type="User",
        entity_id=str(user.id),
    )
