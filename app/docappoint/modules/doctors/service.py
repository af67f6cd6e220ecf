from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from app.docappoint.audit import record_event
from app.docappoint.constants import DEFAULT_SPECIALTY, ROLE_DOCTOR
from app.docappoint.models import User
from app.docappoint.modules.doctors.models import DoctorProfile

if TYPE_CHECKING:
    from sqlalchemy.orm import Session


def _parse_non_negative_int(raw: str | int | None) -> int | None:
    if raw is None or raw == "":
        return 0
    try:
        value = int(raw)
    except (TypeError, ValueError):
        return None
    return value if value >= 0 else None


def validate_profile_payload(payload: dict) -> list[str]:
    """Validate doctor profile fields. Returns list of errors."""
    errors = []
    if not (payload.get("specialty") or "").strip():
        errors.append("Specialty is required.")
    if _parse_non_negative_int(payload.get("experience_years")) is None:
        errors.append("Experience must be a whole number of years (0 or more).")
    if _parse_non_negative_int(payload.get("consultation_fee")) is None:
        errors.append("Consultation fee must be a whole number (0 or more).")
    return errors


def ensure_doctor_profile(s: "Session", user: User) -> DoctorProfile:
    if user.doctor_profile is not None:
        return user.doctor_profile
    now = datetime.utcnow()
    profile = DoctorProfile(
        user=user,
        specialty=DEFAULT_SPECIALTY,
        experience_years=0,
        consultation_fee=0,
        is_available=True,
        created_at=now,
        updated_at=now,
    )
    s.add(profile)
    return profile


def create_doctor(s: "Session", payload: dict, actor: User) -> User:
    """
    Create a doctor account and its profile in one go (admin action).
    The caller validates both payload halves and commits.
    """
    from app.docappoint.modules.accounts.service import register_user

    user = register_user(s, payload, role=ROLE_DOCTOR, actor=actor)
    now = datetime.utcnow()
    profile = DoctorProfile(
        user=user,
        created_at=now,
        updated_at=now,
    )
    _apply_profile_fields(profile, payload)
    s.add(profile)
    s.flush()

    record_event(
        s,
        actor=actor,
        action="doctor.create",
        entity_type="DoctorProfile",
        entity_id=str(profile.id),
        metadata={"email": user.email, "specialty": profile.specialty},
    )
    return user


def _apply_profile_fields(profile: DoctorProfile, payload: dict) -> dict:
    changes = {}
    fields = {
        "specialty": (payload.get("specialty") or "").strip() or DEFAULT_SPECIALTY,
        "qualification": (payload.get("qualification") or "").strip() or None,
        "experience_years": _parse_non_negative_int(payload.get("experience_years")) or 0,
        "consultation_fee": _parse_non_negative_int(payload.get("consultation_fee")) or 0,
        "bio": (payload.get("bio") or "").strip() or None,
        "is_available": bool(payload.get("is_available")),
    }
    for key, new in fields.items():
        old = getattr(profile, key)
        if old != new:
            changes[key] = {"old": old, "new": new}
            setattr(profile, key, new)
    return changes


def update_doctor_profile(s: "Session", profile: DoctorProfile, payload: dict, actor: User) -> DoctorProfile:
    """Update an existing doctor profile (doctor self-service or admin)."""
    changes = _apply_profile_fields(profile, payload)
    name = (payload.get("name") or "").strip()
    if name and name != profile.user.name:
        changes["name"] = {"old": profile.user.name, "new": name}
        profile.user.name = name
    if not changes:
        return profile
    profile.updated_at = datetime.utcnow()

    record_event(
        s,
        actor=actor,
        action="doctor.edit",
        entity_type="DoctorProfile",
        entity_id=str(profile.id),
        metadata={"changes": changes},
    )
    return profile


def list_doctors(
    s: "Session",
    *,
    search: str = "",
    specialty: str = "",
    bookable_only: bool = False,
) -> list[DoctorProfile]:
    q = s.query(DoctorProfile).join(User, DoctorProfile.user_id == User.id).filter(User.role == ROLE_DOCTOR)
    if bookable_only:
        q = q.filter(User.is_active.is_(True)).filter(DoctorProfile.is_available.is_(True))
    if search:
        like = f"%{search}%"
        q = q.filter(
            (User.name.ilike(like))
            | (User.username.ilike(like))
            | (DoctorProfile.specialty.ilike(like))
        )
    if specialty:
        q = q.filter(DoctorProfile.specialty == specialty)
    return q.order_by(User.name.asc(), User.id.asc()).all()


def specialties_in_use(s: "Session") -> list[str]:
    rows = s.query(DoctorProfile.specialty).distinct().all()
    return sorted(r[0] for r in rows if r[0])
