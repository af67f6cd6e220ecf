from __future__ import annotations

from datetime import date

from flask import Blueprint, abort, flash, g, redirect, render_template, request, url_for

from app.docappoint.constants import APPOINTMENT_STATUSES, ROLE_DOCTOR
from app.docappoint.db import db_session
from app.docappoint.models import User
from app.docappoint.modules.appointments.models import Appointment
from app.docappoint.modules.appointments.service import (
    AppointmentError,
    appointments_for_doctor,
    change_status,
)
from app.docappoint.modules.doctors.service import (
    ensure_doctor_profile,
    update_doctor_profile,
    validate_profile_payload,
)
from app.docappoint.rbac import require_role

bp = Blueprint("doctor", __name__)


def _current_user() -> User:
    u = getattr(g, "current_user", None)
    if not u:
        raise RuntimeError("No current user")
    return u


@bp.get("/")
@require_role(ROLE_DOCTOR)
def index():
    s = db_session()
    status_filter = (request.args.get("status") or "").strip()
    if status_filter and status_filter not in APPOINTMENT_STATUSES:
        status_filter = ""
    appointments = appointments_for_doctor(s, _current_user().id, status=status_filter)
    return render_template(
        "doctor/index.html",
        appointments=appointments,
        status_filter=status_filter,
        statuses=APPOINTMENT_STATUSES,
        today=date.today(),
    )


@bp.post("/appointments/<int:appointment_id>/status")
@require_role(ROLE_DOCTOR)
def appointment_status(appointment_id: int):
    s = db_session()
    u = _current_user()
    appt = s.get(Appointment, appointment_id)
    if not appt or appt.doctor_id != u.id:
        abort(404)

    target = (request.form.get("status") or "").strip()
    note = request.form.get("note")
    try:
        change_status(s, appt, target, u, note=note)
    except AppointmentError as e:
        flash(str(e), "error")
        return redirect(url_for("doctor.index"))
    s.commit()
    flash(f"Appointment {target}.", "success")
    return redirect(url_for("doctor.index"))


@bp.get("/profile")
@require_role(ROLE_DOCTOR)
def profile_get():
    s = db_session()
    u = _current_user()
    profile = ensure_doctor_profile(s, u)
    s.commit()
    return render_template("doctor/profile.html", profile=profile)


@bp.post("/profile")
@require_role(ROLE_DOCTOR)
def profile_post():
    s = db_session()
    u = _current_user()
    payload = {
        "name": request.form.get("name"),
        "specialty": request.form.get("specialty"),
        "qualification": request.form.get("qualification"),
        "experience_years": request.form.get("experience_years"),
        "consultation_fee": request.form.get("consultation_fee"),
        "bio": request.form.get("bio"),
        "is_available": request.form.get("is_available"),
    }
    errors = validate_profile_payload(payload)
    if errors:
        for e in errors:
            flash(e, "error")
        return redirect(url_for("doctor.profile_get"))

    profile = ensure_doctor_profile(s, u)
    update_doctor_profile(s, profile, payload, u)
    s.commit()
    flash("Profile updated.", "success")
    return redirect(url_for("doctor.profile_get"))
