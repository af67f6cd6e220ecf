from __future__ import annotations

from datetime import date

from flask import Blueprint, abort, flash, g, redirect, render_template, request, url_for

from app.docappoint.constants import ROLE_CLIENT, STATUS_CANCELLED
from app.docappoint.db import db_session
from app.docappoint.models import User
from app.docappoint.modules.accounts.service import update_account
from app.docappoint.modules.appointments.models import Appointment
from app.docappoint.modules.appointments.service import (
    AppointmentError,
    appointments_for_client,
    book_appointment,
    change_status,
    validate_booking_payload,
)
from app.docappoint.modules.doctors.service import list_doctors, specialties_in_use
from app.docappoint.rbac import require_role

bp = Blueprint("client", __name__)


def _current_user() -> User:
    u = getattr(g, "current_user", None)
    if not u:
        raise RuntimeError("No current user")
    return u


def _own_appointment(appointment_id: int) -> Appointment:
    appt = db_session().get(Appointment, appointment_id)
    # Someone else's appointment is reported as missing.
    if not appt or appt.client_id != _current_user().id:
        abort(404)
    return appt


# ---------- Dashboard ----------
@bp.get("/")
@require_role(ROLE_CLIENT)
def index():
    s = db_session()
    appointments = appointments_for_client(s, _current_user().id)
    return render_template("client/index.html", appointments=appointments, today=date.today())


# ---------- Doctors ----------
@bp.get("/doctors")
@require_role(ROLE_CLIENT)
def doctors_list():
    s = db_session()
    search = (request.args.get("q") or "").strip()
    specialty = (request.args.get("specialty") or "").strip()
    doctors = list_doctors(s, search=search, specialty=specialty, bookable_only=True)
    return render_template(
        "client/doctors.html",
        doctors=doctors,
        search=search,
        specialty_filter=specialty,
        specialties=specialties_in_use(s),
    )


# ---------- Book ----------
@bp.get("/appointments/new")
@require_role(ROLE_CLIENT)
def appointment_new_get():
    s = db_session()
    doctors = list_doctors(s, bookable_only=True)
    selected = request.args.get("doctor_id", type=int)
    return render_template(
        "client/new_appointment.html",
        doctors=doctors,
        selected_doctor_id=selected,
        today=date.today(),
    )


@bp.post("/appointments/new")
@require_role(ROLE_CLIENT)
def appointment_new_post():
    s = db_session()
    u = _current_user()
    payload = {
        "doctor_id": request.form.get("doctor_id"),
        "appointment_date": request.form.get("appointment_date"),
        "appointment_time": request.form.get("appointment_time"),
        "reason": request.form.get("reason"),
    }

    errors = validate_booking_payload(s, payload)
    if errors:
        for e in errors:
            flash(e, "error")
        return redirect(url_for("client.appointment_new_get", doctor_id=payload.get("doctor_id") or None))

    appt = book_appointment(s, payload, u)
    s.commit()

    flash("Appointment requested. The doctor will confirm it soon.", "success")
    return redirect(url_for("client.appointment_detail", appointment_id=appt.id))


# ---------- Detail ----------
@bp.get("/appointments/<int:appointment_id>")
@require_role(ROLE_CLIENT)
def appointment_detail(appointment_id: int):
    appt = _own_appointment(appointment_id)
    return render_template("client/appointment.html", appointment=appt)


@bp.post("/appointments/<int:appointment_id>/cancel")
@require_role(ROLE_CLIENT)
def appointment_cancel(appointment_id: int):
    s = db_session()
    appt = _own_appointment(appointment_id)
    try:
        change_status(s, appt, STATUS_CANCELLED, _current_user())
    except AppointmentError as e:
        flash(str(e), "error")
        return redirect(url_for("client.appointment_detail", appointment_id=appointment_id))
    s.commit()
    flash("Appointment cancelled.", "info")
    return redirect(url_for("client.index"))


# ---------- Profile ----------
@bp.get("/profile")
@require_role(ROLE_CLIENT)
def profile_get():
    return render_template("client/profile.html", user=_current_user())


@bp.post("/profile")
@require_role(ROLE_CLIENT)
def profile_post():
    s = db_session()
    errors = update_account(
        s,
        _current_user(),
        {"name": request.form.get("name"), "username": request.form.get("username")},
    )
    if errors:
        for e in errors:
            flash(e, "error")
        return redirect(url_for("client.profile_get"))
    s.commit()
    flash("Profile updated.", "success")
    return redirect(url_for("client.profile_get"))
