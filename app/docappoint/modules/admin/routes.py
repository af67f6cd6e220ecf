from __future__ import annotations

from flask import Blueprint, abort, flash, g, redirect, render_template, request, url_for
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from app.docappoint.constants import APPOINTMENT_STATUSES, ROLE_ADMIN, ROLE_DOCTOR, ROLES, SPECIALTIES
from app.docappoint.db import db_session
from app.docappoint.models import User
from app.docappoint.modules.accounts.service import change_role, set_active, validate_registration_payload
from app.docappoint.modules.appointments.models import Appointment
from app.docappoint.modules.appointments.service import status_counts
from app.docappoint.modules.doctors.models import DoctorProfile
from app.docappoint.modules.doctors.service import (
    create_doctor,
    list_doctors,
    update_doctor_profile,
    validate_profile_payload,
)
from app.docappoint.rbac import require_role

bp = Blueprint("admin", __name__)


def _current_user() -> User:
    u = getattr(g, "current_user", None)
    if not u:
        raise RuntimeError("No current user")
    return u


def _profile_payload() -> dict:
    return {
        "name": request.form.get("name"),
        "specialty": request.form.get("specialty"),
        "qualification": request.form.get("qualification"),
        "experience_years": request.form.get("experience_years"),
        "consultation_fee": request.form.get("consultation_fee"),
        "bio": request.form.get("bio"),
        "is_available": request.form.get("is_available"),
    }


# ---------- Dashboard ----------
@bp.get("/")
@require_role(ROLE_ADMIN)
def index():
    s = db_session()
    role_rows = s.query(User.role, func.count(User.id)).group_by(User.role).all()
    role_counts = {role: 0 for role in ROLES}
    role_counts.update({role: count for role, count in role_rows})
    appt_counts = {status: 0 for status in APPOINTMENT_STATUSES}
    appt_counts.update(status_counts(s))
    return render_template("admin/index.html", role_counts=role_counts, appointment_counts=appt_counts)


# ---------- Users ----------
@bp.get("/users")
@require_role(ROLE_ADMIN)
def users_list():
    s = db_session()
    search = (request.args.get("q") or "").strip()
    role_filter = (request.args.get("role") or "").strip()

    q = s.query(User)
    if search:
        like = f"%{search}%"
        q = q.filter((User.email.ilike(like)) | (User.username.ilike(like)) | (User.name.ilike(like)))
    if role_filter in ROLES:
        q = q.filter(User.role == role_filter)
    users = q.order_by(User.created_at.desc(), User.id.desc()).all()

    return render_template(
        "admin/users.html",
        users=users,
        search=search,
        role_filter=role_filter,
        roles=ROLES,
    )


@bp.post("/users/<int:user_id>/role")
@require_role(ROLE_ADMIN)
def user_role(user_id: int):
    s = db_session()
    user = s.get(User, user_id)
    if not user:
        abort(404)
    new_role = (request.form.get("role") or "").strip()
    try:
        change_role(s, user, new_role, _current_user())
    except ValueError as e:
        flash(str(e), "error")
        return redirect(url_for("admin.users_list"))
    s.commit()
    flash(f"{user.email} is now {user.role}.", "success")
    return redirect(url_for("admin.users_list"))


@bp.post("/users/<int:user_id>/toggle-active")
@require_role(ROLE_ADMIN)
def user_toggle_active(user_id: int):
    s = db_session()
    user = s.get(User, user_id)
    if not user:
        abort(404)
    try:
        set_active(s, user, not user.is_active, _current_user())
    except ValueError as e:
        flash(str(e), "error")
        return redirect(url_for("admin.users_list"))
    s.commit()
    flash(f"{user.email} {'activated' if user.is_active else 'deactivated'}.", "info")
    return redirect(url_for("admin.users_list"))


# ---------- Doctors ----------
@bp.get("/doctors")
@require_role(ROLE_ADMIN)
def doctors_list():
    s = db_session()
    search = (request.args.get("q") or "").strip()
    doctors = list_doctors(s, search=search)
    return render_template("admin/doctors.html", doctors=doctors, search=search)


@bp.get("/doctors/new")
@require_role(ROLE_ADMIN)
def doctors_new_get():
    return render_template("admin/doctor_new.html", specialties=SPECIALTIES)


@bp.post("/doctors/new")
@require_role(ROLE_ADMIN)
def doctors_new_post():
    s = db_session()
    payload = _profile_payload()
    payload.update(
        {
            "email": request.form.get("email"),
            "username": request.form.get("username") or request.form.get("email"),
            "password": request.form.get("password"),
            "confirm_password": request.form.get("confirm_password"),
        }
    )

    errors = validate_registration_payload(payload) + validate_profile_payload(payload)
    if errors:
        for e in errors:
            flash(e, "error")
        return redirect(url_for("admin.doctors_new_get"))

    try:
        create_doctor(s, payload, _current_user())
        s.commit()
    except ValueError as e:
        flash(str(e), "error")
        return redirect(url_for("admin.doctors_new_get"))
    except IntegrityError:
        s.rollback()
        flash("A user with the given email is already registered.", "error")
        return redirect(url_for("admin.doctors_new_get"))

    flash("Doctor created.", "success")
    return redirect(url_for("admin.doctors_list"))


@bp.get("/doctors/<int:profile_id>/edit")
@require_role(ROLE_ADMIN)
def doctor_edit_get(profile_id: int):
    s = db_session()
    profile = s.get(DoctorProfile, profile_id)
    if not profile:
        abort(404)
    return render_template("admin/doctor_edit.html", profile=profile, specialties=SPECIALTIES)


@bp.post("/doctors/<int:profile_id>/edit")
@require_role(ROLE_ADMIN)
def doctor_edit_post(profile_id: int):
    s = db_session()
    profile = s.get(DoctorProfile, profile_id)
    if not profile:
        abort(404)
    if profile.user.role != ROLE_DOCTOR:
        flash("That user is no longer a doctor.", "error")
        return redirect(url_for("admin.doctors_list"))

    payload = _profile_payload()
    errors = validate_profile_payload(payload)
    if errors:
        for e in errors:
            flash(e, "error")
        return redirect(url_for("admin.doctor_edit_get", profile_id=profile_id))

    update_doctor_profile(s, profile, payload, _current_user())
    s.commit()
    flash("Doctor updated.", "success")
    return redirect(url_for("admin.doctors_list"))


# ---------- Appointments ----------
@bp.get("/appointments")
@require_role(ROLE_ADMIN)
def appointments_list():
    s = db_session()
    status_filter = (request.args.get("status") or "").strip()
    q = s.query(Appointment)
    if status_filter in APPOINTMENT_STATUSES:
        q = q.filter(Appointment.status == status_filter)
    appointments = q.order_by(Appointment.appointment_date.desc(), Appointment.appointment_time.desc()).all()
    return render_template(
        "admin/appointments.html",
        appointments=appointments,
        status_filter=status_filter,
        statuses=APPOINTMENT_STATUSES,
    )
