from __future__ import annotations

import re
from datetime import date, datetime
from typing import TYPE_CHECKING

from app.docappoint.audit import record_event
from app.docappoint.constants import (
    ACTIVE_STATUSES,
    ROLE_CLIENT,
    ROLE_DOCTOR,
    STATUS_CANCELLED,
    STATUS_PENDING,
    STATUS_TRANSITIONS,
)
from app.docappoint.models import User
from app.docappoint.modules.appointments.models import Appointment

if TYPE_CHECKING:
    from sqlalchemy.orm import Session


TIME_RE = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")

# Who may move an appointment into which status.
CLIENT_TARGETS = frozenset({STATUS_CANCELLED})
DOCTOR_TARGETS = frozenset(s for targets in STATUS_TRANSITIONS.values() for s in targets)


class AppointmentError(ValueError):
    pass


def parse_date(s: str | None) -> date | None:
    """Parse YYYY-MM-DD date string."""
    s = (s or "").strip()
    if not s:
        return None
    try:
        return date.fromisoformat(s)
    except ValueError:
        return None


def validate_booking_payload(s: "Session", payload: dict, *, today: date | None = None) -> list[str]:
    """Validate a booking form. Returns list of errors."""
    today = today or date.today()
    errors = []

    doctor = _bookable_doctor(s, payload.get("doctor_id"))
    if doctor is None:
        errors.append("Please choose an available doctor.")

    raw_date = (payload.get("appointment_date") or "").strip()
    appt_date = parse_date(raw_date)
    if not raw_date:
        errors.append("Date is required.")
    elif appt_date is None:
        errors.append("Date must be in YYYY-MM-DD format.")
    elif appt_date < today:
        errors.append("Appointments cannot be booked in the past.")

    appt_time = (payload.get("appointment_time") or "").strip()
    if not TIME_RE.match(appt_time):
        errors.append("Time must be in HH:MM format.")

    if not (payload.get("reason") or "").strip():
        errors.append("Please describe the reason for your visit.")

    if not errors and slot_taken(s, doctor.id, appt_date, appt_time):  # type: ignore[union-attr]
        errors.append("That time slot is already booked. Please pick another.")
    return errors


def _bookable_doctor(s: "Session", raw_id) -> User | None:
    try:
        doctor_id = int(raw_id)
    except (TypeError, ValueError):
        return None
    doctor = s.get(User, doctor_id)
    if not doctor or doctor.role != ROLE_DOCTOR or not doctor.is_active:
        return None
    if doctor.doctor_profile is None or not doctor.doctor_profile.is_available:
        return None
    return doctor


def slot_taken(s: "Session", doctor_id: int, appt_date: date, appt_time: str) -> bool:
    return (
        s.query(Appointment.id)
        .filter(Appointment.doctor_id == doctor_id)
        .filter(Appointment.appointment_date == appt_date)
        .filter(Appointment.appointment_time == appt_time)
        .filter(Appointment.status.in_(ACTIVE_STATUSES))
        .first()
        is not None
    )


def book_appointment(s: "Session", payload: dict, client: User) -> Appointment:
    """Create a pending appointment. The caller validates and commits."""
    now = datetime.utcnow()
    appt = Appointment(
        client_id=client.id,
        doctor_id=int(payload["doctor_id"]),
        appointment_date=parse_date(payload.get("appointment_date")),
        appointment_time=(payload.get("appointment_time") or "").strip(),
        reason=(payload.get("reason") or "").strip(),
        status=STATUS_PENDING,
        created_at=now,
        updated_at=now,
    )
    s.add(appt)
    s.flush()

    record_event(
        s,
        actor=client,
        action="appointment.book",
        entity_type="Appointment",
        entity_id=str(appt.id),
        metadata={
            "doctor_id": appt.doctor_id,
            "date": appt.appointment_date.isoformat(),
            "time": appt.appointment_time,
        },
    )
    return appt


def can_transition(current: str, target: str) -> bool:
    return target in STATUS_TRANSITIONS.get(current, frozenset())


def change_status(
    s: "Session",
    appt: Appointment,
    target: str,
    actor: User,
    *,
    note: str | None = None,
) -> Appointment:
    """
    Move an appointment to `target`.

    Clients may only cancel their own appointments; doctors may act on
    appointments booked with them. Raises AppointmentError otherwise.
    """
    if actor.role == ROLE_CLIENT:
        if appt.client_id != actor.id or target not in CLIENT_TARGETS:
            raise AppointmentError("You are not allowed to make that change.")
    elif actor.role == ROLE_DOCTOR:
        if appt.doctor_id != actor.id or target not in DOCTOR_TARGETS:
            raise AppointmentError("You are not allowed to make that change.")
    else:
        raise AppointmentError("You are not allowed to make that change.")

    if not can_transition(appt.status, target):
        raise AppointmentError(f"Cannot change a {appt.status} appointment to {target}.")

    old = appt.status
    appt.status = target
    if note is not None and note.strip():
        appt.doctor_note = note.strip()
    appt.updated_at = datetime.utcnow()

    record_event(
        s,
        actor=actor,
        action=f"appointment.{target}",
        entity_type="Appointment",
        entity_id=str(appt.id),
        metadata={"old": old, "new": target},
    )
    return appt


def appointments_for_client(s: "Session", client_id: int) -> list[Appointment]:
    return (
        s.query(Appointment)
        .filter(Appointment.client_id == client_id)
        .order_by(Appointment.appointment_date.desc(), Appointment.appointment_time.desc())
        .all()
    )


def appointments_for_doctor(s: "Session", doctor_id: int, *, status: str = "") -> list[Appointment]:
    q = s.query(Appointment).filter(Appointment.doctor_id == doctor_id)
    if status:
        q = q.filter(Appointment.status == status)
    return q.order_by(Appointment.appointment_date.asc(), Appointment.appointment_time.asc()).all()


def status_counts(s: "Session") -> dict[str, int]:
    from sqlalchemy import func

    rows = s.query(Appointment.status, func.count(Appointment.id)).group_by(Appointment.status).all()
    return {status: count for status, count in rows}
