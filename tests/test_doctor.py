from datetime import date, timedelta

import pytest

from app.docappoint.db import session_scope
from app.docappoint.models import AuditEvent
from app.docappoint.modules.appointments.models import Appointment
from app.docappoint.modules.doctors.models import DoctorProfile
from tests.conftest import csrf_token, login, make_doctor, make_user


@pytest.fixture()
def booked(app):
    doctor_id = make_doctor(app, "doc@example.com", name="Grey")
    client_id = make_user(app, "pat@example.com", name="Pat Doe")
    with session_scope(app) as s:
        appt = Appointment(
            client_id=client_id,
            doctor_id=doctor_id,
            appointment_date=date.today() + timedelta(days=2),
            appointment_time="14:00",
            reason="Follow-up",
        )
        s.add(appt)
        s.flush()
        return appt.id


def _set_status(client, appt_id, status, note=""):
    return client.post(
        f"/doctor/appointments/{appt_id}/status",
        data={"csrf_token": csrf_token(client), "status": status, "note": note},
        follow_redirects=True,
    )


def test_doctor_sees_booked_appointments(client, booked):
    login(client, "doc@example.com")
    r = client.get("/doctor/")
    assert r.status_code == 200
    assert b"Pat Doe" in r.data
    assert b"Follow-up" in r.data


def test_doctor_confirms_then_completes(app, client, booked):
    login(client, "doc@example.com")
    r = _set_status(client, booked, "confirmed", note="Bring your reports")
    assert b"Appointment confirmed." in r.data

    r = _set_status(client, booked, "completed")
    assert b"Appointment completed." in r.data

    with session_scope(app) as s:
        appt = s.get(Appointment, booked)
        assert appt.status == "completed"
        assert appt.doctor_note == "Bring your reports"


def test_invalid_transition_is_refused(app, client, booked):
    login(client, "doc@example.com")
    r = _set_status(client, booked, "completed")
    assert b"Cannot change a pending appointment to completed." in r.data
    with session_scope(app) as s:
        assert s.get(Appointment, booked).status == "pending"


def test_other_doctor_cannot_touch_appointment(app, client, booked):
    make_doctor(app, "other@example.com")
    login(client, "other@example.com")
    r = client.post(f"/doctor/appointments/{booked}/status", data={"csrf_token": csrf_token(client), "status": "confirmed"})
    assert r.status_code == 404


def test_client_cannot_open_doctor_pages(client, booked):
    login(client, "pat@example.com")
    assert client.get("/doctor/").status_code == 403


def test_doctor_profile_update(app, client, booked):
    login(client, "doc@example.com")
    r = client.post(
        "/doctor/profile",
        data={
            "csrf_token": csrf_token(client),
            "name": "Meredith Grey",
            "specialty": "Surgery",
            "qualification": "MD",
            "experience_years": "12",
            "consultation_fee": "80",
            "bio": "General surgeon",
        },
        follow_redirects=True,
    )
    assert b"Profile updated." in r.data
    with session_scope(app) as s:
        profile = s.query(DoctorProfile).one()
        assert profile.specialty == "Surgery"
        assert profile.experience_years == 12
        assert profile.consultation_fee == 80
        # unchecked checkbox means not taking bookings
        assert profile.is_available is False
        assert profile.user.name == "Meredith Grey"


def test_doctor_profile_validation(client, booked):
    login(client, "doc@example.com")
    r = client.post(
        "/doctor/profile",
        data={"csrf_token": csrf_token(client), "specialty": "", "experience_years": "-1"},
        follow_redirects=True,
    )
    assert b"Specialty is required." in r.data
    assert b"Experience must be a whole number" in r.data


def test_unchanged_profile_is_not_audited(app, client, booked):
    login(client, "doc@example.com")
    data = {
        "name": "Meredith Grey",
        "specialty": "Surgery",
        "experience_years": "12",
        "consultation_fee": "80",
        "is_available": "1",
    }
    for _ in range(2):
        r = client.post("/doctor/profile", data={**data, "csrf_token": csrf_token(client)}, follow_redirects=True)
        assert b"Profile updated." in r.data
    with session_scope(app) as s:
        assert s.query(AuditEvent).filter(AuditEvent.action == "doctor.edit").count() == 1
