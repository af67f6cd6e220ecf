from datetime import date, timedelta

from app.docappoint.db import session_scope
from app.docappoint.modules.appointments.models import Appointment
from tests.conftest import csrf_token, login, make_doctor, make_user


def _future(days=3) -> str:
    return (date.today() + timedelta(days=days)).isoformat()


def _book(client, doctor_id, *, day=None, time="10:30", reason="Chest pain"):
    return client.post(
        "/client/appointments/new",
        data={
            "csrf_token": csrf_token(client),
            "doctor_id": str(doctor_id),
            "appointment_date": day or _future(),
            "appointment_time": time,
            "reason": reason,
        },
        follow_redirects=True,
    )


def test_client_pages_require_login(client):
    r = client.get("/client/")
    assert r.status_code == 302
    assert "/login" in r.headers["Location"]
    assert "next=" in r.headers["Location"]


def test_client_pages_forbidden_for_doctor(app, client):
    make_doctor(app, "doc@example.com")
    login(client, "doc@example.com")
    r = client.get("/client/")
    assert r.status_code == 403


def test_doctors_list_search(app, client):
    make_doctor(app, "grey@example.com", name="Meredith Grey", specialty="Surgery")
    make_doctor(app, "house@example.com", name="Gregory House", specialty="Diagnostics")
    make_doctor(app, "away@example.com", name="Away Doc", specialty="Surgery", is_available=False)
    make_user(app, "pat@example.com")
    login(client, "pat@example.com")

    r = client.get("/client/doctors")
    assert b"Meredith Grey" in r.data
    assert b"Gregory House" in r.data
    assert b"Away Doc" not in r.data

    r = client.get("/client/doctors?q=diagn")
    assert b"Gregory House" in r.data
    assert b"Meredith Grey" not in r.data


def test_book_appointment(app, client):
    doctor_id = make_doctor(app, "doc@example.com")
    make_user(app, "pat@example.com")
    login(client, "pat@example.com")

    r = _book(client, doctor_id)
    assert r.status_code == 200
    assert b"Appointment requested." in r.data

    with session_scope(app) as s:
        appt = s.query(Appointment).one()
        assert appt.status == "pending"
        assert appt.doctor_id == doctor_id
        assert appt.appointment_time == "10:30"

    r = client.get("/client/")
    assert b"Pending" in r.data


def test_book_in_the_past_is_refused(app, client):
    doctor_id = make_doctor(app, "doc@example.com")
    make_user(app, "pat@example.com")
    login(client, "pat@example.com")

    r = _book(client, doctor_id, day=(date.today() - timedelta(days=1)).isoformat())
    assert b"Appointments cannot be booked in the past." in r.data
    with session_scope(app) as s:
        assert s.query(Appointment).count() == 0


def test_book_bad_time_and_missing_reason(app, client):
    doctor_id = make_doctor(app, "doc@example.com")
    make_user(app, "pat@example.com")
    login(client, "pat@example.com")

    r = _book(client, doctor_id, time="25:00", reason="  ")
    assert b"Time must be in HH:MM format." in r.data
    assert b"Please describe the reason for your visit." in r.data


def test_double_booking_is_refused(app, client):
    doctor_id = make_doctor(app, "doc@example.com")
    make_user(app, "pat@example.com")
    make_user(app, "sam@example.com")
    login(client, "pat@example.com")
    _book(client, doctor_id, day=_future(5), time="09:00")

    other = app.test_client()
    login(other, "sam@example.com")
    r = _book(other, doctor_id, day=_future(5), time="09:00")
    assert b"That time slot is already booked." in r.data

    with session_scope(app) as s:
        assert s.query(Appointment).count() == 1


def test_cancelled_slot_can_be_rebooked(app, client):
    doctor_id = make_doctor(app, "doc@example.com")
    make_user(app, "pat@example.com")
    login(client, "pat@example.com")
    _book(client, doctor_id, day=_future(5), time="09:00")
    with session_scope(app) as s:
        appt_id = s.query(Appointment).one().id

    r = client.post(f"/client/appointments/{appt_id}/cancel", data={"csrf_token": csrf_token(client)}, follow_redirects=True)
    assert b"Appointment cancelled." in r.data

    _book(client, doctor_id, day=_future(5), time="09:00")
    with session_scope(app) as s:
        statuses = sorted(a.status for a in s.query(Appointment).all())
    assert statuses == ["cancelled", "pending"]


def test_unavailable_doctor_cannot_be_booked(app, client):
    doctor_id = make_doctor(app, "doc@example.com", is_available=False)
    make_user(app, "pat@example.com")
    login(client, "pat@example.com")
    r = _book(client, doctor_id)
    assert b"Please choose an available doctor." in r.data


def test_other_clients_appointment_is_hidden(app, client):
    doctor_id = make_doctor(app, "doc@example.com")
    owner_id = make_user(app, "pat@example.com")
    make_user(app, "sam@example.com")
    with session_scope(app) as s:
        appt = Appointment(
            client_id=owner_id,
            doctor_id=doctor_id,
            appointment_date=date.today() + timedelta(days=1),
            appointment_time="11:00",
            reason="Checkup",
        )
        s.add(appt)
        s.flush()
        appt_id = appt.id

    login(client, "sam@example.com")
    assert client.get(f"/client/appointments/{appt_id}").status_code == 404
    r = client.post(f"/client/appointments/{appt_id}/cancel", data={"csrf_token": csrf_token(client)})
    assert r.status_code == 404


def test_profile_update(app, client):
    make_user(app, "pat@example.com")
    login(client, "pat@example.com")
    r = client.post(
        "/client/profile",
        data={"csrf_token": csrf_token(client), "name": "Pat Doe", "username": "patd"},
        follow_redirects=True,
    )
    assert b"Profile updated." in r.data
    assert b"Pat Doe" in r.data
