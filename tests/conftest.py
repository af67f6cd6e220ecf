import pytest
from werkzeug.security import generate_password_hash

from app.docappoint import auth, create_app
from app.docappoint.db import session_scope
from app.docappoint.models import Base, User
from app.docappoint.modules.doctors.models import DoctorProfile


@pytest.fixture()
def app(tmp_path, monkeypatch):
    monkeypatch.setenv("SECRET_KEY", "test-secret")
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path/'test.db'}")
    monkeypatch.setenv("ENV", "test")
    for k in ("GOOGLE_CONSUMER_KEY", "GOOGLE_CONSUMER_SECRET", "GOOGLE_CALLBACK_URL", "SESSION_SECRET"):
        monkeypatch.delenv(k, raising=False)
    auth._login_attempts.clear()

    app = create_app()
    app.config["TESTING"] = True

    engine = app.extensions["sqlalchemy_engine"]
    Base.metadata.create_all(bind=engine)
    return app


@pytest.fixture()
def client(app):
    return app.test_client()


def make_user(app, email, *, password="pw1234", role="client", name=None, is_active=True) -> int:
    with session_scope(app) as s:
        u = User(
            email=email,
            username=email,
            name=name,
            password_hash=generate_password_hash(password),
            role=role,
            is_active=is_active,
        )
        s.add(u)
        s.flush()
        return u.id


def make_doctor(app, email, *, name="Grey", specialty="Cardiology", is_available=True) -> int:
    with session_scope(app) as s:
        u = User(
            email=email,
            username=email,
            name=name,
            password_hash=generate_password_hash("pw1234"),
            role="doctor",
            is_active=True,
        )
        s.add(u)
        s.add(DoctorProfile(user=u, specialty=specialty, is_available=is_available))
        s.flush()
        return u.id


def login(client, email, password="pw1234"):
    return client.post("/login", data={"email": email, "password": password}, follow_redirects=False)


def csrf_token(client) -> str:
    with client.session_transaction() as sess:
        return sess["csrf_token"]
