from urllib.parse import parse_qs, urlparse

import pytest

from app.docappoint import oauth
from app.docappoint.db import session_scope
from app.docappoint.errors import OAuthError
from app.docappoint.models import User
from app.docappoint.modules.accounts.service import link_or_create_google_user
from app.docappoint.oauth import GoogleOAuthClient, GoogleProfile, google_client_from_config
from tests.conftest import make_user


class FakeGoogle:
    def __init__(self, profile: GoogleProfile, *, fail: bool = False):
        self.profile = profile
        self.fail = fail
        self.codes: list[str] = []

    def authorization_url(self, state: str) -> str:
        return f"https://accounts.example/auth?state={state}"

    def exchange_code(self, code: str) -> str:
        if self.fail:
            raise OAuthError("HTTP 400 from Google: invalid_grant")
        self.codes.append(code)
        return "token-123"

    def fetch_profile(self, access_token: str) -> GoogleProfile:
        assert access_token == "token-123"
        return self.profile


@pytest.fixture()
def fake_google(monkeypatch):
    fake = FakeGoogle(GoogleProfile(id="google-42", email="pat@example.com", display_name="Pat Doe"))
    monkeypatch.setattr(oauth, "google_client_from_config", lambda config: fake)
    return fake


def _callback(client, *, state="abc", code="good-code"):
    with client.session_transaction() as sess:
        sess["oauth_state"] = "abc"
    return client.get(f"/auth/google/callback?state={state}&code={code}")


def test_google_login_not_configured(client):
    r = client.get("/auth/google", follow_redirects=True)
    assert b"Google sign-in is not configured." in r.data


def test_google_login_redirects_with_state(client, fake_google):
    r = client.get("/auth/google")
    assert r.status_code == 302
    assert r.headers["Location"].startswith("https://accounts.example/auth?state=")
    with client.session_transaction() as sess:
        state = sess["oauth_state"]
    assert r.headers["Location"].endswith(state)


def test_callback_creates_new_user(app, client, fake_google):
    r = _callback(client)
    assert r.status_code == 302
    assert r.headers["Location"].endswith("/client/")
    assert fake_google.codes == ["good-code"]

    with session_scope(app) as s:
        user = s.query(User).filter(User.email == "pat@example.com").one()
        assert user.google_id == "google-42"
        assert user.username == "pat@example.com"
        assert user.name == "Pat Doe"
        assert user.role == "client"
        assert user.password_hash is None

    assert client.get("/client/").status_code == 200


def test_callback_links_existing_user_by_email(app, client, fake_google):
    uid = make_user(app, "pat@example.com", name="Patricia", role="doctor")
    r = _callback(client)
    assert r.headers["Location"].endswith("/doctor/")

    with session_scope(app) as s:
        assert s.query(User).count() == 1
        user = s.get(User, uid)
        assert user.google_id == "google-42"
        assert user.name == "Patricia"


def test_callback_rejects_state_mismatch(app, client, fake_google):
    r = _callback(client, state="forged")
    assert r.headers["Location"].endswith("/login")
    assert fake_google.codes == []
    with session_scope(app) as s:
        assert s.query(User).count() == 0


def test_callback_token_failure(client, monkeypatch):
    fake = FakeGoogle(GoogleProfile(id="x", email="a@example.com", display_name=None), fail=True)
    monkeypatch.setattr(oauth, "google_client_from_config", lambda config: fake)
    r = _callback(client)
    assert r.headers["Location"].endswith("/login")
    r = client.get("/login")
    assert b"Google sign-in failed" in r.data


def test_callback_refuses_inactive_user(app, client, fake_google):
    make_user(app, "pat@example.com", is_active=False)
    r = _callback(client, code="good-code")
    assert r.headers["Location"].endswith("/login")
    with client.session_transaction() as sess:
        assert "user_id" not in sess


def test_link_requires_email(app):
    with session_scope(app) as s:
        with pytest.raises(ValueError):
            link_or_create_google_user(s, GoogleProfile(id="1", email=None, display_name="No Mail"))


def test_client_from_config_requires_credentials():
    assert google_client_from_config({"GOOGLE_CONSUMER_KEY": "id"}) is None
    client = google_client_from_config(
        {
            "GOOGLE_CONSUMER_KEY": "id",
            "GOOGLE_CONSUMER_SECRET": "secret",
            "GOOGLE_CALLBACK_URL": "http://localhost:3000/auth/google/callback",
        }
    )
    assert isinstance(client, GoogleOAuthClient)


def test_authorization_url_params():
    client = GoogleOAuthClient(client_id="id", client_secret="secret", callback_url="http://localhost/cb")
    url = urlparse(client.authorization_url("xyz"))
    params = parse_qs(url.query)
    assert url.netloc == "accounts.google.com"
    assert params["client_id"] == ["id"]
    assert params["redirect_uri"] == ["http://localhost/cb"]
    assert params["state"] == ["xyz"]
    assert params["scope"] == ["openid email profile"]
    assert params["response_type"] == ["code"]


def _link(app, uid, google_id):
    with session_scope(app) as s:
        s.get(User, uid).google_id = google_id


def test_callback_google_id_held_by_other_user(app, client, fake_google):
    old_id = make_user(app, "old@example.com")
    _link(app, old_id, "google-42")
    pat_id = make_user(app, "pat@example.com")

    r = _callback(client)
    assert r.headers["Location"].endswith("/login")
    with client.session_transaction() as sess:
        assert "user_id" not in sess
    r = client.get("/login")
    assert b"already linked to another user" in r.data

    with session_scope(app) as s:
        assert s.get(User, old_id).google_id == "google-42"
        assert s.get(User, pat_id).google_id is None


def test_callback_after_google_email_change(app, client, fake_google):
    old_id = make_user(app, "old@example.com")
    _link(app, old_id, "google-42")

    r = _callback(client)
    assert r.headers["Location"].endswith("/client/")
    with client.session_transaction() as sess:
        assert sess["user_id"] == old_id
    with session_scope(app) as s:
        assert s.query(User).count() == 1
