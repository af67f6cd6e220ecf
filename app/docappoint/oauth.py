from __future__ import annotations

import json
import urllib.error
import urllib.parse
import urllib.request
from dataclasses import dataclass
from typing import Any

from app.docappoint.errors import OAuthError

AUTHORIZE_URL = "https://accounts.google.com/o/oauth2/v2/auth"
TOKEN_URL = "https://oauth2.googleapis.com/token"
USERINFO_URL = "https://openidconnect.googleapis.com/v1/userinfo"
SCOPES = ("openid", "email", "profile")


@dataclass(frozen=True)
class GoogleProfile:
    id: str
    email: str | None
    display_name: str | None


@dataclass(frozen=True)
class GoogleOAuthClient:
    client_id: str
    client_secret: str
    callback_url: str
    timeout_seconds: int = 15

    def authorization_url(self, state: str) -> str:
        params = {
            "client_id": self.client_id,
            "redirect_uri": self.callback_url,
            "response_type": "code",
            "scope": " ".join(SCOPES),
            "state": state,
            "prompt": "select_account",
        }
        return AUTHORIZE_URL + "?" + urllib.parse.urlencode(params)

    def _request_json(self, req: urllib.request.Request) -> dict[str, Any]:
        req.add_header("Accept", "application/json")
        try:
            with urllib.request.urlopen(req, timeout=self.timeout_seconds) as resp:
                raw = resp.read()
        except urllib.error.HTTPError as e:
            try:
                body = e.read().decode("utf-8", errors="ignore")
            except OSError:
                body = ""
            raise OAuthError(f"HTTP {e.code} from Google: {body[:300]}") from e
        except (urllib.error.URLError, TimeoutError) as e:
            raise OAuthError(f"Google request failed: {e}") from e
        try:
            data = json.loads(raw.decode("utf-8"))
        except ValueError as e:
            raise OAuthError("Invalid JSON from Google") from e
        if not isinstance(data, dict):
            raise OAuthError("Unexpected response from Google")
        return data

    def exchange_code(self, code: str) -> str:
        """Trade an authorization code for an access token."""
        body = urllib.parse.urlencode(
            {
                "code": code,
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "redirect_uri": self.callback_url,
                "grant_type": "authorization_code",
            }
        ).encode("ascii")
        req = urllib.request.Request(TOKEN_URL, data=body, method="POST")
        req.add_header("Content-Type", "application/x-www-form-urlencoded")
        token = self._request_json(req).get("access_token")
        if not token:
            raise OAuthError("Google did not return an access token")
        return str(token)

    def fetch_profile(self, access_token: str) -> GoogleProfile:
        req = urllib.request.Request(USERINFO_URL, method="GET")
        req.add_header("Authorization", f"Bearer {access_token}")
        data = self._request_json(req)
        sub = data.get("sub")
        if not sub:
            raise OAuthError("Google profile has no id")
        return GoogleProfile(
            id=str(sub),
            email=(data.get("email") or None),
            display_name=(data.get("name") or None),
        )


def google_client_from_config(config: dict) -> GoogleOAuthClient | None:
    """Build the client, or None when credentials are not configured."""
    client_id = (config.get("GOOGLE_CONSUMER_KEY") or "").strip()
    client_secret = (config.get("GOOGLE_CONSUMER_SECRET") or "").strip()
    callback_url = (config.get("GOOGLE_CALLBACK_URL") or "").strip()
    if not (client_id and client_secret and callback_url):
        return None
    return GoogleOAuthClient(client_id=client_id, client_secret=client_secret, callback_url=callback_url)
