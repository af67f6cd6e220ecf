import os
from dataclasses import dataclass
from datetime import timedelta


SESSION_LIFETIME = timedelta(days=7)


@dataclass(frozen=True)
class Settings:
    secret_key: str
    env: str
    database_url: str
    port: int

    google_consumer_key: str
    google_consumer_secret: str
    google_callback_url: str


def _getenv(name: str, default: str = "") -> str:
    return (os.environ.get(name) or default).strip()


def _getint(name: str, default: int) -> int:
    raw = _getenv(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def load_settings() -> Settings:
    return Settings(
        secret_key=_getenv("SECRET_KEY") or _getenv("SESSION_SECRET", "change-me"),
        env=_getenv("ENV", "development"),
        database_url=_getenv("DATABASE_URL", "sqlite:///docAppoint.db"),
        port=_getint("PORT", 3000),
        google_consumer_key=_getenv("GOOGLE_CONSUMER_KEY", ""),
        google_consumer_secret=_getenv("GOOGLE_CONSUMER_SECRET", ""),
        google_callback_url=_getenv("GOOGLE_CALLBACK_URL", "http://localhost:3000/auth/google/callback"),
    )


def load_config() -> dict:
    s = load_settings()
    is_production = s.env in ("prod", "production")
    return {
        "SECRET_KEY": s.secret_key,
        "ENV": s.env,
        "DATABASE_URL": s.database_url,
        "PORT": s.port,
        "GOOGLE_CONSUMER_KEY": s.google_consumer_key,
        "GOOGLE_CONSUMER_SECRET": s.google_consumer_secret,
        "GOOGLE_CALLBACK_URL": s.google_callback_url,
        # session cookie
        "SESSION_COOKIE_HTTPONLY": True,
        "SESSION_COOKIE_SAMESITE": "Lax",
        "SESSION_COOKIE_SECURE": is_production,  # Require HTTPS in production
        "PERMANENT_SESSION_LIFETIME": SESSION_LIFETIME,
    }
