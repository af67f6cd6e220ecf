import os
import sys
from contextlib import contextmanager
from pathlib import Path

from werkzeug.security import generate_password_hash
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

# Ensure repo root is on sys.path when running as a script.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.docappoint.constants import ROLE_ADMIN
from app.docappoint.models import Base, User


@contextmanager
def _session_scope(database_url: str):
    engine = create_engine(database_url, future=True)
    sm = sessionmaker(bind=engine, class_=Session, autoflush=False, autocommit=False, expire_on_commit=False, future=True)
    s: Session = sm()
    try:
        yield s
        s.commit()
    except Exception:
        s.rollback()
        raise
    finally:
        s.close()


def create_tables(*, database_url: str | None = None) -> None:
    """Create missing tables straight from the models (local development without Alembic)."""
    db_url = (database_url or os.environ.get("DATABASE_URL") or "sqlite:///docAppoint.db").strip()
    Base.metadata.create_all(bind=create_engine(db_url, future=True))


def seed_only(*, database_url: str | None = None) -> None:
    """
    Seed the admin user in an idempotent way.
    Does NOT overwrite an existing admin user's password or role.
    """
    admin_email = (os.environ.get("ADMIN_EMAIL") or "admin@docappoint.local").strip().lower()
    admin_password = os.environ.get("ADMIN_PASSWORD") or "change-me"

    db_url = (database_url or os.environ.get("DATABASE_URL") or "sqlite:///docAppoint.db").strip()

    with _session_scope(db_url) as s:
        user = s.query(User).filter(User.email == admin_email).one_or_none()
        if user:
            print(f"Admin user exists: {admin_email} (role={user.role})", flush=True)
            return
        s.add(
            User(
                email=admin_email,
                username=admin_email,
                name="Administrator",
                password_hash=generate_password_hash(admin_password),
                role=ROLE_ADMIN,
                is_active=True,
            )
        )
        print(f"Created admin user: {admin_email}", flush=True)


def main() -> None:
    if "--create-tables" in sys.argv[1:]:
        create_tables()
    seed_only()


if __name__ == "__main__":
    main()
