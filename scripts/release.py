"""
Deploy-time step for DocAppoint: upgrade the schema to the Alembic head,
then make sure the seeded admin account exists.

Needs DATABASE_URL. Existing admin passwords are left alone.

  python scripts/release.py
"""

from __future__ import annotations

import os
import sys
from pathlib import Path


ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

PRODUCTION_ENVS = ("prod", "production")


def _database_url() -> str:
    url = (os.environ.get("DATABASE_URL") or "").strip()
    if not url:
        raise RuntimeError("DATABASE_URL is not set; refusing to migrate an implicit SQLite file.")
    env = (os.environ.get("ENV") or "").strip().lower()
    if env in PRODUCTION_ENVS and url.startswith("sqlite"):
        raise RuntimeError("DATABASE_URL points at SQLite while ENV=production. Use Postgres.")
    return url


def _migrate(url: str) -> None:
    from alembic import command
    from alembic.config import Config

    cfg = Config(str(ROOT / "alembic.ini"))
    cfg.set_main_option("sqlalchemy.url", url)
    command.upgrade(cfg, "head")


def run_release() -> None:
    url = _database_url()

    print("[release] upgrading schema to head", flush=True)
    _migrate(url)

    print("[release] seeding admin account", flush=True)
    from scripts import init_db

    init_db.seed_only(database_url=url)
    print("[release] done", flush=True)


if __name__ == "__main__":
    run_release()
