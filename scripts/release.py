"""
Release-phase schema upgrade.

Brings the database to the requested Alembic revision (default: head), printing the revision
before and after, and fails if the database does not end on the script directory's head.
With --sql nothing is executed; the upgrade SQL is printed for a DBA to apply.

Usage:
  python scripts/release.py [--revision REV] [--sql]
"""

from __future__ import annotations

import argparse
import os
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from alembic import command
from alembic.config import Config
from alembic.runtime.migration import MigrationContext
from alembic.script import ScriptDirectory

from scripts._db_utils import create_script_engine, resolve_db_url


def alembic_config(db_url: str) -> Config:
    cfg = Config(str(ROOT / "alembic.ini"))
    cfg.set_main_option("script_location", str(ROOT / "migrations"))
    cfg.set_main_option("sqlalchemy.url", db_url)
    # migrations/env.py prefers this over DATABASE_URL.
    cfg.attributes["database_url"] = db_url
    return cfg


def current_revision(db_url: str) -> str | None:
    engine = create_script_engine(db_url)
    try:
        with engine.connect() as conn:
            return MigrationContext.configure(conn).get_current_revision()
    finally:
        engine.dispose()


def run_release(*, database_url: str | None = None, revision: str = "head", sql: bool = False) -> str | None:
    """Upgrade to ``revision`` and return the revision the database ends on (None for --sql)."""
    if database_url is None and not (os.environ.get("DATABASE_URL") or "").strip():
        raise RuntimeError("Missing required environment variable DATABASE_URL.")
    db_url = resolve_db_url(database_url)

    env = (os.environ.get("ENV") or "").strip().lower()
    if env in ("prod", "production") and db_url.startswith("sqlite"):
        raise RuntimeError("Refusing to run release on sqlite DATABASE_URL in production. Set DATABASE_URL to Postgres.")

    cfg = alembic_config(db_url)
    if sql:
        command.upgrade(cfg, revision, sql=True)
        return None

    head = ScriptDirectory.from_config(cfg).get_current_head()
    before = current_revision(db_url)
    print(f"=== archreview release: {db_url.split('@')[-1]} ===", flush=True)
    print(f"Schema revision {before or '(empty)'} -> {revision} (head={head})", flush=True)

    command.upgrade(cfg, revision)

    after = current_revision(db_url)
    if revision == "head" and after != head:
        raise RuntimeError(f"Upgrade finished on {after!r}, expected head {head!r}")
    print(f"Schema revision now {after}", flush=True)
    return after


def main() -> None:
    parser = argparse.ArgumentParser(description="Run Alembic migrations for the release phase.")
    parser.add_argument("--revision", default="head", help="target revision (default: head)")
    parser.add_argument("--sql", action="store_true", help="print the upgrade SQL instead of executing it")
    args = parser.parse_args()
    run_release(revision=args.revision, sql=args.sql)


if __name__ == "__main__":
    main()
