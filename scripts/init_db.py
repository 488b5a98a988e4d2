"""
Local/dev database bootstrap.

Creates every table from the ORM metadata (no Alembic) and, with --demo, seeds one system with a
DRAFT solution review so the lifecycle endpoint has something to act on.

Usage:
  python scripts/init_db.py [--demo SYSTEM_CODE]
"""

import argparse
import sys
from pathlib import Path

# Ensure repo root is on sys.path when running as a script.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.archreview.models import Base
from app.archreview.modules.solution_review.service import create_draft, find_all_by_system_code
from scripts._db_utils import create_script_engine, resolve_db_url, script_session


def init_schema(*, database_url: str | None = None) -> str:
    db_url = resolve_db_url(database_url)
    engine = create_script_engine(db_url)
    try:
        Base.metadata.create_all(bind=engine)
    finally:
        engine.dispose()
    return db_url


def seed_demo(system_code: str, *, database_url: str | None = None) -> str | None:
    """Create a DRAFT review for ``system_code`` unless the system already has documents."""
    db_url = resolve_db_url(database_url)
    with script_session(db_url) as s:
        if find_all_by_system_code(s, system_code):
            return None
        doc = create_draft(
            s,
            system_code=system_code,
            created_by="init_db",
            payload={"solutionOverview": {"title": f"{system_code} solution review"}},
        )
        return doc.id


def main() -> None:
    parser = argparse.ArgumentParser(description="Create tables (and optional demo data).")
    parser.add_argument("--demo", metavar="SYSTEM_CODE", help="seed a DRAFT review for this system code")
    args = parser.parse_args()

    db_url = init_schema()
    print(f"Initialized schema on {db_url.split('@')[-1]}")
    if args.demo:
        doc_id = seed_demo(args.demo)
        if doc_id:
            print(f"Seeded DRAFT solution review {doc_id} for {args.demo}")
        else:
            print(f"{args.demo} already has documents; nothing seeded")


if __name__ == "__main__":
    main()
