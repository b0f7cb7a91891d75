from __future__ import annotations

import argparse
from pathlib import Path
from typing import Optional

from alembic import command
from alembic.config import Config
from sqlalchemy import inspect

from lotwager.db.engine import make_engine

PROJECT_ROOT = Path(__file__).resolve().parents[1]

EXPECTED_TABLES = {"bet_types", "provinces", "draw_results", "bets", "transactions"}


def alembic_config(database_url: Optional[str] = None) -> Config:
    """Alembic config rooted at the project; ``database_url`` overrides ``DB_URL``."""
    cfg = Config(str(PROJECT_ROOT / "alembic.ini"))
    cfg.set_main_option("script_location", str(PROJECT_ROOT / "alembic"))
    if database_url:
        cfg.attributes["database_url"] = database_url
    return cfg


def upgrade_db(target_revision: str = "head", database_url: Optional[str] = None) -> None:
    """Apply Alembic migrations up to ``target_revision``."""
    command.upgrade(alembic_config(database_url), target_revision)


def report_tables(database_url: Optional[str] = None) -> bool:
    """Print the tables of the database; ``False`` if any expected one is missing."""
    engine = make_engine(database_url)
    try:
        names = set(inspect(engine).get_table_names())
    finally:
        engine.dispose()
    print("Current tables:", ", ".join(sorted(names)))
    missing = EXPECTED_TABLES - names
    if missing:
        print("Missing tables:", ", ".join(sorted(missing)))
        return False
    return True


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Migrate the lotwager database.")
    parser.add_argument("--revision", default="head", help="target Alembic revision")
    parser.add_argument("--db-url", default=None, help="database URL (defaults to DB_URL)")
    args = parser.parse_args(argv)

    upgrade_db(args.revision, args.db_url)
    return 0 if report_tables(args.db_url) else 1


if __name__ == "__main__":
    raise SystemExit(main())
