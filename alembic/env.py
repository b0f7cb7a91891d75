"""Alembic environment for the lotwager schema.

The target database is chosen in this order: a connection handed over in
``config.attributes["connection"]``, ``-x db_url=...`` on the command line,
``config.attributes["database_url"]``, then ``DB_URL`` from the environment
or ``.env``.
"""

from __future__ import annotations

import sys
from logging.config import fileConfig
from pathlib import Path
from typing import Optional

from alembic import context
from dotenv import load_dotenv
from sqlalchemy.engine import Connection

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))
load_dotenv(ROOT_DIR / ".env")

from lotwager.db.engine import DEFAULT_SQLITE_URL, make_engine  # noqa: E402
from lotwager.db.utils import resolve_sqlite_url  # noqa: E402
from lotwager.models import Base  # noqa: E402 - import registers every table

config = context.config

if config.config_file_name is not None and not config.attributes.get("skip_logging_config"):
    fileConfig(config.config_file_name, disable_existing_loggers=False)

target_metadata = Base.metadata


def _database_url() -> str:
    override: Optional[str] = context.get_x_argument(as_dictionary=True).get("db_url")
    override = override or config.attributes.get("database_url")
    if override:
        return resolve_sqlite_url(override, ROOT_DIR)
    return DEFAULT_SQLITE_URL


def _configure(**kwargs) -> None:
    context.configure(
        target_metadata=target_metadata,
        compare_type=True,
        compare_server_default=True,
        **kwargs,
    )


def _migrate(connection: Connection) -> None:
    # SQLite cannot ALTER most constraints in place.
    _configure(
        connection=connection,
        render_as_batch=connection.dialect.name == "sqlite",
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_offline() -> None:
    """Emit migration SQL to stdout without a database connection."""
    url = _database_url()
    _configure(url=url, literal_binds=True, dialect_opts={"paramstyle": "named"})
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Apply migrations against the configured database."""
    connection = config.attributes.get("connection")
    if connection is not None:
        _migrate(connection)
        return

    engine = make_engine(database_url=_database_url())
    try:
        with engine.connect() as conn:
            _migrate(conn)
    finally:
        engine.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
