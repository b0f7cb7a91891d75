"""Compare the configured database against the ORM models.

Exit codes: 0 no drift, 1 drift detected, 2 the check itself failed.
"""

from __future__ import annotations

import sys

from alembic.autogenerate import api as ag_api
from alembic.runtime.migration import MigrationContext
from sqlalchemy.exc import SQLAlchemyError

from lotwager.db.engine import make_engine
from lotwager.models import Base


def _describe(ops, depth: int = 0) -> list[str]:
    lines = []
    for op in ops:
        lines.append(f"{'  ' * depth}- {op}")
        lines.extend(_describe(getattr(op, "ops", None) or [], depth + 1))
    return lines


def main() -> int:
    engine = make_engine()
    target = engine.url.render_as_string(hide_password=True)
    try:
        with engine.connect() as connection:
            context = MigrationContext.configure(
                connection=connection,
                opts={
                    "compare_type": True,
                    "render_as_batch": connection.dialect.name == "sqlite",
                },
            )
            upgrade_ops = ag_api.produce_migrations(context, Base.metadata).upgrade_ops
    except SQLAlchemyError as exc:
        print(f"Schema drift check: ERROR for {target}: {exc}", file=sys.stderr)
        return 2
    finally:
        engine.dispose()

    if upgrade_ops is None:
        print(f"Schema drift check: ERROR for {target}: no upgrade operations produced.")
        return 2
    if upgrade_ops.is_empty():
        print(f"Schema drift check: OK for {target}.")
        return 0
    print(f"Schema drift check: FAILED for {target}:")
    print("\n".join(_describe(upgrade_ops.ops or [])))
    return 1


if __name__ == "__main__":
    raise SystemExit(main())
