import tempfile
import unittest
from pathlib import Path

from alembic import command
from alembic.config import Config
from sqlalchemy import inspect

from lotwager.db.engine import make_engine

PROJECT_ROOT = Path(__file__).resolve().parents[1]


class MigrationTests(unittest.TestCase):
    def setUp(self):
        self._tmpdir = tempfile.TemporaryDirectory()
        self.url = f"sqlite:///{Path(self._tmpdir.name) / 'migrated.db'}"
        self.cfg = Config(str(PROJECT_ROOT / "alembic.ini"))
        self.cfg.set_main_option("script_location", str(PROJECT_ROOT / "alembic"))
        self.cfg.attributes["database_url"] = self.url
        self.cfg.attributes["skip_logging_config"] = True

    def tearDown(self):
        self._tmpdir.cleanup()

    def _tables(self) -> set:
        engine = make_engine(self.url)
        try:
            return set(inspect(engine).get_table_names())
        finally:
            engine.dispose()

    def test_upgrade_and_downgrade(self):
        command.upgrade(self.cfg, "head")
        tables = self._tables()
        self.assertTrue(
            {"bet_types", "provinces", "draw_results", "bets", "transactions"} <= tables
        )

        engine = make_engine(self.url)
        try:
            inspector = inspect(engine)
            uniques = {u["name"] for u in inspector.get_unique_constraints("draw_results")}
            self.assertIn("uq_draw_result_province_date", uniques)
            indexes = {i["name"] for i in inspector.get_indexes("bets")}
            self.assertIn("ix_bets_status_draw_date", indexes)
        finally:
            engine.dispose()

        command.downgrade(self.cfg, "base")
        self.assertEqual(self._tables() - {"alembic_version"}, set())


if __name__ == "__main__":
    unittest.main()
