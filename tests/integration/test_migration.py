"""
Integration tests for the database migration.
"""

import importlib.util
from pathlib import Path

import sqlalchemy as sa
from alembic.migration import MigrationContext
from alembic.operations import Operations

from jobqueue.db.models import JobModel

MIGRATION = Path(__file__).parents[2] / "alembic" / "versions" / "001_initial_schema.py"


def load_migration():
    spec = importlib.util.spec_from_file_location("initial_schema", MIGRATION)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


class TestInitialSchema:
    """Tests for the initial schema migration on SQLite."""

    def test_upgrade_matches_models(self, tmp_path: Path):
        engine = sa.create_engine(f"sqlite:///{tmp_path / 'migrated.db'}")
        migration = load_migration()

        with engine.begin() as conn:
            with Operations.context(MigrationContext.configure(conn)):
                migration.upgrade()

        inspector = sa.inspect(engine)
        columns = {column["name"] for column in inspector.get_columns("jobs")}
        indexes = {index["name"] for index in inspector.get_indexes("jobs")}
        engine.dispose()

        assert columns == set(JobModel.__table__.columns.keys())
        assert {"ix_jobs_priority_run_at", "ix_jobs_locked_by"} <= indexes

    def test_downgrade_drops_table(self, tmp_path: Path):
        engine = sa.create_engine(f"sqlite:///{tmp_path / 'migrated.db'}")
        migration = load_migration()

        with engine.begin() as conn:
            with Operations.context(MigrationContext.configure(conn)):
                migration.upgrade()
                migration.downgrade()

        assert not sa.inspect(engine).has_table("jobs")
        engine.dispose()
