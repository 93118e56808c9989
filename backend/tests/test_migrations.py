"""The Alembic schema must match the ORM models the app runs against."""

from pathlib import Path

import pytest
from alembic import command
from alembic.config import Config
from sqlalchemy import create_engine, inspect

from salesdesk.config import settings
from salesdesk.database import Base
from salesdesk.models import *  # noqa: F401,F403 (register every table)

MIGRATIONS = Path(__file__).resolve().parents[1] / "alembic"


@pytest.fixture
def migrated_url(tmp_path, monkeypatch):
    url = f"sqlite:///{tmp_path / 'migrated.db'}"
    monkeypatch.setattr(settings, "database_url_sync", url)

    cfg = Config()
    cfg.set_main_option("script_location", str(MIGRATIONS))
    command.upgrade(cfg, "head")
    return url


@pytest.mark.integration
class TestInitialMigration:

    def test_columns_and_nullability_match_models(self, migrated_url):
        engine = create_engine(migrated_url)
        try:
            inspector = inspect(engine)
            for table in Base.metadata.sorted_tables:
                migrated = {c["name"]: c for c in inspector.get_columns(table.name)}
                assert set(migrated) == set(table.columns.keys()), table.name
                for column in table.columns:
                    if column.primary_key:
                        continue
                    assert migrated[column.name]["nullable"] == column.nullable, (
                        f"{table.name}.{column.name}"
                    )
        finally:
            engine.dispose()

    def test_document_header_columns_are_not_null(self, migrated_url):
        engine = create_engine(migrated_url)
        try:
            columns = {
                c["name"]: c for c in inspect(engine).get_columns("sales_documents")
            }
        finally:
            engine.dispose()
        for name in ("currency", "issue_date", "apply_line_taxes", "status", "items"):
            assert columns[name]["nullable"] is False, name
        assert columns["recurring"]["nullable"] is True
