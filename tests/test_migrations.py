"""Runs the alembic migrations against a throwaway SQLite file."""

from pathlib import Path

from alembic import command
from alembic.config import Config
from sqlalchemy import create_engine, inspect
from sqlalchemy.orm import sessionmaker

from inkpost.services import database
from inkpost.services.cache_storage import CacheStorage

ROOT = Path(__file__).resolve().parent.parent


def alembic_config():
    # no ini file: keeps alembic's fileConfig away from the app loggers
    config = Config()
    config.set_main_option("script_location", str(ROOT / "alembic"))
    return config


class TestMigrations:
    def test_upgrade_creates_cache_table_on_app_engine(self, tmp_path, monkeypatch):
        engine = create_engine(f"sqlite:///{tmp_path / 'migrated.db'}")
        monkeypatch.setattr(database, "engine", engine)

        command.upgrade(alembic_config(), "head")

        columns = {c["name"] for c in inspect(engine).get_columns("cache_entries")}
        assert columns == {"key", "value", "stored_at_ms"}

        storage = CacheStorage(session_factory=sessionmaker(bind=engine))
        storage.set("post:1", '{"data": 1, "timestamp": 0}')
        assert storage.get("post:1") == '{"data": 1, "timestamp": 0}'
        engine.dispose()

    def test_downgrade_drops_cache_table(self, tmp_path, monkeypatch):
        engine = create_engine(f"sqlite:///{tmp_path / 'migrated.db'}")
        monkeypatch.setattr(database, "engine", engine)

        command.upgrade(alembic_config(), "head")
        command.downgrade(alembic_config(), "base")

        assert "cache_entries" not in inspect(engine).get_table_names()
        engine.dispose()
