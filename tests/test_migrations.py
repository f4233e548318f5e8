import tempfile
from pathlib import Path

from sqlalchemy import create_engine, inspect

import powcap.config as config_module
from alembic import command
from alembic.config import Config


def test_alembic_upgrade_head_on_fresh_sqlite_db():
    original_database_url = config_module.settings.database_url
    try:
        with tempfile.TemporaryDirectory() as tmpdir:
            db_path = Path(tmpdir) / "fresh.db"
            database_url = f"sqlite:///{db_path}"

            config_module.settings.database_url = database_url

            alembic_cfg = Config(str(Path(__file__).resolve().parent.parent / "alembic.ini"))
            command.upgrade(alembic_cfg, "head")

            engine = create_engine(database_url, connect_args={"check_same_thread": False})
            inspector = inspect(engine)
            tables = set(inspector.get_table_names())
            expires_indexes = {ix["name"] for ix in inspector.get_indexes("challenges")}
            engine.dispose()

            assert {"challenges", "tokens"}.issubset(tables)
            assert "ix_challenges_expires" in expires_indexes
    finally:
        config_module.settings.database_url = original_database_url
