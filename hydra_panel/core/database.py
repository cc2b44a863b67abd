# hydra_panel/core/database.py
from databases import Database
from sqlalchemy import create_engine
from hydra_panel.core.config import Settings
from hydra_panel.models.db import Base


def create_database(settings: Settings) -> Database:
    # Create tables if they don't exist (synchronous)
    connect_args = {"check_same_thread": False} if settings.sync_database_url.startswith("sqlite") else {}
    engine = create_engine(settings.sync_database_url, connect_args=connect_args)
    Base.metadata.create_all(engine)  # <- kv_store, audit_log
    engine.dispose()

    return Database(settings.DATABASE_URL)
