"""
db/database.py

Responsibility: Owns the SQLite engine, the per-request session dependency,
and schema setup (create_all plus column migrations) at startup.
Does NOT: define table models, run queries, or contain business logic.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Generator

from sqlalchemy.engine import Engine
from sqlmodel import Session, SQLModel, create_engine

logger = logging.getLogger(__name__)

# NOTE: /config is the container volume mount point; DB_PATH overrides it.
_DB_PATH = os.getenv("DB_PATH", "/config/faxter.db")

engine = create_engine(
    f"sqlite:///{_DB_PATH}",
    connect_args={"check_same_thread": False},
    echo=False,
)

# Columns added to existing tables after their first release: table -> (column, DDL type)
_ADDED_COLUMNS: dict[str, tuple[tuple[str, str], ...]] = {
    "activitylog": (
        ("resource_type", "VARCHAR NOT NULL DEFAULT ''"),
        ("resource_id", "VARCHAR NOT NULL DEFAULT ''"),
        ("state_id", "INTEGER"),
    ),
}


def init_db() -> None:
    """
    Creates missing tables, then adds missing columns to existing ones.

    Called once from the FastAPI lifespan in app.py.
    """
    db_dir = os.path.dirname(_DB_PATH)
    if db_dir:
        os.makedirs(db_dir, exist_ok=True)

    import db.models  # noqa: F401  registers the table classes with the metadata

    SQLModel.metadata.create_all(engine)
    run_migrations(engine)
    logger.info("Database initialised at %s", _DB_PATH)


def run_migrations(bind: Engine) -> list[str]:
    """
    Adds the columns listed in _ADDED_COLUMNS to tables created before them.

    create_all() never alters an existing table, so a database written by an
    older release would otherwise lack these columns.

    Returns:
        "table.column" for every column that was added.
    """
    added: list[str] = []
    with bind.begin() as conn:
        for table, columns in _ADDED_COLUMNS.items():
            existing = {row[1] for row in conn.exec_driver_sql(f"PRAGMA table_info({table})")}
            if not existing:
                continue
            for column, ddl in columns:
                if column not in existing:
                    conn.exec_driver_sql(f"ALTER TABLE {table} ADD COLUMN {column} {ddl}")
                    logger.info("Migration: added '%s' column to %s table.", column, table)
                    added.append(f"{table}.{column}")
    return added


def get_session() -> Generator[Session, None, None]:
    """FastAPI dependency yielding a Session that closes when the request ends."""
    with Session(engine) as session:
        yield session
