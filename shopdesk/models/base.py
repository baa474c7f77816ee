"""
Database engine, session factory and schema bootstrap.

Route handlers get a session from ``get_db``; code outside a request
(auth middleware, startup seeding, scripts) uses ``session_scope()``.
"""
import os
from contextlib import contextmanager
from typing import List

from sqlalchemy import create_engine, inspect, text
from sqlalchemy.engine import Engine
from sqlalchemy.pool import NullPool
from sqlalchemy.orm import declarative_base, sessionmaker

from shopdesk.config import get_settings
from shopdesk.utils.logger import log

settings = get_settings()


def resolve_database_url(url: str) -> str:
    """Make relative SQLite paths absolute so a cwd change opens the same file."""
    if url.startswith("sqlite:///") and not url.startswith("sqlite:////"):
        return "sqlite:///" + os.path.abspath(url[len("sqlite:///"):])
    return url


def build_engine(url: str) -> Engine:
    url = resolve_database_url(url)
    if url.startswith("sqlite"):
        # Requests run in the threadpool; each session gets its own connection
        return create_engine(
            url,
            connect_args={"check_same_thread": False, "timeout": 30},
            poolclass=NullPool,
        )
    return create_engine(url, pool_pre_ping=True, pool_size=5, max_overflow=10, pool_recycle=300)


engine = build_engine(settings.database_url)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def get_db():
    """FastAPI dependency: one session per request."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def session_scope():
    """Session for work outside a request. Rolls back on error; callers commit."""
    db = SessionLocal()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def migrate_missing_columns(bind: Engine = None) -> List[str]:
    """Add model columns missing from existing tables; returns "table.column" names added.

    create_all() only creates missing tables. Added columns are always
    nullable, since existing rows have no value for them.
    """
    bind = bind or engine
    inspector = inspect(bind)
    added = []
    with bind.connect() as conn:
        for table_name, table in Base.metadata.tables.items():
            if not inspector.has_table(table_name):
                continue
            existing = {c["name"] for c in inspector.get_columns(table_name)}
            for col in table.columns:
                if col.name in existing:
                    continue
                col_type = col.type.compile(dialect=bind.dialect)
                conn.execute(text(f"ALTER TABLE {table_name} ADD COLUMN {col.name} {col_type}"))
                if not col.nullable:
                    log.warning(f"{table_name}.{col.name} added as nullable; backfill before relying on it")
                added.append(f"{table_name}.{col.name}")
        conn.commit()
    if added:
        log.info(f"Auto-migrated columns: {', '.join(added)}")
    return added


def init_db(bind: Engine = None) -> List[str]:
    """Create missing tables for every shop model, then add missing columns."""
    import shopdesk.models  # noqa: F401

    bind = bind or engine
    Base.metadata.create_all(bind=bind)
    return migrate_missing_columns(bind)
