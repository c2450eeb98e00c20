# app/db/init_db.py
"""Database initialization utilities."""
import logging

from sqlalchemy import select
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session

from app.db.base import Base, import_models
from app.models.booking import DiningTable

logger = logging.getLogger(__name__)


def init_db(engine: Engine, total_tables: int) -> None:
    """
    Create missing tables and seed one dining table row per table number.

    Note: This is suitable for development/testing only.
    For production, use Alembic migrations instead.
    """
    try:
        import_models()
        Base.metadata.create_all(bind=engine)

        with Session(engine) as session:
            existing = set(session.scalars(select(DiningTable.table_number)))
            missing = [n for n in range(1, total_tables + 1) if n not in existing]
            for number in missing:
                session.add(DiningTable(table_number=number))
            session.commit()

        logger.info(
            "Database initialized",
            extra={'total_tables': total_tables, 'seeded_tables': len(missing)},
        )
    except Exception as e:
        logger.error(f"Error initializing database: {e}")
        raise


def drop_db(engine: Engine) -> None:
    """
    Drop all database tables.

    WARNING: This will delete all data! Use with caution.
    Only for development/testing purposes.
    """
    Base.metadata.drop_all(bind=engine)
    logger.warning("All database tables dropped")
