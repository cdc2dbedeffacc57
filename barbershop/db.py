# barbershop/db.py

import logging

from sqlalchemy.engine import Engine
from sqlmodel import SQLModel, create_engine, Session

from .config import get_settings

logger = logging.getLogger(__name__)


def build_engine(database_url: str | None = None) -> Engine:
    """Engine for the configured database (or an explicit URL, used by tests)."""
    settings = get_settings()
    url = database_url or settings.DATABASE_URL

    connect_args = {}
    if url.startswith("sqlite"):
        # required for SQLite + FastAPI; timeout bounds how long a booking waits for the write lock
        connect_args = {
            "check_same_thread": False,
            "timeout": settings.SQLITE_BUSY_TIMEOUT_SECONDS,
        }

    return create_engine(url, echo=settings.SQL_ECHO, connect_args=connect_args)


# Engine = connection to the database
engine = build_engine()


def init_db(bind: Engine | None = None) -> None:
    """Create all tables that don't exist yet."""
    from . import models  # noqa: F401  (register tables on SQLModel.metadata)

    SQLModel.metadata.create_all(bind or engine)
    logger.info("Database schema ready")


# Dependency: one session per request
def get_session():
    with Session(engine) as session:
        yield session
