"""
Database configuration and session management

A single engine (and therefore a single connection pool) is shared by every
tenant. Connections never carry tenant state: tenant tables are always
addressed with an explicit schema qualifier at query time.
"""

from functools import lru_cache
from typing import Generator

from fastapi import Depends
from sqlalchemy.engine import Engine
from sqlmodel import Session, SQLModel, create_engine
import structlog

from rms_tenancy.core.config import get_settings

logger = structlog.get_logger(__name__)


@lru_cache()
def get_engine() -> Engine:
    """Get the shared SQLAlchemy engine (created lazily, cached)"""
    settings = get_settings()
    engine = create_engine(
        settings.DATABASE_URL,
        echo=settings.DEBUG,
        pool_pre_ping=True,
        pool_size=settings.DATABASE_POOL_SIZE,
        max_overflow=settings.DATABASE_MAX_OVERFLOW,
        # PostgreSQL default isolation; tenant creation relies on it, no app locks
        isolation_level="READ COMMITTED",
    )
    logger.info("Database engine created", pool_size=settings.DATABASE_POOL_SIZE)
    return engine


def init_db(engine: Engine) -> None:
    """Create system-wide tables (development only, Alembic owns them otherwise)"""
    SQLModel.metadata.create_all(engine)
    logger.info("System tables created")


def get_session(engine: Engine = Depends(get_engine)) -> Generator[Session, None, None]:
    """Dependency to get database session"""
    with Session(engine) as session:
        yield session
