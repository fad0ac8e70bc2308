"""
Database engine and session management
PostgreSQL in deployed environments, SQLite for local development
"""
import logging
from typing import Generator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import Pool

from ..config import config
from .base import Base

logger = logging.getLogger(__name__)


def create_database_engine(database_url: str) -> Engine:
    """Create database engine with pool settings suited to the backend"""
    if database_url.startswith("postgresql"):
        engine = create_engine(
            database_url,
            pool_pre_ping=True,  # Verify connections before using
            pool_size=config.DB_POOL_SIZE,
            max_overflow=config.DB_MAX_OVERFLOW,
            pool_recycle=config.DB_POOL_RECYCLE,
            pool_timeout=config.DB_POOL_TIMEOUT,
            echo=False,
            connect_args={
                "connect_timeout": 10,
                "keepalives": 1,
                "keepalives_idle": 60,
                "keepalives_interval": 10,
                "keepalives_count": 3,
                "application_name": "elevora",
            },
        )
        logger.info(
            f"PostgreSQL engine configured (pool size {config.DB_POOL_SIZE}, "
            f"max overflow {config.DB_MAX_OVERFLOW}, recycle {config.DB_POOL_RECYCLE}s)"
        )
    else:
        engine = create_engine(database_url, connect_args={"check_same_thread": False})
        logger.info("SQLite engine configured (local development)")
    return engine


engine = create_database_engine(config.DATABASE_URL)


@event.listens_for(Pool, "invalidate")
def receive_invalidate(dbapi_conn, connection_record, exception):
    """Called when a connection is invalidated"""
    logger.warning(f"Connection invalidated: {exception}")


SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    """
    Get a request-scoped database session.
    Use as FastAPI dependency: db: Session = Depends(get_db)
    """
    db = SessionLocal()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def init_db(bind: Engine = None) -> None:
    """Create tables from model metadata"""
    # Import models so they are registered on Base.metadata
    from . import models  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)
    logger.info("Database tables initialized")
