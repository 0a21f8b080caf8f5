"""
GlucoTrack Database Session Management
Engine, session factory and the FastAPI session dependency
"""

import logging
from typing import Iterator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from app.config import settings
from app.models import Base

logger = logging.getLogger(__name__)


def build_engine(database_url: str) -> Engine:
    """Create an engine; SQLite connections are shared across request threads"""
    connect_args = {}
    if database_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    return create_engine(
        database_url,
        echo=settings.database_echo,
        pool_pre_ping=True,
        connect_args=connect_args
    )


engine = build_engine(settings.database_url)
SessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


def init_db(bind: Engine = engine) -> None:
    """Create all tables if they do not exist"""
    Base.metadata.create_all(bind)
    logger.info(f"Database initialized ({len(Base.metadata.sorted_tables)} tables)")


def get_db() -> Iterator[Session]:
    """Yield a session per request"""
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
