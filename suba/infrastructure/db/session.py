"""
Database session management (SQLAlchemy)

The engine and session factory are built by the application factory and
kept on ``app.state``; request handlers receive a scoped ``Session`` through
the ``get_db`` dependency.
"""
from typing import Iterator

from fastapi import Request
from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker, Session

from suba.config import Settings


class Base(DeclarativeBase):
    """
    SQLAlchemy declarative base for all ORM models
    """
    pass


def build_engine(settings: Settings) -> Engine:
    """Create the pooled engine for the configured database"""
    return create_engine(settings.get_sqlalchemy_url(), pool_pre_ping=True)


def build_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, autoflush=False, autocommit=False)


def get_db(request: Request) -> Iterator[Session]:
    """
    FastAPI dependency - opens a session per request and always closes it

    Usage:
        @router.get("/subscriptions")
        def list_subscriptions(db: Session = Depends(get_db)):
            ...
    """
    SessionLocal = request.app.state.session_factory
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def check_db_connection(engine: Engine) -> None:
    """
    Health check - acquire a pooled connection and run ``SELECT 1``

    Raises:
        sqlalchemy.exc.OperationalError: if the database is unreachable
    """
    with engine.connect() as conn:
        conn.execute(text("SELECT 1"))
