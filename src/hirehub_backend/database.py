import os
from typing import Generator, Callable, Optional
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import QueuePool, StaticPool
import sqlalchemy.exc as sa_exc

from hirehub_backend.settings import settings


def build_database_url() -> str:
    """DATABASE_URL wins; otherwise assemble a PostgreSQL URL from POSTGRES_* variables."""
    if settings.DATABASE_URL:
        return settings.DATABASE_URL

    postgres_user = os.environ.get("POSTGRES_USER")
    if not postgres_user:
        return "sqlite:///./hirehub.db"

    postgres_host = os.environ.get("POSTGRES_HOST", "localhost")
    postgres_port = os.environ.get("POSTGRES_PORT", "5432")
    postgres_password = os.environ.get("POSTGRES_PASSWORD")
    postgres_db = os.environ.get("POSTGRES_DB", "hirehub")
    return f"postgresql+psycopg2://{postgres_user}:{postgres_password}@{postgres_host}:{postgres_port}/{postgres_db}"


def _create_engine(url: str) -> Engine:
    if url.startswith("sqlite"):
        # One shared connection; websocket fallbacks run in worker threads
        return create_engine(
            url,
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
            future=True,
        )

    return create_engine(
        url,
        poolclass=QueuePool,
        pool_size=10,
        max_overflow=20,
        pool_timeout=30,
        pool_recycle=1800,     # 30 min - protects against idle disconnects
        pool_pre_ping=True,    # avoids stale connections
        pool_use_lifo=True,
        future=True
    )


_engine: Optional[Engine] = None
SessionLocal: Optional[Callable[[], Session]] = None


def configure_engine(url: Optional[str] = None) -> Engine:
    """
    (Re)build the engine and session factory.

    Called lazily on first use with the configured URL; tests call it
    directly with an in-memory SQLite URL.
    """
    global _engine, SessionLocal

    if _engine is not None:
        _engine.dispose()

    _engine = _create_engine(url or build_database_url())
    SessionLocal = sessionmaker(
        bind=_engine,
        autocommit=False,
        expire_on_commit=False,  # more convenient with Pydantic
        autoflush=False,         # prevents "accidental" DB touching
        class_=Session
    )
    return _engine


def get_engine() -> Engine:
    if _engine is None:
        configure_engine()
    return _engine


def create_schema() -> None:
    """Create all tables that do not exist yet."""
    from hirehub_backend.model import Base

    Base.metadata.create_all(bind=get_engine())


def _get_db() -> Generator[Session, None, None]:
    """
    Internal database session generator with transaction management.

    Handles:
    - Session creation and cleanup
    - Automatic commit on success
    - Rollback on exceptions
    """
    if SessionLocal is None:
        configure_engine()

    db = SessionLocal()
    try:
        yield db

        # Only commit if we have an open transaction
        if db.in_transaction():
            db.commit()
    except Exception:
        # Rollback on any exception
        if db.in_transaction():
            db.rollback()
        raise
    finally:
        # Always close the session
        db.close()


def get_db() -> Generator[Session, None, None]:
    """
    FastAPI dependency: provides a database session.

    Usage:
        @router.get("/sessions/active")
        async def list_active(db: Session = Depends(get_db)):
            ...

    Yields:
        Database session
    """
    try:
        # delegate to the core dependency that manages Session lifecycle
        yield from _get_db()
    except sa_exc.TimeoutError as e:  # QueuePool acquisition timed out
        # Import here to avoid circular dependency
        from hirehub_backend.exceptions import ServiceUnavailableException
        # 503 is the right code for transient capacity issues
        raise ServiceUnavailableException(
            detail="Database is busy. Please retry shortly.",
            headers={"Retry-After": "2"}  # seconds; tune to your traffic
        ) from e
