# File: medley/core/database/connection.py

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from medley.core.config.settings import settings
from .base import Base

# check_same_thread=False is needed only for SQLite: the duration cache runs in worker threads
connect_args = {"check_same_thread": False} if "sqlite" in settings.DATABASE_URL else {}

engine = create_engine(
    settings.DATABASE_URL,
    echo=False,
    pool_pre_ping=True,
    connect_args=connect_args
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db():
    """Dependency for obtaining a database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db():
    """Creates all tables registered on Base (idempotent)."""
    # Import models so they are registered before create_all
    import medley.features.duration_resolver.data.sql_models  # noqa: F401

    Base.metadata.create_all(bind=engine)
