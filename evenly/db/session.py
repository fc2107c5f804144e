"""
Database session management.
"""
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool
from evenly.core.config import settings
from evenly.db.base import Base


def _engine_options(url: str) -> dict:
    """Pool options per backend; SQLite (tests, local runs) shares one connection."""
    if url.startswith("sqlite"):
        return {
            "connect_args": {"check_same_thread": False},
            "poolclass": StaticPool,
        }
    return {"pool_pre_ping": True, "pool_recycle": 3600}


engine = create_engine(
    settings.DATABASE_URL,
    echo=settings.DB_ECHO,
    **_engine_options(settings.DATABASE_URL)
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Session:
    """Dependency for getting database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db():
    """Initialize database tables."""
    import evenly.models  # noqa: F401  registers every table on Base.metadata
    Base.metadata.create_all(bind=engine)


def drop_db():
    """Drop all tables."""
    import evenly.models  # noqa: F401
    Base.metadata.drop_all(bind=engine)
