"""Database connection and session management."""
from sqlalchemy import create_engine
from sqlalchemy.ext.declarative import declarative_base
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool
from typing import Generator

from linksplit.config import get_settings

settings = get_settings()

engine_options = {"echo": settings.debug}
if settings.database_url.startswith("sqlite"):
    # Local runs and tests: one shared in-process connection
    engine_options.update(
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
else:
    engine_options["pool_pre_ping"] = True

# Create database engine
engine = create_engine(settings.database_url, **engine_options)

# Create session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Base class for models
Base = declarative_base()


def get_db() -> Generator[Session, None, None]:
    """
    Dependency to get database session.

    Usage:
        @router.get("/links/{key}")
        def read_link(key: str, db: Session = Depends(get_db)):
            return db.query(Link).filter(Link.key == key).first()
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
