"""Database session management with connection pooling"""

from typing import Iterator
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from khata_gateway.config import settings

# Short-lived request sessions; pool sized for a handful of shop counters per instance
engine = create_engine(
    settings.database_url,
    pool_pre_ping=True,
    pool_size=settings.db_pool_size,
    max_overflow=settings.db_max_overflow,
    pool_recycle=3600,
)

# Handlers commit explicitly once a ledger or loan write is complete
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Iterator[Session]:
    """One session per request, closed after the response"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
