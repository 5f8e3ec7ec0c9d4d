from typing import Iterator, Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from charity_hub.settings import DATABASE_URL, DATABASE_ECHO


def build_engine(url: Optional[str] = DATABASE_URL, echo: bool = DATABASE_ECHO) -> Engine:
    """
    Engine for the charity hub database.

    PostgreSQL in production; SQLite is accepted for local runs and tests,
    where request sessions cross FastAPI's threadpool.
    """
    if not url:
        raise RuntimeError("DATABASE_URL is not set")
    if url.startswith("sqlite"):
        return create_engine(url, echo=echo, connect_args={"check_same_thread": False})
    return create_engine(url, echo=echo, pool_pre_ping=True)


engine = build_engine()
SessionLocal = sessionmaker(bind=engine, autoflush=False)

# Base class for our models
Base = declarative_base()


# One session per request, closed when the response is done
def get_db() -> Iterator[Session]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
