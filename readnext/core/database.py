from sqlalchemy import create_engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker

from readnext.core.config import get_settings

settings = get_settings()


def _engine_options(url: str) -> dict:
    # SQLite is used for local development and doesn't take pool sizing
    if url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}}
    return {"pool_pre_ping": True, "pool_size": 10, "max_overflow": 20}


engine = create_engine(settings.DATABASE_URL, **_engine_options(settings.DATABASE_URL))

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class Base(DeclarativeBase):
    pass


def get_db():
    """Dependency for FastAPI routes to get a database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
