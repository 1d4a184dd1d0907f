from sqlalchemy import create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

from smart_waste.config.settings import settings


def _engine_options(database_url: str) -> dict:
    url = make_url(database_url)
    if url.get_backend_name() == "sqlite":
        options: dict = {"connect_args": {"check_same_thread": False}}
        if url.database in (None, "", ":memory:"):
            # Single shared connection so every session sees the same in-memory db
            options["poolclass"] = StaticPool
        return options
    return {
        "pool_size": 10,
        "max_overflow": 20,
        "pool_pre_ping": True,
        "pool_recycle": 3600,
    }


engine = create_engine(
    str(settings.DATABASE_URL),
    echo=False,
    **_engine_options(str(settings.DATABASE_URL)),
)

SessionLocal = sessionmaker(bind=engine, class_=Session, expire_on_commit=False)


def get_sync_session():
    """Dependency to get sync database session"""
    db = SessionLocal()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
