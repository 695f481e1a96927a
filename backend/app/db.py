from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from .config import settings


def _engine_options() -> dict:
    if settings.sync_database_url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}}
    return {
        "pool_size": settings.DB_POOL_SIZE,
        "max_overflow": settings.DB_MAX_OVERFLOW,
        "pool_timeout": settings.DB_POOL_TIMEOUT,
    }


engine = create_engine(
    settings.sync_database_url,
    echo=settings.DB_SYNC_ECHO,
    pool_pre_ping=True,
    future=True,
    **_engine_options(),
)

SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False, future=True)
