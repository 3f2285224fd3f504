from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from stockdesk.core.config import settings


def engine_options(database_url: str) -> dict[str, object]:
    if database_url.lower().startswith("sqlite"):
        # Request handlers run in a threadpool.
        return {"connect_args": {"check_same_thread": False}}
    return {
        "pool_pre_ping": True,
        "pool_size": settings.db_pool_size,
        "max_overflow": settings.db_max_overflow,
        "pool_timeout": settings.db_pool_timeout_seconds,
        "pool_recycle": settings.db_pool_recycle_seconds,
    }


engine = create_engine(settings.database_url, **engine_options(settings.database_url))

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
