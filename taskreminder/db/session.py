from typing import Any, Dict, Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from taskreminder.core.config import settings
from taskreminder.db.base import Base


def _connect_args(url: str, query_timeout: int) -> Dict[str, Any]:
    # Bound every store round-trip so a hung database cannot stall a tick forever
    if url.startswith("sqlite"):
        return {"timeout": query_timeout, "check_same_thread": False}
    if url.startswith("postgresql"):
        return {
            "connect_timeout": query_timeout,
            "options": f"-c statement_timeout={query_timeout * 1000}",
        }
    return {}


def create_db_engine(url: Optional[str] = None, **kwargs: Any) -> Engine:
    url = url or settings.SQLALCHEMY_DATABASE_URI
    options: Dict[str, Any] = {
        "connect_args": _connect_args(url, settings.DB_QUERY_TIMEOUT_SECONDS),
        "pool_pre_ping": True,  # Validate connections before use
        "echo": False,
    }
    if not url.startswith("sqlite"):
        options.update(
            pool_size=5,
            max_overflow=10,
            pool_recycle=300,  # Recycle connections every 5 minutes
            pool_timeout=settings.DB_POOL_TIMEOUT,
        )
    options.update(kwargs)
    return create_engine(url, **options)


def make_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)


def init_db(engine: Engine) -> None:
    """Create the task and notification tables if they do not exist yet."""
    # Register models on Base.metadata
    from taskreminder import models  # noqa: F401

    Base.metadata.create_all(bind=engine)
