"""
Engine, session factory and declarative base.

Every engine operation runs inside one request-scoped session, so a single
synchronous engine serves the API, Alembic and the test suite. The URL and
pool sizing come straight from the environment because this module is
imported by Alembic before application settings exist.
"""
import os
from typing import Any, Dict, Generator

from dotenv import load_dotenv
from sqlalchemy import create_engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker
from sqlalchemy.pool import QueuePool

load_dotenv()

_TRUTHY = ("true", "1", "yes")


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in _TRUTHY


def _resolve_database_url() -> str:
    url = os.getenv("DATABASE_URL", "")
    if url:
        return url
    if os.getenv("ENV", "development").lower() == "production":
        raise RuntimeError(
            "DATABASE_URL is not set or is empty. "
            "Production deployments must point at the PostgreSQL session store."
        )
    return "postgresql://localhost:5432/examprep_dev"


def _pool_options() -> Dict[str, Any]:
    return {
        "poolclass": QueuePool,
        "pool_size": int(os.getenv("DB_POOL_SIZE", "10")),
        "max_overflow": int(os.getenv("DB_POOL_MAX_OVERFLOW", "20")),
        "pool_timeout": int(os.getenv("DB_POOL_TIMEOUT", "30")),
        "pool_recycle": int(os.getenv("DB_POOL_RECYCLE", "3600")),
        "pool_pre_ping": _env_flag("DB_POOL_PRE_PING", "True"),
    }


DATABASE_URL = _resolve_database_url()
DEBUG = _env_flag("DEBUG", "False")


def _build_engine(url: str):
    # SQLite (tests, local runs) gets no pool sizing
    if url.startswith("sqlite"):
        return create_engine(url, echo=DEBUG, connect_args={"check_same_thread": False})
    return create_engine(url, echo=DEBUG, **_pool_options())


engine = _build_engine(DATABASE_URL)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class Base(DeclarativeBase):
    pass


def get_db() -> Generator[Session, None, None]:
    """FastAPI dependency: one session per request, rolled back on error, always closed."""
    db = SessionLocal()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
