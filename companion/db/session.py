# companion/db/session.py

from typing import Optional

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from companion.core.config import settings

_engine: Optional[AsyncEngine] = None
_session_factory: Optional[async_sessionmaker[AsyncSession]] = None

# 1) Declarative Base: all models inherit from this
class Base(DeclarativeBase):
    pass

# 2) Engine: one per process, created on first use so the app can start
#    without a database (in-memory repository mode)
def get_engine() -> AsyncEngine:
    global _engine
    if _engine is None:
        uri = settings.async_db_uri
        if uri is None:
            raise RuntimeError("No database configured (set DATABASE_URL or POSTGRES_*).")
        _engine = create_async_engine(
            uri,
            pool_pre_ping=True,   # avoids stale connection errors
        )
    return _engine

# 3) Session factory: creates short-lived sessions per unit of work
def get_session_factory() -> async_sessionmaker[AsyncSession]:
    global _session_factory
    if _session_factory is None:
        _session_factory = async_sessionmaker(
            get_engine(),
            expire_on_commit=False,  # keep objects usable after commit
            class_=AsyncSession,
        )
    return _session_factory
