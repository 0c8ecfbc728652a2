# companion/db/base.py

"""
This file imports all the ORM models so Alembic (and create_all) can discover them.
Whenever you add a new model, import it here.
"""
from sqlalchemy.ext.asyncio import AsyncEngine

from companion.db.models.profile import Profile
from companion.db.models.patient import Patient
from companion.db.models.appointment import Appointment
from companion.db.session import Base, get_engine

__all__ = ["Base", "Profile", "Patient", "Appointment", "init_db"]

async def init_db(engine: AsyncEngine | None = None):
    """Initialize database by creating all tables"""
    engine = engine or get_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
