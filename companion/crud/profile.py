# companion/crud/profile.py

from __future__ import annotations
from typing import Optional, Sequence

import sqlalchemy as sa
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from companion.db.models.profile import Profile

async def get_profile(db: AsyncSession, user_id: str) -> Optional[Profile]:
    return await db.get(Profile, user_id)

async def get_profile_by_email(db: AsyncSession, email: str) -> Optional[Profile]:
    res = await db.execute(sa.select(Profile).where(Profile.email == email.strip().lower()))
    return res.scalar_one_or_none()

async def list_profiles(db: AsyncSession) -> Sequence[Profile]:
    res = await db.execute(sa.select(Profile).order_by(Profile.full_name.asc()))
    return res.scalars().all()

async def create_profile(
    db: AsyncSession,
    *,
    email: str,
    full_name: str,
    role: str,
    password_hash: str,
    email_confirmed: bool,
) -> Profile:
    profile = Profile(
        email=email.strip().lower(),
        full_name=full_name.strip(),
        role=role,
        password_hash=password_hash,
        email_confirmed=email_confirmed,
    )
    db.add(profile)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ValueError("User already registered")
    await db.refresh(profile)
    return profile

async def confirm_profile(db: AsyncSession, user_id: str) -> bool:
    res = await db.execute(
        sa.update(Profile).where(Profile.id == user_id).values(email_confirmed=True)
    )
    await db.commit()
    return res.rowcount > 0
