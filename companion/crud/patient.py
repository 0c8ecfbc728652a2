# companion/crud/patient.py

from __future__ import annotations
from typing import Optional, Sequence

import sqlalchemy as sa
from sqlalchemy.ext.asyncio import AsyncSession

from companion.db.models.patient import Patient

async def create_patient(
    db: AsyncSession,
    *,
    user_id: str,
    name: str,
    email: str = "",
    phone: str = "",
    notes: Optional[str] = None,
) -> Patient:
    patient = Patient(
        user_id=user_id,
        name=name.strip(),
        email=email or "",
        phone=phone or "",
        notes=notes,
    )
    db.add(patient)
    await db.commit()
    await db.refresh(patient)
    return patient

async def list_patients(db: AsyncSession, *, user_id: str) -> Sequence[Patient]:
    q = sa.select(Patient).where(Patient.user_id == user_id).order_by(Patient.name.asc())
    res = await db.execute(q)
    return res.scalars().all()

async def get_patient(db: AsyncSession, *, user_id: str, patient_id: str) -> Optional[Patient]:
    q = sa.select(Patient).where(Patient.id == patient_id, Patient.user_id == user_id)
    return (await db.execute(q)).scalar_one_or_none()
