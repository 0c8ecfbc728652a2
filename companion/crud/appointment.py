# companion/crud/appointment.py

from __future__ import annotations
from datetime import date, time
from typing import Any, Optional, Sequence

import sqlalchemy as sa
from sqlalchemy.ext.asyncio import AsyncSession

from companion.crud.patient import get_patient
from companion.db.models.appointment import Appointment
from companion.db.models.patient import Patient

# Columns the edit-session form is allowed to write
UPDATABLE_COLS = ("status", "notes", "summary", "date", "time")

def _with_patient_name():
    # Appointment rows plus the owner's patient display name (NULL if the
    # patient row is gone)
    return sa.select(Appointment, Patient.name.label("patient_name")).outerjoin(
        Patient,
        sa.and_(Patient.id == Appointment.patient_id, Patient.user_id == Appointment.user_id),
    )

async def create_appointment(
    db: AsyncSession,
    *,
    user_id: str,
    patient_id: str,
    on_date: date,
    at_time: time,
    duration: int = 50,
    type: str = "ONLINE",
    status: str = "SCHEDULED",
    notes: Optional[str] = None,
) -> Optional[tuple[Appointment, Optional[str]]]:
    # The patient must belong to the same owner
    if await get_patient(db, user_id=user_id, patient_id=patient_id) is None:
        return None
    appt = Appointment(
        user_id=user_id,
        patient_id=patient_id,
        date=on_date,
        time=at_time,
        duration=duration,
        type=type,
        status=status,
        notes=notes,
    )
    db.add(appt)
    await db.commit()
    return await get_appointment(db, user_id=user_id, appointment_id=appt.id)

async def get_appointment(
    db: AsyncSession,
    *,
    user_id: str,
    appointment_id: str,
) -> Optional[tuple[Appointment, Optional[str]]]:
    q = _with_patient_name().where(
        Appointment.id == appointment_id,
        Appointment.user_id == user_id,
    )
    row = (await db.execute(q)).first()
    if row is None:
        return None
    return row[0], row[1]

async def list_appointments(
    db: AsyncSession,
    *,
    user_id: str,
) -> Sequence[tuple[Appointment, Optional[str]]]:
    q = _with_patient_name().where(Appointment.user_id == user_id).order_by(
        Appointment.date.asc(), Appointment.time.asc()
    )
    res = await db.execute(q)
    return [(r[0], r[1]) for r in res.all()]

async def update_appointment(
    db: AsyncSession,
    *,
    user_id: str,
    appointment_id: str,
    values: dict[str, Any],
) -> Optional[tuple[Appointment, Optional[str]]]:
    values = {k: v for k, v in values.items() if k in UPDATABLE_COLS}
    res = await db.execute(
        sa.update(Appointment)
        .where(Appointment.id == appointment_id, Appointment.user_id == user_id)
        .values(**values)
    )
    if res.rowcount == 0:
        await db.rollback()
        return None
    await db.commit()
    # Read back the post-update row so server-side defaults are not lost
    return await get_appointment(db, user_id=user_id, appointment_id=appointment_id)

async def list_appointments_between(
    db: AsyncSession,
    *,
    start: date,
    end: date,
    exclude_statuses: Sequence[str] = ("CANCELLED", "COMPLETED"),
) -> Sequence[tuple[Appointment, Optional[Patient]]]:
    """All owners' appointments with start <= date <= end, for reminder jobs."""
    q = (
        sa.select(Appointment, Patient)
        .outerjoin(
            Patient,
            sa.and_(Patient.id == Appointment.patient_id, Patient.user_id == Appointment.user_id),
        )
        .where(
            Appointment.date >= start,
            Appointment.date <= end,
            Appointment.status.not_in(list(exclude_statuses)),
        )
        .order_by(Appointment.date.asc(), Appointment.time.asc())
    )
    res = await db.execute(q)
    return [(r[0], r[1]) for r in res.all()]

async def next_session_dates(
    db: AsyncSession,
    *,
    user_id: str,
    today: date,
) -> dict[str, date]:
    """patient_id -> earliest open appointment date on or after today."""
    q = (
        sa.select(Appointment.patient_id, sa.func.min(Appointment.date))
        .where(
            Appointment.user_id == user_id,
            Appointment.date >= today,
            Appointment.status.not_in(["CANCELLED", "COMPLETED"]),
        )
        .group_by(Appointment.patient_id)
    )
    res = await db.execute(q)
    return {patient_id: first for patient_id, first in res.all()}
