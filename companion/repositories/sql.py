# companion/repositories/sql.py
"""
Async SQLAlchemy implementation of the practice repository.

Every patient/appointment query is filtered by the owning user id, which is
the row-level ownership rule the API relies on.
"""
from __future__ import annotations

from datetime import date
from typing import Optional, Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from companion.core.errors import NotFoundError, RepositoryError
from companion.core.logging import get_logger
from companion.crud import appointment as appointment_crud
from companion.crud import patient as patient_crud
from companion.crud import profile as profile_crud
from companion.db.models.appointment import Appointment as AppointmentRow
from companion.db.models.patient import Patient as PatientRow
from companion.db.models.profile import Profile as ProfileRow
from companion.repositories.base import ReminderCandidate
from companion.schemas.practice import (
    UNKNOWN_PATIENT_NAME,
    Account,
    Appointment,
    AppointmentCreate,
    AppointmentStatus,
    AppointmentType,
    Patient,
    PatientCreate,
    UserProfile,
    UserRole,
)

logger = get_logger(__name__)


def _to_patient(row: PatientRow, next_session: Optional[date] = None) -> Patient:
    return Patient(
        id=row.id,
        name=row.name,
        email=row.email or "",
        phone=row.phone or "",
        notes=row.notes,
        next_session=next_session,
    )


def _to_appointment(row: AppointmentRow, patient_name: Optional[str]) -> Appointment:
    return Appointment(
        id=row.id,
        patient_id=row.patient_id,
        patient_name=patient_name or UNKNOWN_PATIENT_NAME,
        date=row.date,
        time=row.time,
        duration=row.duration,
        type=AppointmentType(row.type),
        status=AppointmentStatus(row.status),
        notes=row.notes,
        summary=row.summary,
    )


def _to_profile(row: ProfileRow) -> UserProfile:
    return UserProfile(id=row.id, email=row.email, full_name=row.full_name or "", role=UserRole(row.role))


class SqlRepository:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    # ---------- patients ----------

    async def list_patients(self, owner_id: str) -> list[Patient]:
        try:
            async with self._session_factory() as db:
                rows = await patient_crud.list_patients(db, user_id=owner_id)
                upcoming = await appointment_crud.next_session_dates(db, user_id=owner_id, today=date.today())
        except SQLAlchemyError as e:
            raise RepositoryError(f"Could not fetch patients: {e}") from e
        return [_to_patient(r, upcoming.get(r.id)) for r in rows]

    async def create_patient(self, owner_id: str, data: PatientCreate) -> Patient:
        try:
            async with self._session_factory() as db:
                row = await patient_crud.create_patient(
                    db,
                    user_id=owner_id,
                    name=data.name,
                    email=data.email,
                    phone=data.phone,
                    notes=data.notes,
                )
        except SQLAlchemyError as e:
            raise RepositoryError(f"Could not create patient: {e}") from e
        return _to_patient(row)

    # ---------- appointments ----------

    async def list_appointments(self, owner_id: str) -> list[Appointment]:
        try:
            async with self._session_factory() as db:
                rows = await appointment_crud.list_appointments(db, user_id=owner_id)
        except SQLAlchemyError as e:
            raise RepositoryError(f"Could not fetch appointments: {e}") from e
        return [_to_appointment(row, name) for row, name in rows]

    async def create_appointment(self, owner_id: str, data: AppointmentCreate) -> Appointment:
        try:
            async with self._session_factory() as db:
                created = await appointment_crud.create_appointment(
                    db,
                    user_id=owner_id,
                    patient_id=data.patient_id,
                    on_date=data.date,
                    at_time=data.time,
                    duration=data.duration,
                    type=data.type.value,
                    status=AppointmentStatus.SCHEDULED.value,
                    notes=data.notes,
                )
        except SQLAlchemyError as e:
            raise RepositoryError(f"Could not create appointment: {e}") from e
        if created is None:
            raise NotFoundError(f"Patient {data.patient_id} not found")
        row, name = created
        return _to_appointment(row, name)

    async def update_appointment(self, owner_id: str, appointment: Appointment) -> Appointment:
        values = {
            "status": appointment.status.value,
            "notes": appointment.notes,
            "summary": appointment.summary,
            "date": appointment.date,
            "time": appointment.time,
        }
        try:
            async with self._session_factory() as db:
                result = await appointment_crud.update_appointment(
                    db, user_id=owner_id, appointment_id=appointment.id, values=values
                )
        except SQLAlchemyError as e:
            raise RepositoryError(f"Could not update appointment: {e}") from e
        if result is None:
            raise NotFoundError(f"Appointment {appointment.id} not found")
        row, name = result
        return _to_appointment(row, name)

    # ---------- profiles / accounts ----------

    async def fetch_profile(self, user_id: str) -> Optional[UserProfile]:
        try:
            async with self._session_factory() as db:
                row = await profile_crud.get_profile(db, user_id)
        except SQLAlchemyError as e:
            raise RepositoryError(f"Could not fetch profile: {e}") from e
        return _to_profile(row) if row else None

    async def list_profiles(self) -> list[UserProfile]:
        try:
            async with self._session_factory() as db:
                rows = await profile_crud.list_profiles(db)
        except SQLAlchemyError as e:
            raise RepositoryError(f"Could not fetch profiles: {e}") from e
        return [_to_profile(r) for r in rows]

    async def create_account(
        self,
        *,
        email: str,
        full_name: str,
        password_hash: str,
        role: UserRole = UserRole.PSYCHOLOGIST,
        email_confirmed: bool = True,
    ) -> UserProfile:
        try:
            async with self._session_factory() as db:
                row = await profile_crud.create_profile(
                    db,
                    email=email,
                    full_name=full_name,
                    role=role.value,
                    password_hash=password_hash,
                    email_confirmed=email_confirmed,
                )
        except SQLAlchemyError as e:
            raise RepositoryError(f"Could not create account: {e}") from e
        return _to_profile(row)

    async def find_account(self, email: str) -> Optional[Account]:
        try:
            async with self._session_factory() as db:
                row = await profile_crud.get_profile_by_email(db, email)
        except SQLAlchemyError as e:
            raise RepositoryError(f"Could not fetch account: {e}") from e
        if row is None:
            return None
        return Account(profile=_to_profile(row), password_hash=row.password_hash, email_confirmed=row.email_confirmed)

    async def confirm_account(self, user_id: str) -> bool:
        try:
            async with self._session_factory() as db:
                return await profile_crud.confirm_profile(db, user_id)
        except SQLAlchemyError as e:
            raise RepositoryError(f"Could not confirm account: {e}") from e

    # ---------- reminder jobs ----------

    async def list_reminder_candidates(self, start: date, end: date) -> Sequence[ReminderCandidate]:
        try:
            async with self._session_factory() as db:
                rows = await appointment_crud.list_appointments_between(db, start=start, end=end)
        except SQLAlchemyError as e:
            raise RepositoryError(f"Could not fetch reminder candidates: {e}") from e
        return [
            ReminderCandidate(
                appointment=_to_appointment(appt, patient.name if patient else None),
                patient=_to_patient(patient) if patient else None,
            )
            for appt, patient in rows
        ]
