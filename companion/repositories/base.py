# companion/repositories/base.py
"""
The practice repository: the one persistence seam the client-state layer, the
HTTP routes and the reminder jobs talk to.

Two implementations sit behind it:
- InMemoryRepository: dict-backed, optionally seeded with demo data
- SqlRepository: async SQLAlchemy, every query scoped to the owning user
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Optional, Protocol, Sequence, runtime_checkable

from companion.schemas.practice import (
    Account,
    Appointment,
    AppointmentCreate,
    Patient,
    PatientCreate,
    UserProfile,
    UserRole,
)


@dataclass(frozen=True)
class ReminderCandidate:
    appointment: Appointment
    patient: Optional[Patient]


@runtime_checkable
class PracticeRepository(Protocol):
    # --- patients ---
    async def list_patients(self, owner_id: str) -> list[Patient]: ...

    async def create_patient(self, owner_id: str, data: PatientCreate) -> Patient: ...

    # --- appointments ---
    async def list_appointments(self, owner_id: str) -> list[Appointment]: ...

    async def create_appointment(self, owner_id: str, data: AppointmentCreate) -> Appointment: ...

    async def update_appointment(self, owner_id: str, appointment: Appointment) -> Appointment: ...

    # --- profiles / accounts ---
    async def fetch_profile(self, user_id: str) -> Optional[UserProfile]: ...

    async def list_profiles(self) -> list[UserProfile]: ...

    async def create_account(
        self,
        *,
        email: str,
        full_name: str,
        password_hash: str,
        role: UserRole = UserRole.PSYCHOLOGIST,
        email_confirmed: bool = True,
    ) -> UserProfile: ...

    async def find_account(self, email: str) -> Optional[Account]: ...

    async def confirm_account(self, user_id: str) -> bool: ...

    # --- reminder jobs ---
    async def list_reminder_candidates(self, start: date, end: date) -> Sequence[ReminderCandidate]: ...
