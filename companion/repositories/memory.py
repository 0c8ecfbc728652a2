# companion/repositories/memory.py
"""
Dict-backed repository used when no database is configured (local demo,
tests). Creates and updates both persist, so it behaves like the SQL
backend rather than like a fixture list.
"""
from __future__ import annotations

import uuid
from datetime import date, time, timedelta
from typing import Optional, Sequence

from companion.core.errors import NotFoundError
from companion.core.logging import get_logger
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
    sort_appointments,
    sort_patients,
)

logger = get_logger(__name__)

DEMO_OWNER_ID = "psy_1"
DEMO_OWNER_EMAIL = "alice@companionpsi.com"
DEMO_OWNER_NAME = "Dr. Alice Rivera"

_CLOSED_STATUSES = (AppointmentStatus.CANCELLED, AppointmentStatus.COMPLETED)


def _new_id(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex[:12]}"


class InMemoryRepository:
    def __init__(self):
        self._accounts: dict[str, Account] = {}
        # id -> (owner_id, record)
        self._patients: dict[str, tuple[str, Patient]] = {}
        self._appointments: dict[str, tuple[str, Appointment]] = {}

    # ---------- patients ----------

    async def list_patients(self, owner_id: str) -> list[Patient]:
        today = date.today()
        result = []
        for owner, patient in self._patients.values():
            if owner != owner_id:
                continue
            result.append(patient.model_copy(update={"next_session": self._next_session(patient.id, today)}))
        return sort_patients(result)

    async def create_patient(self, owner_id: str, data: PatientCreate) -> Patient:
        patient = Patient(id=_new_id("pat"), **data.model_dump())
        self._patients[patient.id] = (owner_id, patient)
        logger.info("patient_created", owner_id=owner_id, patient_id=patient.id)
        return patient.model_copy()

    def _next_session(self, patient_id: str, today: date) -> Optional[date]:
        upcoming = [
            appt.date
            for _, appt in self._appointments.values()
            if appt.patient_id == patient_id and appt.date >= today and appt.status not in _CLOSED_STATUSES
        ]
        return min(upcoming) if upcoming else None

    def _owned_patient(self, owner_id: str, patient_id: str) -> Optional[Patient]:
        entry = self._patients.get(patient_id)
        if entry is None or entry[0] != owner_id:
            return None
        return entry[1]

    def _patient_name(self, owner_id: str, patient_id: str) -> str:
        patient = self._owned_patient(owner_id, patient_id)
        return patient.name if patient else UNKNOWN_PATIENT_NAME

    # ---------- appointments ----------

    async def list_appointments(self, owner_id: str) -> list[Appointment]:
        result = [
            appt.model_copy(update={"patient_name": self._patient_name(owner, appt.patient_id)})
            for owner, appt in self._appointments.values()
            if owner == owner_id
        ]
        return sort_appointments(result)

    async def create_appointment(self, owner_id: str, data: AppointmentCreate) -> Appointment:
        patient = self._owned_patient(owner_id, data.patient_id)
        if patient is None:
            raise NotFoundError(f"Patient {data.patient_id} not found")
        appt = Appointment(
            id=_new_id("apt"),
            patient_id=data.patient_id,
            patient_name=patient.name,
            date=data.date,
            time=data.time,
            duration=data.duration,
            type=data.type,
            status=AppointmentStatus.SCHEDULED,
            notes=data.notes,
        )
        self._appointments[appt.id] = (owner_id, appt)
        logger.info("appointment_created", owner_id=owner_id, appointment_id=appt.id)
        return appt.model_copy()

    async def update_appointment(self, owner_id: str, appointment: Appointment) -> Appointment:
        entry = self._appointments.get(appointment.id)
        if entry is None or entry[0] != owner_id:
            raise NotFoundError(f"Appointment {appointment.id} not found")
        stored = entry[1].model_copy(update={
            "status": appointment.status,
            "notes": appointment.notes,
            "summary": appointment.summary,
            "date": appointment.date,
            "time": appointment.time,
        })
        self._appointments[appointment.id] = (owner_id, stored)
        return stored.model_copy(update={"patient_name": self._patient_name(owner_id, stored.patient_id)})

    # ---------- profiles / accounts ----------

    async def fetch_profile(self, user_id: str) -> Optional[UserProfile]:
        account = self._accounts.get(user_id)
        return account.profile.model_copy() if account else None

    async def list_profiles(self) -> list[UserProfile]:
        profiles = [a.profile.model_copy() for a in self._accounts.values()]
        return sorted(profiles, key=lambda p: p.full_name.casefold())

    async def create_account(
        self,
        *,
        email: str,
        full_name: str,
        password_hash: str,
        role: UserRole = UserRole.PSYCHOLOGIST,
        email_confirmed: bool = True,
        user_id: Optional[str] = None,
    ) -> UserProfile:
        email = email.strip().lower()
        if any(a.profile.email == email for a in self._accounts.values()):
            raise ValueError("User already registered")
        profile = UserProfile(id=user_id or str(uuid.uuid4()), email=email, full_name=full_name.strip(), role=role)
        self._accounts[profile.id] = Account(
            profile=profile, password_hash=password_hash, email_confirmed=email_confirmed
        )
        return profile.model_copy()

    async def find_account(self, email: str) -> Optional[Account]:
        email = email.strip().lower()
        for account in self._accounts.values():
            if account.profile.email == email:
                return account.model_copy(deep=True)
        return None

    async def confirm_account(self, user_id: str) -> bool:
        account = self._accounts.get(user_id)
        if account is None:
            return False
        account.email_confirmed = True
        return True

    # ---------- reminder jobs ----------

    async def list_reminder_candidates(self, start: date, end: date) -> Sequence[ReminderCandidate]:
        candidates = []
        for owner, appt in self._appointments.values():
            if not (start <= appt.date <= end) or appt.status in _CLOSED_STATUSES:
                continue
            owned = self._owned_patient(owner, appt.patient_id)
            patient = owned.model_copy() if owned else None
            named = appt.model_copy(update={"patient_name": owned.name if owned else UNKNOWN_PATIENT_NAME})
            candidates.append(ReminderCandidate(appointment=named, patient=patient))
        return sorted(candidates, key=lambda c: c.appointment.sort_key)


def seed_demo_data(repo: InMemoryRepository, owner_id: str = DEMO_OWNER_ID, today: Optional[date] = None) -> None:
    """Three patients and three sessions (two today, one tomorrow)."""
    today = today or date.today()
    patients = [
        Patient(id="pat_1", name="John Doe", email="john.d@example.com", phone="+1 555 0101",
                notes="Anxiety related to work performance."),
        Patient(id="pat_2", name="Sarah Smith", email="sarah.s@example.com", phone="+1 555 0102",
                notes="Processing childhood trauma."),
        Patient(id="pat_3", name="Michael Brown", email="m.brown@example.com", phone="+1 555 0103",
                notes="Relationship counseling."),
    ]
    for p in patients:
        repo._patients[p.id] = (owner_id, p)

    appointments = [
        Appointment(id="apt_1", patient_id="pat_1", patient_name="John Doe", date=today, time=time(10, 0),
                    duration=50, type=AppointmentType.ONLINE, status=AppointmentStatus.SCHEDULED, notes=""),
        Appointment(id="apt_2", patient_id="pat_2", patient_name="Sarah Smith", date=today, time=time(14, 0),
                    duration=50, type=AppointmentType.IN_PERSON, status=AppointmentStatus.CONFIRMED, notes=""),
        Appointment(id="apt_3", patient_id="pat_3", patient_name="Michael Brown", date=today + timedelta(days=1),
                    time=time(11, 0), duration=50, type=AppointmentType.ONLINE,
                    status=AppointmentStatus.SCHEDULED, notes=""),
    ]
    for a in appointments:
        repo._appointments[a.id] = (owner_id, a)


DEMO_ADMIN_ID = "admin_1"
DEMO_ADMIN_EMAIL = "admin@companionpsi.com"


def seed_demo_accounts(repo: InMemoryRepository, password_hash: str) -> None:
    """The demo clinician owning the seeded data, plus an administrator."""
    accounts = [
        UserProfile(id=DEMO_OWNER_ID, email=DEMO_OWNER_EMAIL, full_name=DEMO_OWNER_NAME, role=UserRole.PSYCHOLOGIST),
        UserProfile(id=DEMO_ADMIN_ID, email=DEMO_ADMIN_EMAIL, full_name="Practice Admin", role=UserRole.ADMIN),
    ]
    for profile in accounts:
        repo._accounts[profile.id] = Account(profile=profile, password_hash=password_hash, email_confirmed=True)
