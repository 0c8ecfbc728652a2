# companion/schemas/practice.py
from __future__ import annotations

import enum
import datetime as dt
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

UNKNOWN_PATIENT_NAME = "Unknown"


class UserRole(str, enum.Enum):
    ADMIN = "ADMIN"
    PSYCHOLOGIST = "PSYCHOLOGIST"
    PATIENT = "PATIENT"


class AppointmentStatus(str, enum.Enum):
    SCHEDULED = "SCHEDULED"
    CONFIRMED = "CONFIRMED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class AppointmentType(str, enum.Enum):
    ONLINE = "ONLINE"
    IN_PERSON = "IN_PERSON"


def _minute_precision(value: dt.time) -> dt.time:
    # Stored times may carry seconds ("10:00:00"); sessions are minute-precise
    return value.replace(second=0, microsecond=0)


# ---------- Profiles ----------

class UserProfile(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    email: str
    full_name: str = ""
    role: UserRole = UserRole.PSYCHOLOGIST

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN


class Account(BaseModel):
    """Identity-side record: a profile plus its credentials."""
    profile: UserProfile
    password_hash: str
    email_confirmed: bool = True


# ---------- Patients ----------

class PatientCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=120)
    email: str = ""
    phone: str = ""
    notes: Optional[str] = None

    @field_validator("name")
    @classmethod
    def _strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Patient name is required.")
        return v


class Patient(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    email: str = ""
    phone: str = ""
    notes: Optional[str] = None
    next_session: Optional[dt.date] = None


# ---------- Appointments ----------

class AppointmentCreate(BaseModel):
    patient_id: str
    date: dt.date
    time: dt.time
    duration: int = Field(50, description="Minutes")
    type: AppointmentType = AppointmentType.ONLINE
    notes: Optional[str] = None

    @field_validator("time")
    @classmethod
    def _truncate_time(cls, v: dt.time) -> dt.time:
        return _minute_precision(v)

    def starts_at(self) -> dt.datetime:
        return dt.datetime.combine(self.date, self.time)


class Appointment(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    patient_id: str
    patient_name: str = UNKNOWN_PATIENT_NAME
    date: dt.date
    time: dt.time
    duration: int = 50
    type: AppointmentType = AppointmentType.ONLINE
    status: AppointmentStatus = AppointmentStatus.SCHEDULED
    notes: Optional[str] = None
    summary: Optional[str] = None

    @field_validator("time")
    @classmethod
    def _truncate_time(cls, v: dt.time) -> dt.time:
        return _minute_precision(v)

    @property
    def sort_key(self) -> tuple[dt.date, dt.time]:
        return (self.date, self.time)


class AppointmentUpdate(BaseModel):
    """Fields the edit-session form may change; anything omitted is kept."""
    status: Optional[AppointmentStatus] = None
    notes: Optional[str] = None
    summary: Optional[str] = None
    date: Optional[dt.date] = None
    time: Optional[dt.time] = None


# ---------- Auth payloads ----------

class SignUpIn(BaseModel):
    email: EmailStr
    password: str
    full_name: str = ""


class SignInIn(BaseModel):
    email: EmailStr
    password: str


class SessionOut(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user_id: str
    email: str
    expires_at: dt.datetime


class SignUpOut(BaseModel):
    session: Optional[SessionOut] = None
    user: Optional[UserProfile] = None
    verification_pending: bool = False


# ---------- Assistant payloads ----------

class SummaryIn(BaseModel):
    raw_notes: str
    patient_name: str


class ReminderEmailIn(BaseModel):
    patient_name: str
    date: dt.date
    time: dt.time


class QuestionsIn(BaseModel):
    context: str


class GeneratedText(BaseModel):
    text: str


def sort_appointments(appointments: list[Appointment]) -> list[Appointment]:
    return sorted(appointments, key=lambda a: a.sort_key)


def sort_patients(patients: list[Patient]) -> list[Patient]:
    return sorted(patients, key=lambda p: p.name.casefold())
