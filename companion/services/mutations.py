# companion/services/mutations.py
"""
Create/update operations against the repository, reflected into the
CollectionStore.

Update is optimistic: the store changes first, the remote write follows, and
the outcome is reconciled with a compare-and-set (only if the store still
holds the value this call wrote). Creates are remote-first because the
repository assigns the identity.
"""
from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Generic, Optional, TypeVar

from companion.core.errors import AppointmentValidationError, NotFoundError
from companion.core.logging import get_logger
from companion.repositories.base import PracticeRepository
from companion.schemas.practice import (
    UNKNOWN_PATIENT_NAME,
    Appointment,
    AppointmentCreate,
    Patient,
    PatientCreate,
)
from companion.services.store import CollectionStore

logger = get_logger(__name__)

T = TypeVar("T")

PAST_SCHEDULING_MESSAGE = "Sessions cannot be scheduled in the past."


class MutationState(str, enum.Enum):
    IDLE = "idle"
    SUBMITTING = "submitting"
    APPLIED = "applied"
    FAILED = "failed"


@dataclass
class MutationResult(Generic[T]):
    state: MutationState = MutationState.IDLE
    value: Optional[T] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.state == MutationState.APPLIED


def validate_new_appointment(data: AppointmentCreate, now: datetime) -> None:
    """Synchronous checks run before anything is submitted."""
    if not data.patient_id:
        raise AppointmentValidationError("Select a patient for the session.")
    if data.duration <= 0:
        raise AppointmentValidationError("Duration must be a positive number of minutes.")
    if data.starts_at() < now:
        raise AppointmentValidationError(PAST_SCHEDULING_MESSAGE)


class MutationCoordinator:
    def __init__(
        self,
        repository: PracticeRepository,
        store: CollectionStore,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.repository = repository
        self.store = store
        self.clock = clock

    async def update_appointment(self, owner_id: Optional[str], updated: Appointment) -> MutationResult[Appointment]:
        if not owner_id:
            return MutationResult(MutationState.FAILED, error="No active user")

        previous = self.store.get_appointment(updated.id)
        if previous is None:
            return MutationResult(MutationState.FAILED, error=f"Appointment {updated.id} is not loaded")

        # 1) optimistic local write
        self.store.replace_appointment(updated)
        result: MutationResult[Appointment] = MutationResult(MutationState.SUBMITTING, value=updated)

        # 2) remote write
        try:
            saved = await self.repository.update_appointment(owner_id, updated)
        except Exception as e:
            logger.error("appointment_update_failed", owner_id=owner_id, appointment_id=updated.id, error=str(e))
            if self.store.get_appointment(updated.id) is updated:
                self.store.replace_appointment(previous)
            result.state = MutationState.FAILED
            result.value = previous
            result.error = "Could not save the session. Your changes were reverted."
            return result

        # 3) write back the stored row unless a newer local edit landed meanwhile
        if not saved.patient_name or saved.patient_name == UNKNOWN_PATIENT_NAME:
            saved = saved.model_copy(update={"patient_name": updated.patient_name})
        if self.store.get_appointment(updated.id) is updated:
            self.store.replace_appointment(saved)
        result.state = MutationState.APPLIED
        result.value = saved
        return result

    async def create_patient(self, owner_id: Optional[str], data: PatientCreate) -> MutationResult[Patient]:
        if not owner_id:
            return MutationResult(MutationState.FAILED, error="No active user")

        result: MutationResult[Patient] = MutationResult(MutationState.SUBMITTING)
        try:
            patient = await self.repository.create_patient(owner_id, data)
        except Exception as e:
            logger.error("patient_create_failed", owner_id=owner_id, error=str(e))
            result.state = MutationState.FAILED
            result.error = "Could not create the patient."
            return result

        if self.store.owner_id == owner_id:
            self.store.add_patient(patient)
        result.state = MutationState.APPLIED
        result.value = patient
        return result

    async def create_appointment(
        self, owner_id: Optional[str], data: AppointmentCreate
    ) -> MutationResult[Appointment]:
        if not owner_id:
            return MutationResult(MutationState.FAILED, error="No active user")

        # raises AppointmentValidationError; nothing has been touched yet
        validate_new_appointment(data, self.clock())

        result: MutationResult[Appointment] = MutationResult(MutationState.SUBMITTING)
        try:
            appointment = await self.repository.create_appointment(owner_id, data)
        except NotFoundError:
            logger.info("appointment_create_rejected", owner_id=owner_id, patient_id=data.patient_id)
            result.state = MutationState.FAILED
            result.error = "Patient not found."
            return result
        except Exception as e:
            logger.error("appointment_create_failed", owner_id=owner_id, patient_id=data.patient_id, error=str(e))
            result.state = MutationState.FAILED
            result.error = "Could not schedule the session."
            return result

        if not appointment.patient_name or appointment.patient_name == UNKNOWN_PATIENT_NAME:
            patient = self.store.get_patient(appointment.patient_id)
            appointment = appointment.model_copy(
                update={"patient_name": patient.name if patient else UNKNOWN_PATIENT_NAME}
            )

        if self.store.owner_id == owner_id:
            self.store.add_appointment(appointment)
        result.state = MutationState.APPLIED
        result.value = appointment
        return result
