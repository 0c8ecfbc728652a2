# companion/api/routes/appointments.py
from datetime import datetime

from fastapi import APIRouter, Depends, status

from companion.api.deps import get_effective_user_id, get_repository
from companion.core.errors import NotFoundError
from companion.core.logging import get_logger
from companion.repositories.base import PracticeRepository
from companion.schemas.practice import Appointment, AppointmentCreate, AppointmentUpdate
from companion.services.mutations import validate_new_appointment

logger = get_logger(__name__)
router = APIRouter(prefix="/appointments", tags=["appointments"])

CLEARABLE_FIELDS = ("notes", "summary")


@router.get("", response_model=list[Appointment])
async def list_appointments_ep(
    owner_id: str = Depends(get_effective_user_id),
    repository: PracticeRepository = Depends(get_repository),
):
    return await repository.list_appointments(owner_id)


@router.post("", response_model=Appointment, status_code=status.HTTP_201_CREATED)
async def create_appointment_ep(
    payload: AppointmentCreate,
    owner_id: str = Depends(get_effective_user_id),
    repository: PracticeRepository = Depends(get_repository),
):
    validate_new_appointment(payload, datetime.now())
    # NotFoundError (404) when the patient is not one of the owner's
    appt = await repository.create_appointment(owner_id, payload)
    logger.info("appointment_scheduled", appointment_id=appt.id, date=str(appt.date))
    return appt


@router.patch("/{appointment_id}", response_model=Appointment)
async def update_appointment_ep(
    appointment_id: str,
    payload: AppointmentUpdate,
    owner_id: str = Depends(get_effective_user_id),
    repository: PracticeRepository = Depends(get_repository),
):
    current = next((a for a in await repository.list_appointments(owner_id) if a.id == appointment_id), None)
    if current is None:
        raise NotFoundError(f"Appointment {appointment_id} not found")
    changes = payload.model_dump(exclude_unset=True)
    # notes and summary may be cleared; the other fields cannot be null
    changes = {k: v for k, v in changes.items() if v is not None or k in CLEARABLE_FIELDS}
    updated = Appointment.model_validate({**current.model_dump(), **changes})
    return await repository.update_appointment(owner_id, updated)
