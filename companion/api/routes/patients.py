# companion/api/routes/patients.py
from fastapi import APIRouter, Depends, status

from companion.api.deps import get_effective_user_id, get_repository
from companion.repositories.base import PracticeRepository
from companion.schemas.practice import Patient, PatientCreate

router = APIRouter(prefix="/patients", tags=["patients"])


@router.get("", response_model=list[Patient])
async def list_patients_ep(
    owner_id: str = Depends(get_effective_user_id),
    repository: PracticeRepository = Depends(get_repository),
):
    return await repository.list_patients(owner_id)


@router.post("", response_model=Patient, status_code=status.HTTP_201_CREATED)
async def create_patient_ep(
    payload: PatientCreate,
    owner_id: str = Depends(get_effective_user_id),
    repository: PracticeRepository = Depends(get_repository),
):
    return await repository.create_patient(owner_id, payload)
