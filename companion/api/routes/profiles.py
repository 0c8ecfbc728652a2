# companion/api/routes/profiles.py
from fastapi import APIRouter, Depends

from companion.api.deps import get_repository, require_admin
from companion.repositories.base import PracticeRepository
from companion.schemas.practice import UserProfile

router = APIRouter(prefix="/profiles", tags=["profiles"])


# Impersonation picker: every profile, ordered by full name
@router.get("", response_model=list[UserProfile])
async def list_profiles_ep(
    _admin: UserProfile = Depends(require_admin),
    repository: PracticeRepository = Depends(get_repository),
):
    return await repository.list_profiles()
