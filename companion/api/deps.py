# companion/api/deps.py
"""
Request-scoped dependencies: the repository, the caller's session and
profile, and the effective user every data route is scoped to.

Roles are read from the repository on every request; an admin acting as
another user sends `X-Act-As: <user id>`.
"""
from __future__ import annotations

from functools import lru_cache
from typing import Optional

from fastapi import Depends, Header

from companion.core.config import settings
from companion.core.errors import AuthenticationError, NotFoundError, PermissionDeniedError
from companion.core.logging import bind_user, get_logger
from companion.repositories.base import PracticeRepository
from companion.repositories.factory import build_repository
from companion.schemas.practice import UserProfile
from companion.services.identity import AccountService, Session

logger = get_logger(__name__)


@lru_cache
def get_repository() -> PracticeRepository:
    return build_repository(settings)


def get_account_service(repository: PracticeRepository = Depends(get_repository)) -> AccountService:
    return AccountService(repository)


def _bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


async def get_current_session(
    authorization: Optional[str] = Header(None),
    accounts: AccountService = Depends(get_account_service),
) -> Session:
    token = _bearer_token(authorization)
    if token is None:
        raise AuthenticationError("Missing bearer token")
    session = accounts.verify_token(token)
    if session is None or session.is_expired():
        raise AuthenticationError("Invalid or expired token")
    return session


async def get_current_profile(
    session: Session = Depends(get_current_session),
    repository: PracticeRepository = Depends(get_repository),
) -> UserProfile:
    profile = await repository.fetch_profile(session.user_id)
    if profile is None:
        raise AuthenticationError("Profile not found for this session")
    bind_user(profile.id, role=profile.role.value)
    return profile


async def require_admin(profile: UserProfile = Depends(get_current_profile)) -> UserProfile:
    if not profile.is_admin:
        raise PermissionDeniedError("Administrator role required")
    return profile


async def get_effective_user_id(
    x_act_as: Optional[str] = Header(None, alias="X-Act-As"),
    profile: UserProfile = Depends(get_current_profile),
    repository: PracticeRepository = Depends(get_repository),
) -> str:
    acting_as = (x_act_as or "").strip()
    if not acting_as or acting_as == profile.id:
        return profile.id

    if not profile.is_admin:
        logger.warning("act_as_denied", requested=acting_as)
        raise PermissionDeniedError("Only administrators can act as another user")
    if await repository.fetch_profile(acting_as) is None:
        raise NotFoundError(f"User {acting_as} not found")

    bind_user(profile.id, acting_as=acting_as)
    return acting_as
