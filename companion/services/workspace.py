# companion/services/workspace.py
"""
The signed-in clinician's workspace: session, profile, impersonation
override, collections and the current view, wired together.

effective_user_id is the single key every load and mutation is scoped to.
"""
from __future__ import annotations

from datetime import date, datetime
from typing import Callable, Optional, Union

from companion.core.errors import PermissionDeniedError
from companion.core.logging import get_logger, set_user_context
from companion.repositories.base import PracticeRepository
from companion.schemas.practice import (
    Appointment,
    AppointmentCreate,
    Patient,
    PatientCreate,
    UserProfile,
)
from companion.services.identity import (
    IdentityProvider,
    IdentityResolver,
    Session,
    display_name,
)
from companion.services.mutations import MutationCoordinator, MutationResult
from companion.services.store import CollectionStore
from companion.services.views import Projection, View, ViewRouter

logger = get_logger(__name__)


class Workspace:
    def __init__(
        self,
        identity: IdentityProvider,
        repository: PracticeRepository,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.identity = identity
        self.repository = repository
        self.clock = clock
        self.resolver = IdentityResolver(repository)
        self.store = CollectionStore(repository)
        self.coordinator = MutationCoordinator(repository, self.store, clock=clock)
        self.router = ViewRouter()

        self.session: Optional[Session] = None
        self.profile: Optional[UserProfile] = None
        self.impersonated_user_id: Optional[str] = None
        self._unsubscribe: Optional[Callable[[], None]] = None

    # ---------- lifecycle ----------

    async def start(self) -> None:
        self._unsubscribe = self.identity.on_session_change(self._on_session_change)
        await self._apply_session(self.identity.get_session())

    def close(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    async def _on_session_change(self, event: str, session: Optional[Session]) -> None:
        logger.info("session_changed", auth_event=event)
        await self._apply_session(session)

    async def _apply_session(self, session: Optional[Session]) -> None:
        previous_user_id = self.session.user_id if self.session else None
        self.session = session
        if session is None:
            self.profile = None
            self.impersonated_user_id = None
            self.store.clear()
            self.router.reset()
            set_user_context(None)
            return

        if session.user_id != previous_user_id:
            # an override never carries over to another identity
            self.impersonated_user_id = None
        self.profile = await self.resolver.resolve(session)
        set_user_context(session.user_id)
        await self.reload()

    # ---------- identity ----------

    @property
    def effective_user_id(self) -> Optional[str]:
        if self.impersonated_user_id:
            return self.impersonated_user_id
        return self.session.user_id if self.session else None

    @property
    def is_impersonating(self) -> bool:
        return self.impersonated_user_id is not None

    @property
    def display_name(self) -> str:
        return display_name(self.profile, self.session)

    async def _require_admin(self) -> UserProfile:
        # Role is read again at the point of action, never from a cached flag
        profile = await self.resolver.resolve(self.identity.get_session())
        if profile is not None:
            self.profile = profile
        if profile is None or not profile.is_admin:
            raise PermissionDeniedError("Only administrators can act as another user")
        return profile

    async def impersonate(self, user_id: Optional[str]) -> bool:
        """Set (or clear, with None) the acting-as override and reload."""
        admin = await self._require_admin()
        self.impersonated_user_id = user_id or None
        logger.info("impersonation_changed", admin_id=admin.id, acting_as=self.impersonated_user_id)
        return await self.reload()

    async def list_profiles(self) -> list[UserProfile]:
        await self._require_admin()
        return await self.repository.list_profiles()

    async def logout(self) -> None:
        await self.identity.sign_out()
        # sign_out is a no-op without a session; make sure local state is gone anyway
        if self.session is not None or self.store.owner_id is not None:
            await self._apply_session(None)

    # ---------- data ----------

    async def reload(self) -> bool:
        if self.impersonated_user_id and (self.profile is None or not self.profile.is_admin):
            logger.warning("impersonation_dropped", acting_as=self.impersonated_user_id)
            self.impersonated_user_id = None
        owner_id = self.effective_user_id
        if owner_id is None:
            return False
        return await self.store.load(owner_id)

    async def create_patient(self, data: PatientCreate) -> MutationResult[Patient]:
        return await self.coordinator.create_patient(self.effective_user_id, data)

    async def create_appointment(self, data: AppointmentCreate) -> MutationResult[Appointment]:
        return await self.coordinator.create_appointment(self.effective_user_id, data)

    async def update_appointment(self, appointment: Appointment) -> MutationResult[Appointment]:
        return await self.coordinator.update_appointment(self.effective_user_id, appointment)

    # ---------- views ----------

    def navigate(self, view: Union[View, str]) -> View:
        return self.router.navigate(view)

    def render(self, today: Optional[date] = None, **kwargs) -> Projection:
        return self.router.render(self.store, today or self.clock().date(), **kwargs)
