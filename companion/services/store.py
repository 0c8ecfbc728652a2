# companion/services/store.py
"""
In-memory patient/appointment collections for the current effective user.

All views read from one CollectionStore; nothing else keeps its own copy of
the entities. Loading is the only way collections are replaced wholesale;
the mutation coordinator uses the small helpers at the bottom to patch them.
"""
from __future__ import annotations

import asyncio
from typing import Optional

from companion.core.logging import get_logger
from companion.repositories.base import PracticeRepository
from companion.schemas.practice import Appointment, Patient, sort_appointments, sort_patients

logger = get_logger(__name__)


class CollectionStore:
    def __init__(self, repository: PracticeRepository):
        self.repository = repository
        self.owner_id: Optional[str] = None
        self.patients: list[Patient] = []
        self.appointments: list[Appointment] = []
        self.loading: bool = False
        self._generation = 0
        self._inflight: Optional[tuple[str, asyncio.Task]] = None

    async def load(self, owner_id: str) -> bool:
        """
        Fetch patients and appointments for owner_id concurrently and swap both
        collections in once both have arrived.

        A second call for the owner already being loaded joins that load. A call
        for a different owner supersedes it; the superseded results are dropped.
        Returns True when this call's data was applied.
        """
        if self._inflight is not None:
            inflight_owner, task = self._inflight
            if inflight_owner == owner_id and not task.done():
                return await asyncio.shield(task)

        if owner_id != self.owner_id:
            # switching users: never show the previous user's entities
            self.patients = []
            self.appointments = []
            self.owner_id = owner_id

        self._generation += 1
        self.loading = True
        task = asyncio.ensure_future(self._fetch(owner_id, self._generation))
        self._inflight = (owner_id, task)
        return await asyncio.shield(task)

    async def _fetch(self, owner_id: str, generation: int) -> bool:
        try:
            patients, appointments = await asyncio.gather(
                self.repository.list_patients(owner_id),
                self.repository.list_appointments(owner_id),
            )
        except Exception as e:
            # keep whatever is on screen; no retry
            logger.warning("collection_load_failed", owner_id=owner_id, error=str(e))
            return False
        finally:
            if generation == self._generation:
                self.loading = False
                self._inflight = None

        if generation != self._generation:
            logger.info("collection_load_superseded", owner_id=owner_id)
            return False

        self.patients = sort_patients(list(patients))
        self.appointments = sort_appointments(list(appointments))
        logger.info(
            "collection_loaded",
            owner_id=owner_id,
            patients=len(self.patients),
            appointments=len(self.appointments),
        )
        return True

    def clear(self) -> None:
        self._generation += 1
        self._inflight = None
        self.owner_id = None
        self.patients = []
        self.appointments = []
        self.loading = False

    # ---------- lookups ----------

    def get_patient(self, patient_id: str) -> Optional[Patient]:
        return next((p for p in self.patients if p.id == patient_id), None)

    def get_appointment(self, appointment_id: str) -> Optional[Appointment]:
        return next((a for a in self.appointments if a.id == appointment_id), None)

    # ---------- local patches (used by the mutation coordinator) ----------

    def replace_appointment(self, appointment: Appointment) -> bool:
        for i, current in enumerate(self.appointments):
            if current.id == appointment.id:
                self.appointments[i] = appointment
                self.appointments = sort_appointments(self.appointments)
                return True
        return False

    def add_appointment(self, appointment: Appointment) -> None:
        self.appointments = sort_appointments([*self.appointments, appointment])

    def add_patient(self, patient: Patient) -> None:
        self.patients = sort_patients([*self.patients, patient])
