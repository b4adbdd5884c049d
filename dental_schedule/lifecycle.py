"""Appointment lifecycle: owns the in-memory collection for the current view.

Every successful mutation is followed by a full reload from the backend; the
local collection is only ever replaced with what the backend returned. A
failed operation records its message in ``error`` and leaves the collection
untouched.
"""
from __future__ import annotations

import logging
from contextlib import contextmanager

from .errors import BusyError, FetchError, MutationError, ScheduleError, ValidationError
from .models import Appointment, AppointmentDraft, AppointmentPatch, AppointmentStatus

logger = logging.getLogger(__name__)

S = AppointmentStatus

# Only consulted in guarded mode.
ALLOWED_TRANSITIONS: dict[AppointmentStatus, frozenset[AppointmentStatus]] = {
    S.PENDING: frozenset({S.CONFIRMED, S.WAITING_ROOM, S.IN_PROGRESS, S.CANCELLED}),
    S.CONFIRMED: frozenset({S.PENDING, S.WAITING_ROOM, S.IN_PROGRESS, S.CANCELLED}),
    S.WAITING_ROOM: frozenset({S.IN_PROGRESS, S.CANCELLED}),
    S.IN_PROGRESS: frozenset({S.COMPLETED, S.CANCELLED}),
    S.COMPLETED: frozenset(),
    S.CANCELLED: frozenset(),
}


def transition(current: AppointmentStatus, target: AppointmentStatus, guarded: bool = False) -> AppointmentStatus:
    """Resolve a status change. Permissive unless ``guarded`` is set."""
    target = AppointmentStatus.parse(target)
    if not guarded or current == target or target in ALLOWED_TRANSITIONS[current]:
        return target
    raise ValidationError({"status": f"No se puede pasar de {current.value} a {target.value}"})


class ScheduleController:
    def __init__(self, client, guarded_transitions: bool = False):
        self.client = client
        self.guarded_transitions = guarded_transitions
        self.appointments: list[Appointment] = []
        self.error: str | None = None
        self.loaded = False
        self._scope: dict[str, str | None] = {}
        self._load_seq = 0
        self._busy: set[str] = set()

    @property
    def loading(self) -> bool:
        return bool(self._busy)

    @contextmanager
    def _exclusive(self, key: str):
        if key in self._busy:
            raise BusyError("Operación en curso, espere a que termine")
        self._busy.add(key)
        try:
            yield
        finally:
            self._busy.discard(key)

    def _find(self, appt_id: str) -> Appointment | None:
        return next((a for a in self.appointments if a.id == appt_id), None)

    # Reads ----------------------------------------------------------------

    async def load(self, doctor_id: str | None = None, date_from: str | None = None, date_to: str | None = None) -> list[Appointment]:
        """Fetch the view's appointments and replace the collection.

        The scope is remembered and reused by the reload that follows each
        mutation. If a newer load starts before this one answers, this
        response is dropped.
        """
        self._scope = {"doctor_id": doctor_id, "date_from": date_from, "date_to": date_to}
        self._load_seq += 1
        seq = self._load_seq
        self.error = None
        try:
            if doctor_id:
                data = await self.client.list_by_doctor(doctor_id, date_from, date_to)
            else:
                data = await self.client.list_appointments()
        except FetchError as exc:
            self.error = exc.message
            raise
        if seq != self._load_seq:
            logger.debug("Discarding stale appointment load %d (latest %d)", seq, self._load_seq)
            return data
        self.appointments = data
        self.loaded = True
        return data

    async def get(self, appt_id: str) -> Appointment:
        try:
            return await self.client.get_appointment(appt_id)
        except FetchError as exc:
            self.error = exc.message
            raise

    async def list_for_patient(self, patient_id: str) -> list[Appointment]:
        try:
            return await self.client.list_by_patient(patient_id)
        except FetchError as exc:
            self.error = exc.message
            raise

    async def _reload(self) -> None:
        try:
            await self.load(**self._scope)
        except FetchError as exc:
            logger.error("Reload after mutation failed: %s", exc.message)

    # Mutations ------------------------------------------------------------

    async def _mutate(self, key: str, operation):
        with self._exclusive(key):
            self.error = None
            try:
                return await operation()
            except ScheduleError as exc:
                self.error = exc.message
                raise

    async def create(self, draft: AppointmentDraft) -> Appointment:
        created = await self._mutate("create", lambda: self.client.create_appointment(draft))
        logger.info("Created appointment %s for doctor %s at %s", created.id, created.doctor_id, created.start)
        self.appointments = [*self.appointments, created]
        await self._reload()
        return created

    async def update(self, appt_id: str, patch: AppointmentPatch | dict) -> Appointment:
        if isinstance(patch, dict):
            patch = AppointmentPatch.model_validate(patch)
        updated = await self._mutate(appt_id, lambda: self.client.update_appointment(appt_id, patch))
        logger.info("Updated appointment %s", appt_id)
        self.appointments = [updated if a.id == appt_id else a for a in self.appointments]
        await self._reload()
        return updated

    async def delete(self, appt_id: str) -> None:
        await self._mutate(appt_id, lambda: self.client.delete_appointment(appt_id))
        logger.info("Deleted appointment %s", appt_id)
        self.appointments = [a for a in self.appointments if a.id != appt_id]
        await self._reload()

    def _check_transition(self, appt_id: str, target: AppointmentStatus) -> AppointmentStatus:
        current = self._find(appt_id)
        if current is None:
            return AppointmentStatus.parse(target)
        try:
            return transition(current.status, target, self.guarded_transitions)
        except ValidationError as exc:
            self.error = exc.message
            raise

    async def confirm(self, appt_id: str) -> Appointment:
        self._check_transition(appt_id, S.CONFIRMED)
        confirmed = await self._mutate(appt_id, lambda: self.client.confirm_appointment(appt_id))
        logger.info("Confirmed appointment %s", appt_id)
        self.appointments = [confirmed if a.id == appt_id else a for a in self.appointments]
        await self._reload()
        return confirmed

    async def cancel(self, appt_id: str, reason: str | None = None) -> None:
        """Mark as cancelled; whether the record stays listed is up to the backend."""
        self._check_transition(appt_id, S.CANCELLED)
        await self._mutate(appt_id, lambda: self.client.cancel_appointment(appt_id, reason))
        logger.info("Cancelled appointment %s (%s)", appt_id, reason or "no reason")
        await self._reload()

    async def set_status(self, appt_id: str, status: AppointmentStatus | str) -> Appointment:
        target = self._check_transition(appt_id, AppointmentStatus.parse(status))
        return await self.update(appt_id, AppointmentPatch(status=target))
