"""Error taxonomy for the scheduling client.

FetchError and MutationError wrap backend failures; ValidationError is raised
client-side and never reaches the backend.
"""
from __future__ import annotations

FALLBACK_LOAD = "Error al cargar citas"
FALLBACK_LOAD_ONE = "Error al cargar cita"
FALLBACK_LOAD_OPTIONS = "Error al cargar datos"
FALLBACK_CREATE = "Error al crear la cita"
FALLBACK_UPDATE = "Error al actualizar la cita"
FALLBACK_DELETE = "Error al eliminar la cita"
FALLBACK_CONFIRM = "Error al confirmar cita"
FALLBACK_CANCEL = "Error al cancelar cita"


class ScheduleError(Exception):
    """Base class for every error surfaced to the user."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class FetchError(ScheduleError):
    """Network or HTTP failure while reading from the backend."""


class MutationError(ScheduleError):
    """Failure on create/update/delete/confirm/cancel."""


class BusyError(MutationError):
    """A mutating request for the same target is already in flight."""


class ValidationError(ScheduleError):
    """Client-side validation failure. ``errors`` maps field name to message."""

    def __init__(self, errors: dict[str, str]):
        super().__init__("; ".join(errors.values()) or "Datos inválidos")
        self.errors = errors
