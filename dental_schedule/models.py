from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field, field_validator, model_validator


class AppointmentStatus(str, Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    WAITING_ROOM = "WAITING_ROOM"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"

    @classmethod
    def parse(cls, value: str | AppointmentStatus) -> AppointmentStatus:
        """Accept wire codes as well as the legacy Spanish names."""
        if isinstance(value, cls):
            return value
        code = str(value).strip().upper()
        return cls(_LEGACY_STATUS.get(code, code))


_LEGACY_STATUS = {
    "PENDIENTE": "PENDING",
    "CONFIRMADA": "CONFIRMED",
    "EN_CURSO": "IN_PROGRESS",
    "COMPLETADA": "COMPLETED",
    "CANCELADA": "CANCELLED",
}

STATUS_LABELS = {
    AppointmentStatus.PENDING: "Sin confirmar",
    AppointmentStatus.CONFIRMED: "Confirmada",
    AppointmentStatus.WAITING_ROOM: "En sala de espera",
    AppointmentStatus.IN_PROGRESS: "En curso",
    AppointmentStatus.COMPLETED: "Completada",
    AppointmentStatus.CANCELLED: "Cancelada",
}


class ViewType(str, Enum):
    DAY = "day"
    WEEK = "week"


def _as_text(value):
    # backend ids may come back as JSON numbers
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(int(value))
    return value


class _WireModel(BaseModel):
    model_config = {
        "populate_by_name": True
    }


class Appointment(_WireModel):
    id: str = ""
    patient_id: str = Field(alias="patientId")
    doctor_id: str = Field(alias="doctorId")
    start: str  # ISO-8601 dateTime
    end: str | None = None
    status: AppointmentStatus = AppointmentStatus.PENDING
    treatment: str | None = None
    notes: str | None = None
    patient_name: str | None = Field(None, alias="patientName")
    duration_slots: int | None = Field(None, alias="durationSlots")

    @field_validator("id", "patient_id", "doctor_id", mode="before")
    @classmethod
    def coerce_ids(cls, value):
        return _as_text(value)

    @field_validator("status", mode="before")
    @classmethod
    def parse_status(cls, value):
        if value is None:
            return AppointmentStatus.PENDING
        return AppointmentStatus.parse(value)


class AppointmentDraft(_WireModel):
    """Payload for POST /api/appointments. The backend assigns the id."""
    patient_id: str = Field(alias="patientId")
    doctor_id: str = Field(alias="doctorId")
    start: str
    end: str | None = None
    status: AppointmentStatus = AppointmentStatus.PENDING
    treatment: str | None = None
    notes: str | None = None
    duration_slots: int | None = Field(None, alias="durationSlots")

    @field_validator("status", mode="before")
    @classmethod
    def parse_status(cls, value):
        return AppointmentStatus.parse(value)

    @model_validator(mode="after")
    def check_end(self):
        if self.end and datetime.fromisoformat(self.end) < datetime.fromisoformat(self.start):
            raise ValueError("end must not be before start")
        return self


class AppointmentPatch(_WireModel):
    """Partial update. Only fields that were explicitly set are sent."""
    patient_id: str | None = Field(None, alias="patientId")
    doctor_id: str | None = Field(None, alias="doctorId")
    start: str | None = None
    end: str | None = None
    status: AppointmentStatus | None = None
    treatment: str | None = None
    notes: str | None = None
    duration_slots: int | None = Field(None, alias="durationSlots")

    @field_validator("status", mode="before")
    @classmethod
    def parse_status(cls, value):
        return None if value is None else AppointmentStatus.parse(value)

    def to_payload(self) -> dict:
        return self.model_dump(by_alias=True, exclude_unset=True, mode="json")


class Doctor(_WireModel):
    id: str
    nombre_completo: str = Field("", alias="nombreCompleto")
    especialidad: str | None = None

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, value):
        return _as_text(value)


class Patient(_WireModel):
    id: str
    nombre: str = ""
    apellido: str = ""
    fecha_nacimiento: str | None = Field(None, alias="fechaNacimiento")
    telefono: str | None = None
    email: str | None = None

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, value):
        return _as_text(value)

    @property
    def full_name(self) -> str:
        return f"{self.nombre} {self.apellido}".strip()


# Derived, never persisted ---------------------------------------------------

class CalendarEntry(BaseModel):
    """An appointment resolved onto the day grid."""
    id: str
    patient_id: str
    doctor_id: str
    patient_name: str
    status: AppointmentStatus
    status_label: str
    treatment: str
    start_time: str  # HH:MM
    end_time: str
    start_slot: int
    end_slot: int
    duration_label: str
    color: str


class SlotCell(BaseModel):
    entry: CalendarEntry
    is_head: bool
    height: int = 0  # block height in px, set on head cells only


class DoctorColumnSummary(BaseModel):
    id: str
    name: str
    appointments: int
    patients: int
