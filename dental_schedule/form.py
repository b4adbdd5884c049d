"""Appointment form: the editable draft behind slot clicks and edits."""
from __future__ import annotations

import asyncio
from datetime import date, datetime, timedelta

from pydantic import BaseModel, Field

from .errors import ValidationError
from .models import Appointment, AppointmentDraft, AppointmentPatch, AppointmentStatus, Doctor, Patient
from .timegrid import SLOT_MINUTES, format_clock, parse_timestamp, slot_to_time


class AppointmentForm(BaseModel):
    """Field values as entered by the user, all text."""
    model_config = {
        "populate_by_name": True
    }

    appointment_id: str | None = Field(None, alias="appointmentId")
    patient_id: str = Field("", alias="patientId")
    doctor_id: str = Field("", alias="doctorId")
    date: str = ""  # YYYY-MM-DD
    time: str = "08:00"  # HH:MM
    duration_slots: str = Field("1", alias="durationSlots")
    status: str = AppointmentStatus.PENDING.value
    notes: str = ""


class FormOptions(BaseModel):
    doctors: list[Doctor]
    patients: list[Patient]


def _parse_time(value: str) -> tuple[int, int] | None:
    try:
        parsed = datetime.strptime(value.strip(), "%H:%M")
    except ValueError:
        return None
    return parsed.hour, parsed.minute


def validate_form(form: AppointmentForm) -> dict[str, str]:
    """Return field -> message for every rule the form breaks (empty if valid)."""
    errors: dict[str, str] = {}

    if not form.patient_id.strip():
        errors["patientId"] = "El paciente es obligatorio"
    if not form.doctor_id.strip():
        errors["doctorId"] = "El doctor es obligatorio"

    if not form.date.strip():
        errors["date"] = "La fecha es obligatoria"
    else:
        try:
            date.fromisoformat(form.date.strip())
        except ValueError:
            errors["date"] = "La fecha no es válida"

    if not form.time.strip():
        errors["time"] = "La hora es obligatoria"
    else:
        parsed = _parse_time(form.time)
        if parsed is None:
            errors["time"] = "La hora no es válida"
        elif parsed[1] not in (0, 30):
            errors["time"] = "La hora debe ser en punto (:00) o media hora (:30)"

    if not form.duration_slots.strip():
        errors["durationSlots"] = "La duración es obligatoria"
    elif not form.duration_slots.strip().isdecimal() or int(form.duration_slots) <= 0:
        errors["durationSlots"] = "La duración debe ser un número entero positivo"

    try:
        AppointmentStatus.parse(form.status)
    except ValueError:
        errors["status"] = "El estado no es válido"

    return errors


def to_draft(form: AppointmentForm) -> AppointmentDraft:
    """Build the backend payload from a valid form."""
    hour, minute = _parse_time(form.time)
    start = datetime.combine(date.fromisoformat(form.date.strip()), datetime.min.time()).replace(hour=hour, minute=minute)
    slots = int(form.duration_slots)
    end = start + timedelta(minutes=slots * SLOT_MINUTES)
    return AppointmentDraft(
        patient_id=form.patient_id.strip(),
        doctor_id=form.doctor_id.strip(),
        start=start.isoformat(timespec="seconds"),
        end=end.isoformat(timespec="seconds"),
        duration_slots=slots,
        status=form.status,
        notes=form.notes or None,
    )


async def submit(controller, form: AppointmentForm) -> Appointment:
    """Validate, then create or update through the lifecycle controller."""
    errors = validate_form(form)
    if errors:
        controller.error = "; ".join(errors.values())
        raise ValidationError(errors)
    draft = to_draft(form)
    if form.appointment_id:
        patch = AppointmentPatch.model_validate(draft.model_dump(exclude_none=True))
        return await controller.update(form.appointment_id, patch)
    return await controller.create(draft)


def form_for_slot(slot: int, doctor_id: str, day: date, patient_id: str = "") -> AppointmentForm:
    """Prefilled form for a click on an empty grid slot."""
    hour, minute = slot_to_time(slot)
    return AppointmentForm(
        patient_id=patient_id,
        doctor_id=doctor_id,
        date=day.isoformat(),
        time=f"{hour:02d}:{minute:02d}",
    )


def form_for_appointment(appt: Appointment) -> AppointmentForm:
    start = parse_timestamp(appt.start)
    slots = appt.duration_slots
    if not slots and appt.end:
        # records without durationSlots keep the length implied by their end
        minutes = (parse_timestamp(appt.end) - start).total_seconds() // 60
        slots = max(1, int(minutes // SLOT_MINUTES))
    return AppointmentForm(
        appointment_id=appt.id,
        patient_id=appt.patient_id,
        doctor_id=appt.doctor_id,
        date=start.date().isoformat(),
        time=format_clock(start),
        duration_slots=str(slots or 1),
        status=appt.status.value,
        notes=appt.notes or "",
    )


async def load_form_options(client) -> FormOptions:
    """Doctors and patients for the selectors, fetched concurrently."""
    doctors, patients = await asyncio.gather(client.list_doctors(), client.list_patients())
    return FormOptions(doctors=doctors, patients=patients)
