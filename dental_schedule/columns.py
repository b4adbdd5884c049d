from __future__ import annotations

from collections.abc import Iterable, Sequence

from .models import CalendarEntry, Doctor, DoctorColumnSummary


def summarize_doctors(doctors: Iterable[Doctor], entries: Sequence[CalendarEntry]) -> list[DoctorColumnSummary]:
    """Header figures for each doctor column on the visible date."""
    summaries = []
    for doctor in doctors:
        own = [e for e in entries if e.doctor_id == doctor.id]
        summaries.append(
            DoctorColumnSummary(
                id=doctor.id,
                name=doctor.nombre_completo,
                appointments=len(own),
                patients=len({e.patient_id for e in own}),
            )
        )
    return summaries


def select_doctors(summaries: list[DoctorColumnSummary], selected_doctor_id: str | None) -> list[DoctorColumnSummary]:
    if not selected_doctor_id:
        return summaries
    return [s for s in summaries if s.id == selected_doctor_id]
