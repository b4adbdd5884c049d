"""Read-only view of the schedule grid for whatever renders it."""
from __future__ import annotations

from collections.abc import Sequence
from datetime import date

from pydantic import BaseModel

from .columns import select_doctors, summarize_doctors
from .models import Appointment, Doctor, DoctorColumnSummary, SlotCell, ViewType
from .navigation import CalendarNavigation
from .placement import entries_for_date, group_by_doctor, place_entries
from .timegrid import parse_timestamp, time_labels


class DoctorColumn(BaseModel):
    doctor: DoctorColumnSummary
    cells: list[SlotCell | None]


class Board(BaseModel):
    anchor_date: date
    view_type: ViewType
    appointments_count: int
    time_labels: list[str]
    columns: list[DoctorColumn]
    week_counts: dict[date, int] = {}
    generation: int = 0  # navigation generation the board was built for


def build_board(
    appointments: Sequence[Appointment],
    doctors: Sequence[Doctor],
    navigation: CalendarNavigation,
    selected_doctor: str | None = None,
) -> Board:
    day = navigation.anchor_date
    entries = entries_for_date(appointments, day)
    summaries = select_doctors(summarize_doctors(doctors, entries), selected_doctor)
    grouped = group_by_doctor(entries, [s.id for s in summaries])
    columns = [DoctorColumn(doctor=s, cells=place_entries(grouped[s.id])) for s in summaries]

    week_counts = {}
    if navigation.view_type is ViewType.WEEK:
        week_counts = {d: 0 for d in navigation.visible_dates()}
        for appt in appointments:
            start_day = parse_timestamp(appt.start).date()
            if start_day in week_counts:
                week_counts[start_day] += 1

    return Board(
        anchor_date=day,
        view_type=navigation.view_type,
        appointments_count=len(entries),
        time_labels=time_labels(),
        columns=columns,
        week_counts=week_counts,
        generation=navigation.generation,
    )
