"""Lay appointments out on the per-doctor day grid."""
from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from datetime import date

from .models import STATUS_LABELS, Appointment, CalendarEntry, SlotCell
from .timegrid import DEFAULT_DURATION, SLOT_COUNT, describe_duration, format_clock, parse_timestamp, slot_span

logger = logging.getLogger(__name__)

# the column header takes the first two rows of the rendered grid
HEADER_OFFSET = 2
CELL_HEIGHT = 48
PALETTE = ("pink", "green", "blue", "yellow")
DEFAULT_TREATMENT = "Consulta"


def color_for(appointment_id: str) -> str:
    """Stable palette color for an appointment id.

    Numeric ids index the palette directly; anything else falls back to the
    sum of its character codes so the same id always gets the same color.
    """
    if appointment_id.isdecimal():
        key = int(appointment_id)
    else:
        key = sum(ord(ch) for ch in appointment_id)
    return PALETTE[key % len(PALETTE)]


def build_entry(appt: Appointment) -> CalendarEntry:
    start = parse_timestamp(appt.start)
    end = parse_timestamp(appt.end) if appt.end else None
    start_slot, end_slot = slot_span(start, end)
    return CalendarEntry(
        id=appt.id,
        patient_id=appt.patient_id,
        doctor_id=appt.doctor_id,
        patient_name=appt.patient_name or appt.patient_id,
        status=appt.status,
        status_label=STATUS_LABELS[appt.status],
        treatment=appt.treatment or DEFAULT_TREATMENT,
        start_time=format_clock(start),
        end_time=format_clock(end or start + DEFAULT_DURATION),
        start_slot=start_slot,
        end_slot=end_slot,
        duration_label=describe_duration(appt.duration_slots or end_slot - start_slot + 1),
        color=color_for(appt.id),
    )


def entries_for_date(appointments: Iterable[Appointment], day: date) -> list[CalendarEntry]:
    """Calendar entries for appointments starting on ``day``, in list order."""
    return [build_entry(a) for a in appointments if parse_timestamp(a.start).date() == day]


def group_by_doctor(entries: Iterable[CalendarEntry], doctor_ids: Iterable[str]) -> dict[str, list[CalendarEntry]]:
    grouped: dict[str, list[CalendarEntry]] = {doctor_id: [] for doctor_id in doctor_ids}
    for entry in entries:
        if entry.doctor_id in grouped:
            grouped[entry.doctor_id].append(entry)
    return grouped


def block_height(entry: CalendarEntry) -> int:
    return (entry.end_slot - entry.start_slot + 1) * CELL_HEIGHT


def place_entries(entries: Sequence[CalendarEntry]) -> list[SlotCell | None]:
    """Fill one doctor's column.

    Each entry is written into every cell it covers, the first one being the
    head cell that carries the block height. Later entries overwrite earlier
    ones where they overlap.
    """
    cells: list[SlotCell | None] = [None] * SLOT_COUNT
    for entry in entries:
        first = entry.start_slot + HEADER_OFFSET
        last = entry.end_slot + HEADER_OFFSET
        for index in range(first, last + 1):
            if not 0 <= index < SLOT_COUNT:
                logger.debug("Appointment %s cell %d falls outside the grid", entry.id, index)
                continue
            head = index == first
            cells[index] = SlotCell(entry=entry, is_head=head, height=block_height(entry) if head else 0)
    return cells


def cell_to_slot(cell: int) -> int:
    """Grid slot for a rendered cell index (inverse of the header offset)."""
    return cell - HEADER_OFFSET
