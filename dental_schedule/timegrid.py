"""Fixed scheduling day: 08:00 to 20:30 in 30-minute slots.

Slot 0 is 08:00-08:30 and slot 24 is 20:00-20:30. Times are local wall-clock;
nothing here is timezone aware.
"""
from __future__ import annotations

from datetime import datetime, timedelta

DAY_START_HOUR = 8
DAY_END_HOUR = 20
SLOT_MINUTES = 30
SLOT_COUNT = (DAY_END_HOUR - DAY_START_HOUR) * 2 + 1
DEFAULT_DURATION = timedelta(minutes=SLOT_MINUTES)


def time_to_slot(hour: int, minute: int) -> int:
    """Slot index for a wall-clock time. Not clamped outside the day window."""
    return (hour - DAY_START_HOUR) * 2 + (1 if minute == 30 else 0)


def slot_to_time(slot: int) -> tuple[int, int]:
    return DAY_START_HOUR + slot // 2, (slot % 2) * SLOT_MINUTES


def slot_span(start: datetime, end: datetime | None = None) -> tuple[int, int]:
    """Return ``(start_slot, end_slot)`` where ``end_slot`` is the last slot
    covered by the appointment, not the one in which it ends.

    Without an end the appointment takes a single slot. Spans shorter than the
    grid resolution collapse onto the start slot.
    """
    start_slot = time_to_slot(start.hour, start.minute)
    if end is None:
        return start_slot, start_slot
    end_slot = time_to_slot(end.hour, end.minute) - 1
    return start_slot, max(start_slot, end_slot)


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 timestamp into naive local wall-clock time."""
    dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if dt.tzinfo is not None:
        dt = dt.astimezone().replace(tzinfo=None)
    return dt


def format_clock(dt: datetime) -> str:
    return dt.strftime("%H:%M")


def time_labels() -> list[str]:
    """Labels for the time column; half-hour rows are blank."""
    labels = []
    for hour in range(DAY_START_HOUR, DAY_END_HOUR + 1):
        labels.append(f"{hour:02d}:00")
        if hour < DAY_END_HOUR:
            labels.append("")
    return labels


def describe_duration(slots: int | None) -> str:
    if not slots:
        return "N/A"
    hours, half = divmod(slots, 2)
    if hours > 3 or (hours == 3 and half):
        return f"{slots * SLOT_MINUTES} minutos"
    parts = []
    if hours:
        parts.append("1 hora" if hours == 1 else f"{hours} horas")
    if half:
        parts.append("30 minutos")
    return " ".join(parts)
