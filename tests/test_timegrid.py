from datetime import datetime

import pytest
from dental_schedule.timegrid import (
    SLOT_COUNT, describe_duration, parse_timestamp, slot_span, slot_to_time, time_labels, time_to_slot,
)


def test_slot_bounds():
    assert time_to_slot(8, 0) == 0
    assert time_to_slot(8, 30) == 1
    assert time_to_slot(20, 0) == 24
    assert time_to_slot(20, 30) == 25
    assert SLOT_COUNT == 25


def test_round_trip_over_the_whole_day():
    for hour in range(8, 21):
        for minute in (0, 30):
            assert slot_to_time(time_to_slot(hour, minute)) == (hour, minute)


def test_span_without_end_is_one_slot():
    start = datetime(2025, 5, 16, 9, 30)
    assert slot_span(start) == (3, 3)


def test_span_end_is_last_covered_slot():
    assert slot_span(datetime(2025, 5, 16, 9, 0), datetime(2025, 5, 16, 10, 0)) == (2, 3)


def test_short_span_clamps_to_start():
    start = datetime(2025, 5, 16, 9, 0)
    assert slot_span(start, datetime(2025, 5, 16, 9, 10)) == (2, 2)
    assert slot_span(start, start) == (2, 2)


def test_parse_timestamp_keeps_wall_clock():
    assert parse_timestamp("2025-05-16T09:00:00") == datetime(2025, 5, 16, 9, 0)
    # aware values become naive local time
    assert parse_timestamp("2025-05-16T09:00:00Z").tzinfo is None


def test_time_labels():
    labels = time_labels()
    assert len(labels) == SLOT_COUNT
    assert labels[0] == "08:00"
    assert labels[1] == ""
    assert labels[-1] == "20:00"


@pytest.mark.parametrize("slots,label", [
    (None, "N/A"),
    (1, "30 minutos"),
    (2, "1 hora"),
    (3, "1 hora 30 minutos"),
    (6, "3 horas"),
    (7, "210 minutos"),
])
def test_describe_duration(slots, label):
    assert describe_duration(slots) == label
