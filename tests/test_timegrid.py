from datetime import date, datetime, timezone

import pytest

from tableslot.timegrid import (
    format_timestamp,
    generate_slots,
    minutes_since_midnight,
    minutes_to_label,
    parse_timestamp,
    service_day_bounds,
    slot_to_timestamp,
)
from tests.factories import TZ, at


def test_generate_slots_includes_both_boundaries():
    slots = generate_slots(11, 24, 15)

    assert slots[0] == 11 * 60
    assert slots[-1] == 24 * 60
    assert len(slots) == 13 * 4 + 1
    assert all(b - a == 15 for a, b in zip(slots, slots[1:]))


def test_generate_slots_appends_close_when_step_does_not_divide():
    assert generate_slots(11, 12, 25) == [660, 685, 710, 720]


def test_generate_slots_is_deterministic():
    assert generate_slots(18, 26, 30) == generate_slots(18, 26, 30)


@pytest.mark.parametrize("open_hour,close_hour,step", [(11, 24, 0), (20, 20, 15), (22, 11, 15)])
def test_generate_slots_rejects_bad_configuration(open_hour, close_hour, step):
    with pytest.raises(ValueError):
        generate_slots(open_hour, close_hour, step)


def test_slot_to_timestamp_rolls_past_midnight():
    assert slot_to_timestamp(20 * 60 + 30, date(2025, 10, 15), TZ) == at(20, 30)
    assert slot_to_timestamp(24 * 60, date(2025, 10, 15), TZ) == at(0, 0, day=16)


def test_minutes_since_midnight_and_label():
    assert minutes_since_midnight(at(21, 45)) == 1305
    assert minutes_since_midnight(at(0, 0)) == 0
    assert minutes_to_label(1305) == "21:45"
    assert minutes_to_label(1440) == "00:00"


def test_parse_timestamp_round_trip():
    text = "2025-10-15T20:00:00-03:00"
    ts = parse_timestamp(text)

    assert ts == at(20)
    assert format_timestamp(ts) == text


def test_parse_timestamp_accepts_aware_datetime():
    ts = datetime(2025, 10, 15, 23, 0, tzinfo=timezone.utc)
    assert parse_timestamp(ts) is ts


@pytest.mark.parametrize("value", ["2025-10-15T20:00:00", "not a time", "", 42])
def test_parse_timestamp_rejects_malformed_input(value):
    with pytest.raises(ValueError):
        parse_timestamp(value)


def test_service_day_bounds():
    opening, closing = service_day_bounds(at(15, 20), 11, 24)
    assert opening == at(11)
    assert closing == at(0, day=16)


def test_service_day_bounds_after_midnight_belongs_to_previous_night():
    # 18:00 to 02:00: half past midnight is still the night of the 15th
    assert service_day_bounds(at(0, 30, day=16), 18, 26) == (at(18), at(2, day=16))
    assert service_day_bounds(at(1, 59, day=16), 18, 26) == (at(18), at(2, day=16))

    # From closing on, the next service day applies
    assert service_day_bounds(at(2, 0, day=16), 18, 26) == (at(18, day=16), at(2, day=17))
    assert service_day_bounds(at(19, day=16), 18, 26) == (at(18, day=16), at(2, day=17))
