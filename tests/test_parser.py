from textwrap import dedent

import pytest
import yaml

from tableslot.config import ServiceConfig, load_config
from tableslot.models import BookingStatus, Priority, WaitlistStatus
from tableslot.parser import create_floor_template, parse_floor_data, parse_floor_yaml
from tests.factories import at

FLOOR = dedent(
    """\
    service:
      open_hour: 12
      close_hour: 25
      alternative_windows: [15, 45]
    sectors:
      - id: main
        name: Main Hall
      - id: terrace
        name: Terrace
        color: "#88cc88"
    tables:
      - id: T1
        sector: main
        name: Table 1
        capacity: {min: 2, max: 4}
      - id: T2
        sector: terrace
        capacity: {min: 4, max: 6}
    bookings:
      - id: B1
        table: T1
        customer: {name: Ana, phone: "+54 11 1111 2222"}
        party_size: 3
        start: "2025-10-15T20:00:00-03:00"
        duration: 90
        status: seated
        priority: VIP
    waitlist:
      - id: W1
        customer: {name: Bruno, phone: "+54 11 3333 4444"}
        party_size: 4
        preferred_time: "2025-10-15T21:00:00-03:00"
        added_at: "2025-10-15T20:10:00-03:00"
        preferred_sector: terrace
    """
)


@pytest.fixture
def floor_file(tmp_path):
    path = tmp_path / "floor.yaml"
    path.write_text(FLOOR, encoding="utf-8")
    return path


def test_parse_floor_yaml(floor_file):
    floor = parse_floor_yaml(floor_file)

    assert [s.name for s in floor.sectors] == ["Main Hall", "Terrace"]
    assert floor.sectors[1].color == "#88cc88"

    t1, t2 = floor.resources
    assert t1.capacity.min == 2 and t1.capacity.max == 4
    assert t2.name == "T2"
    assert t2.sort_order == 1

    booking = floor.bookings[0]
    assert booking.start_time == at(20)
    assert booking.end_time == at(21, 30)
    assert booking.status is BookingStatus.SEATED
    assert booking.priority is Priority.VIP
    assert booking.customer.phone == "+54 11 1111 2222"

    entry = floor.waitlist[0]
    assert entry.status is WaitlistStatus.WAITING
    assert entry.preferred_sector == "terrace"
    assert entry.added_at == at(20, 10)

    assert floor.config.open_hour == 12
    assert floor.config.close_hour == 25
    assert floor.config.alternative_windows == (15, 45)


def test_floor_resource_lookup(floor_file):
    floor = parse_floor_yaml(floor_file)

    assert floor.resource("T2").sector_id == "terrace"
    with pytest.raises(KeyError):
        floor.resource("T9")


def test_empty_document_gives_empty_floor():
    floor = parse_floor_data(None)
    assert floor.resources == []
    assert floor.config == ServiceConfig()


def _load(text: str):
    return yaml.safe_load(dedent(text))


def test_unknown_sector_is_reported():
    data = _load(
        """\
        sectors: [{id: main}]
        tables:
          - {id: T1, sector: patio, capacity: {min: 1, max: 2}}
        """
    )
    with pytest.raises(ValueError, match="table T1: unknown sector 'patio'"):
        parse_floor_data(data)


def test_booking_on_unknown_table_is_reported():
    data = _load(
        """\
        tables:
          - {id: T1, sector: main, capacity: {min: 1, max: 2}}
        bookings:
          - id: B1
            table: T7
            customer: {name: Ana}
            party_size: 2
            start: "2025-10-15T20:00:00-03:00"
            duration: 60
        """
    )
    with pytest.raises(ValueError, match="unknown table 'T7'"):
        parse_floor_data(data)


def test_missing_key_is_reported():
    data = _load(
        """\
        tables:
          - {id: T1, sector: main}
        """
    )
    with pytest.raises(ValueError, match="table T1: missing 'capacity'"):
        parse_floor_data(data)


def test_bad_status_lists_choices():
    data = _load(
        """\
        tables:
          - {id: T1, sector: main, capacity: {min: 1, max: 2}}
        bookings:
          - id: B1
            table: T1
            customer: {name: Ana}
            party_size: 2
            start: "2025-10-15T20:00:00-03:00"
            duration: 60
            status: eaten
        """
    )
    with pytest.raises(ValueError, match="CONFIRMED"):
        parse_floor_data(data)


def test_negative_duration_is_rejected():
    data = _load(
        """\
        tables:
          - {id: T1, sector: main, capacity: {min: 1, max: 2}}
        bookings:
          - id: B1
            table: T1
            customer: {name: Ana}
            party_size: 2
            start: "2025-10-15T20:00:00-03:00"
            duration: -30
        """
    )
    with pytest.raises(ValueError, match="negative duration"):
        parse_floor_data(data)


def test_naive_timestamp_is_rejected():
    data = _load(
        """\
        tables:
          - {id: T1, sector: main, capacity: {min: 1, max: 2}}
        bookings:
          - id: B1
            table: T1
            customer: {name: Ana}
            party_size: 2
            start: "2025-10-15T20:00:00"
            duration: 60
        """
    )
    with pytest.raises(ValueError):
        parse_floor_data(data)


def test_invalid_capacity_is_rejected():
    data = _load(
        """\
        tables:
          - {id: T1, sector: main, capacity: {min: 4, max: 2}}
        """
    )
    with pytest.raises(ValueError):
        parse_floor_data(data)


def test_template_round_trips(tmp_path):
    path = tmp_path / "template.yaml"
    create_floor_template(path)

    assert path.read_text(encoding="utf-8").startswith("# Floor file for tableslot")

    floor = parse_floor_yaml(path)
    assert [r.id for r in floor.resources] == ["T1"]
    assert floor.bookings[0].status is BookingStatus.CONFIRMED
    assert floor.waitlist == []


def test_config_rejects_unknown_settings():
    with pytest.raises(ValueError, match="opening_time"):
        ServiceConfig.from_mapping({"opening_time": 11})


@pytest.mark.parametrize(
    "settings",
    [
        {"open_hour": 24, "close_hour": 11},
        {"slot_minutes": 0},
        {"default_duration": -90},
        {"alternative_windows": [15, 0]},
    ],
)
def test_config_validation(settings):
    with pytest.raises(ValueError):
        ServiceConfig.from_mapping(settings)


def test_load_config_accepts_both_layouts(tmp_path, floor_file):
    standalone = tmp_path / "service.yaml"
    standalone.write_text("slot_minutes: 30\nallow_past: true\n", encoding="utf-8")

    config = load_config(standalone)
    assert config.slot_minutes == 30
    assert config.allow_past

    assert load_config(floor_file).open_hour == 12
