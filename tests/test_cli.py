from textwrap import dedent

import pytest

from tableslot.cli import main

FLOOR = dedent(
    """\
    sectors:
      - {id: main, name: Main Hall}
      - {id: terrace, name: Terrace}
    tables:
      - {id: T1, sector: main, name: Table 1, capacity: {min: 2, max: 4}}
      - {id: T2, sector: terrace, name: Terrace 1, capacity: {min: 4, max: 6}}
    bookings:
      - id: B1
        table: T1
        customer: {name: Ana, phone: "+54 11 1111 2222"}
        party_size: 3
        start: "2025-10-15T20:00:00-03:00"
        duration: 60
    waitlist:
      - id: W1
        customer: {name: Bruno, phone: "+54 11 3333 4444"}
        party_size: 4
        preferred_time: "2025-10-15T20:00:00-03:00"
        added_at: "2025-10-15T19:40:00-03:00"
        preferred_sector: terrace
    """
)

NOW = "2025-10-15T19:50:00-03:00"


@pytest.fixture
def floor_file(tmp_path):
    path = tmp_path / "floor.yaml"
    path.write_text(FLOOR, encoding="utf-8")
    return str(path)


def test_check_rejects_a_conflict(floor_file, capsys):
    code = main(
        ["check", floor_file, "--table", "T1", "--start", "2025-10-15T20:30:00-03:00",
         "--party", "2", "--now", NOW]
    )

    assert code == 2
    assert "REJECTED (CONFLICT): Conflicts with booking for Ana" in capsys.readouterr().out


def test_check_accepts_a_free_slot(floor_file, capsys):
    code = main(
        ["check", floor_file, "--table", "T1", "--start", "2025-10-15T21:00:00-03:00",
         "--party", "2", "--now", NOW]
    )

    assert code == 0
    assert "OK: booking is valid" in capsys.readouterr().out


def test_check_moves_an_existing_booking(floor_file, capsys):
    code = main(
        ["check", floor_file, "--booking", "B1", "--table", "T1",
         "--start", "2025-10-15T20:15:00-03:00", "--now", NOW]
    )
    assert code == 0


def test_check_new_booking_needs_party(floor_file, capsys):
    code = main(["check", floor_file, "--table", "T1", "--start", "2025-10-15T21:00:00-03:00"])

    assert code == 1
    assert "--party is required" in capsys.readouterr().err


def test_unknown_table_is_an_error(floor_file, capsys):
    code = main(
        ["check", floor_file, "--table", "T9", "--start", "2025-10-15T21:00:00-03:00",
         "--party", "2"]
    )

    assert code == 1
    assert "Unknown table: T9" in capsys.readouterr().err


def test_config_file_overrides_service_hours(floor_file, tmp_path, capsys):
    service = tmp_path / "service.yaml"
    service.write_text("open_hour: 21\n", encoding="utf-8")

    code = main(
        ["--config", str(service), "check", floor_file, "--table", "T2",
         "--start", "2025-10-15T20:00:00-03:00", "--party", "4", "--now", NOW]
    )

    assert code == 2
    assert "OUTSIDE_SERVICE_HOURS" in capsys.readouterr().out


def test_recommend_falls_back_to_alternatives(floor_file, capsys):
    code = main(
        ["recommend", floor_file, "--party", "2", "--start", "2025-10-15T20:00:00-03:00",
         "--duration", "60"]
    )
    out = capsys.readouterr().out

    assert code == 0
    assert "No tables available at the requested time." in out
    assert "=== Alternative Times ===" in out
    assert "19:00-20:00 (-60 min)" in out


def test_recommend_lists_tables(floor_file, capsys):
    code = main(
        ["recommend", floor_file, "--party", "4", "--start", "2025-10-15T21:00:00-03:00",
         "--sector", "terrace"]
    )
    out = capsys.readouterr().out

    assert code == 0
    assert "=== Recommended Tables ===" in out
    assert "Terrace 1" in out


def test_waitlist(floor_file, capsys):
    assert main(["waitlist", floor_file, "--now", NOW]) == 0

    out = capsys.readouterr().out
    assert "Bruno (4)" in out
    assert "Waiting: 1 (VIP 0)" in out


def test_promote(floor_file, capsys):
    code = main(
        ["promote", floor_file, "--table", "T2", "--at", "2025-10-15T20:00:00-03:00",
         "--now", NOW]
    )

    assert code == 0
    assert "Notified +54 11 3333 4444" in capsys.readouterr().out


def test_occupancy_csv(floor_file, capsys):
    code = main(
        ["occupancy", floor_file, "--date", "2025-10-15", "--utc-offset=-03:00", "--csv"]
    )
    lines = capsys.readouterr().out.splitlines()

    assert code == 0
    assert lines[0] == "slot,occupied,total,percent,seats_used,level"
    assert "20:00,1,2,50,3,low" in lines
    assert "21:00,0,2,0,0,low" in lines


def test_occupancy_report(floor_file, capsys):
    code = main(["occupancy", floor_file, "--date", "2025-10-15", "--utc-offset=-03:00"])
    out = capsys.readouterr().out

    assert code == 0
    assert "=== Sectors ===" in out
    assert "Busiest sector: Main Hall" in out


def test_seat_plan(floor_file, capsys):
    assert main(["seat-plan", floor_file, "--at", "2025-10-15T20:00:00-03:00"]) == 0
    assert "Bruno -> Terrace 1" in capsys.readouterr().out


def test_missing_floor_file(tmp_path, capsys):
    code = main(["waitlist", str(tmp_path / "nope.yaml")])

    assert code == 1
    assert "Floor file not found" in capsys.readouterr().err


def test_broken_floor_file(tmp_path, capsys):
    path = tmp_path / "floor.yaml"
    path.write_text("tables:\n  - {id: T1, sector: main}\n", encoding="utf-8")

    assert main(["waitlist", str(path)]) == 1
    assert "Error parsing floor file" in capsys.readouterr().err


def test_template(tmp_path, capsys):
    path = tmp_path / "starter.yaml"

    assert main(["template", str(path)]) == 0
    assert path.exists()
    assert "Created floor template" in capsys.readouterr().out


def test_check_is_blocked_by_any_existing_id(tmp_path, capsys):
    path = tmp_path / "floor.yaml"
    path.write_text(FLOOR.replace("id: B1", "id: new"), encoding="utf-8")

    code = main(
        ["check", str(path), "--table", "T1", "--start", "2025-10-15T20:30:00-03:00",
         "--party", "2", "--now", NOW]
    )

    assert code == 2
    assert "Conflicts with booking for Ana" in capsys.readouterr().out


def test_recommend_honours_zero_duration(floor_file, capsys):
    # T1 is booked 20:00-21:00; a zero-length request at 20:00 does not overlap it
    code = main(
        ["recommend", floor_file, "--party", "2", "--start", "2025-10-15T20:00:00-03:00",
         "--duration", "0"]
    )
    out = capsys.readouterr().out

    assert code == 0
    assert "=== Recommended Tables ===" in out
    assert "Table 1" in out
