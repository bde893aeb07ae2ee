"""Command-line interface for tableslot."""

import argparse
import logging
import sys
import uuid
from dataclasses import replace
from datetime import datetime
from pathlib import Path

from tableslot.analytics import daily_kpis, hourly_capacity, sector_capacity
from tableslot.config import load_config
from tableslot.models import Customer
from tableslot.mutations import create_booking, move_booking, resize_booking
from tableslot.optimizer import optimize_seating
from tableslot.output import (
    format_alternatives,
    format_occupancy,
    format_occupancy_csv,
    format_recommendations,
    format_seating_plan,
    format_verdict,
    format_waitlist,
)
from tableslot.parser import Floor, create_floor_template, parse_floor_yaml
from tableslot.recommend import filter_within_service_hours, find_alternatives, recommend
from tableslot.timegrid import parse_timestamp
from tableslot.waitlist import estimate_wait_times, promote_next, sort_by_priority, waitlist_stats


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Schedule restaurant tables, bookings and the waitlist.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""\
Examples:
  tableslot check floor.yaml --table T1 --start 2025-10-15T20:30:00-03:00 --party 4
  tableslot recommend floor.yaml --party 4 --start 2025-10-15T21:00:00-03:00 --sector main
  tableslot waitlist floor.yaml --now 2025-10-15T20:15:00-03:00
  tableslot occupancy floor.yaml --date 2025-10-15 --utc-offset=-03:00
""",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    parser.add_argument(
        "--config",
        type=Path,
        help="YAML file with service settings (overrides the floor file's 'service')",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    def floor_command(name: str, help_text: str) -> argparse.ArgumentParser:
        p = sub.add_parser(name, help=help_text)
        p.add_argument("floor", type=Path, help="Path to the floor YAML file")
        return p

    check = floor_command("check", "Validate a new or changed booking")
    check.add_argument("--table", required=True, help="Table id")
    check.add_argument("--start", required=True, help="Start time (ISO-8601 with offset)")
    check.add_argument("--duration", type=int, help="Duration in minutes")
    check.add_argument("--party", type=int, help="Party size (new bookings)")
    check.add_argument("--name", default="Guest", help="Customer name (new bookings)")
    check.add_argument("--phone", default="", help="Customer phone (new bookings)")
    check.add_argument("--booking", help="Existing booking id to move or resize")
    check.add_argument("--now", help="Current time (default: system clock)")
    check.add_argument("--allow-past", action="store_true", help="Allow retroactive edits")

    rec = floor_command("recommend", "Rank free tables for a party")
    rec.add_argument("--party", type=int, required=True, help="Party size")
    rec.add_argument("--start", required=True, help="Start time (ISO-8601 with offset)")
    rec.add_argument("--duration", type=int, help="Duration in minutes")
    rec.add_argument("--sector", help="Preferred sector id")

    wait = floor_command("waitlist", "Show the waitlist with wait estimates")
    wait.add_argument("--now", help="Current time (default: system clock)")

    promote = floor_command("promote", "Offer a freed table to the waitlist")
    promote.add_argument("--table", required=True, help="Table id")
    promote.add_argument("--at", required=True, help="Time the table is free")
    promote.add_argument("--now", help="Current time (default: system clock)")

    occ = floor_command("occupancy", "Show occupancy per slot and sector")
    occ.add_argument("--date", required=True, help="Service date (YYYY-MM-DD)")
    occ.add_argument("--utc-offset", default="+00:00", help="UTC offset (default: +00:00)")
    occ.add_argument("--csv", action="store_true", help="Print per-slot CSV only")

    plan = floor_command("seat-plan", "Jointly seat waiting parties at free tables")
    plan.add_argument("--at", required=True, help="Seating time (ISO-8601 with offset)")

    template = sub.add_parser("template", help="Write a starter floor file")
    template.add_argument(
        "output",
        type=Path,
        nargs="?",
        default=Path("floor_template.yaml"),
        help="Path for the template (default: floor_template.yaml)",
    )

    return parser


def _now(value: str | None) -> datetime:
    return parse_timestamp(value) if value else datetime.now().astimezone()


def _check(floor: Floor, args: argparse.Namespace) -> int:
    resource = floor.resource(args.table)
    start = parse_timestamp(args.start)
    now = _now(args.now)
    allow_past = True if args.allow_past else None

    if args.booking:
        existing = next((b for b in floor.bookings if b.id == args.booking), None)
        if existing is None:
            print(f"Error: Unknown booking: {args.booking}", file=sys.stderr)
            return 1
        if args.duration is not None and args.duration != existing.duration_minutes:
            verdict = resize_booking(
                replace(existing, resource_id=resource.id),
                floor.bookings,
                resource,
                args.duration,
                floor.config,
                new_start=start,
                now=now,
                allow_past=allow_past,
            )
        else:
            verdict = move_booking(
                existing,
                floor.bookings,
                resource,
                start,
                floor.config,
                now=now,
                allow_past=allow_past,
            )
    else:
        if args.party is None:
            print("Error: --party is required for new bookings", file=sys.stderr)
            return 1
        verdict = create_booking(
            f"booking-{uuid.uuid4().hex[:12]}",
            resource,
            Customer(name=args.name, phone=args.phone),
            args.party,
            start,
            floor.bookings,
            floor.config,
            duration_minutes=args.duration,
            now=now,
            allow_past=allow_past,
        )

    print(format_verdict(verdict))
    return 0 if verdict.allowed else 2


def _recommend(floor: Floor, args: argparse.Namespace) -> int:
    start = parse_timestamp(args.start)
    duration = floor.config.default_duration if args.duration is None else args.duration

    recommendations = recommend(
        floor.resources,
        floor.bookings,
        args.party,
        start,
        duration,
        preferred_sector=args.sector,
        sectors=floor.sectors,
    )
    print(format_recommendations(recommendations))

    if not recommendations:
        alternatives = find_alternatives(
            floor.resources,
            floor.bookings,
            args.party,
            start,
            duration,
            windows=floor.config.alternative_windows,
        )
        alternatives = filter_within_service_hours(
            alternatives, floor.config.open_hour, floor.config.close_hour
        )
        print()
        print(format_alternatives(alternatives))

    return 0


def _waitlist(floor: Floor, args: argparse.Namespace) -> int:
    now = _now(args.now)
    entries = estimate_wait_times(
        floor.waitlist, floor.resources, floor.bookings, floor.config, now
    )
    print(format_waitlist(sort_by_priority(entries), waitlist_stats(entries, now)))
    return 0


def _promote(floor: Floor, args: argparse.Namespace) -> int:
    resource = floor.resource(args.table)
    _, notification = promote_next(
        floor.waitlist,
        resource,
        parse_timestamp(args.at),
        floor.bookings,
        floor.config,
        _now(args.now),
        floor.sectors,
    )
    if notification is None:
        print(f"No waiting party fits {resource.name}.")
    else:
        print(f"Notified {notification.phone}: {notification.message}")
    return 0


def _occupancy(floor: Floor, args: argparse.Namespace) -> int:
    midnight = parse_timestamp(f"{args.date}T00:00:00{args.utc_offset}")
    day, tz = midnight.date(), midnight.tzinfo

    slots = hourly_capacity(floor.resources, floor.bookings, day, tz, floor.config)
    if args.csv:
        print(format_occupancy_csv(slots))
        return 0

    sectors = sector_capacity(
        floor.resources, floor.bookings, day, tz, floor.config, floor.sectors
    )
    kpis = daily_kpis(floor.resources, floor.bookings, day, tz, floor.config, floor.sectors)
    print(format_occupancy(slots, sectors, kpis))
    return 0


def _seat_plan(floor: Floor, args: argparse.Namespace) -> int:
    plan = optimize_seating(
        floor.waitlist,
        floor.resources,
        floor.bookings,
        parse_timestamp(args.at),
        floor.config,
    )
    names = {e.id: e.customer.name for e in floor.waitlist}
    names.update({r.id: r.name for r in floor.resources})
    print(format_seating_plan(plan, names))
    return 0


COMMANDS = {
    "check": _check,
    "recommend": _recommend,
    "waitlist": _waitlist,
    "promote": _promote,
    "occupancy": _occupancy,
    "seat-plan": _seat_plan,
}


def main(argv: list[str] | None = None) -> int:
    """Main entry point for tableslot CLI."""
    args = _build_parser().parse_args(argv)

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")
    else:
        logging.basicConfig(level=logging.INFO, format="%(message)s")

    if args.command == "template":
        create_floor_template(args.output)
        print(f"Created floor template at: {args.output}")
        return 0

    # Validate floor file exists
    if not args.floor.exists():
        print(f"Error: Floor file not found: {args.floor}", file=sys.stderr)
        return 1

    try:
        floor = parse_floor_yaml(args.floor)
        if args.config:
            floor.config = load_config(args.config)
    except Exception as e:
        print(f"Error parsing floor file: {e}", file=sys.stderr)
        return 1

    try:
        return COMMANDS[args.command](floor, args)
    except (KeyError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
