"""
CLI (Command Line Interface).

    vertretungsplan build <config.json> [--json] [--class 5a] [--teacher MUE]
    vertretungsplan date "30.12. Montag"
    vertretungsplan classify Stunde Kurs Fach Raum

build fetches and merges a school's schedule and prints it as tables
(or as JSON with --json). date and classify expose the resolver and the
column classifier, which helps when writing a new school configuration.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys

from rich import box
from rich.console import Console
from rich.table import Table
from rich.text import Text

from vertretungsplan.config import load_config
from vertretungsplan.dates import format_date, resolve_date, resolve_datetime
from vertretungsplan.errors import ConfigError, CredentialInvalid, ScheduleError
from vertretungsplan.fetch import HttpFetcher
from vertretungsplan.fields import classify_row
from vertretungsplan.model import Schedule
from vertretungsplan.pipeline import build_schedule


def _console() -> Console:
    # created per call so that redirected stdout (tests, pipes) is honored
    return Console(file=sys.stdout, highlight=False)


def _print_schedule(schedule: Schedule, console: Console) -> None:
    if schedule.last_change is not None:
        console.print(f"Stand: {schedule.last_change:%d.%m.%Y %H:%M}", markup=False)

    for day in schedule.days:
        table = Table(title=day.label, box=box.SIMPLE)
        table.add_column("Std.")
        table.add_column("Klassen")
        table.add_column("Art")
        table.add_column("Vertretung")
        for s in day.substitutions:
            table.add_row(Text(s.lesson or ""), Text(", ".join(s.classes)), Text(s.type or ""), Text(s.text))
        console.print(table)
        for message in day.messages:
            console.print(f"  {message}", markup=False)

    for info in schedule.additional_infos:
        console.print(f"{info.title}: {info.text}", markup=False)


def _cmd_build(args: argparse.Namespace) -> int:
    """
    Build a schedule from a config file and print it.
    """
    try:
        config = load_config(args.config)
        fetcher = HttpFetcher(local_root=args.local_root, headers=config.headers)
        schedule = build_schedule(config, fetcher=fetcher)
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2
    except CredentialInvalid as e:
        print(f"Login failed: {e}", file=sys.stderr)
        return 1
    except ScheduleError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if args.class_name:
        schedule = schedule.filtered_by_class(args.class_name, args.exclude)
    elif args.teacher:
        schedule = schedule.filtered_by_teacher(args.teacher, args.exclude)

    if args.json:
        print(json.dumps(schedule.to_dict(), indent=2, ensure_ascii=False))
    else:
        _print_schedule(schedule, _console())
    return 0


def _cmd_date(args: argparse.Namespace) -> int:
    """
    Resolve one date (or date + time) string.
    """
    text = " ".join(args.text)
    if args.time:
        value = resolve_datetime(text)
        if value is None:
            print(f"Not a date/time: {text}")
            return 1
        print(value.isoformat(sep=" ", timespec="minutes"))
        return 0

    resolved = resolve_date(text)
    if resolved is None:
        print(f"Not a date: {text}")
        return 1
    print(f"{resolved.isoformat()} ({format_date(resolved, 'EEEE')})")
    return 0


def _cmd_classify(args: argparse.Namespace) -> int:
    """
    Show how a header row would be classified.
    """
    fields = classify_row(args.labels)
    table = Table(box=box.SIMPLE)
    table.add_column("Label")
    table.add_column("Field")
    for label, field in zip(args.labels, fields):
        table.add_row(Text(label), field.value if field is not None else "-")
    _console().print(table)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="vertretungsplan", description="Substitution schedule tools")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    p_build = sub.add_parser("build", help="Fetch and merge a school's schedule")
    p_build.add_argument("config", type=str, help="School configuration (JSON)")
    p_build.add_argument("--json", action="store_true", help="Print the schedule as JSON")
    p_build.add_argument("--local-root", type=str, default=None, help="Directory for local:// URLs")
    p_build.add_argument("--class", dest="class_name", type=str, default=None, help="Only this class")
    p_build.add_argument("--teacher", type=str, default=None, help="Only this teacher")
    p_build.add_argument(
        "--exclude", action="append", default=[], metavar="SUBJECT", help="Hide a subject (repeatable)"
    )

    p_date = sub.add_parser("date", help="Resolve a German date string")
    p_date.add_argument("text", nargs="+", help='Date text, e.g. "30.12. Montag"')
    p_date.add_argument("--time", action="store_true", help="Resolve date and time")

    p_classify = sub.add_parser("classify", help="Classify column labels")
    p_classify.add_argument("labels", nargs="+", help="All labels of one header row")

    return parser


def main(argv: list[str] | None = None) -> None:
    """
    CLI entry point. Parses args, dispatches to command handlers,
    and exits via SystemExit with a return code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if args.command == "build":
        raise SystemExit(_cmd_build(args))
    if args.command == "date":
        raise SystemExit(_cmd_date(args))
    if args.command == "classify":
        raise SystemExit(_cmd_classify(args))

    raise SystemExit(2)
