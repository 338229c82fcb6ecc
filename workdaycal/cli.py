"""
CLI (Command Line Interface).

    workdaycal convert "View_My_Courses.xlsx" [-o out.ics] [--course "CPSC 110" ...]
    workdaycal show "View_My_Courses.xlsx"
    workdaycal parse "View_My_Courses.xlsx" [-o courses.json]

Note:
- All spreadsheet/calendar logic lives in parse.py and export_ics.py
- This module only reads/writes files and prints results
"""

from __future__ import annotations

import argparse
import json
import logging
from datetime import date
from pathlib import Path
from typing import List

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from workdaycal.errors import EmptyResultError, WorkdayCalError
from workdaycal.export_ics import export_courses_to_ics
from workdaycal.model import Course
from workdaycal.parse import parse_schedule, unique_courses
from workdaycal.terms import group_courses_by_term

console = Console()


def load_courses(path: str | Path) -> List[Course]:
    """
    Read an export from disk and parse it.

    Raises FormatError for a wrong file, EmptyResultError when no course rows
    were found.
    """
    data = Path(path).read_bytes()
    courses = parse_schedule(data)
    if not courses:
        raise EmptyResultError(
            "No courses found in the uploaded file. "
            "Please ensure you're uploading a UBC Workday course schedule."
        )
    return courses


def _default_ics_name() -> str:
    return f"ubc-schedule-{date.today().isoformat()}.ics"


def _fmt_time(time24: str) -> str:
    """
    '14:30' -> '2:30 PM'
    """
    if not time24:
        return ""
    hours, minutes = (int(x) for x in time24.split(":"))
    period = "PM" if hours >= 12 else "AM"
    return f"{hours % 12 or 12}:{minutes:02d} {period}"


def _meeting_lines(course: Course) -> str:
    lines = []
    for m in course.meetings:
        days = ", ".join(m.days)
        lines.append(f"{days} {_fmt_time(m.start_time)} - {_fmt_time(m.end_time)} ({m.start_date} to {m.end_date})")
        if m.location:
            lines.append(f"  [dim]{escape(m.location)}[/]")
    return "\n".join(lines)


def _cmd_convert(args: argparse.Namespace) -> int:
    """
    Parse the export and write all (or the selected) courses to an .ics file.
    """
    courses = unique_courses(load_courses(args.file))

    if args.course:
        wanted = {c.strip().upper() for c in args.course if c.strip()}
        courses = [c for c in courses if c.code.upper() in wanted]
        if not courses:
            console.print("[yellow]None of the selected courses were found in the file.[/]")
            return 1

    out_path = args.out or _default_ics_name()
    n = export_courses_to_ics(courses, out_path, stable_uids=args.stable_uids)
    console.print(f"Exported {n} events from {len(courses)} courses to: {out_path}")
    return 0


def _cmd_show(args: argparse.Namespace) -> int:
    """
    Print courses grouped by term.
    """
    courses = unique_courses(load_courses(args.file))

    for term, placements in group_courses_by_term(courses).items():
        table = Table(title=term, box=box.SIMPLE, title_justify="left")
        table.add_column("Course")
        table.add_column("Section")
        table.add_column("Credits", justify="right")
        table.add_column("Instructor")
        table.add_column("Meetings")
        for p in placements:
            c = p.course
            label = f"[bold cyan]{escape(c.code)}[/] - {escape(c.name)}"
            if p.is_full_year:
                label += " [magenta](Full Year)[/]"
            table.add_row(label, escape(c.section), escape(c.credits), escape(c.instructor), _meeting_lines(c))
        console.print(table)

    return 0


def _cmd_parse(args: argparse.Namespace) -> int:
    """
    Dump parsed course records as JSON.
    """
    courses = load_courses(args.file)
    payload = json.dumps([c.to_dict() for c in courses], ensure_ascii=False, indent=2)

    if args.out:
        out = Path(args.out)
        out.parent.mkdir(parents=True, exist_ok=True)
        out.write_text(payload, encoding="utf-8")
        console.print(f"Wrote {len(courses)} courses to: {out}")
    else:
        print(payload)
    return 0


def build_parser() -> argparse.ArgumentParser:
    """
    Build the argparse CLI parser with sub-commands.
    """
    parser = argparse.ArgumentParser(prog="workdaycal", description="UBC Workday schedule -> iCalendar")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    p_convert = sub.add_parser("convert", help="Convert an .xlsx export to .ics")
    p_convert.add_argument("file", type=str, help="Workday export (.xlsx)")
    p_convert.add_argument("-o", "--out", type=str, default=None, help="Output .ics path")
    p_convert.add_argument(
        "--course",
        action="append",
        default=[],
        help='Only export this course code (e.g. "CPSC 110"); repeatable',
    )
    p_convert.add_argument(
        "--stable-uids",
        action="store_true",
        help="Derive event UIDs from course content instead of the current time",
    )

    p_show = sub.add_parser("show", help="Show parsed courses grouped by term")
    p_show.add_argument("file", type=str, help="Workday export (.xlsx)")

    p_parse = sub.add_parser("parse", help="Dump parsed courses as JSON")
    p_parse.add_argument("file", type=str, help="Workday export (.xlsx)")
    p_parse.add_argument("-o", "--out", type=str, default=None, help="Output .json path (default: stdout)")

    return parser


def main(argv: list[str] | None = None) -> None:
    """
    CLI entry point. Parses args, dispatches to command handlers,
    and exits via SystemExit with a return code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")

    handlers = {
        "convert": _cmd_convert,
        "show": _cmd_show,
        "parse": _cmd_parse,
    }
    handler = handlers.get(args.command)
    if handler is None:
        raise SystemExit(2)

    try:
        raise SystemExit(handler(args))
    except (WorkdayCalError, OSError) as exc:
        console.print(f"[bold red]Error:[/] {exc}")
        raise SystemExit(1)
