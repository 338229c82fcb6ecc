"""
Parsing (Workday schedule grid -> Course records).

- Reads the first worksheet of a "View My Courses" export
- Validates the header row (row 6)
- Turns EACH data row (row 7+) carrying a course listing into ONE Course
- Carries the student label of merged cells forward to the following rows

Important layout facts:
- Column A holds the merged student label, so course data is shifted right
  of where the header labels claim it is
- Fixed column indices therefore win over header-name lookup
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Sequence, Tuple

from dateutil import parser as date_parser

from workdaycal.errors import DateParseError, FormatError, ParseError
from workdaycal.grid import read_grid
from workdaycal.meetings import parse_meeting_patterns
from workdaycal.model import Course, StudentInfo

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Layout configuration
# ---------------------------------------------------------------------------

# One-indexed, as shown in the spreadsheet
HEADER_ROW = 6
DATA_START_ROW = 7

# Department codes look like "CPSC_V"; only course rows contain this marker
COURSE_MARKER = "_V "

# Every Workday schedule export carries these header labels
CRITICAL_HEADERS = ("drop", "credits", "grading")

DEFAULT_STUDENT_TERM = "Current Term"


@dataclass(frozen=True)
class ColumnSpec:
    """
    Where one semantic field lives: a fixed index plus an optional header name
    used when the fixed cell is empty.
    """

    field: str
    index: int
    header: Optional[str] = None


COLUMN_LAYOUT: Tuple[ColumnSpec, ...] = (
    ColumnSpec("listing", 1),
    ColumnSpec("credits", 4, "Credits"),
    ColumnSpec("section", 6, "Section"),
    ColumnSpec("status", 7, "Registration Status"),
    ColumnSpec("format", 8, "Instructional Format"),
    ColumnSpec("delivery", 9, "Delivery Mode"),
    ColumnSpec("meeting_patterns", 10, "Meeting Patterns"),
    ColumnSpec("instructor", 11, "Instructor"),
    ColumnSpec("start_date", 12, "Start Date"),
    ColumnSpec("end_date", 13, "End Date"),
)

# field -> (fixed index, header index or None)
ColumnMap = Dict[str, Tuple[int, Optional[int]]]

_LISTING_RE = re.compile(r"([A-Z]+)_V\s+(\d+)\s*[-–—]\s*(.+)")
_STUDENT_FULL_RE = re.compile(r"(.+?)\s*\((\d+)\)\s*-\s*(.+)")
_STUDENT_SHORT_RE = re.compile(r"([^(]+)\((\d+)\)")
_ISO_PREFIX_RE = re.compile(r"^\d{4}-\d{2}-\d{2}")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _text(value: Any) -> str:
    return "" if value is None else str(value).strip()


def _cell(row: Sequence[Any], index: Optional[int]) -> str:
    if index is None or index < 0 or index >= len(row):
        return ""
    return _text(row[index])


def validate_headers(headers: Optional[Sequence[Any]]) -> bool:
    """
    Check that the header row belongs to a Workday course schedule.
    """
    if not headers:
        return False
    header_string = " ".join(_text(h) for h in headers if h is not None).lower()
    return all(term in header_string for term in CRITICAL_HEADERS)


def resolve_columns(headers: Sequence[Any], layout: Sequence[ColumnSpec] = COLUMN_LAYOUT) -> ColumnMap:
    """
    Resolve the column table against the header row once per document.
    """
    header_index: Dict[str, int] = {}
    for i, header in enumerate(headers):
        key = _text(header).lower()
        if key and key not in header_index:
            header_index[key] = i

    columns: ColumnMap = {}
    for spec in layout:
        fallback = header_index.get(spec.header.strip().lower()) if spec.header else None
        columns[spec.field] = (spec.index, fallback)
    return columns


def column_value(row: Sequence[Any], columns: ColumnMap, field: str) -> str:
    """
    Positional value first, header-mapped value if the positional cell is empty.
    """
    index, fallback = columns[field]
    return _cell(row, index) or _cell(row, fallback)


def to_iso_date(value: Any) -> str:
    """
    Normalize a date cell to 'YYYY-MM-DD'. Raises DateParseError.
    """
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()

    text = _text(value)
    if not text:
        raise DateParseError("empty date")

    # "2025-09-02" or "2025-09-02 00:00:00"
    if _ISO_PREFIX_RE.match(text):
        return text[:10]

    try:
        return date_parser.parse(text).date().isoformat()
    except (ValueError, OverflowError) as exc:
        raise DateParseError(f"could not parse date {text!r}") from exc


def parse_date(value: Any) -> Optional[str]:
    """
    Tolerant wrapper around to_iso_date: unparseable dates become None.
    """
    if value is None or _text(value) == "":
        return None
    try:
        return to_iso_date(value)
    except DateParseError as exc:
        logger.warning("Could not parse date: %s", exc)
        return None


def parse_student_info(text: Any) -> Optional[StudentInfo]:
    """
    Parse 'Test Student (12345678) - Fall 2025' into a StudentInfo.

    A label without the term part ('Name (12345678)') still yields a
    StudentInfo, with a placeholder term.
    """
    raw = _text(text)
    if not raw:
        return None

    match = _STUDENT_FULL_RE.search(raw)
    if match:
        return StudentInfo(name=match.group(1).strip(), id=match.group(2), term=match.group(3).strip())

    match = _STUDENT_SHORT_RE.search(raw)
    if match:
        return StudentInfo(name=match.group(1).strip(), id=match.group(2), term=DEFAULT_STUDENT_TERM)

    return None


def parse_course_listing(listing: str) -> Tuple[str, str]:
    """
    'CPSC_V 430 - Computers and Society' -> ('CPSC 430', 'Computers and Society').
    """
    match = _LISTING_RE.search(listing.strip())
    if not match:
        raise ParseError(f"not a course listing: {listing!r}")
    return f"{match.group(1)} {match.group(2)}", match.group(3).strip()


# ---------------------------------------------------------------------------
# Row parsing (CORE LOGIC)
# ---------------------------------------------------------------------------


def parse_course_row(
    row: Sequence[Any],
    columns: ColumnMap,
    student: Optional[StudentInfo] = None,
) -> Course:
    """
    Build one Course from one data row. The code stays empty when the listing
    cell cannot be read, and the caller drops such rows.
    """
    course = Course(student=student)

    listing = column_value(row, columns, "listing")
    if listing:
        try:
            course.code, course.name = parse_course_listing(listing)
        except ParseError as exc:
            logger.debug("Skipping row: %s", exc)

    course.credits = column_value(row, columns, "credits")
    course.section = column_value(row, columns, "section")
    course.status = column_value(row, columns, "status")
    course.format = column_value(row, columns, "format")
    course.delivery = column_value(row, columns, "delivery")
    course.meetings = parse_meeting_patterns(column_value(row, columns, "meeting_patterns"))
    course.instructor = column_value(row, columns, "instructor")
    course.start_date = parse_date(column_value(row, columns, "start_date"))
    course.end_date = parse_date(column_value(row, columns, "end_date"))

    return course


def _next_student(row: Sequence[Any], current: Optional[StudentInfo]) -> Optional[StudentInfo]:
    """
    Return the student context for this row: a new one when the row carries a
    label, the inherited one otherwise.
    """
    label = _cell(row, 0)
    if "(" in label and ")" in label:
        found = parse_student_info(label)
        if found:
            return found
    return current


def parse_rows(grid: Sequence[Sequence[Any]], columns: ColumnMap) -> List[Course]:
    """
    Parse all data rows of an already validated grid.
    """
    courses: List[Course] = []
    student: Optional[StudentInfo] = None

    for row in grid[DATA_START_ROW - 1:]:
        if not row:
            continue

        student = _next_student(row, student)

        if COURSE_MARKER not in column_value(row, columns, "listing"):
            continue

        course = parse_course_row(row, columns, student)
        if course.code:
            courses.append(course)

    return courses


def parse_grid(grid: Sequence[Sequence[Any]]) -> List[Course]:
    """
    Validate the layout of a grid and return its courses in row order.
    """
    if len(grid) < DATA_START_ROW:
        raise FormatError("Invalid file format: insufficient data rows")

    headers = grid[HEADER_ROW - 1]
    if not validate_headers(headers):
        raise FormatError("Invalid file format: expected UBC Workday course schedule format")

    courses = parse_rows(grid, resolve_columns(headers))
    logger.debug("Parsed %d course rows", len(courses))
    return courses


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def parse_schedule(data: bytes) -> List[Course]:
    """
    Parse the bytes of a Workday .xlsx export into Course records.
    """
    return parse_grid(read_grid(data))


def unique_courses(courses: Sequence[Course]) -> List[Course]:
    """
    Keep the first Course per code (later rows repeat the same course).
    """
    seen: Dict[str, Course] = {}
    for course in courses:
        if course.code not in seen:
            seen[course.code] = course
    return list(seen.values())
