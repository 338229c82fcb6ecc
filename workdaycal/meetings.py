"""
Meeting pattern parsing (free text -> Meeting records).

A Workday "Meeting Patterns" cell holds one block per line, e.g.

    2025-09-02 - 2025-12-04 | Tue Thu | 3:30 p.m. - 5:00 p.m. | UBCV | Building | Floor: 1 | Room: 101

Courses with a reading break have two such lines (often separated by a blank
line) with the same days/times and different date ranges.

Rules:
- 1 line = at most 1 Meeting
- lines without a date range AND a time range are informational and dropped
"""

from __future__ import annotations

import logging
import re
from typing import List, Optional

from workdaycal.model import Meeting

logger = logging.getLogger(__name__)


# Fixed weekday table; output order of parse_days follows this order.
DAY_CODES = {
    "Mon": "MO",
    "Tue": "TU",
    "Wed": "WE",
    "Thu": "TH",
    "Fri": "FR",
    "Sat": "SA",
    "Sun": "SU",
}

_DATE_RANGE_RE = re.compile(r"(\d{4}-\d{2}-\d{2})\s*-\s*(\d{4}-\d{2}-\d{2})")
_TIME_RANGE_RE = re.compile(
    r"(\d{1,2}:\d{2})\s*(a\.m\.|p\.m\.)\s*-\s*(\d{1,2}:\d{2})\s*(a\.m\.|p\.m\.)"
)


def convert_to_24_hour(time_str: str, period: str) -> str:
    """
    Convert '2:45' + 'p.m.' into '14:45'.
    """
    hours_s, minutes_s = time_str.strip().split(":")
    hours = int(hours_s)
    minutes = int(minutes_s)

    if "p.m." in period and hours != 12:
        hours += 12
    elif "a.m." in period and hours == 12:
        hours = 0

    return f"{hours:02d}:{minutes:02d}"


def parse_days(days_str: str) -> List[str]:
    """
    Map 'Mon Wed Fri' to ['MO', 'WE', 'FR'].
    """
    if not days_str:
        return []
    return [code for name, code in DAY_CODES.items() if name in days_str]


def parse_location(location_str: str) -> str:
    if not location_str:
        return ""
    text = re.sub(r"Floor:\s*", "Floor ", location_str)
    text = re.sub(r"Room:\s*", "Room ", text)
    return re.sub(r"\s+", " ", text).strip()


def parse_meeting_line(line: str) -> Optional[Meeting]:
    """
    Parses exactly one meeting pattern line into at most one Meeting.
    """
    parts = [p.strip() for p in line.split("|")]
    if len(parts) < 3:
        return None

    date_match = _DATE_RANGE_RE.search(parts[0])
    time_match = _TIME_RANGE_RE.search(parts[2])
    if not date_match or not time_match:
        logger.debug("Dropping meeting line without date/time range: %r", line)
        return None

    return Meeting(
        start_date=date_match.group(1),
        end_date=date_match.group(2),
        days=parse_days(parts[1]),
        start_time=convert_to_24_hour(time_match.group(1), time_match.group(2)),
        end_time=convert_to_24_hour(time_match.group(3), time_match.group(4)),
        location=parse_location(" | ".join(parts[3:])),
    )


def parse_meeting_patterns(pattern: Optional[str]) -> List[Meeting]:
    """
    Parse a whole meeting pattern cell. Source line order is preserved.
    """
    if not pattern or not isinstance(pattern, str):
        return []

    meetings: List[Meeting] = []
    for line in pattern.splitlines():
        if not line.strip():
            continue
        meeting = parse_meeting_line(line)
        if meeting:
            meetings.append(meeting)
    return meetings
