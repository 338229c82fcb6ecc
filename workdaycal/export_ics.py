"""
iCalendar (.ics) export.

We convert parsed courses into a calendar file that can be imported into:
- Google Calendar
- Outlook
- Apple Calendar

Every (Course, Meeting) pair becomes ONE weekly recurring VEVENT.
Meetings without weekdays or without an end date are skipped.
"""

from __future__ import annotations

import hashlib
import re
from collections import Counter
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from pathlib import Path
from typing import List, Optional, Sequence

from workdaycal.model import Course, Meeting

PRODID = "-//UBC Workday Calendar Converter//EN"
CALENDAR_NAME = "UBC Course Schedule"
CALENDAR_DESCRIPTION = "Course schedule imported from UBC Workday"
UID_DOMAIN = "workday-cal"
DEFAULT_CATEGORY = "Lecture"

# RFC 5545 3.1: content lines SHOULD NOT be longer than 75 octets
FOLD_OCTETS = 75

_WEEKDAY_INDEX = {"MO": 0, "TU": 1, "WE": 2, "TH": 3, "FR": 4, "SA": 5, "SU": 6}


@dataclass(frozen=True)
class TimezoneRule:
    """
    A two-transition daylight saving rule: daylight time starts on the n-th
    Sunday of one month and ends on the n-th Sunday of another.
    """

    tzid: str
    standard_offset: str
    daylight_offset: str
    standard_name: str
    daylight_name: str
    daylight_month: int
    daylight_week: int
    standard_month: int
    standard_week: int
    transition_time: str = "020000"


DEFAULT_TIMEZONE = TimezoneRule(
    tzid="America/Vancouver",
    standard_offset="-0800",
    daylight_offset="-0700",
    standard_name="PST",
    daylight_name="PDT",
    daylight_month=3,
    daylight_week=2,
    standard_month=11,
    standard_week=1,
)


@dataclass
class CalendarEvent:
    uid: str
    summary: str
    description: str
    location: str
    dtstart: str
    dtend: str
    rrule: Optional[str]
    categories: str
    status: str = "CONFIRMED"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def escape_text(text: Optional[str]) -> str:
    """
    Escape text for ICS TEXT values (RFC 5545 3.3.11).
    """
    if not text:
        return ""
    return (
        text.replace("\\", "\\\\")
        .replace(";", "\\;")
        .replace(",", "\\,")
        .replace("\r\n", "\n")
        .replace("\n", "\\n")
        .replace("\r", "")
    )


def fold_line(line: str) -> List[str]:
    """
    Split one content line into 75-octet chunks; continuation chunks start with
    a single space. Multi-byte characters are never split.
    """
    if len(line.encode("utf-8")) <= FOLD_OCTETS:
        return [line]

    out: List[str] = []
    current = ""
    current_len = 0
    for ch in line:
        ch_len = len(ch.encode("utf-8"))
        if current_len + ch_len > FOLD_OCTETS:
            out.append(current)
            current = " "
            current_len = 1
        current += ch
        current_len += ch_len
    out.append(current)
    return out


def format_date(d: date) -> str:
    return d.strftime("%Y%m%d")


def _utc_stamp(now: datetime) -> str:
    return now.astimezone(timezone.utc).strftime("%Y%m%dT%H%M%SZ")


def first_occurrence(start_date: Optional[str], days: Sequence[str], time_hh_mm: Optional[str]) -> Optional[str]:
    """
    First date on or after start_date that falls on one of `days`, combined
    with the time as 'YYYYMMDDTHHMMSS'. None if any input is missing.
    """
    if not start_date or not days or not time_hh_mm:
        return None

    try:
        base = datetime.strptime(start_date, "%Y-%m-%d").date()
        clock = datetime.strptime(time_hh_mm, "%H:%M").time()
    except ValueError:
        return None

    targets = [_WEEKDAY_INDEX[d] for d in days if d in _WEEKDAY_INDEX]
    if not targets:
        return None

    shift = min((t - base.weekday()) % 7 for t in targets)
    first = datetime.combine(base + timedelta(days=shift), clock)
    return first.strftime("%Y%m%dT%H%M%S")


def build_rrule(meeting: Meeting) -> Optional[str]:
    if not meeting.end_date or not meeting.days:
        return None
    until = meeting.end_date.replace("-", "") + "T235959"
    return f"FREQ=WEEKLY;UNTIL={until};BYDAY={','.join(meeting.days)}"


def build_description(course: Course) -> str:
    lines: List[str] = []
    if course.name:
        lines.append(f"Course: {course.code} - {course.name}")
    if course.section:
        lines.append(f"Section: {course.section}")
    if course.instructor:
        lines.append(f"Instructor: {course.instructor}")
    if course.credits:
        lines.append(f"Credits: {course.credits}")
    if course.format:
        lines.append(f"Format: {course.format}")
    if course.delivery:
        lines.append(f"Delivery: {course.delivery}")
    if course.status:
        lines.append(f"Status: {course.status}")
    return "\n".join(lines)


def _meeting_signature(course: Course, meeting: Meeting) -> str:
    return "|".join(
        [
            course.code,
            meeting.start_date,
            meeting.end_date,
            ",".join(meeting.days),
            meeting.start_time,
            meeting.end_time,
            meeting.location,
        ]
    )


def generate_uid(course: Course, meeting: Meeting, suffix: str) -> str:
    """
    '<code>-<start date><days>-<suffix>@workday-cal', e.g.
    'COMP101-20250902MOWEFR-1756800000000@workday-cal'.
    """
    course_id = re.sub(r"\s+", "", course.code)
    meeting_id = re.sub(r"[^a-zA-Z0-9]", "", f"{meeting.start_date}-{''.join(meeting.days)}")
    return f"{course_id}-{meeting_id}-{suffix}@{UID_DOMAIN}"


def _nth_sunday(year: int, month: int, n: int) -> date:
    first = date(year, month, 1)
    offset = (6 - first.weekday()) % 7
    return first + timedelta(days=offset + 7 * (n - 1))


def build_vtimezone(rule: TimezoneRule, year: int) -> List[str]:
    """
    VTIMEZONE lines whose transitions start in `year` and repeat yearly.
    """
    dst_start = _nth_sunday(year, rule.daylight_month, rule.daylight_week)
    std_start = _nth_sunday(year, rule.standard_month, rule.standard_week)
    return [
        "BEGIN:VTIMEZONE",
        f"TZID:{rule.tzid}",
        "BEGIN:DAYLIGHT",
        f"TZOFFSETFROM:{rule.standard_offset}",
        f"TZOFFSETTO:{rule.daylight_offset}",
        f"TZNAME:{rule.daylight_name}",
        f"DTSTART:{format_date(dst_start)}T{rule.transition_time}",
        f"RRULE:FREQ=YEARLY;BYMONTH={rule.daylight_month};BYDAY={rule.daylight_week}SU",
        "END:DAYLIGHT",
        "BEGIN:STANDARD",
        f"TZOFFSETFROM:{rule.daylight_offset}",
        f"TZOFFSETTO:{rule.standard_offset}",
        f"TZNAME:{rule.standard_name}",
        f"DTSTART:{format_date(std_start)}T{rule.transition_time}",
        f"RRULE:FREQ=YEARLY;BYMONTH={rule.standard_month};BYDAY={rule.standard_week}SU",
        "END:STANDARD",
        "END:VTIMEZONE",
    ]


def _timezone_year(courses: Sequence[Course], default: int) -> int:
    """
    Year the VTIMEZONE transitions start in: the year before the earliest
    meeting, so a standard-time onset precedes every event.
    """
    years = []
    for course in courses:
        for meeting in course.meetings:
            head = (meeting.start_date or "")[:4]
            if head.isdigit():
                years.append(int(head))
    return (min(years) if years else default) - 1


# ---------------------------------------------------------------------------
# Event building
# ---------------------------------------------------------------------------


def build_events(
    courses: Sequence[Course],
    stable_uids: bool = False,
    now: Optional[datetime] = None,
) -> List[CalendarEvent]:
    """
    One CalendarEvent per (Course, Meeting) pair that has weekdays, a valid
    start date and an end date.
    """
    now = now or datetime.now(timezone.utc)
    stamp = str(int(now.timestamp() * 1000))

    events: List[CalendarEvent] = []
    used: Counter = Counter()

    for course in courses:
        for meeting in course.meetings:
            rrule = build_rrule(meeting)
            dtstart = first_occurrence(meeting.start_date, meeting.days, meeting.start_time)
            dtend = first_occurrence(meeting.start_date, meeting.days, meeting.end_time)
            if not rrule or not dtstart or not dtend:
                continue

            if stable_uids:
                suffix = hashlib.sha1(_meeting_signature(course, meeting).encode("utf-8")).hexdigest()[:12]
            else:
                suffix = stamp

            uid = generate_uid(course, meeting, suffix)
            used[uid] += 1
            if used[uid] > 1:
                local, domain = uid.split("@", 1)
                uid = f"{local}-{used[uid]}@{domain}"

            events.append(
                CalendarEvent(
                    uid=uid,
                    summary=f"{course.code} - {course.name}",
                    description=build_description(course),
                    location=meeting.location,
                    dtstart=dtstart,
                    dtend=dtend,
                    rrule=rrule,
                    categories=course.format or DEFAULT_CATEGORY,
                )
            )

    return events


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def generate_ics(
    courses: Sequence[Course],
    tz: TimezoneRule = DEFAULT_TIMEZONE,
    stable_uids: bool = False,
    now: Optional[datetime] = None,
) -> str:
    """
    Build the complete ICS document for the given courses.
    """
    now = now or datetime.now(timezone.utc)
    events = build_events(courses, stable_uids=stable_uids, now=now)
    return _render_calendar(events, tz, now, _timezone_year(courses, now.year))


def _render_calendar(events: Sequence[CalendarEvent], tz: TimezoneRule, now: datetime, tz_year: int) -> str:
    dtstamp = _utc_stamp(now)

    lines: List[str] = []
    lines.append("BEGIN:VCALENDAR")
    lines.append("VERSION:2.0")
    lines.append(f"PRODID:{PRODID}")
    lines.append("CALSCALE:GREGORIAN")
    lines.append("METHOD:PUBLISH")
    lines.append(f"X-WR-CALNAME:{escape_text(CALENDAR_NAME)}")
    lines.append(f"X-WR-CALDESC:{escape_text(CALENDAR_DESCRIPTION)}")
    lines.append(f"X-WR-TIMEZONE:{tz.tzid}")
    lines.extend(build_vtimezone(tz, tz_year))

    for ev in events:
        lines.append("BEGIN:VEVENT")
        lines.append(f"UID:{ev.uid}")
        lines.append(f"DTSTAMP:{dtstamp}")
        lines.append(f"DTSTART;TZID={tz.tzid}:{ev.dtstart}")
        lines.append(f"DTEND;TZID={tz.tzid}:{ev.dtend}")
        if ev.rrule:
            lines.append(f"RRULE:{ev.rrule}")
        lines.append(f"SUMMARY:{escape_text(ev.summary)}")
        if ev.description:
            lines.append(f"DESCRIPTION:{escape_text(ev.description)}")
        if ev.location:
            lines.append(f"LOCATION:{escape_text(ev.location)}")
        if ev.categories:
            lines.append(f"CATEGORIES:{escape_text(ev.categories)}")
        lines.append(f"STATUS:{ev.status or 'CONFIRMED'}")
        lines.append("END:VEVENT")

    lines.append("END:VCALENDAR")

    folded: List[str] = []
    for line in lines:
        folded.extend(fold_line(line))

    # ICS standard uses CRLF
    return "\r\n".join(folded) + "\r\n"


def export_courses_to_ics(
    courses: Sequence[Course],
    out_path: str | Path,
    stable_uids: bool = False,
) -> int:
    """
    Write the ICS document to a file. Returns number of exported events.
    """
    out = Path(out_path)
    out.parent.mkdir(parents=True, exist_ok=True)

    now = datetime.now(timezone.utc)
    events = build_events(courses, stable_uids=stable_uids, now=now)
    text = _render_calendar(events, DEFAULT_TIMEZONE, now, _timezone_year(courses, now.year))
    out.write_bytes(text.encode("utf-8"))
    return len(events)
