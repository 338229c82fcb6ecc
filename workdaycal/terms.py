"""
Academic term classification.

Shared by every consumer that groups courses by term (the `show` command,
calendar views). First match wins:
1. the student's term text
2. the course start/end dates
3. the first meeting's date range
4. "Other"
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

from workdaycal.model import Course

WINTER_FULL_YEAR = "Winter Full Year"
WINTER_TERM_1 = "Winter Term 1"
WINTER_TERM_2 = "Winter Term 2"
SUMMER_TERM_1 = "Summer Term 1"
SUMMER_TERM_2 = "Summer Term 2"
SUMMER_FULL_TERM = "Summer Full Term"
OTHER = "Other"

# Display order of term groups
TERM_ORDER = (
    WINTER_TERM_1,
    WINTER_TERM_2,
    SUMMER_TERM_1,
    SUMMER_TERM_2,
    SUMMER_FULL_TERM,
    OTHER,
)


@dataclass(frozen=True)
class TermPlacement:
    """
    A course as it appears inside one term group.
    """

    course: Course
    display_term: str
    is_full_year: bool = False


def _month(iso_date: Optional[str]) -> Optional[int]:
    if not iso_date:
        return None
    parts = iso_date.split("-")
    if len(parts) < 2 or not parts[1].isdigit():
        return None
    return int(parts[1])


def _term_from_text(term_text: str) -> Optional[str]:
    text = term_text.lower()
    if "full year" in text or "year long" in text:
        return WINTER_FULL_YEAR
    if "winter" in text and "term 1" in text:
        return WINTER_TERM_1
    if "winter" in text and "term 2" in text:
        return WINTER_TERM_2
    if "summer" in text and "term 1" in text:
        return SUMMER_TERM_1
    if "summer" in text and "term 2" in text:
        return SUMMER_TERM_2
    # no session named: assume the winter session
    if "term 1" in text:
        return WINTER_TERM_1
    if "term 2" in text:
        return WINTER_TERM_2
    return None


def term_from_dates(start_date: Optional[str], end_date: Optional[str]) -> Optional[str]:
    """
    Classify a date range by its start and end month.
    """
    start = _month(start_date)
    end = _month(end_date)
    if start is None or end is None:
        return None

    if start >= 9 and 3 <= end <= 4:
        return WINTER_FULL_YEAR
    if start >= 9 and end <= 12:
        return WINTER_TERM_1
    if 1 <= start <= 4 and end <= 4:
        return WINTER_TERM_2
    if 5 <= start <= 6 and end <= 6:
        return SUMMER_TERM_1
    if 7 <= start <= 8:
        return SUMMER_TERM_2
    if 5 <= start <= 6 and end >= 7:
        return SUMMER_FULL_TERM
    return None


def determine_term(course: Course) -> str:
    if course.student and course.student.term:
        term = _term_from_text(course.student.term)
        if term:
            return term

    term = term_from_dates(course.start_date, course.end_date)
    if term:
        return term

    if course.meetings:
        first = course.meetings[0]
        term = term_from_dates(first.start_date, first.end_date)
        if term:
            return term

    return OTHER


def group_courses_by_term(courses: Sequence[Course]) -> Dict[str, List[TermPlacement]]:
    """
    Group courses by term, in TERM_ORDER.

    A full-year course is placed in both Winter Term 1 and Winter Term 2;
    there is never a standalone "Winter Full Year" group.
    """
    grouped: Dict[str, List[TermPlacement]] = {}

    for course in courses:
        term = determine_term(course)
        if term == WINTER_FULL_YEAR:
            for half in (WINTER_TERM_1, WINTER_TERM_2):
                grouped.setdefault(half, []).append(
                    TermPlacement(course=course, display_term=f"{half} (Full Year)", is_full_year=True)
                )
        else:
            grouped.setdefault(term, []).append(TermPlacement(course=course, display_term=term))

    return {term: grouped[term] for term in TERM_ORDER if term in grouped}
