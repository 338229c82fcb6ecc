"""
Central data model definitions used across the project.

This module defines the canonical structure of StudentInfo, Meeting and Course
objects so that:
- the parser, the term grouping and the ICS exporter share the same field names
- a Course can be dumped to JSON without extra glue code
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class StudentInfo:
    """
    The student a block of rows belongs to.

    Built once from the merged label cell ("Name (12345678) - Term") and shared
    by every Course parsed while it is the active context.
    """

    name: str
    id: str
    term: str


@dataclass
class Meeting:
    """
    One contiguous weekly recurrence block of a course.

    A reading break splits a course into two Meetings with the same days and
    times but different date ranges.
    """

    start_date: str
    end_date: str
    days: List[str]
    start_time: str
    end_time: str
    location: str = ""


@dataclass
class Course:
    """
    Represents one course row of the Workday export.
    """

    code: str = ""
    name: str = ""
    section: str = ""
    credits: str = ""
    instructor: str = ""
    format: str = ""
    delivery: str = ""
    status: str = ""
    student: Optional[StudentInfo] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    meetings: List[Meeting] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
