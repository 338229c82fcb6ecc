"""
Error types raised by the parser and the calendar exporter.

Structural problems (wrong file, wrong layout) are fatal and raised to the caller.
Row- and date-level problems are handled where they occur so partial results survive.
"""

from __future__ import annotations


class WorkdayCalError(Exception):
    """Base class for all workdaycal errors."""


class FormatError(WorkdayCalError):
    """The input is not a recognizable Workday schedule export."""


class ParseError(WorkdayCalError):
    """A single row could not be read as a course. Never fatal."""


class DateParseError(WorkdayCalError, ValueError):
    """A date cell could not be normalized to YYYY-MM-DD."""


class EmptyResultError(WorkdayCalError):
    """A full pass over the file produced no courses."""
