import re
import tempfile
import unittest
from datetime import datetime, timezone
from pathlib import Path

from workdaycal.export_ics import (
    DEFAULT_TIMEZONE,
    build_description,
    build_events,
    build_rrule,
    build_vtimezone,
    escape_text,
    export_courses_to_ics,
    first_occurrence,
    fold_line,
    generate_ics,
    generate_uid,
)
from workdaycal.model import Course, Meeting

NOW = datetime(2025, 8, 1, 12, 0, 0, tzinfo=timezone.utc)


def _meeting(start="2025-09-02", end="2025-12-04", days=None, start_time="09:00", end_time="10:00",
             location="Test Location") -> Meeting:
    return Meeting(
        start_date=start,
        end_date=end,
        days=["MO", "WE"] if days is None else days,
        start_time=start_time,
        end_time=end_time,
        location=location,
    )


def _course(code="TEST 101", meetings=None, **kwargs) -> Course:
    return Course(code=code, name=kwargs.pop("name", "Test Course"), meetings=meetings or [], **kwargs)


def _unfold(text: str) -> str:
    return text.replace("\r\n ", "")


class TestHelpers(unittest.TestCase):
    def test_first_occurrence_same_day(self) -> None:
        # September 2, 2025 is a Tuesday
        self.assertEqual(first_occurrence("2025-09-02", ["TU", "TH"], "14:00"), "20250902T140000")

    def test_first_occurrence_shifts_forward(self) -> None:
        self.assertEqual(first_occurrence("2025-09-02", ["MO", "FR"], "09:30"), "20250905T093000")
        self.assertEqual(first_occurrence("2025-09-02", ["MO"], "09:30"), "20250908T093000")

    def test_first_occurrence_missing_input(self) -> None:
        self.assertIsNone(first_occurrence(None, ["MO"], "09:00"))
        self.assertIsNone(first_occurrence("2025-09-02", [], "09:00"))
        self.assertIsNone(first_occurrence("not-a-date", ["MO"], "09:00"))

    def test_build_rrule(self) -> None:
        rrule = build_rrule(_meeting(end="2025-12-04", days=["MO", "WE", "FR"]))
        assert rrule is not None
        self.assertIn("FREQ=WEEKLY", rrule)
        self.assertIn("UNTIL=20251204T235959", rrule)
        self.assertIn("BYDAY=MO,WE,FR", rrule)

    def test_build_rrule_needs_end_and_days(self) -> None:
        self.assertIsNone(build_rrule(_meeting(end="")))
        self.assertIsNone(build_rrule(_meeting(days=[])))

    def test_escape_text(self) -> None:
        escaped = escape_text("Test; with, special\\ characters\nand lines\r\n")
        self.assertEqual(escaped, "Test\\; with\\, special\\\\ characters\\nand lines\\n")
        # every ; , and newline is preceded by a backslash
        self.assertIsNone(re.search(r"(?<!\\)[;,]", escaped))
        self.assertNotIn("\n", escaped)
        self.assertNotIn("\r", escaped)

    def test_escape_bare_cr_removed(self) -> None:
        self.assertEqual(escape_text("a\rb"), "ab")

    def test_generate_uid(self) -> None:
        uid = generate_uid(_course(code="COMP 101"), _meeting(days=["MO", "WE", "FR"]), "1754049600000")
        self.assertEqual(uid, "COMP101-20250902MOWEFR-1754049600000@workday-cal")

    def test_description_omits_absent_fields(self) -> None:
        course = _course(section="TEST_V 101-001", credits="3")
        self.assertEqual(
            build_description(course),
            "Course: TEST 101 - Test Course\nSection: TEST_V 101-001\nCredits: 3",
        )

    def test_fold_line(self) -> None:
        line = "DESCRIPTION:" + "x" * 200
        parts = fold_line(line)
        self.assertTrue(all(len(p.encode("utf-8")) <= 75 for p in parts))
        self.assertTrue(all(p.startswith(" ") for p in parts[1:]))
        self.assertEqual("".join(p[1:] if i else p for i, p in enumerate(parts)), line)

    def test_fold_line_keeps_multibyte_chars(self) -> None:
        line = "SUMMARY:" + "é" * 60
        parts = fold_line(line)
        self.assertTrue(all(len(p.encode("utf-8")) <= 75 for p in parts))
        for p in parts:
            p.encode("utf-8").decode("utf-8")

    def test_vtimezone_for_year(self) -> None:
        lines = build_vtimezone(DEFAULT_TIMEZONE, 2025)
        self.assertIn("TZID:America/Vancouver", lines)
        self.assertIn("DTSTART:20250309T020000", lines)
        self.assertIn("DTSTART:20251102T020000", lines)
        lines_2027 = build_vtimezone(DEFAULT_TIMEZONE, 2027)
        self.assertIn("DTSTART:20270314T020000", lines_2027)
        self.assertIn("DTSTART:20271107T020000", lines_2027)


class TestGenerateICS(unittest.TestCase):
    def test_document_structure(self) -> None:
        ics = generate_ics([_course(instructor="Test Instructor", credits="3", meetings=[_meeting()])], now=NOW)

        self.assertTrue(ics.startswith("BEGIN:VCALENDAR\r\n"))
        self.assertTrue(ics.endswith("END:VCALENDAR\r\n"))
        self.assertNotIn("\n", ics.replace("\r\n", ""))
        for expected in (
            "VERSION:2.0",
            "CALSCALE:GREGORIAN",
            "METHOD:PUBLISH",
            "BEGIN:VTIMEZONE",
            "END:VTIMEZONE",
            "TZID:America/Vancouver",
            "BEGIN:VEVENT",
            "END:VEVENT",
            "DTSTAMP:20250801T120000Z",
            "DTSTART;TZID=America/Vancouver:20250903T090000",
            "DTEND;TZID=America/Vancouver:20250903T100000",
            "RRULE:FREQ=WEEKLY;UNTIL=20251204T235959;BYDAY=MO,WE",
            "SUMMARY:TEST 101 - Test Course",
            "LOCATION:Test Location",
            "CATEGORIES:Lecture",
            "STATUS:CONFIRMED",
        ):
            self.assertIn(expected, ics)

        description = re.search(r"DESCRIPTION:(.*)\r\n", _unfold(ics)).group(1)
        self.assertEqual(
            description,
            "Course: TEST 101 - Test Course\\nInstructor: Test Instructor\\nCredits: 3",
        )

    def test_event_count_matches_complete_meetings(self) -> None:
        courses = [
            _course(code="A 1", meetings=[_meeting(), _meeting(start="2026-01-05", end="2026-04-08")]),
            _course(code="B 2", meetings=[_meeting(days=[])]),
            _course(code="C 3", meetings=[_meeting(end="")]),
            _course(code="D 4", meetings=[]),
            _course(code="E 5", meetings=[_meeting(days=["FR"])]),
        ]
        ics = generate_ics(courses, now=NOW)
        self.assertEqual(ics.count("BEGIN:VEVENT"), 3)
        self.assertEqual(ics.count("END:VEVENT"), 3)

    def test_reading_break_course_gives_two_events(self) -> None:
        course = _course(meetings=[
            _meeting(start="2026-01-05", end="2026-02-11"),
            _meeting(start="2026-02-23", end="2026-04-08"),
        ])
        events = build_events([course], now=NOW)
        self.assertEqual(len(events), 2)
        self.assertEqual(events[0].summary, events[1].summary)
        self.assertNotEqual(events[0].dtstart, events[1].dtstart)

    def test_uids_unique_within_document(self) -> None:
        # same code, start date and days, different times (e.g. lecture + lab)
        course = _course(meetings=[_meeting(), _meeting(start_time="13:00", end_time="14:00")])
        events = build_events([course, course], now=NOW)
        uids = [e.uid for e in events]
        self.assertEqual(len(uids), 4)
        self.assertEqual(len(set(uids)), 4)
        self.assertTrue(all(u.endswith("@workday-cal") for u in uids))
        self.assertTrue(uids[0].startswith("TEST101-20250902MOWE-"))

    def test_stable_uids(self) -> None:
        course = _course(meetings=[_meeting()])
        first = build_events([course], stable_uids=True, now=NOW)[0].uid
        later = build_events([course], stable_uids=True, now=datetime(2026, 1, 1, tzinfo=timezone.utc))[0].uid
        self.assertEqual(first, later)

    def test_timestamp_uids_change_with_time(self) -> None:
        course = _course(meetings=[_meeting()])
        first = build_events([course], now=NOW)[0].uid
        later = build_events([course], now=datetime(2026, 1, 1, tzinfo=timezone.utc))[0].uid
        self.assertNotEqual(first, later)

    def test_text_fields_are_escaped(self) -> None:
        course = _course(name="Data; Structures, Algorithms", format="Lecture, Lab",
                         meetings=[_meeting(location="UBCV | Room 1, West")])
        ics = _unfold(generate_ics([course], now=NOW))
        self.assertIn("SUMMARY:TEST 101 - Data\\; Structures\\, Algorithms", ics)
        self.assertIn("LOCATION:UBCV | Room 1\\, West", ics)
        self.assertIn("CATEGORIES:Lecture\\, Lab", ics)

    def test_timezone_year_follows_meetings(self) -> None:
        course = _course(meetings=[_meeting(start="2027-09-07", end="2027-12-08")])
        ics = generate_ics([course], now=NOW)
        self.assertIn("DTSTART:20260308T020000", ics)
        self.assertIn("DTSTART:20261101T020000", ics)

    def test_timezone_onset_precedes_january_events(self) -> None:
        course = _course(meetings=[_meeting(start="2026-01-05", end="2026-04-09")])
        ics = generate_ics([course], now=NOW)

        vtimezone = ics[ics.index("BEGIN:VTIMEZONE"):ics.index("END:VTIMEZONE")]
        onsets = re.findall(r"^DTSTART:(\d{8})T", vtimezone, re.MULTILINE)
        first_event = re.search(r"DTSTART;TZID=America/Vancouver:(\d{8})T", ics).group(1)

        self.assertEqual(first_event, "20260105")
        self.assertEqual(len(onsets), 2)
        self.assertTrue(any(onset <= first_event for onset in onsets))

    def test_no_courses(self) -> None:
        ics = generate_ics([], now=NOW)
        self.assertIn("BEGIN:VTIMEZONE", ics)
        self.assertNotIn("BEGIN:VEVENT", ics)


class TestExportFile(unittest.TestCase):
    def test_export_creates_file_and_contains_calendar(self) -> None:
        courses = [_course(code="CPSC 110", name="Computation", meetings=[_meeting(), _meeting(days=[])])]

        with tempfile.TemporaryDirectory() as d:
            out = Path(d) / "sub" / "out.ics"
            n = export_courses_to_ics(courses, out)
            self.assertEqual(n, 1)
            raw = out.read_bytes()
            self.assertIn(b"\r\n", raw)
            text = raw.decode("utf-8")
            self.assertEqual(text.count("BEGIN:VEVENT"), n)
            self.assertIn("BEGIN:VCALENDAR", text)
            self.assertIn("SUMMARY:CPSC 110 - Computation", text)


if __name__ == "__main__":
    unittest.main()
