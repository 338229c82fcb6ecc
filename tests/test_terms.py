import unittest

from workdaycal.model import Course, Meeting, StudentInfo
from workdaycal.terms import (
    OTHER,
    SUMMER_FULL_TERM,
    SUMMER_TERM_1,
    SUMMER_TERM_2,
    WINTER_FULL_YEAR,
    WINTER_TERM_1,
    WINTER_TERM_2,
    determine_term,
    group_courses_by_term,
    term_from_dates,
)


def _course(code="TEST 101", term=None, start=None, end=None, meetings=None) -> Course:
    student = StudentInfo(name="Test Student", id="12345678", term=term) if term is not None else None
    return Course(code=code, name="Test", student=student, start_date=start, end_date=end, meetings=meetings or [])


def _meeting(start: str, end: str) -> Meeting:
    return Meeting(start_date=start, end_date=end, days=["MO"], start_time="09:00", end_time="10:00")


class TestStudentTermText(unittest.TestCase):
    def test_winter_terms(self) -> None:
        self.assertEqual(determine_term(_course(term="2025 Winter Term 1 (UBC-V)")), WINTER_TERM_1)
        self.assertEqual(determine_term(_course(term="2025 Winter Term 2 (UBC-V)")), WINTER_TERM_2)

    def test_summer_terms(self) -> None:
        self.assertEqual(determine_term(_course(term="2026 Summer Term 1")), SUMMER_TERM_1)
        self.assertEqual(determine_term(_course(term="2026 SUMMER TERM 2")), SUMMER_TERM_2)

    def test_full_year(self) -> None:
        self.assertEqual(determine_term(_course(term="2025 Winter Full Year")), WINTER_FULL_YEAR)
        self.assertEqual(determine_term(_course(term="Year Long")), WINTER_FULL_YEAR)

    def test_bare_term_assumes_winter(self) -> None:
        self.assertEqual(determine_term(_course(term="Term 2")), WINTER_TERM_2)

    def test_text_wins_over_dates(self) -> None:
        course = _course(term="Summer Term 1", start="2025-09-02", end="2025-12-04")
        self.assertEqual(determine_term(course), SUMMER_TERM_1)


class TestDates(unittest.TestCase):
    def test_thresholds(self) -> None:
        self.assertEqual(term_from_dates("2025-09-02", "2026-04-09"), WINTER_FULL_YEAR)
        self.assertEqual(term_from_dates("2025-09-02", "2025-12-04"), WINTER_TERM_1)
        self.assertEqual(term_from_dates("2026-01-05", "2026-04-09"), WINTER_TERM_2)
        self.assertEqual(term_from_dates("2026-05-12", "2026-06-19"), SUMMER_TERM_1)
        self.assertEqual(term_from_dates("2026-07-02", "2026-08-10"), SUMMER_TERM_2)
        self.assertEqual(term_from_dates("2026-05-12", "2026-08-10"), SUMMER_FULL_TERM)

    def test_missing_or_unmatched(self) -> None:
        self.assertIsNone(term_from_dates(None, "2025-12-04"))
        self.assertIsNone(term_from_dates("2026-01-05", "2026-08-01"))

    def test_unknown_student_term_falls_through_to_dates(self) -> None:
        course = _course(term="Current Term", start="2025-09-02", end="2025-12-04")
        self.assertEqual(determine_term(course), WINTER_TERM_1)

    def test_first_meeting_used_without_course_dates(self) -> None:
        course = _course(meetings=[_meeting("2026-01-05", "2026-02-13"), _meeting("2026-05-12", "2026-06-19")])
        self.assertEqual(determine_term(course), WINTER_TERM_2)

    def test_other(self) -> None:
        self.assertEqual(determine_term(_course()), OTHER)


class TestGrouping(unittest.TestCase):
    def test_full_year_is_placed_in_both_winter_terms(self) -> None:
        full = _course(code="BIOL 200", start="2025-09-02", end="2026-04-09")
        t1 = _course(code="CPSC 110", start="2025-09-02", end="2025-12-04")
        grouped = group_courses_by_term([full, t1])

        self.assertNotIn(WINTER_FULL_YEAR, grouped)
        self.assertEqual(list(grouped), [WINTER_TERM_1, WINTER_TERM_2])
        self.assertEqual([p.course.code for p in grouped[WINTER_TERM_1]], ["BIOL 200", "CPSC 110"])

        first = grouped[WINTER_TERM_1][0]
        self.assertTrue(first.is_full_year)
        self.assertEqual(first.display_term, "Winter Term 1 (Full Year)")
        second = grouped[WINTER_TERM_2][0]
        self.assertEqual(second.display_term, "Winter Term 2 (Full Year)")
        self.assertIs(second.course, full)

    def test_groups_follow_term_order(self) -> None:
        courses = [
            _course(code="A 1"),
            _course(code="B 2", start="2026-05-12", end="2026-06-19"),
            _course(code="C 3", start="2025-09-02", end="2025-12-04"),
        ]
        self.assertEqual(list(group_courses_by_term(courses)), [WINTER_TERM_1, SUMMER_TERM_1, OTHER])


if __name__ == "__main__":
    unittest.main()
