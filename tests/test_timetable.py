"""
Unit tests for the timetable export parser.

Rules:
- ragged rows are padded, never an error
- broken quoting raises StructuralParseError
- header cells "[1, 2]" map columns to course ids
"""

import unittest

from lecturesync.errors import StructuralParseError
from lecturesync.timetable import extract_course_groups, iter_schedule_rows, parse, parse_course_group

EXPORT = (
    "Lecture Schedule\n"
    'Groups,"Morning [1, 2]","Morning [101]",Evening [3],,,,,"[104,105]",Day\n'
    "03-04-24,10:00AM to 11:00AM,,07:00PM to 08:00PM,,,,,,Monday\n"
    "\n"
    "03-05-24,,11:00AM to 12:00PM\n"
)


class TestParse(unittest.TestCase):
    def test_ragged_rows_are_padded(self) -> None:
        matrix = parse(EXPORT)
        widths = {len(row) for row in matrix}
        self.assertEqual(widths, {10})
        self.assertEqual(matrix[0][0], "Lecture Schedule")
        self.assertEqual(matrix[4][2], "11:00AM to 12:00PM")
        self.assertEqual(matrix[4][9], "")

    def test_blank_line_keeps_row_position(self) -> None:
        matrix = parse(EXPORT)
        self.assertEqual(len(matrix), 5)
        self.assertEqual(matrix[3], [""] * 10)

    def test_cells_are_not_trimmed(self) -> None:
        matrix = parse("a, b ,c\n")
        self.assertEqual(matrix[0], ["a", " b ", "c"])

    def test_unterminated_quote_is_fatal(self) -> None:
        with self.assertRaises(StructuralParseError):
            parse('title\n"[1, 2],x\n')

    def test_empty_input(self) -> None:
        self.assertEqual(parse(""), [])


class TestCourseGroups(unittest.TestCase):
    def test_extract_course_groups(self) -> None:
        groups = extract_course_groups(parse(EXPORT))
        self.assertEqual(sorted(groups), [1, 2, 3, 4, 5, 6, 7, 8])
        self.assertEqual(groups[1], [1, 2])
        self.assertEqual(groups[2], [101])
        self.assertEqual(groups[3], [3])
        self.assertEqual(groups[4], [])
        self.assertEqual(groups[8], [104, 105])

    def test_slot_width_is_configurable(self) -> None:
        groups = extract_course_groups(parse(EXPORT), slot_columns=2)
        self.assertEqual(groups, {1: [1, 2], 2: [101]})

    def test_cell_without_brackets_is_unused(self) -> None:
        self.assertEqual(parse_course_group("Morning"), [])
        self.assertEqual(parse_course_group(""), [])

    def test_non_numeric_tokens_are_skipped(self) -> None:
        self.assertEqual(parse_course_group("[1, x, 3, 1]"), [1, 3])

    def test_duplicate_ids_are_listed_once(self) -> None:
        self.assertEqual(parse_course_group("[1, 1, 2]"), [1, 2])

    def test_only_first_bracket_counts(self) -> None:
        self.assertEqual(parse_course_group("[4] and [5]"), [4])

    def test_missing_header_row_is_fatal(self) -> None:
        with self.assertRaises(StructuralParseError):
            extract_course_groups([["only a title"]])


class TestScheduleRows(unittest.TestCase):
    def test_rows_start_below_header(self) -> None:
        rows = list(iter_schedule_rows(parse(EXPORT)))
        self.assertEqual([r.index for r in rows], [2, 3, 4])

        first = rows[0]
        self.assertEqual(first.date, "03-04-24")
        self.assertEqual(first.slots[1], "10:00AM to 11:00AM")
        self.assertEqual(first.slots[3], "07:00PM to 08:00PM")
        self.assertEqual(first.day, "Monday")

        self.assertEqual(rows[2].day, "")


if __name__ == "__main__":
    unittest.main()
