from __future__ import annotations

import unittest
from datetime import date

from ndvi_composites.utils.DateRange import DateRange, DateWindow, generate


class DateRangeTest(unittest.TestCase):
    def test_single_month_when_end_is_missing(self) -> None:
        for year, month in [(2020, 2), (2021, 12), (2024, 1)]:
            windows = list(generate(year, month))
            self.assertEqual(len(windows), 1)
            self.assertEqual(windows[0].start, date(year, month, 1))
            expected_end = date(year + 1, 1, 1) if month == 12 else date(year, month + 1, 1)
            self.assertEqual(windows[0].end, expected_end)

    def test_single_month_when_only_one_end_field_is_set(self) -> None:
        self.assertEqual(len(list(generate(2020, 2, 2024, None))), 1)
        self.assertEqual(len(list(generate(2020, 2, None, 12))), 1)

    def test_range_is_contiguous_and_end_exclusive(self) -> None:
        windows = list(generate(2020, 11, 2021, 3))

        self.assertEqual([w.label for w in windows], ["2020-11", "2020-12", "2021-01", "2021-02"])
        for prev, nxt in zip(windows, windows[1:]):
            self.assertEqual(prev.end, nxt.start)
        for w in windows:
            self.assertLess(w.start, w.end)
        self.assertEqual(windows[-1].end, date(2021, 3, 1))

    def test_count_equals_calendar_months(self) -> None:
        cases = [
            ((2020, 2, 2020, 2), 0),
            ((2020, 2, 2020, 3), 1),
            ((2020, 1, 2021, 1), 12),
            ((2020, 2, 2024, 12), 58),
        ]
        for args, expected in cases:
            rng = generate(*args)
            self.assertEqual(len(list(rng)), expected, msg=str(args))
            self.assertEqual(len(rng), expected)

    def test_sequence_is_restartable(self) -> None:
        rng = DateRange(2020, 2, 2020, 6)
        first = [w.label for w in rng]
        second = [w.label for w in rng]
        self.assertEqual(first, second)
        self.assertEqual(len(first), 4)

    def test_end_before_start_raises(self) -> None:
        with self.assertRaises(ValueError):
            DateRange(2021, 3, 2020, 12)

    def test_invalid_month_raises(self) -> None:
        with self.assertRaises(ValueError):
            DateRange(2020, 13)
        with self.assertRaises(ValueError):
            DateRange(2020, 1, 2020, 0)

    def test_from_labels(self) -> None:
        self.assertEqual([w.label for w in DateRange.from_labels("2020-02")], ["2020-02"])
        self.assertEqual(
            [w.label for w in DateRange.from_labels("2020-02", "2020-04")],
            ["2020-02", "2020-03"],
        )

    def test_window_contains_is_half_open(self) -> None:
        w = DateWindow.for_month(2020, 2)
        self.assertTrue(w.contains(date(2020, 2, 1)))
        self.assertTrue(w.contains(date(2020, 2, 29)))
        self.assertFalse(w.contains(date(2020, 3, 1)))
        self.assertFalse(w.contains(date(2020, 1, 31)))


if __name__ == "__main__":
    unittest.main()
