from __future__ import annotations

import unittest
from datetime import date, datetime, timedelta, timezone

from internship_tracker.services.day_keys import (
    day_key_for_date,
    is_late,
    local_date_of_key,
    month_bounds,
    normalize_day_key,
    normalize_ts,
    shift_month,
)


class DayKeyTests(unittest.TestCase):
    def test_day_key_is_utc_midnight_of_local_day(self) -> None:
        key = normalize_day_key(datetime(2026, 3, 10, 3, 0, tzinfo=timezone.utc))
        self.assertEqual(key, datetime(2026, 3, 10, tzinfo=timezone.utc))

    def test_local_midnight_crossing_moves_to_next_day(self) -> None:
        # 17:00 UTC is 00:00 on the next local day
        before = normalize_day_key(datetime(2026, 3, 10, 16, 59, tzinfo=timezone.utc))
        after = normalize_day_key(datetime(2026, 3, 10, 17, 0, tzinfo=timezone.utc))
        self.assertEqual(before, datetime(2026, 3, 10, tzinfo=timezone.utc))
        self.assertEqual(after, datetime(2026, 3, 11, tzinfo=timezone.utc))

    def test_same_local_day_maps_to_identical_key(self) -> None:
        early = normalize_day_key(datetime(2026, 3, 9, 17, 30, tzinfo=timezone.utc))
        late = normalize_day_key(datetime(2026, 3, 10, 16, 30, tzinfo=timezone.utc))
        self.assertEqual(early, late)

    def test_non_utc_input_is_converted_first(self) -> None:
        plus_seven = timezone(timedelta(hours=7))
        key = normalize_day_key(datetime(2026, 3, 10, 0, 15, tzinfo=plus_seven))
        self.assertEqual(key, datetime(2026, 3, 10, tzinfo=timezone.utc))

    def test_naive_timestamp_is_treated_as_utc(self) -> None:
        self.assertEqual(
            normalize_ts(datetime(2026, 3, 10, 1, 0)),
            datetime(2026, 3, 10, 1, 0, tzinfo=timezone.utc),
        )

    def test_day_key_for_date_and_back(self) -> None:
        key = day_key_for_date(date(2026, 12, 31))
        self.assertEqual(key, datetime(2026, 12, 31, tzinfo=timezone.utc))
        self.assertEqual(local_date_of_key(key), date(2026, 12, 31))

    def test_late_cutoff_is_exclusive_at_nine(self) -> None:
        # 02:00 UTC is 09:00 local
        self.assertFalse(is_late(datetime(2026, 3, 10, 1, 59, tzinfo=timezone.utc)))
        self.assertFalse(is_late(datetime(2026, 3, 10, 2, 0, tzinfo=timezone.utc)))
        self.assertFalse(is_late(datetime(2026, 3, 10, 2, 0, 45, tzinfo=timezone.utc)))
        self.assertTrue(is_late(datetime(2026, 3, 10, 2, 1, tzinfo=timezone.utc)))
        self.assertTrue(is_late(datetime(2026, 3, 10, 3, 0, tzinfo=timezone.utc)))

    def test_month_bounds_are_inclusive(self) -> None:
        first, last = month_bounds(2024, 2)
        self.assertEqual(first, datetime(2024, 2, 1, tzinfo=timezone.utc))
        self.assertEqual(last, datetime(2024, 2, 29, tzinfo=timezone.utc))

    def test_month_bounds_rejects_invalid_month(self) -> None:
        with self.assertRaises(ValueError):
            month_bounds(2026, 13)

    def test_shift_month_wraps_years(self) -> None:
        self.assertEqual(shift_month(2026, 1, -1), (2025, 12))
        self.assertEqual(shift_month(2026, 2, -5), (2025, 9))
        self.assertEqual(shift_month(2025, 12, 1), (2026, 1))


if __name__ == "__main__":
    unittest.main()
