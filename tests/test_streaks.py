import os
import sys
import datetime
import unittest

sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from algorithms import streaks


def day(offset: int, base: datetime.date = datetime.date(2024, 3, 15)) -> datetime.date:
    return base + datetime.timedelta(days=offset)


class DailyStreakTestCase(unittest.TestCase):
    today = datetime.date(2024, 3, 15)

    def test_consecutive_days_ending_today(self) -> None:
        self.assertEqual(streaks.daily_streak({day(0), day(-1), day(-2)}, self.today), 3)

    def test_gap_breaks_streak(self) -> None:
        self.assertEqual(streaks.daily_streak({day(0), day(-2)}, self.today), 1)

    def test_yesterday_still_counts(self) -> None:
        self.assertEqual(streaks.daily_streak({day(-1)}, self.today), 1)
        self.assertEqual(streaks.daily_streak({day(-1), day(-2), day(-4)}, self.today), 2)

    def test_older_sessions_only(self) -> None:
        self.assertEqual(streaks.daily_streak({day(-2), day(-3)}, self.today), 0)

    def test_empty(self) -> None:
        self.assertEqual(streaks.daily_streak([], self.today), 0)

    def test_leap_day_boundary(self) -> None:
        march_first = datetime.date(2024, 3, 1)
        trained = [datetime.date(2024, 2, 28), datetime.date(2024, 2, 29), march_first]
        self.assertEqual(streaks.daily_streak(trained, march_first), 3)

    def test_duplicate_days_count_once(self) -> None:
        self.assertEqual(streaks.daily_streak([day(0), day(0), day(-1)], self.today), 2)


class WeeklyStreakTestCase(unittest.TestCase):
    # Friday
    today = datetime.date(2024, 3, 15)

    def test_consecutive_weeks(self) -> None:
        trained = [datetime.date(2024, 3, 11), datetime.date(2024, 3, 9), datetime.date(2024, 2, 26)]
        self.assertEqual(streaks.weekly_streak(trained, self.today), 3)

    def test_missing_week_breaks(self) -> None:
        trained = [datetime.date(2024, 3, 13), datetime.date(2024, 2, 28)]
        self.assertEqual(streaks.weekly_streak(trained, self.today), 1)

    def test_current_week_without_session(self) -> None:
        trained = [datetime.date(2024, 3, 8), datetime.date(2024, 3, 1)]
        self.assertEqual(streaks.weekly_streak(trained, self.today), 0)

    def test_sunday_belongs_to_previous_week(self) -> None:
        monday = datetime.date(2024, 3, 11)
        self.assertEqual(streaks.weekly_streak([datetime.date(2024, 3, 10)], monday), 0)
        self.assertEqual(
            streaks.weekly_streak([datetime.date(2024, 3, 10), monday], monday), 2
        )

    def test_across_year_boundary(self) -> None:
        today = datetime.date(2025, 1, 2)
        trained = [datetime.date(2024, 12, 31), datetime.date(2024, 12, 27), datetime.date(2024, 12, 18)]
        self.assertEqual(streaks.weekly_streak(trained, today), 3)


class LongestStreakTestCase(unittest.TestCase):
    def test_longest_run(self) -> None:
        trained = [day(-10), day(-9), day(-8), day(-7), day(-3), day(-2), day(0)]
        self.assertEqual(streaks.longest_daily_streak(trained), 4)

    def test_single_and_empty(self) -> None:
        self.assertEqual(streaks.longest_daily_streak([day(0)]), 1)
        self.assertEqual(streaks.longest_daily_streak([]), 0)


if __name__ == "__main__":
    unittest.main()
