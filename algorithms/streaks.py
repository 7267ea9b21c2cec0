"""Streak counting over the set of days that contain at least one session."""
import datetime
from typing import Iterable

from .dates import week_start

ONE_DAY = datetime.timedelta(days=1)
ONE_WEEK = datetime.timedelta(days=7)


def daily_streak(days: Iterable[datetime.date], today: datetime.date) -> int:
    """Count consecutive training days ending today, or yesterday.

    A day without a session yet does not break the streak, so the walk is
    anchored on yesterday when today is not in ``days``.
    """
    trained = set(days)
    if not trained:
        return 0
    check = today if today in trained else today - ONE_DAY
    streak = 0
    while check in trained:
        streak += 1
        check -= ONE_DAY
    return streak


def weekly_streak(days: Iterable[datetime.date], today: datetime.date) -> int:
    """Count consecutive Monday-based weeks with a session, ending this week."""
    weeks = {week_start(d) for d in days}
    check = week_start(today)
    streak = 0
    while check in weeks:
        streak += 1
        check -= ONE_WEEK
    return streak


def longest_daily_streak(days: Iterable[datetime.date]) -> int:
    """Return the longest run of consecutive training days ever logged."""
    ordered = sorted(set(days))
    if not ordered:
        return 0
    record = current = 1
    for prev, nxt in zip(ordered, ordered[1:]):
        if nxt - prev == ONE_DAY:
            current += 1
            record = max(record, current)
        else:
            current = 1
    return record
