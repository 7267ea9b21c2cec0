import calendar
import datetime


def to_local(ts: datetime.datetime, tz: datetime.tzinfo | None = None) -> datetime.datetime:
    """Return ``ts`` as a naive datetime in local time.

    Naive timestamps are already local. Aware ones are converted to ``tz``,
    or to the system zone when ``tz`` is ``None``.
    """
    if ts.tzinfo is None:
        return ts
    return ts.astimezone(tz).replace(tzinfo=None)


def local_day(ts: datetime.datetime, tz: datetime.tzinfo | None = None) -> datetime.date:
    return to_local(ts, tz).date()


def week_start(day: datetime.date) -> datetime.date:
    """Return the Monday of the week containing ``day``."""
    return day - datetime.timedelta(days=day.weekday())


def previous_month(year: int, month: int) -> tuple[int, int]:
    if month == 1:
        return year - 1, 12
    return year, month - 1


def add_months(ts: datetime.datetime, months: int) -> datetime.datetime:
    """Shift ``ts`` by ``months``, clamping the day to the target month length."""
    index = ts.year * 12 + ts.month - 1 + months
    year, month = divmod(index, 12)
    month += 1
    day = min(ts.day, calendar.monthrange(year, month)[1])
    return ts.replace(year=year, month=month, day=day)


def days_in_month(year: int, month: int) -> int:
    if not 1 <= month <= 12:
        raise ValueError(f"invalid month: {month}")
    return calendar.monthrange(year, month)[1]
