"""Month grid with percentile-based intensity buckets."""
import datetime
from typing import Iterable, Mapping

from .dates import days_in_month
from .math_tools import MathTools

NONE = "none"
LOW = "low"
MEDIUM = "medium"
HIGH = "high"
FUTURE = "future"


def intensity(volume: float, low: float, high: float) -> str:
    """Bucket ``volume`` against the low and high thresholds (both inclusive)."""
    if volume <= 0:
        return NONE
    if volume <= low:
        return LOW
    if volume <= high:
        return MEDIUM
    return HIGH


def build_month(
    year: int,
    month: int,
    daily_volume: Mapping[int, float],
    session_days: Iterable[int],
    today: datetime.date,
) -> dict:
    """Return the heatmap of ``year``/``month``.

    ``daily_volume`` maps day of month to summed volume and ``session_days``
    holds the days with at least one session, including zero-volume ones.
    Days after ``today`` are reported as ``future`` with no volume.
    """
    length = days_in_month(year, month)
    first = datetime.date(year, month, 1)

    past = {
        d: float(v)
        for d, v in daily_volume.items()
        if 1 <= d <= length and datetime.date(year, month, d) <= today
    }
    low, high = MathTools.percentile_thresholds(list(past.values()))

    days: list[dict] = []
    for d in range(1, length + 1):
        day = datetime.date(year, month, d)
        if day > today:
            cell = {"day": d, "date": day.isoformat(), "volume": 0.0, "intensity": FUTURE}
        else:
            vol = past.get(d, 0.0)
            cell = {
                "day": d,
                "date": day.isoformat(),
                "volume": vol,
                "intensity": intensity(vol, low, high),
            }
        days.append(cell)

    cells: list[dict | None] = [None] * first.weekday() + days
    if len(cells) % 7:
        cells += [None] * (7 - len(cells) % 7)
    weeks = [cells[i : i + 7] for i in range(0, len(cells), 7)]

    trained = {
        d for d in session_days
        if 1 <= d <= length and datetime.date(year, month, d) <= today
    }
    return {
        "year": year,
        "month": month,
        "days": days,
        "weeks": weeks,
        "total_volume": sum(past.values()),
        "session_days": len(trained),
        "thresholds": {"low": low, "high": high},
    }
