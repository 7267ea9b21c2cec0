import math
from typing import Sequence, Tuple


class MathTools:
    """Provides essential mathematical utilities for workout calculations."""

    LOW_PERCENTILE: float = 0.33
    HIGH_PERCENTILE: float = 0.66
    TREND_THRESHOLD: float = 5.0
    DAYS_PER_MONTH: float = 30.0

    @staticmethod
    def safe_ratio(numerator: float, denominator: float) -> float:
        """Return ``numerator / denominator`` or 0 when the denominator is 0."""
        if not denominator:
            return 0.0
        return numerator / denominator

    @staticmethod
    def percent_change(current: float, previous: float) -> float:
        """Return the relative change in percent. ``previous`` must be non-zero."""
        if previous == 0:
            raise ValueError("previous must not be zero")
        return (current - previous) / previous * 100

    @staticmethod
    def round_half_up(value: float) -> int:
        """Round to the nearest integer with halves going up."""
        return int(math.floor(value + 0.5))

    @classmethod
    def format_change(cls, current: float, previous: float) -> str:
        """Return a signed percent label such as ``+12%`` or ``-4%``.

        ``"+100%"`` when only the current value is non-zero and ``"-"`` when
        both are zero.
        """
        if previous == 0:
            return "+100%" if current > 0 else "-"
        pct = cls.round_half_up(cls.percent_change(current, previous))
        return f"+{pct}%" if pct >= 0 else f"{pct}%"

    @classmethod
    def percentile_thresholds(cls, values: Sequence[float]) -> Tuple[float, float]:
        """Return the 33rd and 66th percentile of the non-zero ``values``.

        Uses the index formula ``sorted[floor(n * p)]`` without interpolation.
        """
        ordered = sorted(v for v in values if v > 0)
        n = len(ordered)
        if n == 0:
            return 0.0, 0.0
        low = ordered[int(math.floor(n * cls.LOW_PERCENTILE))]
        high = ordered[int(math.floor(n * cls.HIGH_PERCENTILE))]
        return low, high

    @classmethod
    def trend(cls, first: float, last: float) -> Tuple[str, int]:
        """Classify the change from ``first`` to ``last`` as up, down or stable.

        Returns the label and the rounded absolute percent change.
        """
        change = cls.percent_change(last, first)
        if change > cls.TREND_THRESHOLD:
            label = "up"
        elif change < -cls.TREND_THRESHOLD:
            label = "down"
        else:
            label = "stable"
        return label, cls.round_half_up(abs(change))
