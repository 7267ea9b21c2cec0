from .math_tools import MathTools
from . import calendar_heatmap, dates, streaks

__all__ = ["MathTools", "calendar_heatmap", "dates", "streaks"]
