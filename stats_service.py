from __future__ import annotations
import datetime
import enum
import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, TypeVar

from algorithms import MathTools, calendar_heatmap, streaks
from algorithms.dates import add_months, days_in_month, previous_month, to_local
from db import LogStore
from models import Session

logger = logging.getLogger(__name__)

T = TypeVar("T")

PUSH_KEYWORDS = (
    "développé",
    "press",
    "dips",
    "pompe",
    "push",
    "bench",
    "militaire",
    "écarté",
    "élévation",
    "extension",
)
PULL_KEYWORDS = (
    "traction",
    "rowing",
    "row",
    "curl",
    "tirage",
    "pull",
    "soulevé",
    "deadlift",
    "shrug",
)

BALANCED = "Équilibré"
PUSH_DOMINANT = "Push dominant"
PULL_DOMINANT = "Pull dominant"


class EvolutionPeriod(str, enum.Enum):
    WEEK = "7d"
    MONTH = "30d"
    QUARTER = "3m"
    HALF_YEAR = "6m"
    YEAR = "1y"

    def cutoff(self, now: datetime.datetime) -> datetime.datetime:
        if self is EvolutionPeriod.WEEK:
            return now - datetime.timedelta(days=7)
        if self is EvolutionPeriod.MONTH:
            return now - datetime.timedelta(days=30)
        months = {"3m": 3, "6m": 6, "1y": 12}[self.value]
        return add_months(now, -months)


@dataclass(frozen=True)
class MetricsSnapshot:
    """Aggregates that badge predicates are evaluated against."""

    total_sessions: int = 0
    total_volume: float = 0.0
    total_reps: int = 0
    unique_exercises: int = 0
    daily_streak: int = 0
    weekly_streak: int = 0


class StatisticsService:
    """Compute derived workout metrics from the session log.

    Every query reads through the store's :class:`MetricsCache`. Metrics that
    depend on the current date take an explicit ``now``. Calendar metrics
    (streaks, month counts) carry the local day in their cache key; trailing
    window metrics work from ``now`` truncated to the minute and carry that
    minute in their key.
    """

    def __init__(self, store: LogStore, tz: datetime.tzinfo | None = None) -> None:
        self.store = store
        self.cache = store.cache
        self.tz = tz

    def _cached(self, key: str, compute: Callable[[], T]) -> T:
        return self.cache.get(key, compute)

    def _now(self, now: Optional[datetime.datetime]) -> datetime.datetime:
        if now is None:
            now = datetime.datetime.now(self.tz)
        return to_local(now, self.tz)

    def _window_now(self, now: Optional[datetime.datetime]) -> datetime.datetime:
        return self._now(now).replace(second=0, microsecond=0)

    def _local(self, session: Session) -> datetime.datetime:
        return to_local(session.date, self.tz)

    def _chronological(self) -> List[Session]:
        return sorted(self.store.get_sessions(), key=self._local)

    # --- Aggregates ---
    def total_sessions(self) -> int:
        return self._cached("total_sessions", lambda: len(self.store.get_sessions()))

    def total_reps(self) -> int:
        return self._cached(
            "total_reps", lambda: sum(s.reps for s in self.store.get_sessions())
        )

    def total_volume(self) -> float:
        return self._cached(
            "total_volume", lambda: sum(s.volume for s in self.store.get_sessions())
        )

    def average_volume_per_session(self) -> int:
        def compute() -> int:
            avg = MathTools.safe_ratio(self.total_volume(), self.total_sessions())
            return MathTools.round_half_up(avg)

        return self._cached("average_volume", compute)

    def _exercise_names(self) -> set[str]:
        return {
            ex.name
            for s in self.store.get_sessions()
            for ex in s.exercises
            if ex.name
        }

    def unique_exercise_count(self) -> int:
        return self._cached("unique_exercises", lambda: len(self._exercise_names()))

    def personal_records(self, limit: int = 5) -> List[Dict[str, object]]:
        """Heaviest single series per exercise; ties keep the earliest session."""

        def compute() -> List[Dict[str, object]]:
            records: dict[str, dict] = {}
            for session in self._chronological():
                for ex in session.exercises:
                    weight = ex.max_weight
                    if not ex.name or weight <= 0:
                        continue
                    best = records.get(ex.name)
                    if best is None or weight > best["weight"]:
                        records[ex.name] = {
                            "exercise": ex.name,
                            "weight": weight,
                            "date": session.date.isoformat(),
                        }
            ordered = sorted(records.values(), key=lambda r: r["weight"], reverse=True)
            return ordered[:limit]

        return self._cached(f"personal_records:{limit}", compute)

    def _session_counts(self) -> Dict[str, int]:
        counts: dict[str, int] = {}
        for session in self.store.get_sessions():
            for name in dict.fromkeys(ex.name for ex in session.exercises if ex.name):
                counts[name] = counts.get(name, 0) + 1
        return counts

    def favorite_exercises(self, limit: int = 5) -> List[Dict[str, object]]:
        """Exercises ranked by the number of sessions they appear in."""

        def compute() -> List[Dict[str, object]]:
            counts = self._session_counts()
            ordered = sorted(counts.items(), key=lambda item: item[1], reverse=True)
            return [{"exercise": n, "sessions": c} for n, c in ordered[:limit]]

        return self._cached(f"favorite_exercises:{limit}", compute)

    def max_weight(self) -> float:
        return self._cached(
            "max_weight",
            lambda: max(
                (ex.max_weight for s in self.store.get_sessions() for ex in s.exercises),
                default=0.0,
            ),
        )

    def best_exercise(self) -> Optional[str]:
        favorites = self.favorite_exercises(1)
        return favorites[0]["exercise"] if favorites else None

    def last_session_date(self) -> Optional[str]:
        def compute() -> Optional[str]:
            sessions = self.store.get_sessions()
            if not sessions:
                return None
            return max(sessions, key=self._local).date.isoformat()

        return self._cached("last_session", compute)

    def sessions_this_month(self, now: datetime.datetime | None = None) -> int:
        now = self._now(now)

        def compute() -> int:
            return sum(
                1
                for s in self.store.get_sessions()
                if (self._local(s).year, self._local(s).month) == (now.year, now.month)
            )

        return self._cached(f"sessions_this_month:{now.date()}", compute)

    def week_stats(self, now: datetime.datetime | None = None) -> Dict[str, int]:
        """Sessions in the trailing 7 days and the change versus the 7 before."""
        now = self._window_now(now)

        def compute() -> Dict[str, int]:
            week_ago = now - datetime.timedelta(days=7)
            two_weeks_ago = now - datetime.timedelta(days=14)
            times = [self._local(s) for s in self.store.get_sessions()]
            this_week = sum(1 for t in times if t >= week_ago)
            last_week = sum(1 for t in times if two_weeks_ago <= t < week_ago)
            return {"this_week": this_week, "change": this_week - last_week}

        return self._cached(f"week_stats:{now.isoformat()}", compute)

    # --- Streaks ---
    def training_days(self) -> frozenset[datetime.date]:
        return self._cached(
            "training_days",
            lambda: frozenset(self._local(s).date() for s in self.store.get_sessions()),
        )

    def daily_streak(self, now: datetime.datetime | None = None) -> int:
        today = self._now(now).date()
        return self._cached(
            f"daily_streak:{today}",
            lambda: streaks.daily_streak(self.training_days(), today),
        )

    def weekly_streak(self, now: datetime.datetime | None = None) -> int:
        today = self._now(now).date()
        return self._cached(
            f"weekly_streak:{today}",
            lambda: streaks.weekly_streak(self.training_days(), today),
        )

    def best_streak(self) -> int:
        return self._cached(
            "best_streak", lambda: streaks.longest_daily_streak(self.training_days())
        )

    def streaks(self, now: datetime.datetime | None = None) -> Dict[str, int]:
        return {
            "daily": self.daily_streak(now),
            "weekly": self.weekly_streak(now),
            "best": self.best_streak(),
        }

    # --- Calendar ---
    def calendar(
        self, year: int, month: int, now: datetime.datetime | None = None
    ) -> dict:
        """Return the volume heatmap of one month."""
        days_in_month(year, month)
        today = self._now(now).date()

        def compute() -> dict:
            daily: dict[int, float] = {}
            trained: set[int] = set()
            for session in self.store.get_sessions():
                t = self._local(session)
                if t.year != year or t.month != month:
                    continue
                daily[t.day] = daily.get(t.day, 0.0) + session.volume
                trained.add(t.day)
            return calendar_heatmap.build_month(year, month, daily, trained, today)

        return self._cached(f"calendar:{year}:{month}:{today}", compute)

    # --- Trends ---
    def volume_progression(self, now: datetime.datetime | None = None) -> Dict[str, object]:
        """Volume of the last 30 days against the 30 days before."""
        now = self._window_now(now)

        def compute() -> Dict[str, object]:
            start = now - datetime.timedelta(days=30)
            prev_start = now - datetime.timedelta(days=60)
            current = previous = 0.0
            for session in self.store.get_sessions():
                t = self._local(session)
                if start <= t <= now:
                    current += session.volume
                elif prev_start <= t < start:
                    previous += session.volume
            return {
                "current": current,
                "previous": previous,
                "change": MathTools.format_change(current, previous),
            }

        return self._cached(f"volume_progression:{now.isoformat()}", compute)

    def month_volume_comparison(
        self, now: datetime.datetime | None = None
    ) -> Dict[str, object]:
        now = self._now(now)

        def compute() -> Dict[str, object]:
            prev = previous_month(now.year, now.month)
            volume = previous_volume = 0.0
            for session in self.store.get_sessions():
                t = self._local(session)
                if (t.year, t.month) == (now.year, now.month):
                    volume += session.volume
                elif (t.year, t.month) == prev:
                    previous_volume += session.volume
            change = 0
            if previous_volume > 0:
                change = MathTools.round_half_up(
                    MathTools.percent_change(volume, previous_volume)
                )
            return {
                "volume": volume,
                "previous_volume": previous_volume,
                "change_percent": change,
            }

        return self._cached(f"month_volume:{now.date()}", compute)

    def _weighted_points(
        self, since: datetime.datetime | None = None
    ) -> Dict[str, List[Dict[str, object]]]:
        """Per exercise, one chronological point per session with non-zero weight."""
        points: dict[str, list[dict]] = {}
        for session in self._chronological():
            t = self._local(session)
            if since is not None and t < since:
                continue
            for ex in session.exercises:
                weight = ex.max_weight
                if not ex.name or weight <= 0:
                    continue
                points.setdefault(ex.name, []).append(
                    {
                        "date": session.date.isoformat(),
                        "time": t,
                        "weight": weight,
                        "reps": ex.reps,
                        "volume": ex.volume,
                    }
                )
        return points

    def exercises_evolution(self) -> List[Dict[str, object]]:
        """Trend of every exercise logged with weight in at least two sessions."""

        def compute() -> List[Dict[str, object]]:
            result = []
            for name, points in self._weighted_points().items():
                if len(points) < 2:
                    continue
                first, last = points[0], points[-1]
                trend, progress = MathTools.trend(first["weight"], last["weight"])
                result.append(
                    {
                        "exercise": name,
                        "trend": trend,
                        "progress": progress,
                        "last_weight": last["weight"],
                        "best_weight": max(p["weight"] for p in points),
                        "sessions_count": len(points),
                    }
                )
            result.sort(key=lambda r: r["sessions_count"], reverse=True)
            return result

        return self._cached("exercises_evolution", compute)

    def exercise_evolution(
        self,
        exercise: str,
        period: EvolutionPeriod | str = EvolutionPeriod.MONTH,
        now: datetime.datetime | None = None,
    ) -> Dict[str, object]:
        """Chart points and summary of one exercise over ``period``."""
        period = EvolutionPeriod(period)
        now = self._window_now(now)

        def compute() -> Dict[str, object]:
            points = self._weighted_points(period.cutoff(now)).get(exercise, [])
            sessions = [
                {k: p[k] for k in ("date", "weight", "reps", "volume")} for p in points
            ]
            progression = 0
            best = last = None
            if len(points) >= 2:
                progression = MathTools.round_half_up(
                    MathTools.percent_change(points[-1]["weight"], points[0]["weight"])
                )
            if points:
                best = max(p["weight"] for p in points)
                last = points[-1]["weight"]
            sign = "+" if progression >= 0 else ""
            return {
                "sessions": sessions,
                "stats": {
                    "progression": f"{sign}{progression}%",
                    "best_session": best,
                    "last_session": last,
                },
            }

        return self._cached(f"evolution:{exercise}:{period.value}:{now.isoformat()}", compute)

    def progression_rate(self, now: datetime.datetime | None = None) -> float:
        """Average monthly weight growth, in percent, over the last 3 months.

        A coarse linear rate per exercise (first to last session divided by
        the months between them), not a regression fit.
        """
        now = self._window_now(now)

        def compute() -> float:
            rates = []
            for points in self._weighted_points(add_months(now, -3)).values():
                if len(points) < 2:
                    continue
                first, last = points[0], points[-1]
                days = (last["time"].date() - first["time"].date()).days
                if days <= 0:
                    continue
                months = days / MathTools.DAYS_PER_MONTH
                change = MathTools.percent_change(last["weight"], first["weight"])
                rates.append(change / months)
            if not rates:
                return 0.0
            return round(sum(rates) / len(rates), 1)

        return self._cached(f"progression_rate:{now.isoformat()}", compute)

    def average_intensity(self) -> float:
        """Average load per rep across every logged series."""

        def compute() -> float:
            reps = self.total_reps()
            return round(MathTools.safe_ratio(self.total_volume(), reps), 1)

        return self._cached("average_intensity", compute)

    @staticmethod
    def classify_movement(name: str) -> Optional[str]:
        lowered = name.lower()
        if any(k in lowered for k in PUSH_KEYWORDS):
            return "push"
        if any(k in lowered for k in PULL_KEYWORDS):
            return "pull"
        return None

    def muscle_balance(self) -> Dict[str, object]:
        """Push/pull ratio of series counts, ignoring unclassified exercises."""

        def compute() -> Dict[str, object]:
            counts = {"push": 0, "pull": 0}
            for session in self.store.get_sessions():
                for ex in session.exercises:
                    kind = self.classify_movement(ex.name)
                    if kind is not None:
                        counts[kind] += len(ex.series)
            total = counts["push"] + counts["pull"]
            if total == 0:
                return {"label": "-", "push": 0, "pull": 0, "push_ratio": None}
            ratio = counts["push"] / total
            if ratio >= 0.6:
                label = PUSH_DOMINANT
            elif ratio <= 0.4:
                label = PULL_DOMINANT
            else:
                label = BALANCED
            return {
                "label": label,
                "push": counts["push"],
                "pull": counts["pull"],
                "push_ratio": round(ratio, 2),
            }

        return self._cached("muscle_balance", compute)

    # --- Summaries ---
    def snapshot(self, now: datetime.datetime | None = None) -> MetricsSnapshot:
        return MetricsSnapshot(
            total_sessions=self.total_sessions(),
            total_volume=self.total_volume(),
            total_reps=self.total_reps(),
            unique_exercises=self.unique_exercise_count(),
            daily_streak=self.daily_streak(now),
            weekly_streak=self.weekly_streak(now),
        )

    def overview(self, now: datetime.datetime | None = None) -> Dict[str, object]:
        """Dashboard figures in one call."""
        return {
            "total_sessions": self.total_sessions(),
            "sessions_this_month": self.sessions_this_month(now),
            "streaks": self.streaks(now),
            "week": self.week_stats(now),
            "max_weight": self.max_weight(),
            "best_exercise": self.best_exercise(),
            "last_session": self.last_session_date(),
            "total_volume": self.total_volume(),
            "total_reps": self.total_reps(),
            "average_volume": self.average_volume_per_session(),
            "unique_exercises": self.unique_exercise_count(),
            "month_volume": self.month_volume_comparison(now),
            "volume_progression": self.volume_progression(now),
            "average_intensity": self.average_intensity(),
            "progression_rate": self.progression_rate(now),
            "muscle_balance": self.muscle_balance(),
        }
