import datetime
import enum
import logging
from dataclasses import dataclass
from typing import Callable

from db import LogStore
from stats_service import MetricsSnapshot, StatisticsService

logger = logging.getLogger(__name__)


class BadgeId(str, enum.Enum):
    FIRST_SESSION = "first_session"
    STREAK_7 = "streak_7"
    VOLUME_MASTER = "volume_master"
    DIVERSITY = "diversity"
    THOUSAND_REPS = "thousand_reps"
    REGULAR = "regular"
    MARATHON = "marathon"
    LEGEND = "legend"


@dataclass(frozen=True)
class Badge:
    id: BadgeId
    icon: str
    title: str
    description: str
    requirement: str
    predicate: Callable[[MetricsSnapshot], bool]

    def as_dict(self, earned: bool) -> dict:
        return {
            "id": self.id.value,
            "icon": self.icon,
            "title": self.title,
            "description": self.description,
            "requirement": self.requirement,
            "earned": earned,
        }


BADGES: tuple[Badge, ...] = (
    Badge(
        BadgeId.FIRST_SESSION,
        "🎯",
        "Première Séance",
        "Commencer le voyage",
        "1 séance",
        lambda m: m.total_sessions >= 1,
    ),
    Badge(
        BadgeId.STREAK_7,
        "🔥",
        "Streak 7 jours",
        "Une semaine complète",
        "7 jours consécutifs",
        lambda m: m.daily_streak >= 7,
    ),
    Badge(
        BadgeId.VOLUME_MASTER,
        "💪",
        "Volume Master",
        "10 000 kg soulevés",
        "10 000 kg de volume",
        lambda m: m.total_volume >= 10_000,
    ),
    Badge(
        BadgeId.DIVERSITY,
        "🏆",
        "Diversité",
        "10 exercices différents",
        "10 exercices",
        lambda m: m.unique_exercises >= 10,
    ),
    Badge(
        BadgeId.THOUSAND_REPS,
        "🔁",
        "Mille Répétitions",
        "1 000 répétitions effectuées",
        "1 000 répétitions",
        lambda m: m.total_reps >= 1_000,
    ),
    Badge(
        BadgeId.REGULAR,
        "📅",
        "Régularité",
        "4 semaines d'affilée",
        "4 semaines consécutives",
        lambda m: m.weekly_streak >= 4,
    ),
    Badge(
        BadgeId.MARATHON,
        "⚡",
        "Marathon",
        "50 séances complétées",
        "50 séances",
        lambda m: m.total_sessions >= 50,
    ),
    Badge(
        BadgeId.LEGEND,
        "🥇",
        "Légende",
        "100 000 kg soulevés",
        "100 000 kg de volume",
        lambda m: m.total_volume >= 100_000,
    ),
)

BADGES_BY_ID = {badge.id.value: badge for badge in BADGES}


class GamificationService:
    """Evaluate achievement badges and track the recently earned ones."""

    def __init__(
        self,
        store: LogStore,
        statistics: StatisticsService,
        recent_limit: int = 3,
    ) -> None:
        self.store = store
        self.statistics = statistics
        self.recent_limit = recent_limit

    def evaluate(self, now: datetime.datetime | None = None) -> list[dict]:
        """Return every badge with its ``earned`` flag, in table order."""
        snapshot = self.statistics.snapshot(now)
        return [badge.as_dict(badge.predicate(snapshot)) for badge in BADGES]

    def earned_ids(self, now: datetime.datetime | None = None) -> list[str]:
        snapshot = self.statistics.snapshot(now)
        return [b.id.value for b in BADGES if b.predicate(snapshot)]

    def update_recent(self, now: datetime.datetime | None = None) -> list[str]:
        """Record newly earned badges and return the recently earned ids.

        New ids, in table order, are prepended and the list is cut to
        ``recent_limit``. Every earned id is also remembered in the seen
        list, so badges pushed out of the short list are not announced
        again and repeated calls without new data change nothing.
        """
        earned = self.earned_ids(now)
        recent = self.store.get_recent_achievements()
        seen = self.store.get_seen_achievements()
        announced = set(seen) | set(recent)
        new = [bid for bid in earned if bid not in announced]
        if not new and earned == seen:
            return recent
        if new:
            logger.info("Achievements unlocked: %s", ", ".join(new))
            recent = (new + [bid for bid in recent if bid not in new])[
                : self.recent_limit
            ]
        self.store.set_achievement_state(recent, earned)
        return recent

    def recent(self) -> list[dict]:
        """Badges of the persisted recently earned list."""
        return [
            BADGES_BY_ID[bid].as_dict(True)
            for bid in self.store.get_recent_achievements()
            if bid in BADGES_BY_ID
        ]
