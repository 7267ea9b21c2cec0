"""Typed data model of the training log.

Every optional field has a default so that sparse documents (blank weights,
missing ``series`` lists, absent ``user`` blocks) load without special cases
in the metric code. Documents written by the first release of the app use
French keys (``exercices``, ``nom``, ``poids``); they are accepted as aliases
and written back with the current keys.
"""
from __future__ import annotations

import datetime
import logging
import math
import uuid
from typing import Any, Optional

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    ValidatorFunctionWrapHandler,
    field_validator,
)

logger = logging.getLogger(__name__)

DOCUMENT_VERSION = 2


def new_id() -> str:
    return uuid.uuid4().hex


def _to_number(value: Any) -> float:
    if value is None or value == "" or isinstance(value, bool):
        return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(number) or number < 0:
        return 0.0
    return number


def _to_list(value: Any) -> list:
    if isinstance(value, list):
        return value
    if value is not None:
        logger.warning("Discarding malformed list field: %r", type(value).__name__)
    return []


def _records(value: Any) -> list:
    """Keep only the mapping (or already built model) items of a list field."""
    return [r for r in _to_list(value) if isinstance(r, (dict, BaseModel))]


def _keep_valid(value: Any, handler: ValidatorFunctionWrapHandler, kind: str) -> list:
    """Validate list items one by one, dropping those that cannot be read."""
    kept = []
    for item in _records(value):
        try:
            kept.extend(handler([item]))
        except ValidationError as e:
            err = e.errors()[0]
            field = ".".join(str(p) for p in err["loc"][1:]) or kind
            logger.warning("Dropping unreadable %s (%s: %s)", kind, field, err["msg"])
    return kept


class _Model(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class SeriesEntry(_Model):
    weight: float = Field(
        0.0, validation_alias=AliasChoices("weight", "poids")
    )
    reps: int = 0
    note: Optional[str] = None

    @field_validator("weight", mode="before")
    @classmethod
    def _weight(cls, value: Any) -> float:
        return _to_number(value)

    @field_validator("reps", mode="before")
    @classmethod
    def _reps(cls, value: Any) -> int:
        return int(_to_number(value))

    @field_validator("note", mode="before")
    @classmethod
    def _note(cls, value: Any) -> Optional[str]:
        if value is None or value == "":
            return None
        return str(value)

    @property
    def volume(self) -> float:
        return self.weight * self.reps


class ExerciseEntry(_Model):
    name: str = Field("", validation_alias=AliasChoices("name", "nom"))
    series: list[SeriesEntry] = Field(default_factory=list)

    @field_validator("name", mode="before")
    @classmethod
    def _name(cls, value: Any) -> str:
        return "" if value is None else str(value)

    @field_validator("series", mode="before")
    @classmethod
    def _series(cls, value: Any) -> list:
        return _records(value)

    @property
    def volume(self) -> float:
        return sum(s.volume for s in self.series)

    @property
    def reps(self) -> int:
        return sum(s.reps for s in self.series)

    @property
    def max_weight(self) -> float:
        return max((s.weight for s in self.series), default=0.0)


class Session(_Model):
    """One completed workout. Immutable once logged.

    ``date`` has no default. Sessions without a readable date are dropped
    when a document is loaded.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    id: str = Field(default_factory=new_id)
    date: datetime.datetime
    program_id: Optional[str] = Field(
        None,
        alias="programId",
        validation_alias=AliasChoices("programId", "program_id"),
    )
    program_name: str = Field(
        "",
        alias="programName",
        validation_alias=AliasChoices("programName", "program_name"),
    )
    exercises: list[ExerciseEntry] = Field(
        default_factory=list,
        validation_alias=AliasChoices("exercises", "exercices"),
    )

    @field_validator("id", mode="before")
    @classmethod
    def _id(cls, value: Any) -> str:
        return new_id() if value is None or value == "" else str(value)

    @field_validator("program_id", mode="before")
    @classmethod
    def _program_id(cls, value: Any) -> Optional[str]:
        return None if value is None or value == "" else str(value)

    @field_validator("program_name", mode="before")
    @classmethod
    def _program_name(cls, value: Any) -> str:
        return "" if value is None else str(value)

    @field_validator("exercises", mode="before")
    @classmethod
    def _exercises(cls, value: Any) -> list:
        return _records(value)

    @property
    def volume(self) -> float:
        return sum(e.volume for e in self.exercises)

    @property
    def reps(self) -> int:
        return sum(e.reps for e in self.exercises)


class ProgramExercise(_Model):
    name: str = Field("", validation_alias=AliasChoices("name", "nom"))
    series: list[SeriesEntry] = Field(default_factory=list)
    rest_seconds: int = Field(
        90,
        alias="restSeconds",
        validation_alias=AliasChoices("restSeconds", "rest_seconds", "repos"),
    )

    @field_validator("name", mode="before")
    @classmethod
    def _name(cls, value: Any) -> str:
        return "" if value is None else str(value)

    @field_validator("series", mode="before")
    @classmethod
    def _series(cls, value: Any) -> list:
        return _records(value)

    @field_validator("rest_seconds", mode="before")
    @classmethod
    def _rest(cls, value: Any) -> int:
        if value is None or value == "":
            return 90
        return int(_to_number(value))


class Program(_Model):
    """A reusable workout template."""

    id: str = Field(default_factory=new_id)
    name: str = Field("", validation_alias=AliasChoices("name", "nom"))
    created_at: Optional[datetime.datetime] = Field(
        None,
        alias="createdAt",
        validation_alias=AliasChoices("createdAt", "created_at"),
    )
    exercises: list[ProgramExercise] = Field(
        default_factory=list,
        validation_alias=AliasChoices("exercises", "exercices"),
    )

    @field_validator("id", mode="before")
    @classmethod
    def _id(cls, value: Any) -> str:
        return new_id() if value is None or value == "" else str(value)

    @field_validator("created_at", mode="wrap")
    @classmethod
    def _created_at(
        cls, value: Any, handler: ValidatorFunctionWrapHandler
    ) -> Optional[datetime.datetime]:
        try:
            return handler(value)
        except ValidationError:
            logger.warning("Discarding unreadable program timestamp: %r", value)
            return None

    @field_validator("name", mode="before")
    @classmethod
    def _name(cls, value: Any) -> str:
        return "" if value is None else str(value)

    @field_validator("exercises", mode="before")
    @classmethod
    def _exercises(cls, value: Any) -> list:
        return _records(value)


class ActiveSession(_Model):
    """In-progress capture, kept only for reload recovery."""

    program_id: Optional[str] = Field(
        None,
        alias="programId",
        validation_alias=AliasChoices("programId", "program_id"),
    )
    program_name: str = Field(
        "",
        alias="programName",
        validation_alias=AliasChoices("programName", "program_name"),
    )
    start_time: datetime.datetime = Field(
        default_factory=datetime.datetime.now,
        alias="startTime",
        validation_alias=AliasChoices("startTime", "start_time"),
    )
    exercises: list[ExerciseEntry] = Field(
        default_factory=list,
        validation_alias=AliasChoices("exercises", "exercices"),
    )

    @field_validator("exercises", mode="before")
    @classmethod
    def _exercises(cls, value: Any) -> list:
        return _records(value)


class UserProfile(_Model):
    name: str = ""

    @field_validator("name", mode="before")
    @classmethod
    def _name(cls, value: Any) -> str:
        return "" if value is None else str(value)


class LogDocument(_Model):
    """The whole persisted state: programs, sessions and small UI caches."""

    version: int = DOCUMENT_VERSION
    programs: list[Program] = Field(default_factory=list)
    sessions: list[Session] = Field(default_factory=list)
    active_session: Optional[ActiveSession] = Field(
        None,
        alias="activeSession",
        validation_alias=AliasChoices("activeSession", "active_session"),
    )
    user: UserProfile = Field(default_factory=UserProfile)
    recent_achievements: list[str] = Field(
        default_factory=list,
        alias="recentAchievements",
        validation_alias=AliasChoices("recentAchievements", "recent_achievements"),
    )
    seen_achievements: list[str] = Field(
        default_factory=list,
        alias="seenAchievements",
        validation_alias=AliasChoices("seenAchievements", "seen_achievements"),
    )

    @field_validator("version", mode="before")
    @classmethod
    def _version(cls, value: Any) -> int:
        return int(_to_number(value)) or 1

    @field_validator("programs", mode="wrap")
    @classmethod
    def _programs(cls, value: Any, handler: ValidatorFunctionWrapHandler) -> list:
        return _keep_valid(value, handler, "program")

    @field_validator("sessions", mode="wrap")
    @classmethod
    def _sessions(cls, value: Any, handler: ValidatorFunctionWrapHandler) -> list:
        return _keep_valid(value, handler, "session")

    @field_validator("active_session", mode="wrap")
    @classmethod
    def _active(
        cls, value: Any, handler: ValidatorFunctionWrapHandler
    ) -> Optional[ActiveSession]:
        if not isinstance(value, (dict, ActiveSession)):
            return None
        try:
            return handler(value)
        except ValidationError:
            logger.warning("Discarding unreadable active session")
            return None

    @field_validator("user", mode="before")
    @classmethod
    def _user(cls, value: Any) -> Any:
        return value if isinstance(value, dict) else {}

    @field_validator("recent_achievements", "seen_achievements", mode="before")
    @classmethod
    def _ids(cls, value: Any) -> list:
        return [str(v) for v in _to_list(value) if isinstance(v, str)]

    @classmethod
    def normalize(cls, raw: Any) -> "LogDocument":
        """Return a document built from ``raw`` with every gap filled."""
        if raw is None:
            return cls()
        if not isinstance(raw, dict):
            raise ValueError("log document must be a JSON object")
        return cls.model_validate(raw)

    def strip_derived(self) -> "LogDocument":
        """Drop achievement caches, which are recomputed from the sessions."""
        self.recent_achievements = []
        self.seen_achievements = []
        return self

    def to_json_dict(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)
