import sqlite3
import datetime
import json
import logging
from contextlib import contextmanager
from typing import List, Tuple, Optional, Iterable
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from algorithms.dates import to_local
from config import YamlConfig
from settings_schema import validate_settings
from metrics_cache import MetricsCache
from models import (
    ActiveSession,
    ExerciseEntry,
    LogDocument,
    Program,
    Session,
    UserProfile,
)

logger = logging.getLogger(__name__)


class Database:
    """Provides SQLite connection management and schema initialization."""

    _TABLE_DEFINITIONS = {
        "documents": (
            """CREATE TABLE documents (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at TEXT
                );""",
            ["key", "value", "updated_at"],
        ),
        "settings": (
            """CREATE TABLE settings (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                );""",
            ["key", "value"],
        ),
    }

    def __init__(self, db_path: str = "replift.db") -> None:
        self._db_path = db_path
        self._ensure_schema()
        self._init_settings()

    @contextmanager
    def _connection(self):
        connection = sqlite3.connect(self._db_path)
        try:
            yield connection
            connection.commit()
        finally:
            connection.close()

    def _ensure_schema(self) -> None:
        with self._connection() as conn:
            for table, (sql, columns) in self._TABLE_DEFINITIONS.items():
                self._ensure_table(conn, table, sql, columns)

    def _ensure_table(
        self, conn: sqlite3.Connection, table: str, sql: str, columns: List[str]
    ) -> None:
        cur = conn.execute(
            "SELECT name FROM sqlite_master WHERE type='table' AND name=?;", (table,)
        )
        if cur.fetchone() is None:
            conn.execute(sql)
            return

        cur = conn.execute(f"PRAGMA table_info({table});")
        existing_cols = [row[1] for row in cur.fetchall()]
        if existing_cols == columns:
            return

        conn.execute(f"DROP TABLE IF EXISTS {table}_old;")
        conn.execute(f"ALTER TABLE {table} RENAME TO {table}_old;")
        conn.execute(sql)
        common = [c for c in existing_cols if c in columns]
        if common:
            cols = ", ".join(common)
            conn.execute(
                f"INSERT INTO {table} ({cols}) SELECT {cols} FROM {table}_old;"
            )
        conn.execute(f"DROP TABLE {table}_old;")

    def _init_settings(self) -> None:
        defaults = {
            "language": "fr",
            "timezone": "",
            "weight_unit": "kg",
            "log_level": "INFO",
            "recent_achievements_limit": "3",
            "api_token": "",
        }
        with self._connection() as conn:
            for key, value in defaults.items():
                conn.execute(
                    "INSERT OR IGNORE INTO settings (key, value) VALUES (?, ?);",
                    (key, value),
                )


class BaseRepository(Database):
    """Base repository providing helper methods."""

    def execute(self, query: str, params: Tuple = ()) -> int:
        with self._connection() as conn:
            cursor = conn.cursor()
            cursor.execute(query, params)
            return cursor.lastrowid

    def fetch_all(self, query: str, params: Tuple = ()) -> List[Tuple]:
        with self._connection() as conn:
            cursor = conn.cursor()
            cursor.execute(query, params)
            return cursor.fetchall()


class DocumentRepository(BaseRepository):
    """Key-value storage of whole JSON documents."""

    def load(self, key: str) -> Optional[str]:
        rows = self.fetch_all("SELECT value FROM documents WHERE key = ?;", (key,))
        return rows[0][0] if rows else None

    def save(self, key: str, value: str) -> None:
        self.execute(
            "INSERT OR REPLACE INTO documents (key, value, updated_at) VALUES (?, ?, ?);",
            (key, value, datetime.datetime.now().isoformat(timespec="seconds")),
        )

    def delete(self, key: str) -> None:
        self.execute("DELETE FROM documents WHERE key = ?;", (key,))

    def keys(self) -> List[str]:
        return [r[0] for r in self.fetch_all("SELECT key FROM documents ORDER BY key;")]


class SettingsRepository(BaseRepository):
    """Repository for general application settings synchronized with YAML."""

    INT_KEYS = {"recent_achievements_limit"}

    def __init__(
        self, db_path: str = "replift.db", yaml_path: str = "settings.yaml"
    ) -> None:
        super().__init__(db_path)
        self._yaml = YamlConfig(yaml_path)
        self._sync_from_yaml()
        self._sync_to_yaml()

    def _sync_from_yaml(self) -> None:
        data = self._yaml.load()
        if not data:
            return
        validate_settings(data)
        with self._connection() as conn:
            for key, value in data.items():
                if isinstance(value, bool) and key in YamlConfig.SENSITIVE_KEYS:
                    continue
                conn.execute(
                    "INSERT OR REPLACE INTO settings (key, value) VALUES (?, ?);",
                    (key, str(value)),
                )

    def _sync_to_yaml(self) -> None:
        self._yaml.save(self.all_settings())

    def all_settings(self) -> dict:
        rows = self.fetch_all("SELECT key, value FROM settings ORDER BY key;")
        result: dict[str, int | str] = {}
        for k, v in rows:
            if k in self.INT_KEYS:
                try:
                    result[k] = int(v)
                    continue
                except ValueError:
                    pass
            result[k] = v
        return result

    def get_text(self, key: str, default: str = "") -> str:
        rows = self.fetch_all("SELECT value FROM settings WHERE key = ?;", (key,))
        return rows[0][0] if rows else default

    def set_text(self, key: str, value: str) -> None:
        data = self.all_settings()
        data[key] = value
        validate_settings(data)
        self.execute(
            "INSERT OR REPLACE INTO settings (key, value) VALUES (?, ?);",
            (key, str(value)),
        )
        self._sync_to_yaml()

    def get_int(self, key: str, default: int = 0) -> int:
        try:
            return int(self.get_text(key, str(default)))
        except ValueError:
            return default

    def get_timezone(self) -> Optional[ZoneInfo]:
        """Configured display timezone, or None for the system local time."""
        name = self.get_text("timezone", "")
        if not name:
            return None
        try:
            return ZoneInfo(name)
        except (ZoneInfoNotFoundError, ValueError):
            logger.warning("Unknown timezone %r, using local time", name)
            return None


class LogStore:
    """Single-document store of programs, sessions and the active session.

    Every write is committed immediately and then clears the shared
    :class:`MetricsCache`, so a query issued after a mutation always sees it.
    """

    STORAGE_KEY = "replift_data"

    def __init__(
        self,
        db_path: str = "replift.db",
        cache: MetricsCache | None = None,
    ) -> None:
        self.documents = DocumentRepository(db_path)
        self.cache = cache if cache is not None else MetricsCache()
        self._doc: LogDocument | None = None

    def load(self) -> LogDocument:
        if self._doc is not None:
            return self._doc
        raw = self.documents.load(self.STORAGE_KEY)
        if raw is None:
            self._doc = LogDocument()
            return self._doc
        try:
            self._doc = LogDocument.normalize(json.loads(raw))
        except ValueError as e:
            backup = f"{self.STORAGE_KEY}.corrupt"
            logger.error("Stored document is unreadable, moved to %s: %s", backup, e)
            self.documents.save(backup, raw)
            self._doc = LogDocument()
        return self._doc

    def reload(self) -> None:
        """Forget the in-memory copy after an external change to the database."""
        self._doc = None
        self.cache.invalidate_all()

    def _commit(self) -> None:
        doc = self.load()
        self.documents.save(
            self.STORAGE_KEY, json.dumps(doc.to_json_dict(), ensure_ascii=False)
        )

    def _mutated(self) -> None:
        self._commit()
        self.cache.invalidate_all()

    # --- Programs ---
    def get_programs(self) -> List[Program]:
        return list(self.load().programs)

    def get_program(self, program_id: str) -> Optional[Program]:
        for program in self.load().programs:
            if program.id == program_id:
                return program
        return None

    def add_program(self, name: str, exercises: Iterable[dict] | None = None) -> Program:
        program = Program.model_validate(
            {
                "name": name,
                "exercises": list(exercises or []),
                "created_at": datetime.datetime.now(),
            }
        )
        self.load().programs.append(program)
        self._mutated()
        logger.info("Program %s created", program.id)
        return program

    def update_program(self, program_id: str, **updates) -> Program:
        doc = self.load()
        for idx, program in enumerate(doc.programs):
            if program.id == program_id:
                break
        else:
            raise ValueError(f"unknown program: {program_id}")
        allowed = {k: v for k, v in updates.items() if k in ("name", "exercises")}
        data = program.model_dump()
        data.update(allowed)
        doc.programs[idx] = Program.model_validate(data)
        self._mutated()
        logger.info("Program %s updated", program_id)
        return doc.programs[idx]

    def delete_program(self, program_id: str) -> bool:
        doc = self.load()
        kept = [p for p in doc.programs if p.id != program_id]
        if len(kept) == len(doc.programs):
            return False
        doc.programs = kept
        self._mutated()
        logger.info("Program %s deleted", program_id)
        return True

    # --- Sessions ---
    def get_sessions(self) -> List[Session]:
        return list(self.load().sessions)

    def get_session(self, session_id: str) -> Optional[Session]:
        for session in self.load().sessions:
            if session.id == session_id:
                return session
        return None

    def add_session(
        self,
        exercises: Iterable[dict | ExerciseEntry],
        program_id: str | None = None,
        program_name: str | None = None,
        date: datetime.datetime | None = None,
    ) -> Session:
        if program_name is None:
            program = self.get_program(program_id) if program_id else None
            program_name = program.name if program else ""
        session = Session.model_validate(
            {
                "date": date or datetime.datetime.now(),
                "program_id": program_id,
                "program_name": program_name,
                "exercises": list(exercises),
            }
        )
        self.load().sessions.append(session)
        self._mutated()
        logger.info("Session %s logged with volume %.1f", session.id, session.volume)
        return session

    def delete_session(self, session_id: str) -> bool:
        doc = self.load()
        kept = [s for s in doc.sessions if s.id != session_id]
        if len(kept) == len(doc.sessions):
            return False
        doc.sessions = kept
        self._mutated()
        logger.info("Session %s deleted", session_id)
        return True

    def last_session_for_program(self, program_id: str) -> Optional[Session]:
        sessions = [s for s in self.load().sessions if s.program_id == program_id]
        if not sessions:
            return None
        return max(sessions, key=lambda s: to_local(s.date))

    # --- Active session ---
    def get_active_session(self) -> Optional[ActiveSession]:
        return self.load().active_session

    def start_active_session(self, program_id: str) -> ActiveSession:
        program = self.get_program(program_id)
        if program is None:
            raise ValueError(f"unknown program: {program_id}")
        active = ActiveSession.model_validate(
            {
                "program_id": program.id,
                "program_name": program.name,
                "start_time": datetime.datetime.now(),
                "exercises": [
                    {"name": ex.name, "series": [s.model_dump() for s in ex.series]}
                    for ex in program.exercises
                ],
            }
        )
        self.load().active_session = active
        self._commit()
        return active

    def capture_active_session(
        self, exercises: Iterable[dict | ExerciseEntry]
    ) -> ActiveSession:
        doc = self.load()
        if doc.active_session is None:
            raise ValueError("no active session")
        data = doc.active_session.model_dump()
        data["exercises"] = list(exercises)
        doc.active_session = ActiveSession.model_validate(data)
        self._commit()
        return doc.active_session

    def discard_active_session(self) -> bool:
        doc = self.load()
        if doc.active_session is None:
            return False
        doc.active_session = None
        self._commit()
        return True

    def finish_active_session(self, date: datetime.datetime | None = None) -> Session:
        """Promote the active session to a logged session."""
        doc = self.load()
        active = doc.active_session
        if active is None:
            raise ValueError("no active session")
        exercises = []
        for ex in active.exercises:
            series = [s for s in ex.series if s.weight or s.reps]
            if ex.name and series:
                exercises.append(ExerciseEntry(name=ex.name, series=series))
        doc.active_session = None
        return self.add_session(
            exercises,
            program_id=active.program_id,
            program_name=active.program_name,
            date=date,
        )

    # --- User and achievements ---
    def get_user(self) -> UserProfile:
        return self.load().user

    def set_user_name(self, name: str) -> None:
        self.load().user = UserProfile(name=name)
        self._commit()

    def get_recent_achievements(self) -> List[str]:
        return list(self.load().recent_achievements)

    def get_seen_achievements(self) -> List[str]:
        return list(self.load().seen_achievements)

    def set_achievement_state(self, recent: List[str], seen: List[str]) -> None:
        doc = self.load()
        doc.recent_achievements = list(recent)
        doc.seen_achievements = list(seen)
        self._commit()

    # --- Whole document ---
    def export_document(self, indent: int | None = 2) -> str:
        return json.dumps(self.load().to_json_dict(), ensure_ascii=False, indent=indent)

    def import_document(self, data: dict | str) -> LogDocument:
        """Replace the whole log with ``data``.

        Achievement caches in the imported document are discarded and
        recomputed on the next evaluation.
        """
        if isinstance(data, str):
            try:
                data = json.loads(data)
            except json.JSONDecodeError as e:
                raise ValueError(f"invalid JSON: {e}")
        if not isinstance(data, dict) or (
            "programs" not in data and "sessions" not in data
        ):
            raise ValueError("Invalid format")
        self._doc = LogDocument.normalize(data).strip_derived()
        self._mutated()
        logger.info(
            "Imported %d programs and %d sessions",
            len(self._doc.programs),
            len(self._doc.sessions),
        )
        return self._doc

    def reset(self) -> None:
        self.documents.delete(self.STORAGE_KEY)
        self._doc = LogDocument()
        self.cache.invalidate_all()
        logger.info("Log reset")
