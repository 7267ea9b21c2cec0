import datetime
import logging
import os
from typing import Dict, List, Optional

from fastapi import (
    FastAPI,
    HTTPException,
    Body,
    APIRouter,
    Header,
    Depends,
)

from algorithms.dates import to_local
from config import APP_VERSION
from db import LogStore, SettingsRepository
from gamification_service import GamificationService
from localization import Translator
from metrics_cache import MetricsCache
from stats_service import StatisticsService

logger = logging.getLogger(__name__)


class TrackerAPI:
    """Provides REST endpoints for the training log and its statistics."""

    def __init__(
        self,
        db_path: str = "replift.db",
        yaml_path: str = "settings.yaml",
    ) -> None:
        self.db_path = db_path
        self.settings = SettingsRepository(db_path, yaml_path)
        self.cache = MetricsCache()
        self.store = LogStore(db_path, cache=self.cache)
        self.statistics = StatisticsService(self.store, tz=self.settings.get_timezone())
        self.gamification = GamificationService(
            self.store,
            self.statistics,
            recent_limit=self.settings.get_int("recent_achievements_limit", 3),
        )
        self.app = FastAPI(
            title="RepLift API",
            description="REST API for workout logging and analytics",
            version=APP_VERSION,
        )
        self._setup_routes()

    def _translator(self) -> Translator:
        translator = Translator()
        translator.set_language(self.settings.get_text("language", "fr"))
        return translator

    def _check_token(self, x_api_key: Optional[str] = Header(None)) -> None:
        token = self.settings.get_text("api_token", "")
        if token and x_api_key != token:
            raise HTTPException(status_code=401, detail="invalid API key")

    def _setup_routes(self) -> None:
        guard = [Depends(self._check_token)]
        programs_router = APIRouter(prefix="/programs", tags=["Programs"], dependencies=guard)
        sessions_router = APIRouter(prefix="/sessions", tags=["Sessions"], dependencies=guard)
        active_router = APIRouter(
            prefix="/active_session", tags=["Active Session"], dependencies=guard
        )
        stats_router = APIRouter(prefix="/stats", tags=["Statistics"], dependencies=guard)
        achievements_router = APIRouter(
            prefix="/achievements", tags=["Achievements"], dependencies=guard
        )
        data_router = APIRouter(tags=["Data"], dependencies=guard)

        @self.app.get(
            "/health",
            summary="Health check",
            description="Verify API and database connectivity.",
        )
        def health():
            """Return API and database connection status."""
            try:
                self.store.documents.keys()
                return {"status": "ok", "version": APP_VERSION}
            except Exception as e:  # pragma: no cover - connectivity failure
                raise HTTPException(status_code=500, detail=str(e))

        # --- Programs ---
        @programs_router.get("")
        def list_programs():
            return [p.model_dump(mode="json", by_alias=True) for p in self.store.get_programs()]

        @programs_router.post("")
        def add_program(payload: Dict = Body(...)):
            name = str(payload.get("name") or "").strip()
            if not name:
                raise HTTPException(status_code=400, detail="name required")
            try:
                program = self.store.add_program(name, payload.get("exercises") or [])
            except ValueError as e:
                raise HTTPException(status_code=400, detail=str(e))
            return {"id": program.id}

        @programs_router.get("/{program_id}")
        def get_program(program_id: str):
            program = self.store.get_program(program_id)
            if program is None:
                raise HTTPException(status_code=404, detail="program not found")
            return program.model_dump(mode="json", by_alias=True)

        @programs_router.put("/{program_id}")
        def update_program(program_id: str, payload: Dict = Body(...)):
            if self.store.get_program(program_id) is None:
                raise HTTPException(status_code=404, detail="program not found")
            try:
                program = self.store.update_program(program_id, **payload)
            except ValueError as e:
                raise HTTPException(status_code=400, detail=str(e))
            return program.model_dump(mode="json", by_alias=True)

        @programs_router.delete("/{program_id}")
        def delete_program(program_id: str):
            if not self.store.delete_program(program_id):
                raise HTTPException(status_code=404, detail="program not found")
            return {"status": "deleted"}

        @programs_router.get("/{program_id}/last_session")
        def last_session_for_program(program_id: str):
            session = self.store.last_session_for_program(program_id)
            if session is None:
                raise HTTPException(status_code=404, detail="no session for program")
            return session.model_dump(mode="json", by_alias=True)

        # --- Sessions ---
        @sessions_router.get("")
        def list_sessions():
            sessions = sorted(
                self.store.get_sessions(), key=lambda s: to_local(s.date), reverse=True
            )
            return [s.model_dump(mode="json", by_alias=True) for s in sessions]

        @sessions_router.post("")
        def add_session(payload: Dict = Body(...)):
            try:
                session = self.store.add_session(
                    payload.get("exercises") or [],
                    program_id=payload.get("programId"),
                    program_name=payload.get("programName"),
                    date=payload.get("date"),
                )
            except ValueError as e:
                raise HTTPException(status_code=400, detail=str(e))
            return {"id": session.id}

        @sessions_router.get("/{session_id}")
        def get_session(session_id: str):
            session = self.store.get_session(session_id)
            if session is None:
                raise HTTPException(status_code=404, detail="session not found")
            return session.model_dump(mode="json", by_alias=True)

        @sessions_router.delete("/{session_id}")
        def delete_session(session_id: str):
            if not self.store.delete_session(session_id):
                raise HTTPException(status_code=404, detail="session not found")
            return {"status": "deleted"}

        # --- Active session ---
        @active_router.get("")
        def get_active_session():
            active = self.store.get_active_session()
            if active is None:
                return None
            return active.model_dump(mode="json", by_alias=True)

        @active_router.post("")
        def start_active_session(program_id: str):
            try:
                active = self.store.start_active_session(program_id)
            except ValueError as e:
                raise HTTPException(status_code=404, detail=str(e))
            return active.model_dump(mode="json", by_alias=True)

        @active_router.put("")
        def capture_active_session(exercises: List[Dict] = Body(...)):
            try:
                active = self.store.capture_active_session(exercises)
            except ValueError as e:
                raise HTTPException(status_code=400, detail=str(e))
            return active.model_dump(mode="json", by_alias=True)

        @active_router.post("/finish")
        def finish_active_session():
            try:
                session = self.store.finish_active_session()
            except ValueError as e:
                raise HTTPException(status_code=400, detail=str(e))
            return {"id": session.id}

        @active_router.delete("")
        def discard_active_session():
            if not self.store.discard_active_session():
                raise HTTPException(status_code=404, detail="no active session")
            return {"status": "discarded"}

        # --- Statistics ---
        @stats_router.get("/overview")
        def stats_overview(now: Optional[datetime.datetime] = None):
            overview = self.statistics.overview(now)
            balance = dict(overview["muscle_balance"])
            balance["label"] = self._translator().gettext(balance["label"])
            return {**overview, "muscle_balance": balance}

        @stats_router.get("/totals")
        def stats_totals():
            return {
                "sessions": self.statistics.total_sessions(),
                "reps": self.statistics.total_reps(),
                "volume": self.statistics.total_volume(),
                "average_volume": self.statistics.average_volume_per_session(),
                "unique_exercises": self.statistics.unique_exercise_count(),
                "max_weight": self.statistics.max_weight(),
            }

        @stats_router.get("/records")
        def stats_records(limit: int = 5):
            return self.statistics.personal_records(limit)

        @stats_router.get("/favorites")
        def stats_favorites(limit: int = 5):
            return self.statistics.favorite_exercises(limit)

        @stats_router.get("/streaks")
        def stats_streaks(now: Optional[datetime.datetime] = None):
            return self.statistics.streaks(now)

        @stats_router.get("/calendar")
        def stats_calendar(
            year: int,
            month: int,
            now: Optional[datetime.datetime] = None,
        ):
            try:
                return self.statistics.calendar(year, month, now)
            except ValueError as e:
                raise HTTPException(status_code=400, detail=str(e))

        @stats_router.get("/week")
        def stats_week(now: Optional[datetime.datetime] = None):
            return self.statistics.week_stats(now)

        @stats_router.get("/volume_progression")
        def stats_volume_progression(now: Optional[datetime.datetime] = None):
            return self.statistics.volume_progression(now)

        @stats_router.get("/month_comparison")
        def stats_month_comparison(now: Optional[datetime.datetime] = None):
            return self.statistics.month_volume_comparison(now)

        @stats_router.get("/evolution")
        def stats_evolution():
            return self.statistics.exercises_evolution()

        @stats_router.get("/evolution/{exercise}")
        def stats_exercise_evolution(
            exercise: str,
            period: str = "30d",
            now: Optional[datetime.datetime] = None,
        ):
            try:
                return self.statistics.exercise_evolution(exercise, period, now)
            except ValueError as e:
                raise HTTPException(status_code=400, detail=str(e))

        @stats_router.get("/progression_rate")
        def stats_progression_rate(now: Optional[datetime.datetime] = None):
            return {"rate": self.statistics.progression_rate(now)}

        @stats_router.get("/intensity")
        def stats_intensity():
            return {"intensity": self.statistics.average_intensity()}

        @stats_router.get("/muscle_balance")
        def stats_muscle_balance():
            balance = dict(self.statistics.muscle_balance())
            balance["label"] = self._translator().gettext(balance["label"])
            return balance

        # --- Achievements ---
        @achievements_router.get("")
        def list_achievements(now: Optional[datetime.datetime] = None):
            translator = self._translator()
            return [translator.badge(b) for b in self.gamification.evaluate(now)]

        @achievements_router.post("/refresh")
        def refresh_achievements(now: Optional[datetime.datetime] = None):
            return {"recent": self.gamification.update_recent(now)}

        @achievements_router.get("/recent")
        def recent_achievements():
            translator = self._translator()
            return [translator.badge(b) for b in self.gamification.recent()]

        # --- Whole document ---
        @data_router.get("/export")
        def export_data():
            return self.store.load().to_json_dict()

        @data_router.post("/import")
        def import_data(document: Dict = Body(...)):
            try:
                doc = self.store.import_document(document)
            except ValueError as e:
                raise HTTPException(status_code=400, detail=str(e))
            return {"programs": len(doc.programs), "sessions": len(doc.sessions)}

        @data_router.post("/reset")
        def reset_data():
            self.store.reset()
            return {"status": "reset"}

        @data_router.get("/user")
        def get_user():
            return self.store.get_user().model_dump()

        @data_router.put("/user")
        def set_user(name: str):
            self.store.set_user_name(name)
            return {"name": name}

        @data_router.get("/settings")
        def get_settings():
            data = self.settings.all_settings()
            data.pop("api_token", None)
            return data

        @data_router.post("/settings/{key}")
        def set_setting(key: str, value: str):
            try:
                self.settings.set_text(key, value)
            except ValueError as e:
                raise HTTPException(status_code=400, detail=str(e))
            return {"key": key, "value": value}

        self.app.include_router(programs_router)
        self.app.include_router(sessions_router)
        self.app.include_router(active_router)
        self.app.include_router(stats_router)
        self.app.include_router(achievements_router)
        self.app.include_router(data_router)


api = TrackerAPI(db_path=os.environ.get("REPLIFT_DB", "replift.db"))
app = api.app

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app)
