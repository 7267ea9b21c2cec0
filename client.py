import requests
from typing import Optional


class TrackerClient:
    """Simple REST client for the tracker API."""

    def __init__(
        self,
        base_url: str = "http://localhost:8000",
        api_key: Optional[str] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.headers = {"X-API-Key": api_key} if api_key else {}

    def _get(self, path: str, **params):
        resp = requests.get(f"{self.base_url}{path}", params=params, headers=self.headers)
        resp.raise_for_status()
        return resp.json()

    def _post(self, path: str, json=None, **params):
        resp = requests.post(
            f"{self.base_url}{path}", json=json, params=params, headers=self.headers
        )
        resp.raise_for_status()
        return resp.json()

    def create_program(self, name: str, exercises: Optional[list] = None) -> str:
        return self._post("/programs", json={"name": name, "exercises": exercises or []})["id"]

    def log_session(self, exercises: list, program_id: Optional[str] = None) -> str:
        body = {"exercises": exercises}
        if program_id:
            body["programId"] = program_id
        return self._post("/sessions", json=body)["id"]

    def list_sessions(self):
        return self._get("/sessions")

    def overview(self):
        return self._get("/stats/overview")

    def calendar(self, year: int, month: int):
        return self._get("/stats/calendar", year=year, month=month)

    def achievements(self):
        return self._get("/achievements")

    def refresh_achievements(self) -> list[str]:
        return self._post("/achievements/refresh")["recent"]
