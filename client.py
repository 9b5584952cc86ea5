"""
Python client for the course API with a local progress cache.

Mirrors every mutation to the server and keeps the record the server sends
back, so the cache never drifts from what is stored. Completion percentages
for display are derived from the cache without extra requests.
"""

from __future__ import annotations

import logging
import math
from typing import Any, Optional

import requests

from course import TOTAL_LESSONS

logger = logging.getLogger(__name__)

ACTIVITY_WEIGHT = 40
QUIZ_WEIGHT = 40
VIDEO_WEIGHT = 20


class ApiError(Exception):
    """The API answered with ``success: false`` or could not be reached (status 0)."""

    def __init__(self, status: int, message: str):
        super().__init__(f"{status}: {message}")
        self.status = status
        self.message = message


class AuthenticationError(ApiError):
    """Missing, expired or rejected credentials."""


def _empty_lesson(lesson_id: str) -> dict:
    return {
        "lessonId": lesson_id,
        "completedActivities": [],
        "quizScores": [],
        "codeSnapshots": [],
        "watchedVideos": [],
        "completed": False,
        "completedAt": None,
        "lastAccessedAt": None,
    }


def _component(done: int, total: int) -> float:
    if total <= 0:
        return 0.0
    return min(100.0, done / total * 100)


class ProgressClient:
    """Client-side state for one learner."""

    def __init__(self, base_url: str = "http://localhost:5000", token: Optional[str] = None,
                 session: Any = None, timeout: float = 10.0):
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.session = session or requests.Session()
        self.timeout = timeout
        self.user: Optional[dict] = None
        self.progress: dict[str, dict] = {}

    # ── Transport ────────────────────────────────────────────────

    def _request(self, method: str, path: str, payload: Optional[dict] = None) -> Any:
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        try:
            resp = self.session.request(
                method, f"{self.base_url}{path}",
                json=payload, headers=headers, timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise ApiError(0, f"Could not reach {self.base_url}: {exc}") from exc

        try:
            body = resp.json()
        except ValueError:
            body = None
        if not isinstance(body, dict):
            body = {}

        if resp.status_code == 401:
            self.token = None
            self.user = None
            raise AuthenticationError(401, body.get("error") or "Not authenticated")
        if resp.status_code >= 400 or not body.get("success"):
            message = body.get("error") or f"HTTP {resp.status_code}"
            logger.warning("%s %s failed: %s %s", method, path, resp.status_code, message)
            raise ApiError(resp.status_code, message)
        return body.get("data")

    def _cache(self, record: dict) -> dict:
        record = {k: v for k, v in record.items() if k != "submission"}
        self.progress[record["lessonId"]] = record
        return record

    # ── Auth ─────────────────────────────────────────────────────

    def register(self, name: str, email: str, password: str) -> dict:
        data = self._request("POST", "/api/auth/register",
                             {"name": name, "email": email, "password": password})
        self.token = data["token"]
        self.user = data["user"]
        return self.user

    def login(self, email: str, password: str) -> dict:
        data = self._request("POST", "/api/auth/login", {"email": email, "password": password})
        self.token = data["token"]
        self.user = data["user"]
        return self.user

    def me(self) -> dict:
        self.user = self._request("GET", "/api/auth/me")
        return self.user

    # ── Progress ─────────────────────────────────────────────────

    def load_progress(self, user_id: Optional[int] = None) -> dict[str, dict]:
        """Replace the cache with every record stored for the user."""
        if user_id is None:
            if self.user is None:
                self.me()
            user_id = self.user["id"]
        records = self._request("GET", f"/api/progress/{user_id}") or []
        self.progress = {}
        for record in records:
            self._cache(record)
        return self.progress

    def lesson_progress(self, lesson_id: str) -> dict:
        return {**_empty_lesson(lesson_id), **self.progress.get(lesson_id, {})}

    def complete_activity(self, lesson_id: str, activity_id: str) -> dict:
        record = self._request("POST", f"/api/progress/{lesson_id}/activity",
                               {"activityId": activity_id})
        return self._cache(record)

    def submit_quiz(self, lesson_id: str, answers: list[dict], quiz_id: Optional[str] = None,
                    max_score: Optional[float] = None) -> dict:
        payload: dict[str, Any] = {"answers": answers}
        if quiz_id is not None:
            payload["quizId"] = quiz_id
        if max_score is not None:
            payload["maxScore"] = max_score
        record = self._request("POST", f"/api/progress/{lesson_id}/quiz", payload)
        self._cache(record)
        return record

    def save_code(self, lesson_id: str, code: str, editor_id: str = "default") -> dict:
        record = self._request("POST", f"/api/progress/{lesson_id}/code",
                               {"code": code, "editorId": editor_id})
        return self._cache(record)

    def watch_video(self, lesson_id: str, video_url: str) -> dict:
        record = self._request("POST", f"/api/progress/{lesson_id}/video", {"videoUrl": video_url})
        return self._cache(record)

    def mark_lesson_complete(self, lesson_id: str) -> dict:
        record = self._request("PUT", f"/api/progress/{lesson_id}/complete")
        return self._cache(record)

    # ── Derived views ────────────────────────────────────────────

    def completion_percentage(self, lesson_id: str, total_activities: int = 3,
                              total_quizzes: int = 1, total_videos: int = 1) -> int:
        """Weighted lesson completion: activities 40%, quiz answers 40%, videos 20%."""
        p = self.lesson_progress(lesson_id)
        total = (
            _component(len(p["completedActivities"]), total_activities) * ACTIVITY_WEIGHT
            + _component(len(p["quizScores"]), total_quizzes) * QUIZ_WEIGHT
            + _component(len(p["watchedVideos"]), total_videos) * VIDEO_WEIGHT
        ) / 100
        return math.floor(total + 0.5)

    def overall_progress(self) -> int:
        completed = sum(1 for p in self.progress.values() if p.get("completed"))
        return math.floor(completed / TOTAL_LESSONS * 100 + 0.5)

    # ── Read-only endpoints ──────────────────────────────────────

    def analytics(self, user_id: Optional[int] = None) -> dict:
        if user_id is None:
            if self.user is None:
                self.me()
            user_id = self.user["id"]
        return self._request("GET", f"/api/analytics/{user_id}/overview")

    def lessons(self) -> dict:
        return self._request("GET", "/api/lessons")

    def lesson(self, day_id: str) -> dict:
        return self._request("GET", f"/api/lessons/{day_id}")
