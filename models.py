"""
Progress records and quiz submissions.

Plain dataclasses shared by the stores, the analytics and the API layer.
Merge operations live on ``ProgressRecord`` so the store can apply them
inside a single transaction.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

MAX_CODE_SNAPSHOTS = 10


def now_iso() -> str:
    return datetime.now().isoformat(timespec="microseconds")


@dataclass
class QuizScore:
    question_id: str
    correct: bool
    answer: Any = None
    timestamp: str = field(default_factory=now_iso)

    def to_dict(self) -> dict:
        return {
            "questionId": self.question_id,
            "correct": self.correct,
            "answer": self.answer,
            "timestamp": self.timestamp,
        }

    @staticmethod
    def from_dict(d: dict) -> QuizScore:
        return QuizScore(
            question_id=d["questionId"],
            correct=bool(d.get("correct", False)),
            answer=d.get("answer"),
            timestamp=d.get("timestamp", ""),
        )


@dataclass
class CodeSnapshot:
    code: str
    editor_id: str = "default"
    timestamp: str = field(default_factory=now_iso)

    def to_dict(self) -> dict:
        return {"timestamp": self.timestamp, "code": self.code, "editorId": self.editor_id}

    @staticmethod
    def from_dict(d: dict) -> CodeSnapshot:
        return CodeSnapshot(
            code=d.get("code", ""),
            editor_id=d.get("editorId", "default"),
            timestamp=d.get("timestamp", ""),
        )


@dataclass
class WatchedVideo:
    video_url: str
    watched_at: str = field(default_factory=now_iso)

    def to_dict(self) -> dict:
        return {"videoUrl": self.video_url, "watchedAt": self.watched_at}

    @staticmethod
    def from_dict(d: dict) -> WatchedVideo:
        return WatchedVideo(video_url=d["videoUrl"], watched_at=d.get("watchedAt", ""))


@dataclass
class ProgressRecord:
    user_id: int
    lesson_id: str
    completed_activities: list[str] = field(default_factory=list)
    quiz_scores: list[QuizScore] = field(default_factory=list)
    code_snapshots: list[CodeSnapshot] = field(default_factory=list)
    watched_videos: list[WatchedVideo] = field(default_factory=list)
    completed: bool = False
    completed_at: str = ""
    last_accessed_at: str = ""
    created_at: str = ""
    updated_at: str = ""
    id: Optional[int] = None

    # ── Merge operations ─────────────────────────────────────────

    def add_activity(self, activity_id: str) -> None:
        if activity_id not in self.completed_activities:
            self.completed_activities.append(activity_id)

    def merge_quiz_scores(self, scores: list[QuizScore]) -> None:
        """Replace the entry for each questionId already stored, append the rest."""
        for score in scores:
            for i, existing in enumerate(self.quiz_scores):
                if existing.question_id == score.question_id:
                    self.quiz_scores[i] = score
                    break
            else:
                self.quiz_scores.append(score)

    def add_code_snapshot(self, snapshot: CodeSnapshot) -> None:
        self.code_snapshots.append(snapshot)
        if len(self.code_snapshots) > MAX_CODE_SNAPSHOTS:
            self.code_snapshots = self.code_snapshots[-MAX_CODE_SNAPSHOTS:]

    def add_watched_video(self, video: WatchedVideo) -> None:
        if all(v.video_url != video.video_url for v in self.watched_videos):
            self.watched_videos.append(video)

    def mark_complete(self, when: str) -> None:
        self.completed = True
        self.completed_at = when

    def touch(self, when: str) -> None:
        """Stamp an access; every mutation calls this."""
        self.last_accessed_at = when
        self.updated_at = when
        if not self.created_at:
            self.created_at = when

    # ── Serialization ────────────────────────────────────────────

    def to_dict(self) -> dict:
        return {
            "userId": self.user_id,
            "lessonId": self.lesson_id,
            "completedActivities": list(self.completed_activities),
            "quizScores": [q.to_dict() for q in self.quiz_scores],
            "codeSnapshots": [s.to_dict() for s in self.code_snapshots],
            "watchedVideos": [v.to_dict() for v in self.watched_videos],
            "completed": self.completed,
            "completedAt": self.completed_at or None,
            "lastAccessedAt": self.last_accessed_at,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }

    def column_values(self) -> dict:
        """Row values in the ``progress`` table's column layout."""
        return {
            "user_id": self.user_id,
            "lesson_id": self.lesson_id,
            "completed_activities": json.dumps(self.completed_activities),
            "quiz_scores": json.dumps([q.to_dict() for q in self.quiz_scores]),
            "code_snapshots": json.dumps([s.to_dict() for s in self.code_snapshots]),
            "watched_videos": json.dumps([v.to_dict() for v in self.watched_videos]),
            "completed": 1 if self.completed else 0,
            "completed_at": self.completed_at,
            "last_accessed_at": self.last_accessed_at,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    @staticmethod
    def from_row(r) -> ProgressRecord:
        return ProgressRecord(
            id=r["id"],
            user_id=r["user_id"],
            lesson_id=r["lesson_id"],
            completed_activities=json.loads(r["completed_activities"]),
            quiz_scores=[QuizScore.from_dict(d) for d in json.loads(r["quiz_scores"])],
            code_snapshots=[CodeSnapshot.from_dict(d) for d in json.loads(r["code_snapshots"])],
            watched_videos=[WatchedVideo.from_dict(d) for d in json.loads(r["watched_videos"])],
            completed=bool(r["completed"]),
            completed_at=r["completed_at"],
            last_accessed_at=r["last_accessed_at"],
            created_at=r["created_at"],
            updated_at=r["updated_at"],
        )


@dataclass
class QuizAnswer:
    question_id: str
    answer: Any = None
    correct: bool = False
    points: float = 0

    def to_dict(self) -> dict:
        return {
            "questionId": self.question_id,
            "answer": self.answer,
            "correct": self.correct,
            "points": self.points,
        }

    @staticmethod
    def from_dict(d: dict) -> QuizAnswer:
        return QuizAnswer(
            question_id=d["questionId"],
            answer=d.get("answer"),
            correct=bool(d.get("correct", False)),
            points=d.get("points", 0),
        )


@dataclass
class QuizSubmission:
    user_id: int
    lesson_id: str
    quiz_id: str
    answers: list[QuizAnswer]
    max_score: float
    total_score: float = 0
    submitted_at: str = field(default_factory=now_iso)
    id: Optional[int] = None

    @property
    def ratio(self) -> float:
        return self.total_score / self.max_score

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "userId": self.user_id,
            "lessonId": self.lesson_id,
            "quizId": self.quiz_id,
            "answers": [a.to_dict() for a in self.answers],
            "totalScore": self.total_score,
            "maxScore": self.max_score,
            "submittedAt": self.submitted_at,
        }

    @staticmethod
    def from_row(r) -> QuizSubmission:
        return QuizSubmission(
            id=r["id"],
            user_id=r["user_id"],
            lesson_id=r["lesson_id"],
            quiz_id=r["quiz_id"],
            answers=[QuizAnswer.from_dict(d) for d in json.loads(r["answers"])],
            total_score=r["total_score"],
            max_score=r["max_score"],
            submitted_at=r["submitted_at"],
        )
