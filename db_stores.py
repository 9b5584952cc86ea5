"""
DB-backed store classes for the Arduino course platform.

Each store is scoped to one user. Progress mutations are single atomic
upserts keyed on (user_id, lesson_id): the current row is read, merged and
written back under SQLite's write lock, so concurrent mutations of the same
lesson serialize instead of racing.
"""

from __future__ import annotations

import json
import sqlite3
from collections.abc import Callable
from typing import Optional

from database import get_db, transaction
from models import (
    CodeSnapshot,
    ProgressRecord,
    QuizScore,
    QuizSubmission,
    WatchedVideo,
    now_iso,
)


class DuplicateProgressError(Exception):
    """A progress row for this (user, lesson) pair already exists."""

    def __init__(self, user_id: int, lesson_id: str):
        super().__init__(f"Progress for user {user_id} and lesson {lesson_id} already exists")
        self.user_id = user_id
        self.lesson_id = lesson_id


_PROGRESS_COLUMNS = (
    "user_id", "lesson_id", "completed_activities", "quiz_scores", "code_snapshots",
    "watched_videos", "completed", "completed_at", "last_accessed_at", "created_at", "updated_at",
)

_INSERT_PROGRESS = (
    f"INSERT INTO progress ({', '.join(_PROGRESS_COLUMNS)}) "
    f"VALUES ({', '.join(':' + c for c in _PROGRESS_COLUMNS)})"
)

_UPSERT_PROGRESS = _INSERT_PROGRESS + (
    " ON CONFLICT(user_id, lesson_id) DO UPDATE SET "
    "completed_activities=excluded.completed_activities, "
    "quiz_scores=excluded.quiz_scores, "
    "code_snapshots=excluded.code_snapshots, "
    "watched_videos=excluded.watched_videos, "
    "completed=excluded.completed, "
    "completed_at=excluded.completed_at, "
    "last_accessed_at=excluded.last_accessed_at, "
    "updated_at=excluded.updated_at"
)


# ── Progress Records ─────────────────────────────────────────────────


class ProgressStoreDB:
    """Per-lesson progress for one user."""

    def __init__(self, user_id: int):
        self.user_id = user_id

    def all(self) -> list[ProgressRecord]:
        db = get_db()
        rows = db.execute(
            "SELECT * FROM progress WHERE user_id = ? ORDER BY lesson_id",
            (self.user_id,),
        ).fetchall()
        return [ProgressRecord.from_row(r) for r in rows]

    def get(self, lesson_id: str) -> Optional[ProgressRecord]:
        db = get_db()
        row = db.execute(
            "SELECT * FROM progress WHERE user_id = ? AND lesson_id = ?",
            (self.user_id, lesson_id),
        ).fetchone()
        return ProgressRecord.from_row(row) if row else None

    def insert(self, record: ProgressRecord) -> ProgressRecord:
        """Plain insert. The UNIQUE(user_id, lesson_id) constraint rejects a second row."""
        now = now_iso()
        record.user_id = self.user_id
        record.touch(now)
        db = get_db()
        try:
            cur = db.execute(_INSERT_PROGRESS, record.column_values())
        except sqlite3.IntegrityError as e:
            db.rollback()
            if "UNIQUE" in str(e):
                raise DuplicateProgressError(self.user_id, record.lesson_id) from e
            raise
        db.commit()
        record.id = cur.lastrowid
        return record

    def _upsert(self, lesson_id: str,
                apply: Callable[[ProgressRecord, str], None],
                also: Optional[Callable[[sqlite3.Connection, str], None]] = None) -> ProgressRecord:
        """Read, merge and write one record under the write lock.

        ``also`` runs inside the same transaction after the record is written.
        """
        db = get_db()
        now = now_iso()
        with transaction(db):
            row = db.execute(
                "SELECT * FROM progress WHERE user_id = ? AND lesson_id = ?",
                (self.user_id, lesson_id),
            ).fetchone()
            record = ProgressRecord.from_row(row) if row else ProgressRecord(self.user_id, lesson_id)
            apply(record, now)
            record.touch(now)
            db.execute(_UPSERT_PROGRESS, record.column_values())
            if also is not None:
                also(db, now)
            row = db.execute(
                "SELECT * FROM progress WHERE user_id = ? AND lesson_id = ?",
                (self.user_id, lesson_id),
            ).fetchone()
        return ProgressRecord.from_row(row)

    def complete_activity(self, lesson_id: str, activity_id: str) -> ProgressRecord:
        return self._upsert(lesson_id, lambda r, now: r.add_activity(activity_id))

    def submit_quiz_answers(self, lesson_id: str, scores: list[QuizScore],
                            submission: Optional[QuizSubmission] = None) -> ProgressRecord:
        """Merge answers into the record; store ``submission`` in the same transaction."""
        def apply(record: ProgressRecord, now: str) -> None:
            for score in scores:
                score.timestamp = now
            record.merge_quiz_scores(scores)

        def record_submission(db: sqlite3.Connection, now: str) -> None:
            submission.submitted_at = now
            QuizSubmissionStoreDB(self.user_id).write(db, submission)

        return self._upsert(lesson_id, apply, record_submission if submission is not None else None)

    def save_code_snapshot(self, lesson_id: str, code: str,
                           editor_id: str = "default") -> ProgressRecord:
        return self._upsert(
            lesson_id,
            lambda r, now: r.add_code_snapshot(CodeSnapshot(code=code, editor_id=editor_id, timestamp=now)),
        )

    def record_video(self, lesson_id: str, video_url: str) -> ProgressRecord:
        return self._upsert(
            lesson_id,
            lambda r, now: r.add_watched_video(WatchedVideo(video_url=video_url, watched_at=now)),
        )

    def mark_complete(self, lesson_id: str) -> ProgressRecord:
        return self._upsert(lesson_id, lambda r, now: r.mark_complete(now))


# ── Quiz Submissions ─────────────────────────────────────────────────


class QuizSubmissionStoreDB:
    """Append-only quiz submission history for one user."""

    def __init__(self, user_id: int):
        self.user_id = user_id

    def write(self, db: sqlite3.Connection, submission: QuizSubmission) -> QuizSubmission:
        """Insert without committing; the caller owns the transaction."""
        cur = db.execute(
            "INSERT INTO quiz_submissions (user_id, lesson_id, quiz_id, answers, "
            "total_score, max_score, submitted_at) VALUES (?, ?, ?, ?, ?, ?, ?)",
            (self.user_id, submission.lesson_id, submission.quiz_id,
             json.dumps([a.to_dict() for a in submission.answers]),
             submission.total_score, submission.max_score, submission.submitted_at),
        )
        submission.id = cur.lastrowid
        submission.user_id = self.user_id
        return submission

    def add(self, submission: QuizSubmission) -> QuizSubmission:
        db = get_db()
        with transaction(db):
            self.write(db, submission)
        return submission

    def all(self) -> list[QuizSubmission]:
        db = get_db()
        rows = db.execute(
            "SELECT * FROM quiz_submissions WHERE user_id = ? ORDER BY submitted_at DESC, id DESC",
            (self.user_id,),
        ).fetchall()
        return [QuizSubmission.from_row(r) for r in rows]

    def for_lesson(self, lesson_id: str) -> list[QuizSubmission]:
        db = get_db()
        rows = db.execute(
            "SELECT * FROM quiz_submissions WHERE user_id = ? AND lesson_id = ? "
            "ORDER BY submitted_at DESC, id DESC",
            (self.user_id, lesson_id),
        ).fetchall()
        return [QuizSubmission.from_row(r) for r in rows]
