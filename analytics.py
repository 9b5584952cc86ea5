"""Progress analytics — the overview shown on the learner dashboard.

Everything is derived on read from the progress records and the quiz
submission history; nothing here is persisted.
"""

from __future__ import annotations

import math
from datetime import date, datetime, timedelta
from typing import Optional

from course import CATEGORIES, TOTAL_LESSONS, Category, lesson_number
from db_stores import ProgressStoreDB, QuizSubmissionStoreDB
from models import ProgressRecord, QuizSubmission

RECENT_ACTIVITY_LIMIT = 5


def round_half_up(value: float) -> int:
    """Round .5 away from zero for positive values, like the frontend does."""
    return math.floor(value + 0.5)


def completion_percentage(completed_lessons: int, total_lessons: int = TOTAL_LESSONS) -> int:
    return round_half_up(completed_lessons / total_lessons * 100)


def average_quiz_score(submissions: list[QuizSubmission]) -> int:
    """Mean of per-submission score ratios as a percentage; 0 without submissions."""
    if not submissions:
        return 0
    mean_ratio = sum(s.ratio for s in submissions) / len(submissions)
    return round_half_up(mean_ratio * 100)


def _accessed_on(record: ProgressRecord) -> Optional[date]:
    if not record.last_accessed_at:
        return None
    return datetime.fromisoformat(record.last_accessed_at).date()


def current_streak(records: list[ProgressRecord], today: Optional[date] = None) -> int:
    """Consecutive calendar days, ending today, with at least one access."""
    today = today or date.today()
    active_days = {d for d in (_accessed_on(r) for r in records) if d is not None}
    streak = 0
    day = today
    while day in active_days:
        streak += 1
        day -= timedelta(days=1)
    return streak


def category_progress(records: list[ProgressRecord],
                      categories: tuple[Category, ...] = CATEGORIES) -> list[dict]:
    """Completed/total per category; a lesson counts in the first range that holds it."""
    completed = {c.id: 0 for c in categories}
    for record in records:
        if not record.completed:
            continue
        number = lesson_number(record.lesson_id)
        for category in categories:
            if category.contains(number):
                completed[category.id] += 1
                break
    return [
        {
            "name": c.name,
            "completed": completed[c.id],
            "total": c.total,
            "percentage": round_half_up(completed[c.id] / c.total * 100),
        }
        for c in categories
    ]


def recent_activity(records: list[ProgressRecord], n: int = RECENT_ACTIVITY_LIMIT) -> list[dict]:
    ordered = sorted(
        records,
        key=lambda r: datetime.fromisoformat(r.last_accessed_at) if r.last_accessed_at else datetime.min,
        reverse=True,
    )
    return [
        {
            "lessonId": r.lesson_id,
            "lastAccessed": r.last_accessed_at,
            "completed": r.completed,
        }
        for r in ordered[:n]
    ]


def overview(records: list[ProgressRecord], submissions: list[QuizSubmission],
             today: Optional[date] = None) -> dict:
    """Assemble the analytics view from already-loaded records."""
    completed_lessons = sum(1 for r in records if r.completed)
    return {
        "totalLessons": TOTAL_LESSONS,
        "completedLessons": completed_lessons,
        "completionPercentage": completion_percentage(completed_lessons),
        "averageQuizScore": average_quiz_score(submissions),
        "currentStreak": current_streak(records, today),
        "recentActivity": recent_activity(records),
        "progressByCategory": category_progress(records),
    }


def build_overview(user_id: int, today: Optional[date] = None) -> dict:
    """Read both stores for the user and compute the overview.

    Store errors propagate to the caller unchanged.
    """
    records = ProgressStoreDB(user_id).all()
    submissions = QuizSubmissionStoreDB(user_id).all()
    return overview(records, submissions, today)
