"""Lesson metadata routes. Lesson bodies are static files served by the frontend."""

from __future__ import annotations

from flask import Blueprint

from course import INVALID_LESSON_ID_MESSAGE, course_structure, is_valid_lesson_id, lesson_metadata
from helpers import api_error, api_success

bp = Blueprint("lessons", __name__, url_prefix="/api/lessons")


@bp.route("")
def all_lessons():
    return api_success(course_structure())


@bp.route("/<day_id>")
def lesson(day_id):
    if not is_valid_lesson_id(day_id):
        return api_error(INVALID_LESSON_ID_MESSAGE, 400)
    return api_success(lesson_metadata(day_id))
