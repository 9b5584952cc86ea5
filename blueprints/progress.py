"""Lesson progress routes: activities, quizzes, code snapshots, videos, completion."""

from __future__ import annotations

import logging

from flask import Blueprint
from flask_login import login_required

from db_stores import ProgressStoreDB, QuizSubmissionStoreDB
from helpers import api_success, current_user_id, parse_body, require_self, valid_lesson_required
from schemas import ActivityRequest, CodeSnapshotRequest, QuizRequest, VideoRequest

logger = logging.getLogger(__name__)

bp = Blueprint("progress", __name__, url_prefix="/api/progress")


@bp.route("/<int:user_id>")
@login_required
def user_progress(user_id):
    """All progress records for a user, sorted by lesson."""
    require_self(user_id)
    records = ProgressStoreDB(user_id).all()
    return api_success([r.to_dict() for r in records])


@bp.route("/<lesson_id>/activity", methods=["POST"])
@login_required
@valid_lesson_required
def complete_activity(lesson_id):
    body = parse_body(ActivityRequest)
    record = ProgressStoreDB(current_user_id()).complete_activity(lesson_id, body.activity_id)
    return api_success(record.to_dict())


@bp.route("/<lesson_id>/quiz", methods=["POST"])
@login_required
@valid_lesson_required
def submit_quiz(lesson_id):
    body = parse_body(QuizRequest)
    uid = current_user_id()
    submission = body.submission(uid, lesson_id)
    record = ProgressStoreDB(uid).submit_quiz_answers(lesson_id, body.scores(), submission)

    data = record.to_dict()
    if submission is not None:
        logger.info(
            "Quiz %s submitted for %s by user %s: %s/%s",
            submission.quiz_id, lesson_id, uid, submission.total_score, submission.max_score,
        )
        data["submission"] = submission.to_dict()
    return api_success(data)


@bp.route("/<lesson_id>/submissions")
@login_required
@valid_lesson_required
def quiz_submissions(lesson_id):
    submissions = QuizSubmissionStoreDB(current_user_id()).for_lesson(lesson_id)
    return api_success([s.to_dict() for s in submissions])


@bp.route("/<lesson_id>/code", methods=["POST"])
@login_required
@valid_lesson_required
def save_code(lesson_id):
    body = parse_body(CodeSnapshotRequest)
    record = ProgressStoreDB(current_user_id()).save_code_snapshot(
        lesson_id, body.code, body.editor_id,
    )
    return api_success(record.to_dict())


@bp.route("/<lesson_id>/video", methods=["POST"])
@login_required
@valid_lesson_required
def watch_video(lesson_id):
    body = parse_body(VideoRequest)
    record = ProgressStoreDB(current_user_id()).record_video(lesson_id, body.video_url)
    return api_success(record.to_dict())


@bp.route("/<lesson_id>/complete", methods=["PUT"])
@login_required
@valid_lesson_required
def mark_complete(lesson_id):
    uid = current_user_id()
    record = ProgressStoreDB(uid).mark_complete(lesson_id)
    logger.info("User %s completed %s", uid, lesson_id)
    return api_success(record.to_dict())
