"""
Shared helpers used across blueprints.

Response envelope, body parsing and route guards.
"""

from __future__ import annotations

from collections.abc import Callable
from functools import wraps
from typing import Any, TypeVar

from flask import Response, abort, jsonify, request
from flask_login import current_user
from pydantic import BaseModel

from course import INVALID_LESSON_ID_MESSAGE, is_valid_lesson_id

ModelT = TypeVar("ModelT", bound=BaseModel)


def api_success(data: Any = None, status: int = 200) -> tuple[Response, int]:
    """Wrap a payload in the ``{success, data}`` envelope."""
    body: dict[str, Any] = {"success": True}
    if data is not None:
        body["data"] = data
    return jsonify(body), status


def api_error(message: str, status: int) -> tuple[Response, int]:
    return jsonify({"success": False, "error": message}), status


def current_user_id() -> int:
    """The authenticated user's ID. Only call behind ``login_required``."""
    return current_user.id


def parse_body(model: type[ModelT]) -> ModelT:
    """Validate the JSON body against ``model``.

    A pydantic ValidationError escapes to the app's error handler; a body
    that is not a JSON object is rejected here.
    """
    payload = request.get_json(silent=True)
    if payload is None:
        if request.get_data(cache=True):
            abort(400, description="Request body must be valid JSON")
        payload = {}
    if not isinstance(payload, dict):
        abort(400, description="Request body must be a JSON object")
    return model.model_validate(payload)


def valid_lesson_required(f: Callable) -> Callable:
    """Reject routes whose ``lesson_id`` is not ``day01`` … ``day30``."""
    @wraps(f)
    def decorated(*args: Any, **kwargs: Any) -> Any:
        if not is_valid_lesson_id(kwargs.get("lesson_id", "")):
            return api_error(INVALID_LESSON_ID_MESSAGE, 400)
        return f(*args, **kwargs)
    return decorated


def require_self(user_id: int) -> None:
    """Users may only read their own progress and analytics."""
    if user_id != current_user_id():
        abort(403, description="You can only access your own progress")
