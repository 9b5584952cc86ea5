"""Service-level routes."""

from __future__ import annotations

from flask import Blueprint

from helpers import api_success

bp = Blueprint("core", __name__)


@bp.route("/health")
def health():
    return api_success({"status": "ok", "message": "Arduino Learning Platform API is running"})
