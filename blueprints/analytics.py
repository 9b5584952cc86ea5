"""Learner analytics routes."""

from __future__ import annotations

from flask import Blueprint
from flask_login import login_required

from analytics import build_overview
from helpers import api_success, require_self

bp = Blueprint("analytics", __name__, url_prefix="/api/analytics")


@bp.route("/<int:user_id>/overview")
@login_required
def overview(user_id):
    require_self(user_id)
    return api_success(build_overview(user_id))
