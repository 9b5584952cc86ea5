"""
Arduino Course Platform — Flask API Application

Progress tracking, quiz history and learner analytics for the 30-lesson
Arduino course. Lesson content is served statically by the frontend.
"""

from __future__ import annotations

import atexit
import os
from typing import Any

from flask import Flask, Response, request
from pydantic import ValidationError
from werkzeug.exceptions import HTTPException

import database
from auth import auth_bp, login_manager
from blueprints import register_blueprints
from course import validate_categories
from extensions import limiter
from helpers import api_error
from logging_config import init_logging
from schemas import validation_message


def create_app(test_config: dict[str, Any] | None = None,
               store: database.Database | None = None) -> Flask:
    app = Flask(__name__)

    # Load config
    if test_config is not None:
        app.config.update(test_config)
    else:
        from config import config_by_name
        env = os.environ.get("FLASK_ENV", "development")
        cfg = config_by_name.get(env, config_by_name["development"])
        app.config.from_object(cfg)
        if hasattr(cfg, "validate"):
            cfg.validate()

    app.secret_key = app.config.get("SECRET_KEY", os.environ.get("SECRET_KEY", "dev-key-change-in-production"))

    # Category ranges must partition day01..day30 before any analytics run
    validate_categories()

    # Structured logging
    init_logging(app)

    # Store handle: opened here, closed at process exit
    if store is None:
        store = database.Database(
            app.config["DATABASE"],
            pool_size=app.config.get("DATABASE_POOL_SIZE", 5),
            timeout=app.config.get("DATABASE_TIMEOUT", 5.0),
        )
        atexit.register(store.close)
    database.init_app(app, store)

    # Rate limiter (disabled in testing)
    limiter.init_app(app)
    if app.config.get("TESTING"):
        limiter.enabled = False

    # Register auth blueprint and login manager
    app.register_blueprint(auth_bp)
    login_manager.init_app(app)

    # Register all application blueprints
    register_blueprints(app)

    # Every error leaves in the {success: false, error} envelope
    @app.errorhandler(HTTPException)
    def handle_http_error(e: HTTPException):
        return api_error(e.description or e.name, e.code or 500)

    @app.errorhandler(ValidationError)
    def handle_validation_error(e: ValidationError):
        return api_error(validation_message(e), 400)

    @app.errorhandler(Exception)
    def handle_unexpected_error(e: Exception):
        app.logger.exception("Unhandled error on %s %s", request.method, request.path)
        return api_error("Server error", 500)

    # Security headers and CORS for the course frontend
    @app.after_request
    def set_response_headers(response: Response) -> Response:
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        frontend = app.config.get("FRONTEND_URL", "")
        if frontend and request.headers.get("Origin") == frontend:
            response.headers["Access-Control-Allow-Origin"] = frontend
            response.headers["Access-Control-Allow-Headers"] = "Authorization, Content-Type"
            response.headers["Access-Control-Allow-Methods"] = "GET, POST, PUT, OPTIONS"
            response.headers["Vary"] = "Origin"
        return response

    return app


if __name__ == "__main__":
    create_app().run(debug=True, port=int(os.environ.get("PORT", "5000")))
