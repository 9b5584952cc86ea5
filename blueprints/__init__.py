"""
Blueprint registration for the Arduino course platform.

Each blueprint carries its own /api prefix.
"""

from __future__ import annotations


def register_blueprints(app):
    from blueprints.core import bp as core_bp
    from blueprints.progress import bp as progress_bp
    from blueprints.analytics import bp as analytics_bp
    from blueprints.lessons import bp as lessons_bp

    app.register_blueprint(core_bp)
    app.register_blueprint(progress_bp)
    app.register_blueprint(analytics_bp)
    app.register_blueprint(lessons_bp)
