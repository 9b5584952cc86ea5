"""
User Authentication — JSON auth blueprint and bearer-token login manager.

Provides register, login and me routes under /api/auth.
Uses werkzeug.security for password hashing and itsdangerous for signed,
time-limited bearer tokens. Flask-Login resolves the token on every request.
"""

from __future__ import annotations

import sqlite3
from datetime import datetime

from flask import Blueprint, current_app, g
from flask_login import LoginManager, UserMixin, current_user, login_required
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer
from werkzeug.security import check_password_hash, generate_password_hash

from audit import log_event
from database import get_db
from extensions import limiter
from helpers import api_error, api_success, parse_body
from schemas import LoginRequest, RegisterRequest

TOKEN_SALT = "arduino-course-auth"

auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")
login_manager = LoginManager()


class User(UserMixin):
    """Wraps a DB user row for Flask-Login."""

    def __init__(self, id: int, name: str, email: str, role: str = "student",
                 created_at: str = ""):
        self.id = id
        self.name = name
        self.email = email
        self.role = role
        self.created_at = created_at

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "role": self.role,
            "createdAt": self.created_at,
        }

    @staticmethod
    def get(user_id: int):
        db = get_db()
        row = db.execute(
            "SELECT id, name, email, role, created_at FROM users WHERE id = ?", (user_id,),
        ).fetchone()
        if row:
            return User(row["id"], row["name"], row["email"], row["role"], row["created_at"])
        return None

    @staticmethod
    def get_by_email(email: str):
        db = get_db()
        return db.execute(
            "SELECT id, name, email, password_hash, role, created_at FROM users WHERE email = ?",
            (email,),
        ).fetchone()


def _serializer() -> URLSafeTimedSerializer:
    return URLSafeTimedSerializer(current_app.config["SECRET_KEY"], salt=TOKEN_SALT)


def issue_token(user_id: int) -> str:
    return _serializer().dumps({"uid": user_id})


def verify_token(token: str) -> int | None:
    """User ID carried by a valid, unexpired token; None otherwise."""
    max_age = current_app.config.get("TOKEN_MAX_AGE", 7 * 24 * 3600)
    try:
        data = _serializer().loads(token, max_age=max_age)
    except SignatureExpired:
        current_app.logger.info("Rejected expired bearer token")
        return None
    except BadSignature:
        return None
    uid = data.get("uid") if isinstance(data, dict) else None
    return uid if isinstance(uid, int) else None


@login_manager.user_loader
def load_user(user_id):
    return User.get(int(user_id))


@login_manager.request_loader
def load_user_from_request(req):
    scheme, _, token = req.headers.get("Authorization", "").partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    uid = verify_token(token.strip())
    user = User.get(uid) if uid is not None else None
    if user is not None:
        g.user_id = user.id
    return user


@login_manager.unauthorized_handler
def unauthorized():
    return api_error("Not authenticated", 401)


def _validate_password(password: str) -> str | None:
    """Return an error message if password is too weak, else None."""
    if len(password) < 8:
        return "Password must be at least 8 characters."
    if not any(c.isupper() for c in password):
        return "Password must contain at least one uppercase letter."
    if not any(c.islower() for c in password):
        return "Password must contain at least one lowercase letter."
    if not any(c.isdigit() for c in password):
        return "Password must contain at least one digit."
    return None


@auth_bp.route("/register", methods=["POST"])
@limiter.limit("5 per hour")
def register():
    body = parse_body(RegisterRequest)

    pw_error = _validate_password(body.password)
    if pw_error:
        return api_error(pw_error, 400)

    if User.get_by_email(body.email):
        return api_error("An account with this email already exists.", 409)

    db = get_db()
    now = datetime.now().isoformat()
    try:
        cur = db.execute(
            "INSERT INTO users (name, email, password_hash, created_at) VALUES (?, ?, ?, ?)",
            (body.name, body.email, generate_password_hash(body.password), now),
        )
        db.commit()
    except sqlite3.IntegrityError:
        # lost a race with a concurrent registration for the same email
        db.rollback()
        return api_error("An account with this email already exists.", 409)

    user_id = cur.lastrowid

    log_event("register", user_id, f"email={body.email}")
    user = User(user_id, body.name, body.email, created_at=now)
    return api_success({"token": issue_token(user_id), "user": user.to_dict()}, status=201)


@auth_bp.route("/login", methods=["POST"])
@limiter.limit("10 per minute")
def login():
    body = parse_body(LoginRequest)

    row = User.get_by_email(body.email)
    if not row or not check_password_hash(row["password_hash"], body.password):
        log_event("login_failed", row["id"] if row else None, f"email={body.email}")
        return api_error("Invalid email or password.", 401)

    log_event("login_success", row["id"])
    user = User(row["id"], row["name"], row["email"], row["role"], row["created_at"])
    return api_success({"token": issue_token(user.id), "user": user.to_dict()})


@auth_bp.route("/me")
@login_required
def me():
    return api_success(current_user.to_dict())
