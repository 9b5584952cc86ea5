"""
SQLite database layer for the Arduino course platform.

Uses raw sqlite3 with WAL mode and parameterized queries. The application
factory builds one ``Database`` handle from config; requests borrow a pooled
connection through ``get_db()`` and hand it back on teardown.
"""

from __future__ import annotations

import logging
import sqlite3
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from queue import Empty, Full, Queue

from flask import Flask, current_app, g

logger = logging.getLogger(__name__)


SCHEMA = """
-- Users
CREATE TABLE IF NOT EXISTS users (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    email TEXT UNIQUE NOT NULL,
    password_hash TEXT NOT NULL,
    role TEXT NOT NULL DEFAULT 'student',
    created_at TEXT NOT NULL DEFAULT ''
);

-- Security audit trail
CREATE TABLE IF NOT EXISTS audit_log (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id INTEGER,
    action TEXT NOT NULL,
    detail TEXT NOT NULL DEFAULT '',
    ip_address TEXT NOT NULL DEFAULT '',
    user_agent TEXT NOT NULL DEFAULT '',
    created_at TEXT NOT NULL DEFAULT ''
);

-- Per-user, per-lesson progress
CREATE TABLE IF NOT EXISTS progress (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
    lesson_id TEXT NOT NULL CHECK (lesson_id GLOB 'day[0-9][0-9]'),
    completed_activities TEXT NOT NULL DEFAULT '[]',
    quiz_scores TEXT NOT NULL DEFAULT '[]',
    code_snapshots TEXT NOT NULL DEFAULT '[]',
    watched_videos TEXT NOT NULL DEFAULT '[]',
    completed INTEGER NOT NULL DEFAULT 0,
    completed_at TEXT NOT NULL DEFAULT '',
    last_accessed_at TEXT NOT NULL DEFAULT '',
    created_at TEXT NOT NULL DEFAULT '',
    updated_at TEXT NOT NULL DEFAULT '',
    UNIQUE(user_id, lesson_id)
);
CREATE INDEX IF NOT EXISTS idx_progress_user_accessed ON progress(user_id, last_accessed_at);

-- Quiz submission history (append-only)
CREATE TABLE IF NOT EXISTS quiz_submissions (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
    lesson_id TEXT NOT NULL,
    quiz_id TEXT NOT NULL,
    answers TEXT NOT NULL DEFAULT '[]',
    total_score REAL NOT NULL DEFAULT 0,
    max_score REAL NOT NULL CHECK (max_score > 0),
    submitted_at TEXT NOT NULL DEFAULT ''
);
CREATE INDEX IF NOT EXISTS idx_submissions_user_lesson ON quiz_submissions(user_id, lesson_id, submitted_at);
"""


class Database:
    """Store handle owning a bounded pool of SQLite connections."""

    def __init__(self, path: str, pool_size: int = 5, timeout: float = 5.0):
        self.path = path
        # every ":memory:" connection is a separate empty database
        self.pool_size = 1 if path == ":memory:" else pool_size
        self.timeout = timeout
        self._pool: Queue[sqlite3.Connection] = Queue(maxsize=self.pool_size)
        self._lock = threading.Lock()
        self._created = 0
        self._closed = False

    def _create_connection(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.path, timeout=self.timeout, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode=WAL")
        conn.execute("PRAGMA foreign_keys=ON")
        return conn

    def acquire(self) -> sqlite3.Connection:
        """Take a connection from the pool, opening a new one while under the limit."""
        if self._closed:
            raise RuntimeError("Database handle is closed")
        try:
            return self._pool.get(block=False)
        except Empty:
            pass
        with self._lock:
            if self._created < self.pool_size:
                self._created += 1
                logger.debug("Opening connection %d/%d to %s", self._created, self.pool_size, self.path)
                return self._create_connection()
        return self._pool.get(block=True, timeout=self.timeout)

    def release(self, conn: sqlite3.Connection) -> None:
        """Return a connection to the pool, discarding any uncommitted work."""
        try:
            conn.rollback()
        except sqlite3.Error:
            logger.warning("Dropping broken connection to %s", self.path, exc_info=True)
            self._discard(conn)
            return
        if self._closed:
            self._discard(conn)
            return
        try:
            self._pool.put(conn, block=False)
        except Full:
            self._discard(conn)

    def _discard(self, conn: sqlite3.Connection) -> None:
        try:
            conn.close()
        finally:
            with self._lock:
                self._created -= 1

    @contextmanager
    def connection(self) -> Iterator[sqlite3.Connection]:
        conn = self.acquire()
        try:
            yield conn
        finally:
            self.release(conn)

    def init_schema(self) -> None:
        """Execute schema DDL to create all tables."""
        if self.path != ":memory:":
            Path(self.path).parent.mkdir(parents=True, exist_ok=True)
        with self.connection() as conn:
            conn.executescript(SCHEMA)
            conn.commit()

    def close(self) -> None:
        """Close every pooled connection; connections still lent out close on release."""
        self._closed = True
        while True:
            try:
                conn = self._pool.get(block=False)
            except Empty:
                break
            self._discard(conn)
        logger.info("Closed database handle for %s", self.path)


@contextmanager
def transaction(conn: sqlite3.Connection) -> Iterator[sqlite3.Connection]:
    """Run a block under SQLite's write lock (BEGIN IMMEDIATE).

    Reads inside the block see a state no other writer can change before
    the block commits.
    The connection must not hold uncommitted work when the block starts.
    """
    if conn.in_transaction:
        raise RuntimeError("Connection already has an open transaction with uncommitted work")
    conn.execute("BEGIN IMMEDIATE")
    try:
        yield conn
    except BaseException:
        conn.rollback()
        raise
    conn.commit()


def get_database() -> Database:
    return current_app.extensions["database"]


def get_db() -> sqlite3.Connection:
    """Return the request's pooled connection from Flask g, borrowing one if needed."""
    if "db" not in g:
        g.db = get_database().acquire()
    return g.db


def close_db(e=None) -> None:
    """Teardown handler — give the connection back to the pool."""
    conn = g.pop("db", None)
    if conn is not None:
        get_database().release(conn)


def init_app(app: Flask, database: Database) -> None:
    """Attach the store handle, create the schema and register teardown."""
    app.extensions["database"] = database
    database.init_schema()
    app.teardown_appcontext(close_db)
