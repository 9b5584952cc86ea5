"""
Flask extension singletons shared across modules.

Created unbound here and attached to the app in create_app().
"""

from __future__ import annotations

from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

limiter = Limiter(key_func=get_remote_address, default_limits=["1000 per hour"])
