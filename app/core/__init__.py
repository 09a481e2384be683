# app/core/__init__.py
"""Process wiring: app state, lifespan, routes and error mapping"""

from app import __version__
from app.core.app_state import AppState, get_start_time

__all__ = ["__version__", "AppState", "get_start_time"]
