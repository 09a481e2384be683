# app/core/fastapi_types.py
"""FastAPI with app.state typed as AppState, for editor completion in startup code"""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import FastAPI as _BaseFastAPI

if TYPE_CHECKING:
    from app.core.app_state import AppState


class FastAPI(_BaseFastAPI):
    state: AppState
