# =============================================================================
# EventHub - lifecycle backend for NGO events and mega-events
# =============================================================================

from __future__ import annotations

import tomllib
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path

_PYPROJECT = Path(__file__).resolve().parent.parent / "pyproject.toml"


def _read_version() -> str:
    """Installed distribution first; a source checkout falls back to pyproject.toml"""
    try:
        return version("eventhub")
    except PackageNotFoundError:
        if not _PYPROJECT.exists():
            return "0.0.0+unknown"
        with _PYPROJECT.open("rb") as fh:
            return tomllib.load(fh)["project"]["version"]


__version__: str = _read_version()
__description__: str = "EventHub - NGO events and mega-events lifecycle backend"

__all__ = ["__version__", "__description__"]
