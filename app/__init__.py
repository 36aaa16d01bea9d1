"""Core utilities for the alumni portal service."""

from __future__ import annotations

from typing import Any

from .config import Settings, load_settings
from .storage import RecordStore, open_store


def create_app(*args: Any, **kwargs: Any):
    """Factory function that returns the alumni portal API application."""

    from .service import create_app as _create_app

    return _create_app(*args, **kwargs)


__all__ = [
    "RecordStore",
    "Settings",
    "create_app",
    "load_settings",
    "open_store",
]
