#!/usr/bin/env python3
# solo/db/__init__.py
from __future__ import annotations

"""
Package for database persistence and configuration.

Provides:
- Configuration loader with file and SOLO_* environment overrides (`config`).
- SQLite gateway for users, posts, weekly posts, guestbook and custom commands (`db`).
- First-run data: bootstrap admin and demo content (`seed`).
"""


from .config import AppConfig, load_config, ensure_config_interactive, validate_or_create_config
from .db import (
    Database,
    DuplicateNameError,
    DuplicateUserError,
    GuestbookEntry,
    PersistenceError,
    Post,
    WeeklyPost,
    current_week_number,
)
from .seed import ensure_admin, seed_demo_data

__all__ = [
    "AppConfig",
    "load_config",
    "ensure_config_interactive",
    "validate_or_create_config",
    "Database",
    "DuplicateNameError",
    "DuplicateUserError",
    "GuestbookEntry",
    "PersistenceError",
    "Post",
    "WeeklyPost",
    "current_week_number",
    "ensure_admin",
    "seed_demo_data",
]
