#!/usr/bin/env python3
# solo/db/seed.py
from __future__ import annotations

"""
First-run data.

Provides:
- ensure_admin: create the bootstrap admin account when no admin exists.
- seed_demo_data: idempotent sample board content (users, posts, weekly
  post, guestbook entry and one custom command) for demos and manual testing.
"""

import logging

from solo.db.db import Database

log = logging.getLogger(__name__)

DEMO_USER = "sysop"
DEMO_GUEST_NAME = "The Sysop"


def ensure_admin(db: Database, username: str = "admin", password: str = "admin") -> bool:
    """Create the bootstrap admin if the board has none. Returns True when created."""
    if db.count_admins() > 0:
        return False
    existing = db.get_user_by_username(username)
    if existing is not None:
        db.set_admin(existing.id, True)
        log.warning("No admin found; promoted existing user %s", username)
        return True
    db.create_user(username, password, is_admin=True)
    log.warning("Created default admin user %s; change its password", username)
    return True


def seed_demo_data(db: Database) -> bool:
    """Populate sample content once. Returns False if the demo user already exists."""
    if db.get_user_by_username(DEMO_USER) is not None:
        log.debug("Demo data already present")
        return False

    user_id = db.create_user(DEMO_USER, DEMO_USER)
    db.update_profile(
        user_id,
        bio="Keeper of this board. Ask me anything about SOLO-OS.",
        contact="Find me in the main room most evenings.",
        status="Setting up the board",
    )
    db.create_post(
        user_id,
        "just setting up my solo",
        "First post on SOLO-OS! A nostalgic BBS for the house.",
    )
    db.create_post(
        user_id,
        "ANNOUNCEMENT",
        "Welcome! Type help to see what you can do here.",
        "announce",
    )
    db.create_post(user_id, "Status Update", "Setting up the board", "status")
    db.upsert_weekly_post(
        user_id,
        db.current_week_number(),
        "Installed the board and wrote the welcome post.",
        "Invite the first residents and collect feedback.",
        "The board boots cleanly.",
    )
    if not db.guestbook_has_name(DEMO_GUEST_NAME):
        db.add_guestbook_entry(DEMO_GUEST_NAME, "Greetings from the sysop's desk!")
    if db.find_custom_command_by_name("hello") is None:
        db.insert_custom_command(
            user_id,
            "hello",
            "Say hello to someone",
            'return "hello " + default(args[0], "world");',
        )
    log.info("Seeded demo data")
    return True
