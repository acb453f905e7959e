#!/usr/bin/env python3
# solo/security/__init__.py
from __future__ import annotations

"""
Package for credential handling.

Provides:
- Password hashing / verification (`hash_password`, `verify_password`, `needs_rehash`).
- Username rules (`validate_username`, `USERNAME_RE`).
"""


from .passwords import (
    USERNAME_RE,
    hash_password,
    needs_rehash,
    validate_username,
    verify_password,
)

__all__ = [
    "USERNAME_RE",
    "hash_password",
    "needs_rehash",
    "validate_username",
    "verify_password",
]
