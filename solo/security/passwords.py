#!/usr/bin/env python3
# solo/security/passwords.py
from __future__ import annotations

"""
Password hashing and username rules.

Hashes are produced with the scrypt KDF from `cryptography` and stored as a
self-describing string:

    scrypt$<n>$<r>$<p>$<salt_hex>$<hash_hex>

so cost parameters can be raised later without invalidating stored hashes.
"""

import os
import re

from cryptography.exceptions import InvalidKey
from cryptography.hazmat.primitives.kdf.scrypt import Scrypt

SCHEME = "scrypt"
SALT_BYTES = 16
KEY_LENGTH = 32
# ~16 MiB of memory per derivation
SCRYPT_N = 2 ** 14
SCRYPT_R = 8
SCRYPT_P = 1

USERNAME_RE = re.compile(r"^[A-Za-z0-9_.-]{2,32}$")


def _kdf(salt: bytes, n: int, r: int, p: int) -> Scrypt:
    return Scrypt(salt=salt, length=KEY_LENGTH, n=n, r=r, p=p)


def hash_password(password: str, *, n: int = SCRYPT_N, r: int = SCRYPT_R, p: int = SCRYPT_P) -> str:
    """Return the encoded scrypt hash for `password` with a fresh random salt."""
    if not isinstance(password, str) or password == "":
        raise ValueError("Password must be a non-empty string.")
    salt = os.urandom(SALT_BYTES)
    derived = _kdf(salt, n, r, p).derive(password.encode("utf-8"))
    return f"{SCHEME}${n}${r}${p}${salt.hex()}${derived.hex()}"


def verify_password(password: str, encoded: str) -> bool:
    """Check `password` against an encoded hash. Malformed hashes never verify."""
    try:
        scheme, n, r, p, salt_hex, hash_hex = encoded.split("$")
        if scheme != SCHEME:
            return False
        kdf = _kdf(bytes.fromhex(salt_hex), int(n), int(r), int(p))
        expected = bytes.fromhex(hash_hex)
    except (AttributeError, ValueError):
        return False
    try:
        kdf.verify(password.encode("utf-8"), expected)
    except InvalidKey:
        return False
    return True


def needs_rehash(encoded: str) -> bool:
    """True when a stored hash was made with weaker parameters than the current ones."""
    try:
        scheme, n, r, p, _salt, _hash = encoded.split("$")
        return scheme != SCHEME or (int(n), int(r), int(p)) < (SCRYPT_N, SCRYPT_R, SCRYPT_P)
    except (AttributeError, ValueError):
        return True


def validate_username(username: str) -> str:
    """Return the username unchanged if it is acceptable, else raise ValueError."""
    if not USERNAME_RE.fullmatch(username or ""):
        raise ValueError(
            "Username must be 2-32 characters: letters, numbers, '.', '_' or '-'")
    return username
