#!/usr/bin/env python3
# solo/interface/parser.py
from __future__ import annotations

"""
Argument parsing helpers for commands.

Responsibilities:
- Tokenize a command line into shell-like tokens.
- Split a line into (command name, argument list).
- Small helpers handlers use on their argument lists.
"""

import shlex
from typing import Sequence


class ParseError(ValueError):
    """A command line could not be tokenized (e.g. an unterminated quote)."""


def tokenize(command_line: str) -> list[str]:
    """Split a raw command line into tokens using POSIX rules."""
    try:
        return shlex.split(command_line, posix=True)
    except ValueError as exc:
        raise ParseError(f"Parse error: {exc}") from exc


def parse_line(command_line: str) -> tuple[str, list[str]]:
    """Return (name, args) for a line; name is '' for a blank line."""
    tokens = tokenize(command_line)
    if not tokens:
        return "", []
    name, *args = tokens
    return name, args


def join_args(args: Sequence[str], start: int = 0) -> str:
    """Re-join argument tokens (from index `start`) into free text."""
    return " ".join(args[start:]).strip()


def split_fields(text: str, separator: str = "|") -> list[str]:
    """Split `a | b | c` free text into stripped fields."""
    return [part.strip() for part in text.split(separator)]


def parse_int(text: str | None, default: int | None = None) -> int | None:
    """Parse a positive integer argument, returning `default` when it isn't one."""
    if text is None:
        return default
    try:
        value = int(text)
    except ValueError:
        return default
    return value if value > 0 else default
