#!/usr/bin/env python3
# solo/interface/completion.py
from __future__ import annotations

"""
Command line completion utilities.

This module offers token-aware suggestions for:
- First token: REPL verbs + the command names and aliases the user may run.
- 'help <partial>': categories and command names.
- Second token: the command's declared subcommands.
"""

import shlex

from solo.commands import CommandRegistry, User

# Verbs handled by the REPL itself, always available
BUILT_IN_COMMANDS: tuple[str, ...] = ("exit", "quit", "clear", "cls")


def _split_current_token(raw_input: str) -> tuple[list[str], str]:
    """
    Return (parts, current_prefix).

    Behavior:
      - Use shlex.split for shell-like parsing (POSIX).
      - If trailing whitespace exists, append an empty token to signal a new one.
      - On malformed quotes, fall back to whitespace splitting.
    """
    if not raw_input:
        return [], ""

    try:
        parts = shlex.split(raw_input, posix=True)
    except ValueError:
        parts = raw_input.split()
    if raw_input[-1].isspace():
        parts.append("")
    current_prefix = parts[-1] if parts else ""
    return parts, current_prefix


def _visible_names(registry: CommandRegistry, user: User | None) -> list[str]:
    names: list[str] = []
    for summary in registry.list(include_admin=True, user=user):
        if summary.requires_auth and user is None:
            continue
        names.append(summary.name)
        names.extend(summary.aliases)
    return names


def suggest(registry: CommandRegistry, text_before_cursor: str, user: User | None = None) -> list[str]:
    """
    Produce suggestions based on the current buffer content.

    Strategy:
      1) First token: REPL verbs plus runnable command names/aliases.
      2) 'help <partial>': categories plus command names.
      3) Second token of a known command: its subcommands.
    """
    parts, current_prefix = _split_current_token(text_before_cursor.lstrip())

    if len(parts) <= 1:
        universe = {*BUILT_IN_COMMANDS, *_visible_names(registry, user)}
        return sorted(w for w in universe if w.startswith(current_prefix.lower()))

    command_obj = registry.resolve(parts[0])
    if command_obj is None or len(parts) > 2:
        return []

    if command_obj.name == "help":
        universe = set(registry.categories()) | set(_visible_names(registry, user))
        return sorted(w for w in universe if w.startswith(current_prefix))

    return [w for w in command_obj.subcommands if w.startswith(current_prefix)]
