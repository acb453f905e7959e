#!/usr/bin/env python3
# solo/interface/handler.py
from __future__ import annotations

"""
Command dispatch and help formatting.

The Dispatcher is the only path from user input to a command handler:
  1) resolve the name or alias,
  2) enforce requires_auth / admin_only before the handler runs,
  3) invoke inside a failure boundary,
  4) normalize whatever came back into a CommandResult.
"""

import difflib
import logging
from typing import Sequence

from solo.commands import (
    Command,
    CommandRegistry,
    CommandResult,
    CommandSummary,
    ScriptTimeout,
    SessionContext,
    User,
)
from solo.interface.parser import ParseError, parse_line
from solo.ui import escape_markup, format_table
from solo.ui.utils import theme

log = logging.getLogger(__name__)

# Short hint shown at startup and after unknown commands
HELP_TEXT = "Type 'help <command>' for more information on a specific command."

AUTH_REQUIRED = "This command requires authentication. Please login first."
ADMIN_REQUIRED = "This command requires admin privileges."
TIMED_OUT = "timed out"


def _suggest_similar_names(registry: CommandRegistry, name: str, user: User | None) -> list[str]:
    """Close matches among the commands this user may see."""
    visible: list[str] = []
    for summary in registry.list(include_admin=True, user=user):
        visible.append(summary.name)
        visible.extend(summary.aliases)
    return difflib.get_close_matches(name.lower(), visible, n=3, cutoff=0.6)


def _describe_failure(exc: BaseException) -> str:
    if isinstance(exc, ScriptTimeout):
        return TIMED_OUT
    message = str(exc).strip()
    return f"{type(exc).__name__}: {message}" if message else type(exc).__name__


class Dispatcher:
    """Resolve, authorize and invoke commands for one registry."""

    def __init__(self, registry: CommandRegistry) -> None:
        self.registry = registry

    def execute(self, name: str, args: Sequence[str], context: SessionContext) -> CommandResult:
        command_obj = self.registry.resolve(name)
        if command_obj is None:
            suggestions = _suggest_similar_names(self.registry, name, context.user)
            return CommandResult.fail(
                f"Unknown command: {name}", data={"suggestions": suggestions})

        if command_obj.requires_auth and not context.is_authenticated:
            return CommandResult.fail(AUTH_REQUIRED)
        if command_obj.admin_only and not context.is_admin:
            return CommandResult.fail(ADMIN_REQUIRED)

        try:
            return CommandResult.coerce(command_obj.invoke(list(args), context))
        except (KeyboardInterrupt, SystemExit):
            raise
        except Exception as exc:
            log.debug("Command %s failed", command_obj.name, exc_info=True)
            return CommandResult.fail(_describe_failure(exc))

    def list_commands(self, include_admin: bool = False, user: User | None = None):
        """Lazy, restartable iterable of CommandSummary (see CommandRegistry.list)."""
        return self.registry.list(include_admin=include_admin, user=user)

    def handle_line(self, line: str, context: SessionContext) -> CommandResult | None:
        """Tokenize one input line and execute it. Returns None for blank input."""
        try:
            name, args = parse_line(line)
        except ParseError as exc:
            return CommandResult.fail(str(exc))
        if not name:
            return None
        return self.execute(name, args, context)


# ---------------------------------------------------------------------------
# Help formatting
# ---------------------------------------------------------------------------

def _visible_by_category(registry: CommandRegistry, user: User | None) -> dict[str, list[CommandSummary]]:
    grouped: dict[str, list[CommandSummary]] = {}
    for summary in registry.list(include_admin=True, user=user):
        grouped.setdefault(summary.category, []).append(summary)
    return grouped


def _flags(summary: CommandSummary | Command) -> str:
    if summary.admin_only:
        return "admin"
    if summary.requires_auth:
        return "login"
    return ""


def list_categories(registry: CommandRegistry, user: User | None = None) -> str:
    """Every visible command, grouped by category."""
    grouped = _visible_by_category(registry, user)
    if not grouped:
        return "No commands loaded."

    sections = [theme.heading("SOLO-OS Commands")]
    for category in sorted(grouped):
        description = registry.get_category_description(category)
        title = theme.secondary(category.upper())
        sections.append(f"\n{title}" + (f" {theme.dim('- ' + description)}" if description else ""))
        rows = [
            [s.name, ", ".join(s.aliases) or "-", _flags(s), escape_markup(s.description)]
            for s in sorted(grouped[category], key=lambda s: s.name)
        ]
        sections.append(format_table(rows, border=False))
    sections.append("\n" + theme.dim(HELP_TEXT))
    return "\n".join(sections)


def format_command_help(registry: CommandRegistry, name: str, user: User | None = None) -> str | None:
    """Detail for one command, or the table of a category. None when nothing matches."""
    command_obj = registry.resolve(name)
    if command_obj is not None and (not command_obj.admin_only or (user is not None and user.is_admin)):
        alias_text = ", ".join(command_obj.aliases) or "(none)"
        access = {"admin": "admins only", "login": "logged-in users"}.get(
            _flags(command_obj), "everyone")
        lines = [
            theme.primary(f"Command: {command_obj.name}"),
            f"Description: {escape_markup(command_obj.description)}",
            f"Usage:       {escape_markup(command_obj.usage)}",
            f"Aliases:     {alias_text}",
            f"Category:    {command_obj.category}",
            f"Access:      {access}",
        ]
        return "\n".join(lines)

    grouped = _visible_by_category(registry, user)
    if name in grouped:
        rows = [[s.name, ", ".join(s.aliases) or "-", escape_markup(s.description)]
                for s in sorted(grouped[name], key=lambda s: s.name)]
        return "\n".join([
            theme.heading(f"{name.upper()} commands"),
            format_table(rows, headers=["Command", "Aliases", "Description"]),
        ])
    return None
