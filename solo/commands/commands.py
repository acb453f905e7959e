#!/usr/bin/env python3
# solo/commands/commands.py
from __future__ import annotations

"""
Command registry and decorator utilities.

This module provides:
- CommandRegistry: in-memory registry of commands and aliases.
- CommandListing: lazy, restartable enumeration used by help/listing UIs.
- command: decorator that attaches a Command to a handler function.
- collect_commands: gather decorated/exported commands from a module.

Registries are constructed explicitly and passed by reference; there is no
process-wide instance.
"""

import logging
import threading
from types import ModuleType
from typing import Callable, Dict, Iterable, Iterator, Optional

from solo.commands.command_types import (
    Command,
    CommandSummary,
    DuplicateCommandError,
    User,
)

log = logging.getLogger(__name__)

# Attribute used by the decorator to mark handler functions
COMMAND_ATTR = "__solo_command__"


class CommandListing:
    """Iterable view over a registry; every iteration starts from the beginning."""

    def __init__(self, registry: "CommandRegistry", include_admin: bool, user: User | None) -> None:
        self._registry = registry
        self._include_admin = include_admin
        self._user = user

    def __iter__(self) -> Iterator[CommandSummary]:
        show_admin = self._include_admin and self._user is not None and self._user.is_admin
        for command_obj in self._registry.all():
            if command_obj.admin_only and not show_admin:
                continue
            yield command_obj.summary()


class CommandRegistry:
    """Holds all command definitions and provides lookup utilities."""

    def __init__(self) -> None:
        # Primary name -> Command (dict keeps registration order)
        self._commands_by_name: Dict[str, Command] = {}
        # Alias name -> primary name
        self._alias_to_primary: Dict[str, str] = {}
        # Category -> description text
        self._category_descriptions: Dict[str, str] = {}
        # Non-fatal problems seen during registration (alias collisions)
        self.warnings: list[str] = []
        self._lock = threading.RLock()

    # ---------------- Registration ----------------

    def register(self, command_obj: Command) -> Command:
        """Register a command and its aliases. Duplicate names are fatal, alias clashes are not."""
        primary_key = command_obj.name.lower()
        if not primary_key:
            raise ValueError("Command name must be a non-empty string.")

        with self._lock:
            if primary_key in self._commands_by_name:
                raise DuplicateCommandError(
                    f"Command '{command_obj.name}' is already registered")

            self._commands_by_name[primary_key] = command_obj

            kept: list[str] = []
            for alias in command_obj.aliases:
                alias_key = alias.lower()
                if alias_key in self._alias_to_primary or alias_key in self._commands_by_name:
                    owner = self._alias_to_primary.get(alias_key, alias_key)
                    message = (f"Alias '{alias}' for command '{command_obj.name}' "
                               f"is already used by '{owner}'")
                    self.warnings.append(message)
                    log.warning(message)
                    continue
                self._alias_to_primary[alias_key] = primary_key
                kept.append(alias_key)
            command_obj.aliases = kept

        return command_obj

    def register_all(self, commands: Iterable[Command]) -> int:
        count = 0
        for command_obj in commands:
            self.register(command_obj)
            count += 1
        return count

    # ---------------- Lookup ----------------

    def resolve(self, name: str) -> Optional[Command]:
        """Return the command by primary name or alias, or None if not found."""
        key = (name or "").lower()
        if key in self._commands_by_name:
            return self._commands_by_name[key]
        if key in self._alias_to_primary:
            return self._commands_by_name[self._alias_to_primary[key]]
        return None

    get = resolve

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.resolve(name) is not None

    def __len__(self) -> int:
        return len(self._commands_by_name)

    def all(self) -> list[Command]:
        """Return only primary commands (avoid duplicates in UIs)."""
        return list(self._commands_by_name.values())

    def list(self, include_admin: bool = False, user: User | None = None) -> CommandListing:
        """Summaries in registration order, hiding admin commands from non-admins."""
        return CommandListing(self, include_admin, user)

    def names(self) -> list[str]:
        """Return a list of all primary names and aliases for completion."""
        return [*self._commands_by_name.keys(), *self._alias_to_primary.keys()]

    # ---------------- Categories ----------------

    def categories(self) -> dict[str, list[Command]]:
        """Group commands by category for help output."""
        grouped: dict[str, list[Command]] = {}
        for cmd in self._commands_by_name.values():
            grouped.setdefault(cmd.category, []).append(cmd)
        return grouped

    def set_category_description(self, category: str, description: str) -> None:
        """Set display text for a category in help menus."""
        self._category_descriptions[category] = description.strip()

    def get_category_description(self, category: str) -> str:
        """Return display text for a category, or an empty string."""
        return self._category_descriptions.get(category, "")


def command(
    *,
    name: str | None = None,
    description: str | None = None,
    usage: str | None = None,
    aliases: list[str] | None = None,
    requires_auth: bool = False,
    admin_only: bool = False,
    category: str | None = None,
    subcommands: tuple[str, ...] = (),
) -> Callable[[Callable[..., object]], Callable[..., object]]:
    """
    Decorator marking a function as a built-in command.

    - Function name is transformed from snake_case to kebab-case for `name` if not provided.
    - The description falls back to the first line of the docstring.
    - The Command is attached to the function; the loader registers it.
    """

    def wrapper(func: Callable[..., object]) -> Callable[..., object]:
        doc_line = (func.__doc__ or "").strip().splitlines()
        command_obj = Command(
            name=(name or func.__name__).replace("_", "-"),
            description=(description or (doc_line[0] if doc_line else "")).strip(),
            usage=usage or "",
            handler=func,  # type: ignore[arg-type]
            aliases=list(aliases or []),
            requires_auth=requires_auth,
            admin_only=admin_only,
            category=category or "general",
            subcommands=tuple(subcommands),
        )
        command_obj.module = func.__module__
        setattr(func, COMMAND_ATTR, command_obj)
        return func

    return wrapper


def collect_commands(module: ModuleType) -> list[Command]:
    """Return the commands a module defines, in definition order.

    Sources: functions decorated with @command, plus COMMAND / COMMANDS exports.
    """
    found: list[Command] = []
    seen: set[int] = set()

    def _add(obj: object) -> None:
        if isinstance(obj, Command) and id(obj) not in seen:
            seen.add(id(obj))
            if not obj.module:
                obj.module = module.__name__
            found.append(obj)

    for value in vars(module).values():
        attached = getattr(value, COMMAND_ATTR, None)
        if attached is not None and getattr(value, "__module__", None) == module.__name__:
            _add(attached)

    _add(getattr(module, "COMMAND", None))
    exported = getattr(module, "COMMANDS", None)
    if isinstance(exported, Iterable) and not isinstance(exported, (str, bytes)):
        for item in exported:
            _add(item)
    return found
