#!/usr/bin/env python3
# solo/commands/dynamic.py
from __future__ import annotations

"""
Loader for user-authored (custom) commands.

Custom commands live in the database as text. At startup every record is
compiled with the safe script language and registered under its namespaced
name (`custom_<name>`), with the bare name as an alias where it is free.
Each record is isolated: a broken body is logged and skipped, never allowed
to abort the load pass or leave a half-registered command behind.
"""

import logging
import re
from dataclasses import dataclass
from typing import Iterable, Protocol, TYPE_CHECKING

from solo.commands.command_types import (
    Command,
    CompileError,
    DuplicateCommandError,
    User,
)
from solo.commands.commands import CommandRegistry
from solo.commands.script import (
    DEFAULT_MAX_OUTPUT,
    DEFAULT_STEP_BUDGET,
    CompiledScript,
    compile_script,
)

if TYPE_CHECKING:  # pragma: no cover - typing only
    from solo.db.db import Database

log = logging.getLogger(__name__)

CUSTOM_PREFIX = "custom_"
CUSTOM_CATEGORY = "custom"
_BASE_NAME_RE = re.compile(r"^[a-z0-9_]+$")


@dataclass(slots=True)
class CustomCommandRecord:
    """Persisted form of a custom command."""
    id: int | None
    creator_id: int | None
    name: str
    description: str
    implementation: str
    created_at: str | None = None
    creator: str | None = None

    @property
    def base_name(self) -> str:
        return strip_prefix(self.name)


class CustomCommandSource(Protocol):
    """The slice of the persistence layer the loader reads from."""

    def get_all_custom_commands(self) -> list[CustomCommandRecord]:  # pragma: no cover - signature only
        ...


def namespaced(name: str) -> str:
    """Return the stored/registered form of a custom command name."""
    name = name.strip().lower()
    return name if name.startswith(CUSTOM_PREFIX) else f"{CUSTOM_PREFIX}{name}"


def strip_prefix(name: str) -> str:
    return name[len(CUSTOM_PREFIX):] if name.startswith(CUSTOM_PREFIX) else name


def validate_base_name(name: str) -> str:
    """Check a user-supplied command name; returns it unchanged when valid."""
    if not _BASE_NAME_RE.fullmatch(name or ""):
        raise ValueError(
            "Command name must contain only lowercase letters, numbers, and underscores")
    return name


class DynamicCommandLoader:
    """Compile persisted custom commands and register them into a registry."""

    def __init__(
        self,
        registry: CommandRegistry,
        *,
        step_budget: int = DEFAULT_STEP_BUDGET,
        max_output: int = DEFAULT_MAX_OUTPUT,
    ) -> None:
        self.registry = registry
        self.step_budget = step_budget
        self.max_output = max_output
        # Namespaced name -> reason, for the most recent failure of each record
        self.failures: dict[str, str] = {}

    # ---------------- Compilation ----------------

    def compile(self, record: CustomCommandRecord) -> CompiledScript:
        """Validate a record's body and return its handler. Raises CompileError."""
        return compile_script(
            record.implementation,
            name=record.name,
            step_budget=self.step_budget,
            max_output=self.max_output,
        )

    # ---------------- Loading ----------------

    def load_one(self, record: CustomCommandRecord) -> bool:
        """Compile and register one record. Never raises; returns success."""
        name = namespaced(record.name)
        try:
            handler = self.compile(record)
        except CompileError as exc:
            self._fail(name, f"compile error: {exc}")
            return False

        base = strip_prefix(name)
        command_obj = Command(
            name=name,
            description=record.description,
            usage=f"{base} [args...]",
            handler=handler,
            aliases=[base] if base else [],
            requires_auth=True,
            creator_id=record.creator_id,
            category=CUSTOM_CATEGORY,
            module=__name__,
        )
        try:
            self.registry.register(command_obj)
        except (DuplicateCommandError, ValueError) as exc:
            self._fail(name, str(exc))
            return False

        self.failures.pop(name, None)
        log.debug("Loaded custom command %s", name)
        return True

    def load_all(self, records: Iterable[CustomCommandRecord]) -> int:
        """Best-effort bulk load; returns how many records were registered."""
        loaded = 0
        total = 0
        for record in records:
            total += 1
            if self.load_one(record):
                loaded += 1
        log.info("Loaded %d of %d custom commands", loaded, total)
        return loaded

    def load_from(self, source: CustomCommandSource) -> int:
        return self.load_all(source.get_all_custom_commands())

    # ---------------- Runtime creation ----------------

    def create(
        self,
        db: "Database",
        creator: User,
        name: str,
        description: str,
        implementation: str,
    ) -> CustomCommandRecord:
        """
        Validate, persist and load a new custom command.

        Raises ValueError for a bad name, CompileError for a bad body and
        DuplicateNameError when the namespaced name is already stored.
        """
        base = validate_base_name(strip_prefix(name))
        stored_name = namespaced(base)
        probe = CustomCommandRecord(
            id=None,
            creator_id=creator.id,
            name=stored_name,
            description=description,
            implementation=implementation,
        )
        self.compile(probe)

        db.insert_custom_command(creator.id, stored_name, description, implementation)
        record = db.find_custom_command_by_name(stored_name) or probe
        if not self.load_one(record):
            log.warning("Custom command %s was stored but could not be loaded: %s",
                        stored_name, self.failures.get(stored_name, "unknown error"))
        return record

    def _fail(self, name: str, reason: str) -> None:
        self.failures[name] = reason
        log.warning("Failed to load custom command %s: %s", name, reason)
