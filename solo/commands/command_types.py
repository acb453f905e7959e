#!/usr/bin/env python3
# solo/commands/command_types.py
from __future__ import annotations

"""
Command data structures and protocols.

This module defines:
- CommandHandler: the callable protocol every command implements.
- CommandResult: the single result envelope returned by handlers and the dispatcher.
- Command: a registered command with metadata and a handler.
- CommandSummary: the read-only view handed to help/listing UIs.
- User / SessionContext / Services: the state threaded through every call.
- The error hierarchy shared by the registry, loader and script language.
"""

from dataclasses import dataclass, field
from typing import Any, Protocol, Sequence, TYPE_CHECKING

if TYPE_CHECKING:  # pragma: no cover - typing only
    from solo.commands.commands import CommandRegistry
    from solo.commands.dynamic import DynamicCommandLoader
    from solo.db.config import AppConfig
    from solo.db.db import Database


DEFAULT_DESCRIPTION = "No description provided"


# ---------------- Errors ----------------

class SoloError(Exception):
    """Base class for errors raised by the command core."""


class DuplicateCommandError(SoloError):
    """A command name is already registered (fatal configuration error)."""


class CompileError(SoloError):
    """A custom command body is not a well-formed script."""


class ScriptError(SoloError):
    """A custom command body failed while running."""


class ScriptTimeout(ScriptError):
    """A custom command body exhausted its execution budget."""


# ---------------- Results ----------------

@dataclass(slots=True)
class CommandResult:
    """
    Normalized result container from command execution.

    Attributes:
        success: True if the command completed successfully.
        result: Printable output (may contain real line breaks and colour markup).
        error: Human-readable failure description (set when success is False).
        data: Optional machine-readable payload.
    """
    success: bool = True
    result: str = ""
    error: str = ""
    data: Any = None

    @classmethod
    def ok(cls, result: str = "", data: Any = None) -> "CommandResult":
        return cls(success=True, result=result, data=data)

    @classmethod
    def fail(cls, error: str, data: Any = None) -> "CommandResult":
        return cls(success=False, error=error or "Command execution failed", data=data)

    @classmethod
    def coerce(cls, value: Any) -> "CommandResult":
        """Wrap whatever a handler returned into a CommandResult."""
        if isinstance(value, CommandResult):
            return value
        if value is None:
            return cls.ok("")
        return cls.ok(str(value))

    def __str__(self) -> str:
        # Keep CLI printing predictable
        return self.result if self.success else self.error


# ---------------- Session state ----------------

@dataclass(slots=True)
class User:
    """The authenticated user as seen by command handlers (never holds the hash)."""
    id: int
    username: str
    is_admin: bool = False
    created_at: str | None = None
    last_login: str | None = None
    bio: str = ""
    contact: str = ""
    status: str = ""


@dataclass(slots=True)
class Services:
    """Explicitly constructed collaborators shared by every session of one process."""
    db: "Database"
    registry: "CommandRegistry"
    loader: "DynamicCommandLoader | None" = None
    config: "AppConfig | None" = None


@dataclass(slots=True)
class SessionContext:
    """Per-session mutable state. Created anonymous, mutated by login/logout."""
    user: User | None = None
    current_view: str = "main"
    services: Services | None = None

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None

    @property
    def is_admin(self) -> bool:
        return bool(self.user is not None and self.user.is_admin)


# ---------------- Commands ----------------

class CommandHandler(Protocol):
    """Protocol for any command body: (args, context) -> CommandResult | str."""

    def __call__(self, args: Sequence[str], context: SessionContext) -> Any:  # pragma: no cover - signature only
        ...


def _not_implemented(name: str) -> CommandHandler:
    def handler(args: Sequence[str], context: SessionContext) -> CommandResult:
        return CommandResult.fail(f"Command '{name}' is not implemented yet")
    return handler


@dataclass(slots=True)
class Command:
    """
    A registered command with metadata and a handler to execute.

    Important fields:
        name: Primary unique command name (stored lower-case).
        description: Short, user-facing description.
        usage: One-line usage string (defaults to the name).
        handler: Callable implementing the command.
        aliases: Extra names resolving to the same command.
        requires_auth: Caller must be logged in.
        admin_only: Caller must be logged in as an admin.
        creator_id: Authoring user, only set for custom commands.
        category: Logical group for help menu organization.
        subcommands: First-argument words offered by tab completion.
        module: Python module path where the command is defined.
    """

    name: str
    description: str = DEFAULT_DESCRIPTION
    usage: str = ""
    handler: CommandHandler | None = None
    aliases: list[str] = field(default_factory=list)  # type: ignore
    requires_auth: bool = False
    admin_only: bool = False
    creator_id: int | None = None
    category: str = "general"
    subcommands: tuple[str, ...] = ()
    module: str = field(default="", repr=False)

    def __post_init__(self) -> None:
        self.name = (self.name or "").strip().lower()
        if not self.description:
            self.description = DEFAULT_DESCRIPTION
        if not self.usage:
            self.usage = self.name
        if self.handler is None:
            self.handler = _not_implemented(self.name)

    def invoke(self, args: Sequence[str], context: SessionContext) -> Any:
        """Execute the underlying handler with the given arguments and session."""
        return self.handler(args, context)  # type: ignore[misc]

    def summary(self) -> "CommandSummary":
        return CommandSummary(
            name=self.name,
            description=self.description,
            usage=self.usage,
            aliases=tuple(self.aliases),
            requires_auth=self.requires_auth,
            admin_only=self.admin_only,
            category=self.category,
        )


@dataclass(frozen=True, slots=True)
class CommandSummary:
    """Read-only descriptor summary for help and listing UIs."""
    name: str
    description: str
    usage: str
    aliases: tuple[str, ...]
    requires_auth: bool
    admin_only: bool
    category: str
