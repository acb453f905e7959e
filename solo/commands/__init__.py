#!/usr/bin/env python3
# solo/commands/__init__.py
from __future__ import annotations

"""
Package for command management and registration.

Provides:
- Data structures and protocols (`Command`, `CommandResult`, `SessionContext`, ...).
- The registry and decorator (`CommandRegistry`, `command`, `collect_commands`).
- The safe script language for custom commands (`compile_script`).
- The custom-command loader (`DynamicCommandLoader`).

This package re-exports public APIs from:
- command_types.py
- commands.py
- script.py
- dynamic.py
"""


# Re-export from submodules
from .command_types import (
    Command,
    CommandHandler,
    CommandResult,
    CommandSummary,
    CompileError,
    DuplicateCommandError,
    ScriptError,
    ScriptTimeout,
    Services,
    SessionContext,
    SoloError,
    User,
)
from .commands import CommandRegistry, collect_commands, command
from .script import CompiledScript, compile_script
from .dynamic import CustomCommandRecord, DynamicCommandLoader

__all__ = [
    "Command",
    "CommandHandler",
    "CommandResult",
    "CommandSummary",
    "CompileError",
    "DuplicateCommandError",
    "ScriptError",
    "ScriptTimeout",
    "Services",
    "SessionContext",
    "SoloError",
    "User",
    "CommandRegistry",
    "collect_commands",
    "command",
    "CompiledScript",
    "compile_script",
    "CustomCommandRecord",
    "DynamicCommandLoader",
]
