#!/usr/bin/env python3
# solo/interface/__init__.py
from __future__ import annotations

"""
Package for interactive console interface and command dispatch.

Provides:
- Command dispatcher and help formatting (`Dispatcher`).
- Built-in command discovery for the plugins package (`load_commands`).
- Parser utilities shared by handlers.
- Token-aware completion helpers.
- CLI frontends with history and completion (prompt_toolkit / readline / plain)
  and the read-eval-print loop.
"""


# Parser utilities
from .parser import ParseError, tokenize, parse_line, join_args, split_fields, parse_int

# Completion
from .completion import suggest, BUILT_IN_COMMANDS

# Command dispatcher / help
from .handler import (
    ADMIN_REQUIRED,
    AUTH_REQUIRED,
    HELP_TEXT,
    Dispatcher,
    format_command_help,
    list_categories,
)

# Loader
from .loader import load_commands

# CLI frontends
from .cli import (
    BaseCLI,
    PromptToolkitCLI,
    ReadlineCLI,
    make_cli,
    render_result,
    run_repl,
    HISTORY_FILE_PATH,
)

__all__ = [
    # parser
    "ParseError",
    "tokenize",
    "parse_line",
    "join_args",
    "split_fields",
    "parse_int",
    # completion
    "suggest",
    "BUILT_IN_COMMANDS",
    # handler
    "ADMIN_REQUIRED",
    "AUTH_REQUIRED",
    "HELP_TEXT",
    "Dispatcher",
    "format_command_help",
    "list_categories",
    # loader
    "load_commands",
    # cli
    "BaseCLI",
    "PromptToolkitCLI",
    "ReadlineCLI",
    "make_cli",
    "render_result",
    "run_repl",
    "HISTORY_FILE_PATH",
]
