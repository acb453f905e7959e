#!/usr/bin/env python3
# solo/ui/utils/console.py
from __future__ import annotations

import os
import sys
import threading

from .ansi import render_markup, enable_windows_vt

# Single shared print mutex for all UI output (REPL and logging).
PRINT_MUTEX = threading.Lock()


def print_line(text: str = "", *, file=None, flush: bool = False) -> None:
    """Thread-safe single-line print."""
    out = file or sys.stdout
    with PRINT_MUTEX:
        out.write(f"{text}\n")
        if flush:
            out.flush()


def print_markup(text: str = "", *, file=None, flush: bool = False, color: bool = True) -> None:
    """Like print_line, but renders markup tags to ANSI (or strips them)."""
    out = file or sys.stdout
    if color:
        enable_windows_vt()
    with PRINT_MUTEX:
        out.write(render_markup(text, color=color) + "\n")
        if flush:
            out.flush()


def supports_color(stream=None) -> bool:
    """True when `stream` is an interactive terminal and NO_COLOR is unset."""
    out = stream or sys.stdout
    if os.environ.get("NO_COLOR"):
        return False
    isatty = getattr(out, "isatty", None)
    return bool(isatty and isatty())


def set_terminal_title(title_text: str) -> None:
    """Set the terminal window title (no-op when stdout is not a terminal)."""
    if not supports_color(sys.stdout):
        return
    sys.stdout.write(f"\x1b]2;{title_text}\x07")
    sys.stdout.flush()
