#!/usr/bin/env python3
# solo/ui/utils/__init__.py
from __future__ import annotations
from .ansi import (
    ANSI,
    strip_ansi,
    enable_windows_vt,
    clear_screen,
    colorize,
    render_markup,
    strip_markup,
    escape_markup,
)
from .console import (
    PRINT_MUTEX,
    print_line,
    print_markup,
    supports_color,
    set_terminal_title,
)
from . import theme

__all__ = [
    "ANSI",
    "strip_ansi",
    "enable_windows_vt",
    "clear_screen",
    "colorize",
    "render_markup",
    "strip_markup",
    "escape_markup",
    "PRINT_MUTEX",
    "print_line",
    "print_markup",
    "supports_color",
    "set_terminal_title",
    "theme",
]
