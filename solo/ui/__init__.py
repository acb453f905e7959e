#!/usr/bin/env python3
# solo/ui/__init__.py
from __future__ import annotations
# Re-export convenient top-level API
from .utils import (
    ANSI,
    strip_ansi,
    enable_windows_vt,
    clear_screen,
    PRINT_MUTEX,
    print_line,
    print_markup,
    supports_color,
    set_terminal_title,
    colorize,
    render_markup,
    strip_markup,
    escape_markup,
    theme,
)
from .static import (
    format_table,
    init_logger,
    ColorizingStreamHandler,
    PlainFormatter,
)

__all__ = [
    "ANSI",
    "strip_ansi",
    "enable_windows_vt",
    "clear_screen",
    "colorize",
    "render_markup",
    "strip_markup",
    "escape_markup",
    "theme",
    "PRINT_MUTEX",
    "print_line",
    "print_markup",
    "supports_color",
    "set_terminal_title",
    "format_table",
    "init_logger",
    "ColorizingStreamHandler",
    "PlainFormatter",
]
