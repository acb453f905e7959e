#!/usr/bin/env python3
# solo/ui/utils/ansi.py
from __future__ import annotations

import ctypes
import os
import re
from typing import Optional

# ---- Core SGR map -----------------------------------------------------------

ANSI = {
    "reset": "\x1b[0m",

    # styles
    "bold": "\x1b[1m",
    "dim": "\x1b[2m",
    "italic": "\x1b[3m",
    "underline": "\x1b[4m",

    # fg 8-color
    "black": "\x1b[30m",
    "red": "\x1b[31m",
    "green": "\x1b[32m",
    "yellow": "\x1b[33m",
    "blue": "\x1b[34m",
    "magenta": "\x1b[35m",
    "cyan": "\x1b[36m",
    "white": "\x1b[37m",

    # fg bright
    "gray": "\x1b[90m",
    "bright_red": "\x1b[91m",
    "bright_green": "\x1b[92m",
    "bright_yellow": "\x1b[93m",
    "bright_cyan": "\x1b[96m",
    "bright_white": "\x1b[97m",
}

ANSI_REGEX = re.compile(r"\x1b\[[0-9;]*[A-Za-z]")
# Markup tags: [red], [bold], [/red], universal close [/]
_TAG_RE = re.compile(r"\[(/?)([a-z_]*)\]")
# Renders as a literal "[", used to neutralise tags inside user text
LITERAL_BRACKET = "[lb]"

_vt_enabled_cache: Optional[bool] = None  # cached across calls


# ---- Utilities --------------------------------------------------------------

def strip_ansi(text: str) -> str:
    """Remove ANSI escape sequences from text."""
    return ANSI_REGEX.sub("", text)


def enable_windows_vt() -> bool:
    """
    Enable ANSI (VT) processing on Windows consoles when possible.
    Returns True if ANSI escapes should work on the current process.
    On non-Windows systems, always returns True.
    """
    global _vt_enabled_cache
    if _vt_enabled_cache is not None:
        return _vt_enabled_cache

    if os.name != "nt":
        _vt_enabled_cache = True
        return True

    if os.environ.get("WT_SESSION") or os.environ.get("TERM", "").startswith(("xterm", "vt100")):
        _vt_enabled_cache = True
        return True

    try:
        kernel32 = ctypes.windll.kernel32  # type: ignore[attr-defined]
        handle = kernel32.GetStdHandle(-11)  # STD_OUTPUT_HANDLE
        mode = ctypes.c_uint()
        if handle in (0, -1) or not kernel32.GetConsoleMode(handle, ctypes.byref(mode)):
            _vt_enabled_cache = False
        else:
            # ENABLE_VIRTUAL_TERMINAL_PROCESSING
            _vt_enabled_cache = bool(kernel32.SetConsoleMode(handle, mode.value | 0x0004))
    except (AttributeError, OSError):
        _vt_enabled_cache = False

    return _vt_enabled_cache


def clear_screen() -> None:
    """Clear the terminal screen on Windows and POSIX."""
    os.system("cls" if os.name == "nt" else "clear")


def colorize(text: str, *styles: str) -> str:
    """
    Wrap text with one or more SGR styles from ANSI (e.g., 'red', 'bold').
    Always auto-resets at the end.
    """
    seq = "".join(ANSI[s] for s in styles if s in ANSI)
    return f"{seq}{text}{ANSI['reset']}" if seq else text


# ---- Markup renderer ---------------------------------------------------------
#
#   render_markup("Normal [red]red [bold]bold red[/bold][/red] normal")
#
# Rules:
# - Known tags nest on a simple stack; closing a tag resets then re-emits
#   the styles still open.
# - Unknown tags (and stray closers) are passed through literally, so
#   user text such as "[1, 2]" or "[draft]" survives untouched.
# - [lb] renders as a literal "[". escape_markup() uses it so text typed
#   by users can never open or close a style.

def render_markup(text: str, *, color: bool = True) -> str:
    """Render markup tags to ANSI, or drop them when `color` is False."""
    if color:
        enable_windows_vt()

    out: list[str] = []
    stack: list[str] = []
    pos = 0
    for m in _TAG_RE.finditer(text):
        start, end = m.span()
        out.append(text[pos:start])
        pos = end
        closing, tag = bool(m.group(1)), m.group(2)

        if not closing:
            if tag == "lb":
                out.append("[")
            elif tag in ANSI and tag != "reset":
                stack.append(tag)
                if color:
                    out.append(ANSI[tag])
            else:
                out.append(m.group(0))
            continue

        if tag == "":
            stack.clear()
        elif tag in stack:
            while stack and stack.pop() != tag:
                pass
        else:
            out.append(m.group(0))
            continue
        if color:
            out.append(ANSI["reset"] + "".join(ANSI[s] for s in stack))

    out.append(text[pos:])
    if color and stack:
        out.append(ANSI["reset"])
    return "".join(out)


def strip_markup(text: str) -> str:
    """Remove known markup tags, keeping the text between them."""
    return render_markup(text, color=False)


def escape_markup(text: str) -> str:
    """Make every tag in `text` render literally instead of styling output."""
    return _TAG_RE.sub(lambda m: LITERAL_BRACKET + m.group(0)[1:], text)
