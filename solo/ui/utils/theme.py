#!/usr/bin/env python3
# solo/ui/utils/theme.py
from __future__ import annotations

"""
Semantic colour roles for command output.

Handlers never emit raw escape codes; they wrap text in markup tags through
these helpers and the presentation layer decides how to render them.
"""

THEME: dict[str, str] = {
    "primary": "cyan",
    "secondary": "yellow",
    "accent": "green",
    "error": "red",
    "warning": "yellow",
    "info": "blue",
    "success": "green",
    "dim": "gray",
    "highlight": "bright_white",
    "username": "magenta",
}


def styled(text: object, role: str) -> str:
    style = THEME.get(role, role)
    return f"[{style}]{text}[/{style}]"


def primary(text: object) -> str:
    return styled(text, "primary")


def secondary(text: object) -> str:
    return styled(text, "secondary")


def accent(text: object) -> str:
    return styled(text, "accent")


def error(text: object) -> str:
    return styled(text, "error")


def info(text: object) -> str:
    return styled(text, "info")


def success(text: object) -> str:
    return styled(text, "success")


def dim(text: object) -> str:
    return styled(text, "dim")


def highlight(text: object) -> str:
    return f"[bold]{styled(text, 'highlight')}[/bold]"


def username(text: object) -> str:
    return f"[bold]{styled(text, 'username')}[/bold]"


def heading(text: object) -> str:
    """Primary-coloured title with an underline rule."""
    title = str(text)
    return f"{primary(title)}\n{dim('=' * len(title))}"
