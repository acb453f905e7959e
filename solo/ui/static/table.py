#!/usr/bin/env python3
# solo/ui/static/table.py
from __future__ import annotations

from typing import List, Optional, Sequence

from solo.ui.utils.ansi import strip_ansi, strip_markup


def _visible_len(cell: str) -> int:
    return len(strip_markup(strip_ansi(cell)))


def _truncate(cell: str, limit: int | None) -> str:
    """Cut plain cells to `limit` characters (styled cells are left alone)."""
    if limit is None or len(cell) <= limit or _visible_len(cell) != len(cell):
        return cell
    return cell[: max(limit - 3, 1)] + "..."


def _calculate_column_widths(rows: Sequence[Sequence[str]]) -> List[int]:
    """Compute visual widths ignoring ANSI sequences."""
    column_widths: List[int] = []
    for row in rows:
        for col_idx, cell in enumerate(row):
            cell_length = _visible_len(cell)
            if col_idx >= len(column_widths):
                column_widths.append(cell_length)
            else:
                column_widths[col_idx] = max(column_widths[col_idx], cell_length)
    return column_widths


def format_table(
    rows: Sequence[Sequence[object]],
    headers: Optional[Sequence[object]] = None,
    *,
    padding: int = 1,
    border: bool = True,
    max_width: int | None = 48,
) -> str:
    """Return an ASCII table string. Multi-line cells are flattened to one line."""

    def cell_text(value: object) -> str:
        text = "" if value is None else " ".join(str(value).split())
        return _truncate(text, max_width)

    str_rows: List[List[str]] = [[cell_text(cell) for cell in row] for row in rows]
    str_headers = [str(h) for h in headers] if headers is not None else None
    widths = _calculate_column_widths(([str_headers] if str_headers else []) + str_rows)
    if not widths:
        return ""

    pad = " " * padding

    def render_row(row: Sequence[str]) -> str:
        parts = []
        for i, width in enumerate(widths):
            cell = row[i] if i < len(row) else ""
            parts.append(f"{pad}{cell}{' ' * (width - _visible_len(cell))}{pad}")
        return "|" + "|".join(parts) + "|"

    rule = "-" * (sum(widths) + (padding * 2 * len(widths)) + (len(widths) + 1))
    lines: List[str] = [rule] if border else []
    if str_headers is not None:
        lines.append(render_row(str_headers))
        lines.append(render_row(["-" * w for w in widths]))
    lines.extend(render_row(row) for row in str_rows)
    if border:
        lines.append(rule)
    return "\n".join(lines)
