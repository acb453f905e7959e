# plugins/system/__init__.py
from __future__ import annotations

"""
System command group:
- help menus
- board and session information
- custom command authoring (make)
"""

CATEGORY_DESCRIPTION = "Help, system information and custom commands."
