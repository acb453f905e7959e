# plugins/account/__init__.py
from __future__ import annotations

"""
Account command group:
- login / logout / register
- user directory and profiles
- admin role management
"""

CATEGORY_DESCRIPTION = "Accounts, profiles and administration."
