# plugins/content/__init__.py
from __future__ import annotations

"""
Board content:
- posts, announcements and status updates
- weekly accountability posts
- the guestbook
"""

CATEGORY_DESCRIPTION = "Bulletin board posts, weekly updates and the guestbook."
