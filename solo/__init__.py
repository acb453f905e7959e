#!/usr/bin/env python3
# solo/__init__.py
from __future__ import annotations
"""
SOLO-OS: a terminal bulletin-board system with user-authored commands.

Avoid eager imports here; subpackages expose their own APIs through their
__init__.py files.
"""

__version__ = "0.1.0"
