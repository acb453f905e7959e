# plugins/__init__.py
"""
Built-in SOLO-OS commands.

Every subpackage exposes an entrypoint.py whose @command functions are
registered at boot; the subpackage name becomes the help category.
"""
