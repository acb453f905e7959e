#!/usr/bin/env python3
# solo/interface/loader.py
from __future__ import annotations

"""
Built-in command discovery.

Features:
- Imports all modules under a given package (default: 'plugins').
- Supports 'entrypoint.py' inside a subpackage.
- Registers commands attached with @command or exported as COMMAND/COMMANDS.
- Derives categories from module paths if not explicitly set.
- Collects category descriptions from either CATEGORY_DESCRIPTION or package docstring.
"""

import importlib
import logging
import pkgutil
from pathlib import Path

from solo.commands import Command, CommandRegistry, collect_commands

log = logging.getLogger(__name__)


def load_commands(registry: CommandRegistry, commands_package: str = "plugins") -> int:
    """
    Import all modules under the given package and register their commands.

    Supported layouts:
      1) Plain modules: plugins/foo.py  -> import plugins.foo
      2) Packages with an entrypoint: plugins/bar/entrypoint.py
         -> import plugins.bar.entrypoint

    Returns the number of commands registered. DuplicateCommandError propagates.
    """

    package = importlib.import_module(commands_package)
    package_paths = [str(p) for p in getattr(package, "__path__", [])]

    if not package_paths:
        raise RuntimeError(
            f"'{commands_package}' must be a package (folder) with modules.")

    registered = 0
    discovered_subpackages: set[str] = set()

    for base_path in package_paths:
        for modinfo in sorted(pkgutil.iter_modules([base_path]), key=lambda m: m.name):
            module_name = modinfo.name
            if module_name.startswith("_"):
                # Ignore private modules
                continue

            target = f"{commands_package}.{module_name}"
            if modinfo.ispkg:
                discovered_subpackages.add(module_name)
                if (Path(base_path) / module_name / "entrypoint.py").exists():
                    target = f"{target}.entrypoint"

            module = importlib.import_module(target)
            commands = collect_commands(module)
            _assign_categories(commands, commands_package)
            registered += registry.register_all(commands)
            log.debug("Loaded %d command(s) from %s", len(commands), target)

    _collect_category_descriptions(registry, commands_package, discovered_subpackages)
    log.info("Registered %d built-in commands from '%s'", registered, commands_package)
    return registered


def _assign_categories(commands: list[Command], commands_package: str) -> None:
    """
    Derive category from first subpackage segment (e.g. 'account.entrypoint')
    if not explicitly set (default 'general').
    """
    prefix = f"{commands_package}."
    for command_obj in commands:
        if command_obj.category != "general" or not command_obj.module.startswith(prefix):
            continue
        segments = command_obj.module[len(prefix):].split(".")
        if len(segments) >= 2:
            command_obj.category = segments[0]


def _collect_category_descriptions(
    registry: CommandRegistry, commands_package: str, subpackages: set[str]
) -> None:
    """
    Category description is taken from:
      1) <package>.<category>.CATEGORY_DESCRIPTION (string), or
      2) <package>.<category> module docstring, else "".
    """
    for category in subpackages:
        module = importlib.import_module(f"{commands_package}.{category}")
        value = getattr(module, "CATEGORY_DESCRIPTION", None)
        if isinstance(value, str):
            description_text = value.strip()
        else:
            doc_lines = (module.__doc__ or "").strip().splitlines()
            description_text = doc_lines[0] if doc_lines else ""
        registry.set_category_description(category, description_text)
