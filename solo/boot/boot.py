#!/usr/bin/env python3
# solo/boot/boot.py
from __future__ import annotations
"""
Boot sequence for SOLO-OS.

Order matters:
- configuration before logging (the log level and file come from config),
- the database before built-in commands (handlers reach it through Services),
- built-in commands before custom commands, so a custom name can never
  displace a built-in one.

Each step prints a Linux-style `[  OK  ]` / `[FAILED]` line unless quiet.
"""

import logging
import platform
from dataclasses import dataclass
from typing import Any, Callable

from solo.commands import CommandRegistry, DynamicCommandLoader, Services
from solo.db import AppConfig, Database, ensure_admin, seed_demo_data, validate_or_create_config
from solo.interface import Dispatcher, load_commands
from solo.ui import colorize, enable_windows_vt, init_logger, print_line, set_terminal_title


@dataclass(slots=True)
class BootState:
    config: AppConfig
    logger: logging.Logger
    db: Database
    registry: CommandRegistry
    loader: DynamicCommandLoader
    dispatcher: Dispatcher
    services: Services
    loaded_count: int
    custom_count: int

    def close(self) -> None:
        self.db.close()


def _step(label: str, fn: Callable[[], Any], *, quiet: bool = False) -> Any:
    """Run a boot step with status output."""
    try:
        out = fn()
    except Exception as exc:
        if not quiet:
            print_line(
                colorize(f"[FAILED] {label} ({type(exc).__name__}: {exc})", "red")
            )
        raise
    if not quiet:
        print_line(colorize(f"[  OK  ] {label}", "green"))
    return out


def boot_sequence(config: AppConfig | None = None, *, quiet: bool = False) -> BootState:
    """
    Build every long-lived object of one process and return them together.

    Pass `config` to skip the file/env lookup (tests and --db overrides do).
    """

    def step(label: str, fn: Callable[[], Any]) -> Any:
        return _step(label, fn, quiet=quiet)

    # ---------- console + config ----------
    if not quiet:
        step("Enable ANSI sequences", enable_windows_vt)
        step(
            f"Detect environment: {platform.system()} {platform.release()} / Python {platform.python_version()}",
            lambda: None,
        )
    if config is None:
        config = step("Load configuration", validate_or_create_config)

    # ---------- logging ----------
    logger = step(
        "Initialize logger",
        lambda: init_logger("solo", config.log_level, config.log_file_path),
    )

    # ---------- database ----------
    db = step(f"Open database ({config.database_path})",
              lambda: Database(config.database_path))
    step("Ensure an administrator exists",
         lambda: ensure_admin(db, config.admin_username, config.admin_password))
    if config.seed_demo_data:
        step("Seed demo data", lambda: seed_demo_data(db))

    # ---------- commands ----------
    registry = CommandRegistry()
    loader = DynamicCommandLoader(
        registry,
        step_budget=config.script_step_budget,
        max_output=config.script_max_output,
    )
    services = Services(db=db, registry=registry, loader=loader, config=config)

    loaded_count = step(
        f"Load built-in commands from '{config.plugin_package}'",
        lambda: load_commands(registry, config.plugin_package),
    )
    custom_count = step("Load custom commands", lambda: loader.load_from(db))
    if loader.failures:
        logger.warning("%d custom command(s) failed to load", len(loader.failures))

    step("Warm command names for completion", registry.names)
    dispatcher = Dispatcher(registry)

    if not quiet:
        set_terminal_title(f"SOLO-OS • {len(registry)} cmds")
        step("Boot complete", lambda: None)

    return BootState(
        config=config,
        logger=logger,
        db=db,
        registry=registry,
        loader=loader,
        dispatcher=dispatcher,
        services=services,
        loaded_count=loaded_count,
        custom_count=custom_count,
    )
