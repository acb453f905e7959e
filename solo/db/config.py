#!/usr/bin/env python3
# solo/db/config.py
from __future__ import annotations

"""
Configuration loader (stdlib-only).

Precedence (low → high):
  1) Built-in defaults
  2) Files in CWD: .env, config.ini, config.json, config.toml
  3) Environment variables prefixed with SOLO_ (e.g. SOLO_DATABASE_PATH)
  4) Explicit overrides passed by the caller (command-line flags)

Validation:
  - DATABASE_PATH: ':memory:' or a normalized path (no creation here)
  - PLUGIN_PACKAGE: dotted Python package name
  - LOG_FILE_PATH: None or normalized path
  - SHOW_BANNER / ENABLE_COMPLETION / ALLOW_USER_COMMANDS / SEED_DEMO_DATA: bool
  - PROMPT: str (None falls back to the default prompt)
  - LOG_LEVEL: None or one of {'DEBUG','INFO','WARNING','ERROR','CRITICAL'}
  - SCRIPT_STEP_BUDGET: int >= 100
  - SCRIPT_MAX_OUTPUT: int >= 64
  - ADMIN_USERNAME / ADMIN_PASSWORD: non-empty strings
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Mapping
from pathlib import Path
import configparser
import getpass
import json
import os
import re
import sys
import tomllib  # stdlib in 3.11+
from solo.ui import print_line, colorize

ENV_PREFIX = "SOLO_"
MEMORY_DATABASE = ":memory:"

# ---------- defaults ----------


def _default_database_path() -> str:
    return str(Path.home() / ".solo-os" / "solo-os.db")


DEFAULTS: dict[str, Any] = {
    "DATABASE_PATH": _default_database_path(),
    "PLUGIN_PACKAGE": "plugins",
    "LOG_FILE_PATH": None,
    "LOG_LEVEL": None,              # 'DEBUG'/'INFO'/'WARNING'/'ERROR'/'CRITICAL'
    "PROMPT": "SOLO-OS> ",
    "SHOW_BANNER": True,
    "ENABLE_COMPLETION": True,
    "ALLOW_USER_COMMANDS": True,
    "SCRIPT_STEP_BUDGET": 10_000,   # evaluated nodes per custom command call
    "SCRIPT_MAX_OUTPUT": 4_096,     # characters per custom command result
    "ADMIN_USERNAME": "admin",      # only used when no admin exists yet
    "ADMIN_PASSWORD": "admin",
    "SEED_DEMO_DATA": False,
}

_PACKAGE_RE = re.compile(r"[A-Za-z_][A-Za-z0-9_]*(\.[A-Za-z_][A-Za-z0-9_]*)*")
_ENV_KEY_RE = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")


def _write_config_file_toml(cfg_map: dict[str, Any], *, path: Path | None = None) -> Path:
    """
    Persist a TOML config near the CWD, with safe file perms where possible.
    Returns the path written.
    """
    out = (path or (Path.cwd() / "config.toml")).resolve()
    try:
        # Minimal TOML writer (no external deps)
        def _toml_scalar(v: Any) -> str:
            if isinstance(v, bool):
                return "true" if v else "false"
            if v is None:
                return '""'
            if isinstance(v, (int, float)):
                return str(v)
            s = str(v).replace("\\", "\\\\").replace('"', '\\"')
            return f'"{s}"'

        lines = [f"{k} = {_toml_scalar(cfg_map[k])}" for k in sorted(cfg_map)]
        out.write_text("\n".join(lines) + "\n", encoding="utf-8")

        # Holds the bootstrap admin password
        try:
            os.chmod(out, 0o600)
        except OSError:
            pass
    except OSError as exc:
        raise RuntimeError(f"Failed to write config at {out}: {exc}") from exc
    return out


# ---------- data model ----------

@dataclass(frozen=True)
class AppConfig:
    database_path: Path | str
    plugin_package: str
    log_file_path: Path | None

    log_level: str | None
    prompt: str
    show_banner: bool
    enable_completion: bool

    allow_user_commands: bool
    script_step_budget: int
    script_max_output: int

    admin_username: str
    admin_password: str
    seed_demo_data: bool

    # Unrecognized keys preserved for debugging/forward-compat
    extra: dict[str, Any] = field(default_factory=dict)

    @property
    def in_memory(self) -> bool:
        return str(self.database_path) == MEMORY_DATABASE


# ---------- interactive creator ----------


def ensure_config_interactive(*, force: bool = False) -> AppConfig:
    """Interactive first-run config creator. Writes config.toml in the CWD."""
    if not force:
        try:
            return load_config()
        except ValueError:
            pass  # fall through

    print("Configuration setup (interactive)")
    print("--------------------------------")

    def ask_text(prompt: str, default: str) -> str:
        val = input(f"{prompt} [{default}]: ").strip()
        return val or default

    database_path = ask_text("Database file", str(DEFAULTS["DATABASE_PATH"]))
    log_file_path = ask_text("Log file path (blank to disable)", "")
    allow_users = ask_text("Allow every user to create commands? (yes/no)", "yes")
    admin_username = ask_text("Bootstrap admin username", str(DEFAULTS["ADMIN_USERNAME"]))

    pw1 = getpass.getpass("Bootstrap admin password: ")
    pw2 = getpass.getpass("Confirm password: ")
    if pw1 != pw2:
        print("Passwords do not match.", file=sys.stderr)
        sys.exit(2)

    raw: dict[str, Any] = dict(DEFAULTS)
    raw.update({
        "DATABASE_PATH": database_path,
        "LOG_FILE_PATH": log_file_path,
        "ALLOW_USER_COMMANDS": _as_bool(allow_users),
        "ADMIN_USERNAME": admin_username,
        "ADMIN_PASSWORD": pw1 or DEFAULTS["ADMIN_PASSWORD"],
    })

    # Validate before persisting
    _validate_and_build(raw)

    path = _write_config_file_toml(raw)
    print(f"\nSaved configuration → {path}")

    # Reload through the normal path
    return _validate_and_build(_merge_sources())


# ---------- file sources ----------

def _read_env(path: Path) -> dict[str, Any]:
    """KEY=VALUE lines; quotes around the value are dropped, '#' lines ignored."""
    values: dict[str, Any] = {}
    for raw in path.read_text(encoding="utf-8").splitlines():
        line = raw.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, _, value = line.partition("=")
        key, value = key.strip(), value.strip()
        if not _ENV_KEY_RE.fullmatch(key):
            continue
        if len(value) >= 2 and value[0] == value[-1] and value[0] in "'\"":
            value = value[1:-1]
        values[key.upper()] = value
    return _strip_prefix(values)


def _read_ini(path: Path) -> dict[str, Any]:
    # Section names are for humans only; keys are flat
    parser = configparser.ConfigParser()
    parser.read(path, encoding="utf-8")
    return {key.upper(): value
            for section in parser.sections()
            for key, value in parser.items(section)}


def _read_json(path: Path) -> dict[str, Any]:
    try:
        return _flatten_mapping(json.loads(path.read_text(encoding="utf-8")))
    except json.JSONDecodeError:
        return {}


def _read_toml(path: Path) -> dict[str, Any]:
    try:
        with path.open("rb") as fh:
            return _flatten_mapping(tomllib.load(fh))
    except tomllib.TOMLDecodeError:
        return {}


# Read in this order; later files win
CONFIG_FILES: tuple[tuple[str, Callable[[Path], dict[str, Any]]], ...] = (
    (".env", _read_env),
    ("config.ini", _read_ini),
    ("config.json", _read_json),
    ("config.toml", _read_toml),
)


def _flatten_mapping(obj: Any, prefix: str = "") -> dict[str, Any]:
    """
    Nested tables become UPPER_SNAKE keys, so both of these set the budget:

        SCRIPT_STEP_BUDGET = 500

        [script]
        step_budget = 500
    """
    if not isinstance(obj, Mapping):
        return {}
    flat: dict[str, Any] = {}
    for key, value in obj.items():
        name = f"{prefix}_{key}" if prefix else str(key)
        if isinstance(value, Mapping):
            flat.update(_flatten_mapping(value, name))
        else:
            flat[name.upper()] = value
    return flat


def _strip_prefix(values: Mapping[str, Any]) -> dict[str, Any]:
    """.env files may use either DATABASE_PATH or SOLO_DATABASE_PATH."""
    return {key.removeprefix(ENV_PREFIX): value for key, value in values.items()}


# ---------- coercion ----------

_TRUTHY = frozenset({"1", "true", "yes", "y", "on"})
_FALSY = frozenset({"0", "false", "no", "n", "off"})
_LOG_LEVELS = ("CRITICAL", "DEBUG", "ERROR", "INFO", "WARNING")


def _as_bool(val: Any) -> bool:
    if isinstance(val, bool):
        return val
    word = str(val).strip().lower()
    if word in _TRUTHY or word in _FALSY:
        return word in _TRUTHY
    raise ValueError(f"expected yes/no, got {val!r}")


def _as_int(val: Any) -> int:
    if isinstance(val, bool):
        raise ValueError(f"expected a whole number, got {val!r}")
    if isinstance(val, int):
        return val
    try:
        return int(str(val).strip().replace("_", ""))
    except ValueError:
        raise ValueError(f"expected a whole number, got {val!r}") from None


def _at_least(minimum: int) -> Callable[[Any], int]:
    def coerce(val: Any) -> int:
        number = _as_int(val)
        if number < minimum:
            raise ValueError(f"must be at least {minimum}, got {number}")
        return number
    return coerce


def _as_opt_str(val: Any) -> str | None:
    if val is None:
        return None
    text = str(val)
    return None if text.strip().lower() in ("", "none") else text


def _as_required_str(val: Any) -> str:
    text = _as_opt_str(val)
    if text is None:
        raise ValueError("must not be empty")
    return text


def _as_prompt(val: Any) -> str:
    return _as_opt_str(val) or DEFAULTS["PROMPT"]


def _as_log_level(val: Any) -> str | None:
    level = _as_opt_str(val)
    if level is None:
        return None
    if level.upper() not in _LOG_LEVELS:
        raise ValueError(f"must be one of {', '.join(_LOG_LEVELS)}, got {level!r}")
    return level.upper()


def _as_package(val: Any) -> str:
    name = str(val).strip()
    if not _PACKAGE_RE.fullmatch(name):
        raise ValueError(f"must be a dotted package name, got {name!r}")
    return name


def _as_path(val: Any) -> Path:
    return Path(os.path.expandvars(os.path.expanduser(str(val)))).resolve()


def _as_opt_path(val: Any) -> Path | None:
    text = _as_opt_str(val)
    return None if text is None else _as_path(text)


def _as_database_path(val: Any) -> Path | str:
    text = _as_required_str(val).strip()
    return MEMORY_DATABASE if text == MEMORY_DATABASE else _as_path(text)


# Config key -> (AppConfig field, coercion)
FIELDS: dict[str, tuple[str, Callable[[Any], Any]]] = {
    "DATABASE_PATH": ("database_path", _as_database_path),
    "PLUGIN_PACKAGE": ("plugin_package", _as_package),
    "LOG_FILE_PATH": ("log_file_path", _as_opt_path),
    "LOG_LEVEL": ("log_level", _as_log_level),
    "PROMPT": ("prompt", _as_prompt),
    "SHOW_BANNER": ("show_banner", _as_bool),
    "ENABLE_COMPLETION": ("enable_completion", _as_bool),
    "ALLOW_USER_COMMANDS": ("allow_user_commands", _as_bool),
    "SCRIPT_STEP_BUDGET": ("script_step_budget", _at_least(100)),
    "SCRIPT_MAX_OUTPUT": ("script_max_output", _at_least(64)),
    "ADMIN_USERNAME": ("admin_username", _as_required_str),
    "ADMIN_PASSWORD": ("admin_password", _as_required_str),
    "SEED_DEMO_DATA": ("seed_demo_data", _as_bool),
}


# ---------- merge & load ----------

def _merge_sources(
    *,
    cwd: Path | None = None,
    environ: Mapping[str, str] | None = None,
    overrides: Mapping[str, Any] | None = None,
) -> dict[str, Any]:
    merged: dict[str, Any] = dict(DEFAULTS)

    base = cwd or Path.cwd()
    for filename, reader in CONFIG_FILES:
        path = base / filename
        if path.is_file():
            merged.update(reader(path))

    # Only SOLO_-prefixed environment variables are read
    env = os.environ if environ is None else environ
    merged.update({key.removeprefix(ENV_PREFIX): value for key, value in env.items()
                   if key.startswith(ENV_PREFIX) and _ENV_KEY_RE.fullmatch(key)})

    if overrides:
        merged.update({str(key).upper(): value for key, value in overrides.items()
                       if value is not None})
    return merged


def _validate_and_build(config: Mapping[str, Any]) -> AppConfig:
    values: dict[str, Any] = {}
    for key, (attr, coerce) in FIELDS.items():
        try:
            values[attr] = coerce(config.get(key, DEFAULTS[key]))
        except ValueError as exc:
            raise ValueError(f"{key} {exc}") from exc

    extra = {key: value for key, value in config.items() if key not in FIELDS}
    return AppConfig(**values, extra=extra)

# ---------- public API ----------

def load_config(
    *,
    cwd: Path | None = None,
    environ: Mapping[str, str] | None = None,
    overrides: Mapping[str, Any] | None = None,
) -> AppConfig:
    """
    Load, merge, normalize, and validate configuration.
    No filesystem side-effects (no directory creation).
    """
    raw = _merge_sources(cwd=cwd, environ=environ, overrides=overrides)
    return _validate_and_build(raw)


def validate_or_create_config(*, overrides: Mapping[str, Any] | None = None) -> AppConfig:
    try:
        return load_config(overrides=overrides)
    except ValueError as exc:
        print_line(
            colorize(f"[ WARN ] Invalid configuration: {exc}", "yellow"))
        return ensure_config_interactive(force=True)
