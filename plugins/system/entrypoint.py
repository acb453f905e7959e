# plugins/system/entrypoint.py
from __future__ import annotations

import platform
import time

from solo import __version__
from solo.commands import CommandResult, CompileError, SessionContext, command
from solo.commands.dynamic import CUSTOM_CATEGORY, namespaced, strip_prefix
from solo.db import DuplicateNameError
from solo.interface.handler import format_command_help, list_categories
from solo.interface.parser import join_args
from solo.ui import escape_markup, format_table, theme

_STARTED = time.monotonic()

MAKE_EXAMPLE = 'return "Hello, " + (args[0] || "world") + "!";'


def _format_uptime(seconds: float) -> str:
    days, rem = divmod(int(seconds), 86400)
    hours, rem = divmod(rem, 3600)
    minutes, secs = divmod(rem, 60)
    parts = []
    if days:
        parts.append(f"{days}d")
    if days or hours:
        parts.append(f"{hours}h")
    if days or hours or minutes:
        parts.append(f"{minutes}m")
    parts.append(f"{secs}s")
    return " ".join(parts)


# ---------- help ----------
@command(
    name="help",
    description="Show available commands or details for one",
    usage="help [command|category]",
    aliases=["h", "?"],
)
def help_(args, context: SessionContext) -> CommandResult:
    registry = context.services.registry
    if not args:
        return CommandResult.ok(list_categories(registry, context.user))
    text = format_command_help(registry, args[0], context.user)
    if text is None:
        return CommandResult.fail(f"Unknown command or category: {args[0]}")
    return CommandResult.ok(text)


# ---------- system ----------
def _system_info(context: SessionContext) -> CommandResult:
    services = context.services
    stats = services.db.stats()
    registry = services.registry
    custom_loaded = len(registry.categories().get(CUSTOM_CATEGORY, []))

    if context.user is None:
        who, role = "Not logged in", "Guest"
    else:
        who = context.user.username
        role = "Administrator" if context.user.is_admin else "User"

    rows = [
        ["Version", __version__],
        ["Platform", f"{platform.system()} {platform.release()}"],
        ["Python", platform.python_version()],
        ["Uptime", _format_uptime(time.monotonic() - _STARTED)],
        ["Users", stats.get("users", 0)],
        ["Posts", stats.get("posts", 0)],
        ["Announcements", stats.get("announcements", 0)],
        ["Guestbook Entries", stats.get("guestbook", 0)],
        ["Weekly Updates", stats.get("weekly_posts", 0)],
        ["Custom Commands", f"{stats.get('commands', 0)} stored, {custom_loaded} loaded"],
        ["Registered Commands", len(registry)],
        ["Logged in as", who],
        ["User role", role],
    ]
    return CommandResult.ok(
        theme.primary("SOLO-OS System Information") + "\n\n" + format_table(rows),
        data=stats,
    )


@command(
    name="system",
    description="System operations and information",
    usage="system info | system make <name> | system make list | system make view <name>",
    aliases=["sys"],
    subcommands=("info", "make"),
)
def system(args, context: SessionContext) -> CommandResult:
    action = args[0].lower() if args else ""
    if action == "info":
        return _system_info(context)
    if action == "make":
        return _make(list(args[1:]), context, invoked_as="system make")
    return CommandResult.fail(
        "Usage:\n"
        "  system info - Show system information\n"
        "  system make list - List custom commands\n"
        "  system make view <name> - View a custom command\n"
        "  system make <name> <description> <implementation> - Create a new command")


# ---------- make ----------
def _list_custom(context: SessionContext, invoked_as: str) -> CommandResult:
    records = context.services.db.list_custom_commands()
    if not records:
        return CommandResult.ok(theme.info(
            f'No custom commands yet. Create one with "{invoked_as} <name>".'))
    rows = [[r.base_name, escape_markup(r.description), r.creator or "Unknown",
             (r.created_at or "")[:10]]
            for r in records]
    return CommandResult.ok(
        theme.primary("Custom Commands") + "\n\n"
        + format_table(rows, headers=["Name", "Description", "Author", "Created"]),
        data=[r.name for r in records],
    )


def _view_custom(name: str, context: SessionContext) -> CommandResult:
    record = context.services.db.find_custom_command_by_name(name)
    if record is None:
        return CommandResult.fail(f"Command '{name}' not found")
    lines = [
        theme.primary(f"Custom Command: {record.base_name}"),
        "",
        f"{theme.secondary('Description:')} {escape_markup(record.description)}",
        theme.dim(f"Created by {record.creator or 'Unknown'} on {(record.created_at or '')[:10]}"),
        "",
        theme.secondary("Implementation:"),
        escape_markup(record.implementation),
    ]
    failure = context.services.loader.failures.get(record.name) if context.services.loader else None
    if failure:
        lines += ["", theme.error(f"Not loaded: {failure}")]
    return CommandResult.ok("\n".join(lines))


def _make_guide(name: str, invoked_as: str) -> CommandResult:
    return CommandResult.ok("\n".join([
        theme.primary(f"Creating New Command: {name}"),
        "",
        theme.info("To create a custom command, use:"),
        theme.highlight(f"{invoked_as} {name} <description> <implementation>"),
        "",
        theme.secondary("Example:"),
        theme.highlight(f"{invoked_as} hello \"Says hello to someone\" '{MAKE_EXAMPLE}'"),
        "",
        theme.secondary("Available in implementation:"),
        theme.dim("- args: list of command arguments (args[0], args.length, args.join(\" \"))"),
        theme.dim("- user: the caller (user.username, user.is_admin) or null"),
        theme.dim("- functions: upper, lower, trim, len, join, repeat, replace, default, now ..."),
    ]))


def _create_custom(args: list[str], context: SessionContext) -> CommandResult:
    services = context.services
    config = services.config
    if config is not None and not config.allow_user_commands and not context.is_admin:
        return CommandResult.fail("Only admins may create custom commands on this board")
    if services.loader is None:
        return CommandResult.fail("Custom commands are disabled")

    name, description, body = args[0], args[1], join_args(args, 2)
    try:
        record = services.loader.create(services.db, context.user, name, description, body)
    except DuplicateNameError:
        return CommandResult.fail(f"Command '{strip_prefix(name)}' already exists")
    except (ValueError, CompileError) as exc:
        return CommandResult.fail(f"Failed to create command: {exc}")

    base = record.base_name
    stored = namespaced(base)
    if services.registry.resolve(stored) is None:
        reason = services.loader.failures.get(stored, "unknown error")
        return CommandResult.fail(f"Command '{base}' was saved but could not be loaded: {reason}")
    owner = services.registry.resolve(base)
    if owner is not None and owner.name == stored:
        hint = f"Use it with '{base}' or '{stored}'."
    else:
        hint = f"'{base}' is taken by a built-in; use '{stored}'."
    return CommandResult.ok(
        theme.success(f"Command '{base}' created successfully. {hint}"),
        data={"name": stored, "id": record.id},
    )


def _make(args: list[str], context: SessionContext, invoked_as: str = "make") -> CommandResult:
    if context.user is None:
        return CommandResult.fail("You must be logged in to create custom commands")

    if len(args) == 1 and args[0] == "list":
        return _list_custom(context, invoked_as)
    if len(args) == 2 and args[0] == "view":
        return _view_custom(args[1], context)
    if len(args) >= 3:
        return _create_custom(args, context)
    if len(args) == 1 and args[0] != "view":
        return _make_guide(args[0], invoked_as)
    return CommandResult.fail(
        "Usage:\n"
        f"  {invoked_as} list - List custom commands\n"
        f"  {invoked_as} view <name> - View a custom command\n"
        f"  {invoked_as} <name> <description> <implementation> - Create a new command")


@command(
    name="make",
    description="Create and manage custom commands",
    usage="make <name> | make list | make view <name> | make <name> <description> <implementation>",
    aliases=["m", "mk"],
    requires_auth=True,
    subcommands=("list", "view"),
)
def make(args, context: SessionContext) -> CommandResult:
    return _make(list(args), context)
