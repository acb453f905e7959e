# plugins/account/entrypoint.py
from __future__ import annotations

from solo.commands import CommandResult, SessionContext, User, command
from solo.db import Database, DuplicateUserError
from solo.interface.parser import join_args
from solo.security import validate_username
from solo.ui import escape_markup, format_table, theme

PROFILE_FIELDS = ("bio", "contact", "status")


def _db(context: SessionContext) -> Database:
    return context.services.db


def _date(stamp: str | None, default: str = "Never") -> str:
    return stamp[:16] if stamp else default


def _refresh(context: SessionContext) -> None:
    """Reload the session user after a profile or role change."""
    if context.user is not None:
        context.user = _db(context).get_user_by_id(context.user.id)


def _create_account(context: SessionContext, username: str, password: str) -> CommandResult | None:
    """Validate and store a new account. Returns a failure result, or None on success."""
    try:
        validate_username(username)
    except ValueError as exc:
        return CommandResult.fail(str(exc))
    if not password:
        return CommandResult.fail("Password must not be empty")
    try:
        _db(context).create_user(username, password)
    except DuplicateUserError:
        return CommandResult.fail(f"Username '{username}' is already taken.")
    return None


def _render_profile(user: User, viewer: User | None, edit_hint: str) -> str:
    title = theme.primary(f"Profile: {user.username}")
    if user.is_admin:
        title += theme.highlight(" (Administrator)")
    lines = [title, ""]
    if user.status:
        lines += [theme.accent(f"Status: {escape_markup(user.status)}"), ""]
    if user.bio:
        lines += [theme.secondary("Bio:"), escape_markup(user.bio), ""]
    else:
        lines += [theme.dim("No bio provided"), ""]
    if user.contact:
        lines += [theme.secondary("Contact:"), escape_markup(user.contact), ""]
    lines.append(theme.dim(f"Member since: {_date(user.created_at, 'unknown')}"))
    if user.last_login:
        lines.append(theme.dim(f"Last login: {_date(user.last_login)}"))
    if viewer is not None and viewer.id == user.id:
        lines += [
            "",
            theme.info("To edit your profile:"),
            f"{theme.highlight(f'{edit_hint} bio <text>')} - Update your bio",
            f"{theme.highlight(f'{edit_hint} contact <text>')} - Update contact info",
            f"{theme.highlight(f'{edit_hint} status <text>')} - Update your status",
        ]
    return "\n".join(lines)


def _edit_profile(context: SessionContext, field: str, value: str) -> CommandResult:
    field = field.lower()
    if field not in PROFILE_FIELDS:
        return CommandResult.fail(
            f"Invalid field: {field}. Use 'bio', 'contact', or 'status'.")
    _db(context).update_profile(context.user.id, **{field: value})
    _refresh(context)
    return CommandResult.ok(theme.success(f"Updated {field} successfully"))


# ---------- login ----------
@command(
    name="login",
    description="Log in to your account",
    usage="login <username> <password>",
    aliases=["l"],
)
def login(args, context: SessionContext) -> CommandResult:
    if not args:
        return CommandResult.fail("Usage: login <username> <password>")
    if len(args) < 2:
        return CommandResult.fail("No password provided")

    username, password = args[0], args[1]
    user = _db(context).authenticate_user(username, password)
    if user is None:
        return CommandResult.fail("Invalid username or password")
    context.user = user
    return CommandResult.ok(theme.success(f"Successfully logged in as {user.username}"))


# ---------- logout ----------
@command(
    name="logout",
    description="Log out of your account",
    usage="logout",
    aliases=["signout"],
)
def logout(args, context: SessionContext) -> CommandResult:
    if context.user is None:
        return CommandResult.fail("You are not logged in")
    username = context.user.username
    context.user = None
    return CommandResult.ok(theme.success(f"Logged out from {username}"))


# ---------- register ----------
@command(
    name="register",
    description="Create a new account",
    usage="register <username> <password>",
    aliases=["signup", "reg"],
)
def register(args, context: SessionContext) -> CommandResult:
    if not args:
        return CommandResult.fail("Usage: register <username> <password>")
    if len(args) < 2:
        return CommandResult.fail("No password provided")

    username = args[0]
    problem = _create_account(context, username, args[1])
    if problem is not None:
        return problem
    return CommandResult.ok(
        theme.success(f"User '{username}' registered successfully. You can now login."))


# ---------- user ----------
@command(
    name="user",
    description="User management and profiles",
    usage="user list | user profile [username] | user edit <field> <value> | user register <username> <password>",
    aliases=["u"],
    subcommands=("list", "profile", "view", "edit", "register"),
)
def user(args, context: SessionContext) -> CommandResult:
    db = _db(context)
    if not args:
        return CommandResult.fail(
            "Usage:\n"
            "  user list - List all users\n"
            "  user profile [username] - View a profile\n"
            "  user edit <field> <value> - Edit your profile (bio, contact, status)\n"
            "  user register <username> <password> - Create an account and log in")

    action, rest = args[0].lower(), list(args[1:])

    if action == "list":
        users = db.list_users()
        show_ids = context.is_admin
        rows = []
        for u in users:
            marker = "->" if context.user is not None and context.user.id == u.id else ""
            row = [marker, u.username, "admin" if u.is_admin else "", escape_markup(u.status or "")]
            if show_ids:
                row += [u.id, _date(u.created_at, ""), _date(u.last_login)]
            rows.append(row)
        headers = ["", "User", "Role", "Status"]
        if show_ids:
            headers += ["ID", "Created", "Last login"]
        return CommandResult.ok(
            f"{theme.primary('All Users')}\n{theme.secondary('Total users:')} {len(users)}\n\n"
            + format_table(rows, headers=headers),
            data=[u.username for u in users],
        )

    if action in ("profile", "view"):
        target = rest[0] if rest else None
        if target is None:
            if context.user is None:
                return CommandResult.fail(
                    "Not logged in. Please login first or specify a username.")
            target = context.user.username
        found = db.get_user_by_username(target)
        if found is None:
            return CommandResult.fail(f"User '{target}' not found")
        return CommandResult.ok(_render_profile(found, context.user, "user edit"))

    if action == "edit":
        if context.user is None:
            return CommandResult.fail("You must be logged in to edit your profile.")
        if len(rest) < 2:
            return CommandResult.fail("Usage: user edit <field> <value>")
        return _edit_profile(context, rest[0], join_args(rest, 1))

    if action == "register":
        if len(rest) < 2:
            return CommandResult.fail("Usage: user register <username> <password>")
        username = rest[0]
        problem = _create_account(context, username, rest[1])
        if problem is not None:
            return problem
        context.user = db.authenticate_user(username, rest[1])
        return CommandResult.ok(theme.success(
            f"User {username} registered successfully. You are now logged in."))

    # `user <name>` shows that profile
    found = db.get_user_by_username(args[0])
    if found is None:
        return CommandResult.fail(f"User '{args[0]}' not found")
    return CommandResult.ok(_render_profile(found, context.user, "user edit"))


# ---------- profile ----------
@command(
    name="profile",
    description="View or edit user profiles",
    usage="profile [username] | profile edit <field> <value>",
    aliases=["pr"],
    subcommands=("edit",),
)
def profile(args, context: SessionContext) -> CommandResult:
    args = list(args)
    if args and args[0].lower() == "edit":
        # `profile edit ...` is shorthand for `profile <me> edit ...`
        if context.user is None:
            return CommandResult.fail("You must be logged in to edit your profile.")
        args.insert(0, context.user.username)

    if not args:
        if context.user is None:
            return CommandResult.fail(
                "Not logged in. Please login first or specify a username.")
        target = context.user.username
    else:
        target = args[0]

    found = _db(context).get_user_by_username(target)
    if found is None:
        return CommandResult.fail(f"User '{target}' not found")

    if len(args) > 1 and args[1].lower() == "edit":
        if context.user is None or context.user.id != found.id:
            return CommandResult.fail("You can only edit your own profile.")
        if len(args) < 4:
            return CommandResult.fail("Usage: profile edit <field> <value>")
        return _edit_profile(context, args[2], join_args(args, 3))

    return CommandResult.ok(_render_profile(found, context.user, "profile edit"))


# ---------- admin ----------
@command(
    name="admin",
    description="Administrative commands",
    usage="admin list | admin promote <username> | admin demote <username>",
    admin_only=True,
    subcommands=("list", "promote", "demote"),
)
def admin(args, context: SessionContext) -> CommandResult:
    db = _db(context)
    if not args:
        return CommandResult.fail(
            "Usage: admin promote <username> | admin demote <username> | admin list")

    action = args[0].lower()
    if action == "list":
        admins = [u for u in db.list_users() if u.is_admin]
        rows = [[u.username, _date(u.last_login)] for u in admins]
        return CommandResult.ok(
            theme.primary("Administrators") + "\n\n"
            + format_table(rows, headers=["User", "Last login"]),
            data=[u.username for u in admins],
        )

    if action not in ("promote", "demote"):
        return CommandResult.fail(
            "Invalid admin command. Use: admin promote <username> | admin demote <username> | admin list")
    if len(args) < 2:
        return CommandResult.fail(f"Usage: admin {action} <username>")

    target = db.get_user_by_username(args[1])
    if target is None:
        return CommandResult.fail(f"User '{args[1]}' not found")

    if action == "promote":
        db.set_admin(target.id, True)
        _refresh(context)
        return CommandResult.ok(
            theme.success(f"User '{target.username}' has been promoted to admin status"))

    if target.is_admin and db.count_admins() <= 1:
        return CommandResult.fail("Cannot demote the last admin user")
    db.set_admin(target.id, False)
    _refresh(context)
    return CommandResult.ok(
        theme.success(f"User '{target.username}' has been demoted from admin status"))
