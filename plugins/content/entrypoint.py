# plugins/content/entrypoint.py
from __future__ import annotations

from solo.commands import CommandResult, SessionContext, command
from solo.db import Database, Post, WeeklyPost
from solo.interface.parser import join_args, parse_int, split_fields
from solo.ui import escape_markup, format_table, theme

DEFAULT_LIST_LIMIT = 10
RECENT_LIMIT = 5
PREVIEW_CHARS = 50


def _db(context: SessionContext) -> Database:
    return context.services.db


def _day(stamp: str | None) -> str:
    return stamp[:10] if stamp else ""


def _preview(text: str, limit: int = PREVIEW_CHARS) -> str:
    return text if len(text) <= limit else text[:limit] + "..."


def _render_post(post: Post) -> str:
    return "\n".join([
        theme.primary(escape_markup(post.title)),
        theme.dim(f"Posted by {post.username or 'Anonymous'} on {post.created_at or ''}"),
        "",
        escape_markup(post.content),
    ])


# ---------- posts ----------
def _list_posts(args: list[str], context: SessionContext) -> CommandResult:
    limit = parse_int(args[0] if args else None, DEFAULT_LIST_LIMIT)
    posts = _db(context).list_posts("post", limit)
    if not posts:
        return CommandResult.ok(theme.info("No posts found. Be the first to post something!"))
    rows = [[p.id, escape_markup(p.title), p.username or "Anonymous", _day(p.created_at)]
            for p in posts]
    return CommandResult.ok(
        theme.primary("Recent Posts") + "\n\n"
        + format_table(rows, headers=["#", "Title", "Author", "Date"]) + "\n\n"
        + theme.info("Use 'post view <id>' to read a post"),
        data=[p.id for p in posts],
    )


def _view_post(args: list[str], context: SessionContext) -> CommandResult:
    if not args:
        return CommandResult.fail("Usage: post view <id>")
    post_id = parse_int(args[0])
    if post_id is None:
        return CommandResult.fail("Invalid post ID")
    post = _db(context).get_post(post_id)
    if post is None:
        return CommandResult.fail(f"Post #{post_id} not found")
    return CommandResult.ok(_render_post(post))


def _new_post(args: list[str], context: SessionContext) -> CommandResult:
    if len(args) < 2:
        return CommandResult.fail("Usage: post new <title> <content>")
    post_id = _db(context).create_post(context.user.id, args[0], join_args(args, 1))
    return CommandResult.ok("Post created successfully", data={"id": post_id})


# ---------- announcements / status ----------
def _announce(args: list[str], context: SessionContext) -> CommandResult:
    db = _db(context)
    if not args:
        posts = db.list_posts("announce", RECENT_LIMIT)
        if not posts:
            return CommandResult.ok(theme.info("No announcements yet"))
        lines = [theme.primary("Recent Announcements"), ""]
        for p in posts:
            lines += [theme.highlight(
                f"Announcement from {p.username or 'Anonymous'} on {_day(p.created_at)}:"),
                escape_markup(p.content), ""]
        return CommandResult.ok("\n".join(lines).rstrip())

    db.create_post(context.user.id, "ANNOUNCEMENT", join_args(args), "announce")
    return CommandResult.ok(theme.success("Announcement sent successfully"))


def _status(args: list[str], context: SessionContext) -> CommandResult:
    db = _db(context)
    if not args:
        posts = db.list_posts("status", RECENT_LIMIT)
        if not posts:
            return CommandResult.ok(theme.info("No status updates yet"))
        lines = [theme.primary("Recent Status Updates"), ""]
        for p in posts:
            lines += [theme.highlight(f"{p.username or 'Anonymous'} ({_day(p.created_at)}):"),
                      escape_markup(p.content), ""]
        return CommandResult.ok("\n".join(lines).rstrip())

    text = join_args(args)
    db.update_status(context.user.id, text)
    db.create_post(context.user.id, "Status Update", text, "status")
    context.user.status = text
    return CommandResult.ok(theme.success("Status updated successfully"))


# ---------- weekly ----------
def _render_weekly(post: WeeklyPost) -> str:
    lines = [
        theme.primary(f"Weekly Accountability: {post.username} - Week {post.week_number}"),
        theme.dim(f"Posted on {post.created_at or ''}"),
        "",
        theme.secondary("Last Week:"),
        escape_markup(post.last_week),
        "",
        theme.secondary("Next Week:"),
        escape_markup(post.next_week),
    ]
    if post.wins:
        lines += ["", theme.secondary("Wins:"), escape_markup(post.wins)]
    return "\n".join(lines)


def _weekly(args: list[str], context: SessionContext, invoked_as: str = "weekly") -> CommandResult:
    db = _db(context)
    week = db.current_week_number()

    if args and args[0].lower() == "new":
        fields = split_fields(join_args(args, 1))
        if len(fields) < 2 or not fields[0] or not fields[1]:
            return CommandResult.fail(
                f"Usage: {invoked_as} new <last_week> | <next_week> [| <wins>]")
        wins = fields[2] if len(fields) > 2 else ""
        db.upsert_weekly_post(context.user.id, week, fields[0], fields[1], wins)
        return CommandResult.ok(theme.success("Weekly accountability post created"))

    if args and args[0].lower() == "view":
        target = context.user.username
        week_number = week
        if len(args) >= 2:
            if args[1].isdigit():
                week_number = int(args[1])
            else:
                target = args[1]
                if len(args) >= 3 and args[2].isdigit():
                    week_number = int(args[2])
        found = db.get_user_by_username(target)
        if found is None:
            return CommandResult.fail(f"User {target} not found")
        post = db.get_weekly_post(found.id, week_number)
        if post is None:
            return CommandResult.fail(
                f"No weekly post found for {target} for week {week_number}")
        return CommandResult.ok(_render_weekly(post))

    posts = db.latest_weekly_posts()
    if not posts:
        return CommandResult.ok(theme.info(
            f'No weekly accountability posts yet. Create one with "{invoked_as} new".'))
    lines = [theme.primary("Latest Weekly Accountability Posts"), ""]
    for p in posts:
        lines.append(theme.highlight(f"{p.username} - Week {p.week_number} ({_day(p.created_at)}):"))
        lines.append(f"{theme.secondary('Last Week:')} {escape_markup(_preview(p.last_week))}")
        lines.append(f"{theme.secondary('Next Week:')} {escape_markup(_preview(p.next_week))}")
        if p.wins:
            lines.append(f"{theme.secondary('Wins:')} {escape_markup(_preview(p.wins))}")
        lines.append("")
    lines.append(theme.info(f"View full post: '{invoked_as} view <username> [week]'"))
    lines.append(theme.info(f"Create your post: '{invoked_as} new <last_week> | <next_week> [| <wins>]'"))
    return CommandResult.ok("\n".join(lines))


@command(
    name="post",
    description="Create and view various types of posts",
    usage="post list [limit] | post view <id> | post new <title> <content> | post announce <message> | post status <message> | post weekly",
    aliases=["p"],
    requires_auth=True,
    subcommands=("list", "view", "new", "announce", "status", "weekly"),
)
def post(args, context: SessionContext) -> CommandResult:
    if not args:
        return _list_posts([], context)

    action, rest = args[0].lower(), list(args[1:])
    if action == "list":
        return _list_posts(rest, context)
    if action == "view":
        return _view_post(rest, context)
    if action == "new":
        return _new_post(rest, context)
    if action == "announce":
        return _announce(rest, context)
    if action == "status":
        return _status(rest, context)
    if action == "weekly":
        return _weekly(rest, context, invoked_as="post weekly")
    return CommandResult.fail(
        "Usage:\n"
        "  post list [limit] - List recent posts\n"
        "  post view <id> - Read a post\n"
        "  post new <title> <content> - Create a post\n"
        "  post announce <message> - Make an announcement\n"
        "  post status <message> - Update your status\n"
        "  post weekly - Weekly accountability posts")


@command(
    name="announce",
    description="Make or view announcements",
    usage="announce [message]",
    aliases=["a"],
    requires_auth=True,
)
def announce(args, context: SessionContext) -> CommandResult:
    return _announce(list(args), context)


@command(
    name="status",
    description="Update your status or view recent statuses",
    usage="status [message]",
    aliases=["s"],
    requires_auth=True,
)
def status(args, context: SessionContext) -> CommandResult:
    return _status(list(args), context)


@command(
    name="weekly",
    description="Weekly accountability posts for founders",
    usage="weekly | weekly view [username] [week] | weekly new <last_week> | <next_week> [| <wins>]",
    aliases=["w", "accountability"],
    requires_auth=True,
    subcommands=("new", "view"),
)
def weekly(args, context: SessionContext) -> CommandResult:
    return _weekly(list(args), context)


# ---------- guestbook ----------
def _list_guestbook(context: SessionContext) -> CommandResult:
    entries = _db(context).list_guestbook_entries()
    if not entries:
        return CommandResult.ok(theme.info("The guestbook is empty. Be the first to sign!"))
    lines = [theme.primary("SOLO House Guestbook"), ""]
    for entry in entries:
        lines += [theme.highlight(f"{escape_markup(entry.name)} ({_day(entry.created_at)}):"),
                  escape_markup(entry.message), ""]
    lines.append(theme.info("To sign the guestbook: 'guest <your name> <your message>'"))
    return CommandResult.ok("\n".join(lines), data=[e.id for e in entries])


def _sign_guestbook(args: list[str], context: SessionContext) -> CommandResult:
    if len(args) < 2:
        return CommandResult.fail("Usage: guest <name> <message> - Sign the guestbook")
    name, message = args[0], join_args(args, 1)
    _db(context).add_guestbook_entry(name, message)
    return CommandResult.ok(theme.success(f"Thanks for signing the guestbook, {escape_markup(name)}!"))


@command(
    name="guest",
    description="Sign or view the digital guestbook",
    usage="guest | guest sign <name> <message> | guest <name> <message>",
    aliases=["g", "gb", "guestbook"],
    subcommands=("list", "sign"),
)
def guest(args, context: SessionContext) -> CommandResult:
    if not args or args[0].lower() == "list":
        return _list_guestbook(context)
    if args[0].lower() == "sign":
        return _sign_guestbook(list(args[1:]), context)
    return _sign_guestbook(list(args), context)
