from __future__ import annotations

from solo.interface import ADMIN_REQUIRED, AUTH_REQUIRED
from solo.ui import render_markup, strip_markup


def test_boot_loads_every_builtin(board):
    for name in ("help", "login", "logout", "register", "user", "profile", "admin",
                 "post", "announce", "status", "weekly", "guest", "system", "make"):
        assert board.registry.resolve(name) is not None, name
    assert board.registry.resolve("?").name == "help"
    assert board.registry.resolve("accountability").name == "weekly"
    assert board.registry.resolve("post").category == "content"
    assert board.registry.get_category_description("account")
    assert board.registry.warnings == []
    assert board.loaded_count == len(board.registry)


def test_post_requires_login_then_succeeds(board, run, session):
    board.db.create_user("alice", "pw")

    blocked = run("post new hi body")
    assert not blocked.success
    assert blocked.error == AUTH_REQUIRED

    login = run("login alice pw")
    assert login.success
    assert session.user.username == "alice"

    created = run("post new hi body")
    assert created.success
    assert created.result == "Post created successfully"
    post = board.db.get_post(created.data["id"])
    assert (post.title, post.content, post.username) == ("hi", "body", "alice")


def test_login_failures(board, run, session):
    board.db.create_user("alice", "pw-secret")

    assert run("login").error.startswith("Usage")
    assert run("login alice").error == "No password provided"
    assert run("login alice nope").error == "Invalid username or password"
    assert session.user is None


def test_logout(run, login_as, session):
    assert not run("logout").success

    login_as("alice")
    result = run("signout")

    assert result.success
    assert "alice" in result.result
    assert session.user is None


def test_register_does_not_log_in(board, run, session):
    result = run("register newbie pw-secret")

    assert result.success
    assert session.user is None
    assert board.db.get_user_by_username("newbie") is not None
    assert "already taken" in run("reg newbie other").error
    assert not run("register x pw").success
    assert run("register onlyname").error == "No password provided"


def test_user_register_logs_in(run, session):
    result = run("user register carol pw-secret")

    assert result.success
    assert session.user.username == "carol"


def test_user_list_and_profiles(board, run, login_as):
    login_as("alice")
    board.db.create_user("bob", "pw-secret")

    listing = run("user list")
    assert listing.success
    assert sorted(listing.data) == ["admin", "alice", "bob"]

    assert "Profile: bob" in run("user profile bob").result
    assert "Profile: bob" in run("user bob").result
    assert "Profile: bob" in run("u bob").result
    assert sorted(run("u list").data) == ["admin", "alice", "bob"]
    assert "Profile: alice" in run("user profile").result
    assert run("user profile ghost").error == "User 'ghost' not found"


def test_profile_edit_updates_session_user(run, login_as, session):
    login_as("alice")

    assert run('profile edit bio "I build things"').success
    assert run("profile alice edit contact alice@example.com").success
    assert run("user edit status shipping").success

    assert session.user.bio == "I build things"
    assert session.user.contact == "alice@example.com"
    assert session.user.status == "shipping"
    assert "Invalid field" in run("profile edit age 30").error
    assert "I build things" in run("pr").result


def test_profile_of_someone_else_is_read_only(board, run, login_as):
    board.db.create_user("bob", "pw-secret")
    login_as("alice")

    assert run("profile bob").success
    assert not run("profile bob edit bio hacked").success
    assert board.db.get_user_by_username("bob").bio == ""


def test_profile_needs_a_target_when_anonymous(run):
    assert "Not logged in" in run("profile").error


def test_admin_is_gated(board, run, login_as, new_session):
    assert run("admin list").error == ADMIN_REQUIRED
    login_as("alice")
    assert run("admin list").error == ADMIN_REQUIRED

    root = new_session()
    login_as("admin", "admin", context=root)
    listing = run("admin list", root)
    assert listing.success
    assert listing.data == ["admin"]


def test_admin_promote_and_demote(board, run, login_as, new_session):
    board.db.create_user("bob", "pw-secret")
    root = new_session()
    login_as("admin", "admin", context=root)

    assert run("admin promote bob", root).success
    assert board.db.get_user_by_username("bob").is_admin
    assert run("admin demote bob", root).success
    assert not board.db.get_user_by_username("bob").is_admin
    assert run("admin promote ghost", root).error == "User 'ghost' not found"
    assert run("admin frobnicate bob", root).error.startswith("Invalid admin command")


def test_last_admin_cannot_demote_self(board, run, login_as, new_session):
    root = new_session()
    login_as("admin", "admin", context=root)

    result = run("admin demote admin", root)

    assert result.error == "Cannot demote the last admin user"
    assert board.db.get_user_by_username("admin").is_admin
    assert root.is_admin


def test_post_list_and_view(board, run, login_as):
    login_as("alice")
    run('post new "First post" "hello board"')
    second = run('post new Second "more text"').data["id"]

    listing = run("post list")
    assert listing.success
    assert len(listing.data) == 2
    assert "First post" in listing.result
    assert run("p").success
    assert len(run("post list 1").data) == 1

    assert "more text" in run(f"post view {second}").result
    assert run("post view abc").error == "Invalid post ID"
    assert run("post view 999").error == "Post #999 not found"
    assert run("post new only-title").error.startswith("Usage")
    assert run("post bogus").error.startswith("Usage")


def test_announcements_and_status(board, run, login_as, session):
    login_as("alice")

    assert "No announcements" in run("announce").result
    assert run("announce Board maintenance tonight").success
    assert "Board maintenance tonight" in run("a").result
    assert run("post announce via post").success
    assert len(board.db.list_posts("announce")) == 2

    assert run("status heads down").success
    assert session.user.status == "heads down"
    assert board.db.get_user_by_username("alice").status == "heads down"
    assert "heads down" in run("s").result
    assert "heads down" in run("post status").result


def test_weekly_posts(board, run, login_as, new_session):
    login_as("alice")

    assert "No weekly accountability posts" in run("weekly").result
    created = run("weekly new shipped the beta | write docs | first customer")
    assert created.success

    week = board.db.current_week_number()
    mine = run("weekly view")
    assert f"Week {week}" in mine.result
    assert "first customer" in mine.result
    assert run(f"w view alice {week}").success
    assert run(f"weekly view {week + 1}").error == f"No weekly post found for alice for week {week + 1}"
    assert run("weekly view ghost").error == "User ghost not found"
    assert run("weekly new only one field").error.startswith("Usage: weekly new")
    assert run("post weekly new a").error.startswith("Usage: post weekly new")

    bob = new_session()
    login_as("bob", context=bob)
    run("accountability new planning | building", bob)
    overview = run("weekly", bob)
    assert "alice" in overview.result and "bob" in overview.result


def test_weekly_new_replaces_this_weeks_post(board, run, login_as, session):
    login_as("alice")
    run("weekly new draft | draft")
    run("weekly new final | final")

    post = board.db.get_weekly_post(session.user.id, board.db.current_week_number())
    assert post.last_week == "final"
    assert len(board.db.latest_weekly_posts()) == 1


def test_guestbook_is_open_to_everyone(board, run):
    assert "empty" in run("guest").result
    assert run('guest sign Visitor "lovely board"').success
    assert run("gb Wanderer passing through").success
    assert not run("guestbook OnlyName").success

    listing = run("guest list")
    assert len(listing.data) == 2
    assert "passing through" in listing.result
    assert "lovely board" in listing.result


def test_user_text_cannot_restyle_output(board, run, login_as):
    login_as("alice")
    post_id = run('post new "[red]loud" "[bold]shout[/] quietly"').data["id"]
    run('guest "[magenta]Eve" "hi [/] there"')
    run('profile edit bio "[magenta]about me"')

    view = run(f"post view {post_id}").result
    assert strip_markup(view).splitlines()[0] == "[red]loud"
    assert "[bold]shout[/] quietly" in strip_markup(view)
    assert "\x1b[31m" not in render_markup(view)

    guestbook = run("guest").result
    assert "[magenta]Eve (" in strip_markup(guestbook)
    assert "hi [/] there" in strip_markup(guestbook)
    assert "\x1b[35m" not in render_markup(guestbook)

    profile = run("profile").result
    assert "[magenta]about me" in strip_markup(profile)
    assert "\x1b[35m" not in render_markup(profile)


def test_help_lists_categories_and_details(run, login_as, new_session):
    overview = run("help")
    assert overview.success
    for category in ("ACCOUNT", "CONTENT", "SYSTEM"):
        assert category in overview.result
    assert "| admin " not in overview.result
    assert "| login " in overview.result

    detail = run("help w")
    assert "Command: weekly" in detail.result
    assert "logged-in users" in detail.result
    assert run("? content").success
    assert run("help nothing-here").error == "Unknown command or category: nothing-here"
    assert run("help admin").error.startswith("Unknown command")

    root = new_session()
    login_as("admin", "admin", context=root)
    assert "Command: admin" in run("help admin", root).result


def test_system_info(board, run, login_as):
    login_as("alice")
    result = run("sys info")

    assert result.success
    assert "SOLO-OS System Information" in result.result
    assert "alice" in result.result
    assert result.data["users"] == 2
    assert run("system").error.startswith("Usage")


def test_unknown_command_suggests(run):
    result = run("halp")

    assert result.error == "Unknown command: halp"
    assert "help" in result.data["suggestions"]
