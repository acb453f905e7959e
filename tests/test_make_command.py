from __future__ import annotations

from solo.boot import boot_sequence
from solo.commands import SessionContext
from solo.db import load_config
from solo.interface import AUTH_REQUIRED
from solo.ui import render_markup, strip_markup


def test_make_requires_login(run):
    assert run("make list").error == AUTH_REQUIRED
    assert run("system make list").error == "You must be logged in to create custom commands"


def test_make_creates_a_runnable_command(board, run, login_as):
    login_as("alice")

    created = run("""make greet "Greets people" 'return "hello " + args[0];'""")
    assert created.success, created.error
    assert "Use it with 'greet' or 'custom_greet'" in created.result
    assert created.data["name"] == "custom_greet"

    assert run("greet world").result == "hello world"
    assert run("custom_greet there").result == "hello there"
    assert board.registry.resolve("greet").creator_id == board.db.get_user_by_username("alice").id


def test_unquoted_body_is_joined(run, login_as):
    login_as("alice")

    assert run("make shout Shouts upper(args[0]) + args[1]").success
    assert run("shout quiet please").result == "QUIETplease"


def test_make_list_and_view(run, login_as):
    login_as("alice")
    assert "No custom commands yet" in run("make list").result

    run("""mk echo_back "Echo arguments" 'args.join(" ")'""")
    listing = run("make list")
    assert listing.data == ["custom_echo_back"]
    assert "echo_back" in listing.result

    view = run("make view echo_back")
    assert "Custom Command: echo_back" in view.result
    assert 'args.join(" ")' in view.result
    assert run("make view nope").error == "Command 'nope' not found"
    assert "Creating New Command: thing" in run("m thing").result
    assert run("make").error.startswith("Usage")


def test_make_rejects_bad_input(board, run, login_as):
    login_as("alice")

    bad_name = run('make Bad-Name "desc" "1"')
    assert bad_name.error == (
        "Failed to create command: Command name must contain only lowercase letters, "
        "numbers, and underscores")

    bad_body = run("""make sneaky "desc" '__import__("os").system("id")'""")
    assert bad_body.error.startswith("Failed to create command:")
    assert board.db.find_custom_command_by_name("sneaky") is None
    assert board.registry.resolve("sneaky") is None


def test_duplicate_name_from_another_user_fails(board, run, login_as, new_session):
    alice = new_session()
    bob = new_session()
    login_as("alice", context=alice)
    login_as("bob", context=bob)

    assert run("""make greet "Alice's" '"from alice"'""", alice).success
    second = run("""make greet "Bob's" '"from bob"'""", bob)

    assert not second.success
    assert second.error == "Command 'greet' already exists"
    assert run("greet", bob).result == "from alice"
    assert board.db.find_custom_command_by_name("greet").creator == "alice"


def test_custom_name_cannot_displace_builtin(board, run, login_as):
    login_as("alice")

    created = run("""make help "Fake help" '"gotcha"'""")

    assert created.success
    assert "use 'custom_help'" in created.result
    assert run("help").result != "gotcha"
    assert "Commands" in run("help").result
    assert run("custom_help").result == "gotcha"


def test_custom_command_failures_are_contained(run, login_as):
    login_as("alice")
    run("""make divide "Divides" 'int(args[0]) / int(args[1])'""")

    assert run("divide 6 3").result == "2"
    assert run("divide 1 0").error == "ScriptError: division by zero"
    assert run("divide x 1").error.startswith("ScriptError")
    assert run("help").success


def test_system_make_delegates(run, login_as):
    login_as("alice")

    assert run("""system make wave "Waves" '"o/"'""").success
    assert run("wave").result == "o/"
    assert run("sys make list").data == ["custom_wave"]


def test_custom_command_output_cannot_restyle_the_terminal(run, login_as):
    login_as("alice")
    run("""make paint "[red]Paints" '"[red]wet" + args[0]'""")

    assert run("paint [/]").result == "[lb]red]wet[lb]/]"
    assert strip_markup(run("paint !").result) == "[red]wet!"
    assert "[red]Paints" in strip_markup(run("make list").result)
    assert "\x1b[31m" not in render_markup(run("make view paint").result)


def test_admins_only_when_user_commands_disabled(tmp_path):
    config = load_config(
        cwd=tmp_path,
        environ={},
        overrides={"DATABASE_PATH": str(tmp_path / "locked.db"), "ALLOW_USER_COMMANDS": False},
    )
    state = boot_sequence(config, quiet=True)
    try:
        state.db.create_user("alice", "pw-secret")
        member = SessionContext(services=state.services)
        root = SessionContext(services=state.services)
        state.dispatcher.handle_line("login alice pw-secret", member)
        state.dispatcher.handle_line("login admin admin", root)

        denied = state.dispatcher.handle_line("""make hi "desc" '"hi"'""", member)
        allowed = state.dispatcher.handle_line("""make hi "desc" '"hi"'""", root)

        assert denied.error == "Only admins may create custom commands on this board"
        assert allowed.success
    finally:
        state.close()


def test_custom_commands_survive_restart(tmp_path):
    config = load_config(
        cwd=tmp_path, environ={}, overrides={"DATABASE_PATH": str(tmp_path / "board.db")})

    first = boot_sequence(config, quiet=True)
    try:
        first.db.create_user("alice", "pw-secret")
        context = SessionContext(services=first.services)
        first.dispatcher.handle_line("login alice pw-secret", context)
        first.dispatcher.handle_line("""make twice "Doubles" 'args[0] + args[0]'""", context)
        first.db.insert_custom_command(None, "broken", "Never loads", "import os")
    finally:
        first.close()

    second = boot_sequence(config, quiet=True)
    try:
        assert second.custom_count == 1
        assert "custom_broken" in second.loader.failures
        context = SessionContext(services=second.services)
        second.dispatcher.handle_line("login alice pw-secret", context)
        assert second.dispatcher.handle_line("twice ab", context).result == "abab"
        assert second.dispatcher.handle_line("broken", context).error == "Unknown command: broken"
    finally:
        second.close()


def test_seeded_board_has_a_demo_command(tmp_path):
    config = load_config(
        cwd=tmp_path,
        environ={},
        overrides={"DATABASE_PATH": str(tmp_path / "demo.db"), "SEED_DEMO_DATA": True},
    )
    state = boot_sequence(config, quiet=True)
    try:
        context = SessionContext(services=state.services)
        state.dispatcher.handle_line("login sysop sysop", context)

        assert state.dispatcher.handle_line("hello", context).result == "hello world"
        assert state.dispatcher.handle_line("hello you", context).result == "hello you"
    finally:
        state.close()
