from __future__ import annotations

import io

import pytest

from solo.commands import CommandRegistry, CommandResult, SessionContext
from solo.interface import (
    HELP_TEXT,
    BaseCLI,
    ParseError,
    join_args,
    load_commands,
    parse_int,
    parse_line,
    render_result,
    run_repl,
    split_fields,
    suggest,
    tokenize,
)
from solo.ui import escape_markup, format_table, render_markup, strip_markup, theme


class ScriptedCLI(BaseCLI):
    """Feeds canned lines and passwords, recording the prompts it was shown."""

    def __init__(self, lines, passwords=()):
        self.lines = list(lines)
        self.passwords = list(passwords)
        self.prompts: list[str] = []
        self.torn_down = False

    def get_line(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if not self.lines:
            raise EOFError
        return self.lines.pop(0)

    def get_password(self, prompt: str = "Password: ") -> str:
        self.prompts.append(prompt)
        return self.passwords.pop(0)

    def teardown(self) -> None:
        self.torn_down = True


def repl(board, context, lines, passwords=()):
    cli = ScriptedCLI(lines, passwords)
    out = io.StringIO()
    code = run_repl(cli, board.dispatcher, context, show_banner=False, color=False, out=out)
    return code, cli, out.getvalue()


# ---------- parser ----------
def test_tokenize_follows_shell_quoting():
    assert tokenize("""post new "Hello there" 'it works'""") == ["post", "new", "Hello there", "it works"]
    assert parse_line("  help   post ") == ("help", ["post"])
    assert parse_line("") == ("", [])

    with pytest.raises(ParseError):
        tokenize('say "unterminated')


def test_argument_helpers():
    assert join_args(["new", "a", "b c"], 1) == "a b c"
    assert join_args([], 0) == ""
    assert split_fields("shipped | docs |  ") == ["shipped", "docs", ""]
    assert parse_int("7") == 7
    assert parse_int("0", 10) == 10
    assert parse_int("-3", 10) == 10
    assert parse_int("ten", 10) == 10
    assert parse_int(None) is None


# ---------- completion ----------
def test_first_token_completion(board):
    assert suggest(board.registry, "he") == ["help"]
    assert "exit" in suggest(board.registry, "ex")
    assert "quit" in suggest(board.registry, "")


def test_completion_hides_what_the_user_cannot_run(board):
    alice_id = board.db.create_user("alice", "pw-secret")
    alice = board.db.get_user_by_id(alice_id)
    admin = board.db.get_user_by_username("admin")

    assert "post" not in suggest(board.registry, "po")
    assert "post" in suggest(board.registry, "po", alice)
    assert "admin" not in suggest(board.registry, "ad", alice)
    assert "admin" in suggest(board.registry, "ad", admin)


def test_subcommand_and_help_completion(board):
    assert suggest(board.registry, "post v") == ["view"]
    assert suggest(board.registry, "sys ") == ["info", "make"]
    assert "account" in suggest(board.registry, "help ac")
    assert suggest(board.registry, "nothing ") == []
    assert suggest(board.registry, "post list 1") == []


# ---------- markup and tables ----------
def test_markup_renders_and_strips():
    text = theme.error("bad") + " [draft] [1, 2]"

    assert strip_markup(text) == "bad [draft] [1, 2]"
    assert render_markup("[red]x[/red]") == "\x1b[31mx\x1b[0m"
    assert render_markup("[bold]open") == "\x1b[1mopen\x1b[0m"
    assert strip_markup(theme.highlight("help")) == "help"


def test_escaped_markup_renders_literally():
    typed = "[red]x[/] [/red] [lb] [1, 2]"
    escaped = escape_markup(typed)

    assert strip_markup(escaped) == typed
    assert render_markup(theme.primary(escaped)) == "\x1b[36m" + typed + "\x1b[0m"
    assert escape_markup("plain text") == "plain text"


def test_format_table():
    table = format_table([["alice", 3], ["bob", None]], headers=["Name", "Posts"])
    lines = table.splitlines()

    assert lines[0] == lines[-1] == "-" * len(lines[1])
    assert lines[1] == "| Name  | Posts |"
    assert lines[3] == "| alice | 3     |"
    assert lines[4] == "| bob   |       |"
    assert format_table([]) == ""
    assert format_table([["a"]], border=False) == "| a |"
    assert format_table([[escape_markup("[red]"), "b"]], border=False) == "| [lb]red] | b |"


def test_format_table_truncates_long_cells():
    table = format_table([["x" * 100]], max_width=10, border=False)

    assert table == "| xxxxxxx... |"


# ---------- result rendering ----------
def test_render_result():
    assert render_result(CommandResult.ok("fine")) == "fine"
    assert render_result(CommandResult.ok("")) is None

    failure = render_result(CommandResult.fail("nope"))
    assert strip_markup(failure) == "nope"
    assert strip_markup(render_result(CommandResult.fail("bad [/]input"))) == "bad [/]input"

    unknown = render_result(
        CommandResult.fail("Unknown command: halp", data={"suggestions": ["help"]}))
    assert "Did you mean: help?" in unknown
    assert HELP_TEXT in unknown


# ---------- REPL ----------
def test_repl_runs_commands_until_quit(board, session):
    code, cli, output = repl(board, session, ["", "guest Visitor hello there", "quit", "help"])

    assert code == 0
    assert "Thanks for signing the guestbook, Visitor!" in output
    assert output.rstrip().endswith("Goodbye!")
    assert cli.lines == ["help"]
    assert cli.torn_down
    assert "\x1b[" not in output


def test_repl_stops_on_eof(board, session):
    code, _, output = repl(board, session, ["halp"])

    assert code == 0
    assert "Unknown command: halp" in output
    assert "Did you mean" in output
    assert "Goodbye!" in output


def test_repl_prompts_for_missing_login_password(board, session):
    board.db.create_user("alice", "pw-secret")

    _, cli, output = repl(board, session, ["login alice", "status"], passwords=["pw-secret"])

    assert session.user.username == "alice"
    assert "Successfully logged in as alice" in output
    assert "Password: " in cli.prompts
    assert cli.prompts[0] == "SOLO-OS> "
    assert cli.prompts[-1] == "alice@SOLO-OS> "


def test_repl_register_confirms_password(board, session):
    _, _, output = repl(board, session, ["register bob"], passwords=["one", "two"])

    assert "Passwords do not match" in output
    assert board.db.get_user_by_username("bob") is None


def test_repl_reports_parse_errors(board, session):
    _, _, output = repl(board, session, ['guest "broken'])

    assert "Parse error" in output


def test_admin_prompt_marker(board, session):
    _, cli, _ = repl(board, session, ["login admin", "help"], passwords=["admin"])

    assert cli.prompts[-1] == "admin#@SOLO-OS> "


def test_repl_output_keeps_color_when_asked(board):
    context = SessionContext(services=board.services)
    cli = ScriptedCLI(["nope"])
    out = io.StringIO()

    run_repl(cli, board.dispatcher, context, show_banner=True, color=True, out=out)

    assert "\x1b[31m" in out.getvalue()
    assert "Welcome to SOLO-OS" in out.getvalue()


# ---------- plugin discovery ----------
def test_load_commands_assigns_categories():
    registry = CommandRegistry()

    count = load_commands(registry, "plugins")

    assert count == len(registry) == 14
    assert registry.resolve("login").category == "account"
    assert registry.resolve("guest").category == "content"
    assert registry.resolve("make").category == "system"
    assert registry.get_category_description("system") == "Help, system information and custom commands."
