#!/usr/bin/env python3
# solo/interface/cli.py
from __future__ import annotations

"""
Interactive input frontends and the read-eval-print loop.

Selection order:
    1) prompt_toolkit (rich completion + history + masked passwords)
    2) readline (basic completion + history)
    3) plain input (last resort)
"""

import getpass
import logging
import sys
from pathlib import Path
from typing import Callable, Optional, TextIO

from solo.commands import CommandRegistry, CommandResult, SessionContext, User
from solo.interface.completion import _split_current_token, suggest
from solo.interface.handler import HELP_TEXT, Dispatcher
from solo.interface.parser import ParseError, parse_line
from solo.ui import clear_screen, escape_markup, print_markup, theme

log = logging.getLogger(__name__)

# History lives next to the default database
HISTORY_FILE_PATH = Path.home() / ".solo-os" / "history"

EXIT_WORDS = {"exit", "quit"}
CLEAR_WORDS = {"clear", "cls"}

LOGO = r"""
 ███████╗ ██████╗ ██╗      ██████╗        ██████╗ ███████╗
 ██╔════╝██╔═══██╗██║     ██╔═══██╗      ██╔═══██╗██╔════╝
 ███████╗██║   ██║██║     ██║   ██║█████╗██║   ██║███████╗
 ╚════██║██║   ██║██║     ██║   ██║╚════╝██║   ██║╚════██║
 ███████║╚██████╔╝███████╗╚██████╔╝      ╚██████╔╝███████║
 ╚══════╝ ╚═════╝ ╚══════╝ ╚═════╝        ╚═════╝ ╚══════╝
"""

UserSource = Callable[[], Optional[User]]


class BaseCLI:
    """
    Plain input frontend and base interface for richer ones.

    Subclasses may override:
        - setup()
        - get_line(prompt)
        - get_password(prompt)
        - teardown()

    Context manager support guarantees teardown.
    """

    def setup(self) -> None:
        pass

    def get_line(self, prompt: str) -> str:
        return input(prompt)

    def get_password(self, prompt: str = "Password: ") -> str:
        return getpass.getpass(prompt)

    def teardown(self) -> None:
        pass

    # Context manager helpers
    def __enter__(self) -> "BaseCLI":
        self.setup()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        try:
            self.teardown()
        except OSError as err:
            log.debug("CLI teardown failed: %s", err)


# ===== Preferred: prompt_toolkit =====
class PromptToolkitCLI(BaseCLI):
    """Rich line editor with history and live completion."""

    def __init__(self, registry: CommandRegistry, current_user: UserSource, *, completion: bool = True) -> None:
        from prompt_toolkit import PromptSession
        from prompt_toolkit.completion import Completer, Completion
        from prompt_toolkit.history import FileHistory, InMemoryHistory

        try:
            HISTORY_FILE_PATH.parent.mkdir(parents=True, exist_ok=True)
            history = FileHistory(str(HISTORY_FILE_PATH))
        except OSError:
            history = InMemoryHistory()

        class _Completer(Completer):
            def get_completions(self, document, complete_event):
                text_before_cursor = document.text_before_cursor
                _, current_prefix = _split_current_token(text_before_cursor)
                replace_len = len(current_prefix)
                for word in suggest(registry, text_before_cursor, current_user()):
                    # replace exactly the current token
                    yield Completion(word, start_position=-replace_len)

        self._session = PromptSession(
            history=history,
            completer=_Completer() if completion else None,
            complete_while_typing=completion,
        )

    def get_line(self, prompt: str) -> str:
        return self._session.prompt(prompt)

    def get_password(self, prompt: str = "Password: ") -> str:
        # Separate prompt so the secret never lands in history
        from prompt_toolkit import prompt as pt_prompt
        return pt_prompt(prompt, is_password=True)


# ===== Fallback: readline =====
class ReadlineCLI(BaseCLI):
    """Fallback editor with basic completion and history."""

    def __init__(self, registry: CommandRegistry, current_user: UserSource, *, completion: bool = True) -> None:
        import readline  # type: ignore[attr-defined]

        self.readline = readline
        self._registry = registry
        self._current_user = current_user
        self._completion = completion

    def setup(self) -> None:
        try:
            HISTORY_FILE_PATH.parent.mkdir(parents=True, exist_ok=True)
            self.readline.read_history_file(str(HISTORY_FILE_PATH))  # type: ignore
        except OSError:
            pass
        if not self._completion:
            return

        self.readline.set_completer_delims(" \t\n")  # type: ignore

        def _complete(text_fragment: str, state_index: int) -> Optional[str]:
            buffer_text = self.readline.get_line_buffer()  # type: ignore
            candidates = suggest(self._registry, buffer_text, self._current_user())
            matches = [word for word in candidates if word.startswith(text_fragment)]
            return matches[state_index] if state_index < len(matches) else None

        self.readline.set_completer(_complete)  # type: ignore
        self.readline.parse_and_bind("tab: complete")  # type: ignore

    def teardown(self) -> None:
        self.readline.write_history_file(str(HISTORY_FILE_PATH))  # type: ignore


def make_cli(registry: CommandRegistry, context: SessionContext, *, completion: bool = True) -> BaseCLI:
    """
    Factory to select the best available CLI frontend at runtime.
    """
    def current_user() -> User | None:
        return context.user

    if sys.stdin.isatty():
        try:
            return PromptToolkitCLI(registry, current_user, completion=completion)
        except ImportError:
            log.debug("prompt_toolkit unavailable; trying readline")
        try:
            return ReadlineCLI(registry, current_user, completion=completion)
        except ImportError:
            log.debug("readline unavailable; using plain input")
    # Last resort (and the only choice for piped input)
    return BaseCLI()


# ---------------------------------------------------------------------------
# REPL
# ---------------------------------------------------------------------------

def welcome_text(context: SessionContext) -> str:
    lines = [
        theme.primary(LOGO),
        theme.accent("Welcome to SOLO-OS - a terminal BBS!"),
        "",
        f"{theme.secondary('Type')} {theme.highlight('help')} {theme.secondary('to see available commands')}",
        theme.info("Popular commands:"),
        f"  {theme.highlight('post (p)')} - Create a bulletin board post",
        f"  {theme.highlight('guest (g)')} - Sign the guestbook",
        f"  {theme.highlight('make (m)')} - Create a new command",
        f"  {theme.highlight('quit')} - Exit SOLO-OS (or use Ctrl+D)",
        "",
    ]
    if context.user is None:
        lines.append(
            f"{theme.dim('Not logged in. Use')} {theme.highlight('login <username>')} "
            f"{theme.dim('to log in or')} {theme.highlight('guest')} {theme.dim('to sign the guestbook')}")
    else:
        lines.append(f"Logged in as {theme.username(context.user.username)}")
    return "\n".join(lines)


def prompt_for(context: SessionContext, base_prompt: str) -> str:
    if context.user is None:
        return base_prompt
    marker = "#" if context.user.is_admin else ""
    return f"{context.user.username}{marker}@{base_prompt}"


def render_result(result: CommandResult) -> str | None:
    """Markup text for a result, or None when there is nothing to show."""
    if result.success:
        return result.result or None
    text = theme.error(escape_markup(result.error))
    suggestions = (result.data or {}).get("suggestions") if isinstance(result.data, dict) else None
    if suggestions:
        text += f" Did you mean: {', '.join(suggestions)}?"
    if result.error.startswith("Unknown command"):
        text += f"\n{theme.dim(HELP_TEXT)}"
    return text


def _needs_password(dispatcher: Dispatcher, name: str, args: list[str]) -> str | None:
    """Which credential flow (if any) is missing its password argument."""
    command_obj = dispatcher.registry.resolve(name)
    if command_obj is None:
        return None
    if command_obj.name == "login" and len(args) == 1:
        return "login"
    if command_obj.name == "register" and len(args) == 1:
        return "register"
    if command_obj.name == "user" and len(args) == 2 and args[0] == "register":
        return "register"
    return None


def _ask_password(cli: BaseCLI, flow: str) -> str | None:
    password = cli.get_password("Password: ")
    if flow == "register" and cli.get_password("Confirm password: ") != password:
        return None
    return password


def run_repl(
    cli: BaseCLI,
    dispatcher: Dispatcher,
    context: SessionContext,
    *,
    prompt: str = "SOLO-OS> ",
    show_banner: bool = True,
    color: bool = True,
    out: TextIO | None = None,
) -> int:
    """Read lines until exit/quit or EOF. Returns the process exit code."""
    stream = out or sys.stdout

    def emit(text: str) -> None:
        print_markup(text, file=stream, flush=True, color=color)

    if show_banner:
        emit(welcome_text(context))

    with cli:
        while True:
            try:
                line = cli.get_line(prompt_for(context, prompt))
            except KeyboardInterrupt:
                continue
            except EOFError:
                break

            stripped = line.strip()
            lowered = stripped.lower()
            if not stripped:
                continue
            if lowered in EXIT_WORDS:
                break
            if lowered in CLEAR_WORDS:
                clear_screen()
                continue

            try:
                name, args = parse_line(stripped)
            except ParseError as exc:
                emit(theme.error(str(exc)))
                continue

            flow = _needs_password(dispatcher, name, args)
            if flow is not None:
                try:
                    password = _ask_password(cli, flow)
                except (KeyboardInterrupt, EOFError):
                    emit("")
                    continue
                if password is None:
                    emit(theme.error("Passwords do not match"))
                    continue
                args = [*args, password]

            result = dispatcher.execute(name, args, context)
            text = render_result(result)
            if text:
                emit(text)

    emit(theme.dim("Goodbye!"))
    return 0
