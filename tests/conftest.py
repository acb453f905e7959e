from __future__ import annotations

import pytest

from solo.boot import boot_sequence
from solo.commands import CommandRegistry, DynamicCommandLoader, Services, SessionContext
from solo.db import Database, load_config


def make_config(tmp_path, **overrides):
    values = {"DATABASE_PATH": str(tmp_path / "board.db")}
    values.update(overrides)
    return load_config(cwd=tmp_path, environ={}, overrides=values)


@pytest.fixture()
def db(tmp_path):
    database = Database(tmp_path / "board.db")
    yield database
    database.close()


@pytest.fixture()
def registry() -> CommandRegistry:
    return CommandRegistry()


@pytest.fixture()
def services(db, registry) -> Services:
    loader = DynamicCommandLoader(registry, step_budget=500, max_output=256)
    return Services(db=db, registry=registry, loader=loader)


@pytest.fixture()
def board(tmp_path):
    """A fully booted board: plugins loaded, bootstrap admin created."""
    state = boot_sequence(make_config(tmp_path), quiet=True)
    yield state
    state.close()


@pytest.fixture()
def new_session(board):
    def _new() -> SessionContext:
        return SessionContext(services=board.services)
    return _new


@pytest.fixture()
def session(new_session) -> SessionContext:
    return new_session()


@pytest.fixture()
def run(board, session):
    """Run one command line through the dispatcher, like the REPL does."""
    def _run(line: str, context: SessionContext | None = None):
        return board.dispatcher.handle_line(line, context or session)
    return _run


@pytest.fixture()
def login_as(board, run):
    """Create (if needed) and log in a user in the given session."""
    def _login(username: str, password: str = "pw-secret", *, context=None, admin=False):
        if board.db.get_user_by_username(username) is None:
            board.db.create_user(username, password, is_admin=admin)
        result = run(f"login {username} {password}", context)
        assert result.success, result.error
        return result
    return _login
