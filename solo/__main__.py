#!/usr/bin/env python3
# solo/__main__.py
from __future__ import annotations
"""
Command-line entry point: `python -m solo` or the `solo-bbs` script.
"""

import argparse
import sys
from typing import Sequence

from solo import __version__
from solo.boot import boot_sequence
from solo.commands import SessionContext
from solo.db import ensure_config_interactive, validate_or_create_config
from solo.interface import make_cli, run_repl
from solo.ui import print_markup, supports_color, theme


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="solo-bbs",
        description="SOLO-OS: a terminal bulletin board with user-defined commands.",
    )
    who = parser.add_mutually_exclusive_group()
    who.add_argument("-u", "--user", metavar="USERNAME",
                     help="log in as USERNAME at startup (the password is prompted)")
    who.add_argument("-g", "--guest", action="store_true",
                     help="enter as an anonymous guest")
    parser.add_argument("--db", metavar="PATH",
                        help="database file to use (':memory:' for a throwaway board)")
    parser.add_argument("--seed", action="store_true",
                        help="populate demo users, posts and a sample custom command")
    parser.add_argument("--configure", action="store_true",
                        help="run the interactive configuration wizard first")
    parser.add_argument("-q", "--quiet", action="store_true",
                        help="hide the boot step lines")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    overrides = {"DATABASE_PATH": args.db, "SEED_DEMO_DATA": True if args.seed else None}
    if args.configure:
        ensure_config_interactive(force=True)
    config = validate_or_create_config(overrides=overrides)

    state = boot_sequence(config, quiet=args.quiet)
    context = SessionContext(services=state.services)
    color = supports_color(sys.stdout)

    try:
        cli = make_cli(state.registry, context, completion=config.enable_completion)
        if args.user:
            try:
                password = cli.get_password(f"Password for {args.user}: ")
            except (KeyboardInterrupt, EOFError):
                password = ""
            context.user = state.db.authenticate_user(args.user, password)
            if context.user is None:
                print_markup(theme.error(f"Failed to authenticate as {args.user}"), color=color)

        return run_repl(
            cli,
            state.dispatcher,
            context,
            prompt=config.prompt,
            show_banner=config.show_banner,
            color=color,
        )
    finally:
        state.close()


if __name__ == "__main__":
    sys.exit(main())
