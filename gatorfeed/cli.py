"""Command registry and the command-line entry point."""

from __future__ import annotations

import functools
import logging
import sqlite3
import sys
from typing import Callable, Sequence

from gatorfeed.config import read_config
from gatorfeed.database import NotFoundError, connect
from gatorfeed.handlers import (
    Command,
    CommandError,
    State,
    handler_add_feed,
    handler_agg,
    handler_browse,
    handler_follow,
    handler_get_feeds,
    handler_list,
    handler_list_feed_follows,
    handler_login,
    handler_register,
    handler_reset,
    handler_unfollow,
)
from gatorfeed.models import User

logger = logging.getLogger(__name__)

Handler = Callable[[State, Command], None]
UserHandler = Callable[[State, Command, User], None]


class Commands:
    """Maps command names to their handlers."""

    def __init__(self) -> None:
        self._handlers: dict[str, Handler] = {}

    def register(self, name: str, handler: Handler) -> None:
        self._handlers[name] = handler

    def run(self, state: State, cmd: Command) -> None:
        try:
            handler = self._handlers[cmd.name]
        except KeyError:
            raise CommandError("command not found") from None
        handler(state, cmd)


def middleware_logged_in(handler: UserHandler) -> Handler:
    """Wrap a handler so that it receives the currently logged-in user."""

    @functools.wraps(handler)
    def wrapper(state: State, cmd: Command) -> None:
        try:
            user = state.db.get_user(state.cfg.current_user_name)
        except NotFoundError as exc:
            raise CommandError(str(exc)) from exc
        handler(state, cmd, user)

    return wrapper


def build_commands() -> Commands:
    """Return a registry holding every command of the program."""
    commands = Commands()
    commands.register("login", handler_login)
    commands.register("register", handler_register)
    commands.register("reset", handler_reset)
    commands.register("users", handler_list)
    commands.register("agg", handler_agg)
    commands.register("addfeed", middleware_logged_in(handler_add_feed))
    commands.register("feeds", handler_get_feeds)
    commands.register("follow", middleware_logged_in(handler_follow))
    commands.register("following", middleware_logged_in(handler_list_feed_follows))
    commands.register("unfollow", middleware_logged_in(handler_unfollow))
    commands.register("browse", middleware_logged_in(handler_browse))
    return commands


def main(argv: Sequence[str] | None = None) -> int:
    """Run one command given on the command line; return the exit status."""
    args = list(sys.argv[1:] if argv is None else argv)
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(message)s")

    try:
        cfg = read_config()
    except (OSError, ValueError) as exc:
        logger.error("error reading config: %s", exc)
        return 1

    try:
        db = connect(cfg.db_url)
    except (ValueError, sqlite3.Error) as exc:
        logger.error("error connecting to database: %s", exc)
        return 1

    commands = build_commands()
    if not args:
        logger.error("usage: cli <command> [args...]")
        return 1

    try:
        commands.run(State(db=db, cfg=cfg), Command(args[0], args[1:]))
    except CommandError as exc:
        logger.error("%s", exc)
        return 1
    except KeyboardInterrupt:
        return 130
    return 0


if __name__ == "__main__":
    sys.exit(main())