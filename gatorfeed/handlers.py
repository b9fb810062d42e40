"""Command handlers for users, feeds, follows, browsing and aggregation."""

from __future__ import annotations

import logging
import re
import sqlite3
import time
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Callable, Sequence
from uuid import uuid4

from gatorfeed.config import Config
from gatorfeed.database import DuplicateError, NotFoundError, Queries
from gatorfeed.models import Feed, FeedSummary, User
from gatorfeed.rss import RSSFeed, fetch_feed, parse_pub_date

logger = logging.getLogger(__name__)

_DB_ERRORS = (LookupError, ValueError, OverflowError, sqlite3.Error)

_UNIT_NANOSECONDS = {
    "ns": 1,
    "us": 1_000,
    "µs": 1_000,
    "μs": 1_000,
    "ms": 1_000_000,
    "s": 1_000_000_000,
    "m": 60 * 1_000_000_000,
    "h": 3600 * 1_000_000_000,
}
_DURATION_PART = re.compile(r"([0-9]*)(?:\.([0-9]*))?([^0-9.]*)")
_MAX_NANOSECONDS = 2**63 - 1
_INTEGER = re.compile(r"[+-]?[0-9]+")


class CommandError(Exception):
    """Raised when a command is misused or cannot complete."""


@dataclass(frozen=True)
class Command:
    """A command name with its arguments."""

    name: str
    args: Sequence[str] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "args", tuple(self.args))


@dataclass
class State:
    """What every handler works with: the database, the configuration and a feed fetcher."""

    db: Queries
    cfg: Config
    fetch: Callable[[str], RSSFeed] = fetch_feed


def parse_duration(text: str) -> timedelta:
    """Parse a duration such as ``"1h30m"``, ``"1.5s"`` or ``"500ms"``."""
    invalid = ValueError(f"invalid duration {text!r}")
    rest = text
    negative = False
    if rest[:1] in ("+", "-"):
        negative = rest[0] == "-"
        rest = rest[1:]
    if rest == "0":
        return timedelta(0)
    if not rest:
        raise invalid

    total = Decimal(0)
    pos = 0
    while pos < len(rest):
        match = _DURATION_PART.match(rest, pos)
        whole, fraction, unit = match.group(1), match.group(2), match.group(3)
        if not whole and not fraction:
            raise invalid
        if not unit:
            raise ValueError(f"missing unit in duration {text!r}")
        if unit not in _UNIT_NANOSECONDS:
            raise ValueError(f"unknown unit {unit!r} in duration {text!r}")
        total += Decimal(f"{whole or 0}.{fraction or 0}") * _UNIT_NANOSECONDS[unit]
        pos = match.end()

    nanoseconds = int(total)
    if nanoseconds > _MAX_NANOSECONDS:
        raise invalid
    if negative:
        nanoseconds = -nanoseconds
    return timedelta(microseconds=nanoseconds / 1000)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _usage(cmd: Command, rest: str = "") -> CommandError:
    return CommandError(f"usage: {cmd.name} {rest}".rstrip())


# users


def handler_login(state: State, cmd: Command) -> None:
    if len(cmd.args) != 1:
        raise _usage(cmd, "<name>")
    name = cmd.args[0]
    try:
        state.db.get_user(name)
    except _DB_ERRORS as exc:
        raise CommandError(f"couldn't find user: {exc}") from exc
    try:
        state.cfg.set_user(name)
    except OSError as exc:
        raise CommandError(f"couldn't set current user: {exc}") from exc
    print("User switched successfully!")


def handler_register(state: State, cmd: Command) -> None:
    if len(cmd.args) != 1:
        raise _usage(cmd, "<name>")
    now = _now()
    try:
        user = state.db.create_user(id=uuid4(), created_at=now, updated_at=now, name=cmd.args[0])
    except _DB_ERRORS as exc:
        raise CommandError(f"error creating user: {exc}") from exc
    try:
        state.cfg.set_user(user.name)
    except OSError as exc:
        raise CommandError(f"couldn't set current user: {exc}") from exc
    print("User created successfully!")
    _print_user(user)


def _print_user(user: User) -> None:
    print(f"ID: {user.id}")
    print(f"Name: {user.name}")
    print(f"Created At: {user.created_at}")
    print(f"Updated At: {user.updated_at}")


def handler_reset(state: State, cmd: Command) -> None:
    if cmd.args:
        raise _usage(cmd, "<name>")
    try:
        state.db.delete_all_users()
    except _DB_ERRORS as exc:
        raise CommandError(f"error deleting all users: {exc}") from exc
    print("All users deleted successfully!")


def handler_list(state: State, cmd: Command) -> None:
    if cmd.args:
        raise _usage(cmd)
    try:
        users = state.db.get_users()
    except _DB_ERRORS as exc:
        raise CommandError(f"error listing users: {exc}") from exc
    current = state.cfg.current_user_name
    for user in users:
        suffix = " (current)" if user.name == current else ""
        print(f"* {user.name}{suffix}")


# aggregation


def handler_agg(state: State, cmd: Command) -> None:
    """Scrape the stalest feed now and then once every interval, forever."""
    if not 1 <= len(cmd.args) <= 2:
        raise _usage(cmd, "<time_between_reqs>")
    try:
        interval = parse_duration(cmd.args[0])
    except ValueError as exc:
        raise CommandError(f"error parsing time between requests: {exc}") from exc
    seconds = interval.total_seconds()
    if seconds <= 0:
        raise CommandError("non-positive interval between requests")

    logger.info("Collecting feeds every %s", interval)
    next_tick = time.monotonic()
    while True:
        scrape_feeds(state)
        next_tick += seconds
        delay = next_tick - time.monotonic()
        if delay > 0:
            time.sleep(delay)
        else:
            next_tick = time.monotonic()


def scrape_feeds(state: State) -> None:
    """Scrape the feed that was fetched longest ago."""
    try:
        feed = state.db.get_next_feed_to_fetch()
    except _DB_ERRORS as exc:
        print(f"error getting next feed to fetch: {exc}")
        return
    logger.info("Found a feed: %s", feed)
    scrape_feed(state.db, feed, state.fetch)


def scrape_feed(db: Queries, feed: Feed, fetch: Callable[[str], RSSFeed] = fetch_feed) -> None:
    """Mark ``feed`` fetched, download it and store its items as posts."""
    try:
        db.mark_feed_fetched(feed.id)
    except _DB_ERRORS as exc:
        logger.error("error marking feed fetched: %s", exc)
        return

    try:
        feed_data = fetch(feed.url)
    except (OSError, ValueError) as exc:
        logger.error("error fetching feed: %s", exc)
        return

    for item in feed_data.items:
        now = _now()
        try:
            db.create_post(
                id=uuid4(),
                created_at=now,
                updated_at=now,
                title=item.title,
                description=item.description,
                url=item.link,
                published_at=parse_pub_date(item.pub_date),
                feed_id=feed.id,
            )
        except DuplicateError:
            continue
        except _DB_ERRORS as exc:
            logger.error("error creating post: %s", exc)

    logger.info("Feed %s fetched, %d posts found.", feed.name, len(feed_data.items))


# feeds


def handler_add_feed(state: State, cmd: Command, user: User) -> None:
    if len(cmd.args) != 2:
        raise _usage(cmd, "<name> <url>")
    name, url = cmd.args
    now = _now()
    try:
        feed = state.db.create_feed(
            id=uuid4(), name=name, url=url, user_id=user.id, created_at=now, updated_at=now
        )
    except _DB_ERRORS as exc:
        raise CommandError(f"error creating feed: {exc}") from exc
    try:
        follow = state.db.create_feed_follow(
            id=uuid4(), user_id=user.id, feed_id=feed.id, created_at=now, updated_at=now
        )
    except _DB_ERRORS as exc:
        raise CommandError(f"error following feed: {exc}") from exc

    print(f"feed created: {feed}")
    print(f"User: {follow.user_name}")
    print(f"Feed: {follow.feed_name}")


def handler_get_feeds(state: State, cmd: Command) -> None:
    if cmd.args:
        raise _usage(cmd, "<name>")
    try:
        feeds = state.db.get_feeds()
    except _DB_ERRORS as exc:
        raise CommandError(f"error getting feeds: {exc}") from exc
    for feed in feeds:
        _print_feed(feed)
        print("===================================")


def _print_feed(feed: FeedSummary) -> None:
    print(f"feed name: {feed.name}")
    print(f"feed url: {feed.url}")
    print(f"feed user: {feed.username}")


# feed follows


def handler_follow(state: State, cmd: Command, user: User) -> None:
    if len(cmd.args) != 1:
        raise _usage(cmd, "<feed_url>")
    try:
        feed = state.db.get_feed_by_url(cmd.args[0])
    except _DB_ERRORS as exc:
        raise CommandError(f"error getting feed: {exc}") from exc
    now = _now()
    try:
        follow = state.db.create_feed_follow(
            id=uuid4(), user_id=user.id, feed_id=feed.id, created_at=now, updated_at=now
        )
    except _DB_ERRORS as exc:
        raise CommandError(f"error following feed: {exc}") from exc
    print("feed followed")
    print(f"User: {follow.user_name}")
    print(f"Feed: {follow.feed_name}")


def handler_list_feed_follows(state: State, cmd: Command, user: User) -> None:
    if cmd.args:
        raise _usage(cmd)
    try:
        follows = state.db.get_feed_follows_for_user(user.id)
    except _DB_ERRORS as exc:
        raise CommandError(f"error getting feed follows: {exc}") from exc
    if not follows:
        print("no feeds followed")
        return
    print(f"feeds followed by {user.name}:")
    for follow in follows:
        print(f"  {follow.feed_name}")


def handler_unfollow(state: State, cmd: Command, user: User) -> None:
    if len(cmd.args) != 1:
        raise _usage(cmd, "<feed_url>")
    try:
        state.db.delete_feed_follow(user_id=user.id, url=cmd.args[0])
    except _DB_ERRORS as exc:
        raise CommandError(f"error unfollowing feed: {exc}") from exc
    print("feed unfollowed")


# browsing


def _short_date(moment: datetime | None) -> str:
    if moment is None:
        return "Mon Jan 1"
    return f"{moment:%a %b} {moment.day}"


def handler_browse(state: State, cmd: Command, user: User) -> None:
    limit = 2
    if len(cmd.args) == 1:
        text = cmd.args[0]
        if not _INTEGER.fullmatch(text):
            raise CommandError(f"invalid limit: {text!r}")
        limit = int(text)
    try:
        posts = state.db.get_posts_for_user(user_id=user.id, limit=limit)
    except _DB_ERRORS as exc:
        raise CommandError(f"error getting posts for user: {exc}") from exc

    print(f"Found {len(posts)} posts for user {user.name}")
    for post in posts:
        print(f"{_short_date(post.published_at)} from {post.feed_name}")
        print(f"--- {post.title} ---")
        print(f"    {post.description or ''}")
        print(f"Link: {post.url}")
        print("========================================")