"""SQLite storage for users, feeds, feed follows and posts."""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Callable, Iterator, Sequence, TypeVar
from uuid import UUID

from gatorfeed.models import (
    Feed,
    FeedFollowDetail,
    FeedSummary,
    Post,
    PostForUser,
    User,
)

_T = TypeVar("_T")

_SCHEMA = """
CREATE TABLE IF NOT EXISTS users (
    id TEXT PRIMARY KEY,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    name TEXT NOT NULL UNIQUE
);
CREATE TABLE IF NOT EXISTS feeds (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    url TEXT NOT NULL UNIQUE,
    user_id TEXT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    last_fetched_at TEXT
);
CREATE TABLE IF NOT EXISTS feed_follows (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
    feed_id TEXT NOT NULL REFERENCES feeds(id) ON DELETE CASCADE,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    UNIQUE (user_id, feed_id)
);
CREATE TABLE IF NOT EXISTS posts (
    id TEXT PRIMARY KEY,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    title TEXT NOT NULL,
    url TEXT NOT NULL UNIQUE,
    description TEXT,
    published_at TEXT,
    feed_id TEXT NOT NULL REFERENCES feeds(id) ON DELETE CASCADE
);
"""

_USER_COLUMNS = "id, created_at, updated_at, name"
_FEED_COLUMNS = "id, name, url, user_id, created_at, updated_at, last_fetched_at"
_POST_COLUMNS = (
    "posts.id, posts.created_at, posts.updated_at, posts.title, posts.url, "
    "posts.description, posts.published_at, posts.feed_id"
)
_FOLLOW_SELECT = """
SELECT feed_follows.id, feed_follows.feed_id, feed_follows.user_id,
       feed_follows.created_at, feed_follows.updated_at,
       feeds.name AS feed_name, users.name AS user_name
FROM feed_follows
JOIN feeds ON feed_follows.feed_id = feeds.id
JOIN users ON feed_follows.user_id = users.id
"""


class NotFoundError(LookupError):
    """Raised when a query that must return a row finds none."""


class DuplicateError(ValueError):
    """Raised when an insert violates a uniqueness constraint."""


def _encode_time(moment: datetime | None) -> str | None:
    if moment is None:
        return None
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc).isoformat(timespec="microseconds")


def _encode_id(value: UUID | str) -> str:
    return str(UUID(str(value)))


@contextmanager
def _constraint_errors() -> Iterator[None]:
    try:
        yield
    except sqlite3.IntegrityError as exc:
        if "UNIQUE" in str(exc):
            raise DuplicateError(str(exc)) from exc
        raise


def connect(url: str) -> Queries:
    """Open the database named by ``url`` and make sure its tables exist.

    Accepts ``sqlite://`` (in memory), ``sqlite:///relative.db``,
    ``sqlite:////absolute.db`` or a plain file path.
    """
    if url.startswith("sqlite://"):
        rest = url[len("sqlite://"):]
        location = rest[1:] if rest.startswith("/") else rest
        if not location:
            location = ":memory:"
    elif "://" in url:
        scheme = url.split("://", 1)[0]
        raise ValueError(f"unsupported database scheme: {scheme!r}")
    else:
        location = url or ":memory:"
    queries = Queries(sqlite3.connect(location))
    queries.init_schema()
    return queries


class Queries:
    """Typed queries over an SQLite connection."""

    def __init__(self, connection: sqlite3.Connection) -> None:
        self._conn = connection
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA foreign_keys = ON")
        self._depth = 0

    def init_schema(self) -> None:
        """Create the tables if they are missing."""
        self._conn.executescript(_SCHEMA)

    @contextmanager
    def transaction(self) -> Iterator[Queries]:
        """Group queries so that they are committed or rolled back together."""
        self._depth += 1
        try:
            yield self
        except BaseException:
            self._depth -= 1
            if self._depth == 0:
                self._conn.rollback()
            raise
        self._depth -= 1
        if self._depth == 0:
            self._conn.commit()

    def _one(
        self,
        sql: str,
        params: Sequence[Any],
        build: Callable[[sqlite3.Row], _T],
        what: str,
    ) -> _T:
        row = self._conn.execute(sql, params).fetchone()
        if row is None:
            raise NotFoundError(f"{what} not found")
        return build(row)

    def _many(
        self, sql: str, params: Sequence[Any], build: Callable[[sqlite3.Row], _T]
    ) -> list[_T]:
        return [build(row) for row in self._conn.execute(sql, params)]

    # users

    def create_user(
        self, id: UUID, created_at: datetime, updated_at: datetime, name: str
    ) -> User:
        with self.transaction(), _constraint_errors():
            self._conn.execute(
                f"INSERT INTO users ({_USER_COLUMNS}) VALUES (?, ?, ?, ?)",
                (_encode_id(id), _encode_time(created_at), _encode_time(updated_at), name),
            )
            return self._one(
                f"SELECT {_USER_COLUMNS} FROM users WHERE id = ?",
                (_encode_id(id),),
                User.from_row,
                "user",
            )

    def delete_all_users(self) -> None:
        with self.transaction():
            self._conn.execute("DELETE FROM users")

    def get_user(self, name: str) -> User:
        return self._one(
            f"SELECT {_USER_COLUMNS} FROM users WHERE name = ?",
            (name,),
            User.from_row,
            f"user {name!r}",
        )

    def get_users(self) -> list[User]:
        return self._many(f"SELECT {_USER_COLUMNS} FROM users", (), User.from_row)

    # feeds

    def create_feed(
        self,
        id: UUID,
        name: str,
        url: str,
        user_id: UUID,
        created_at: datetime,
        updated_at: datetime,
    ) -> Feed:
        with self.transaction(), _constraint_errors():
            self._conn.execute(
                "INSERT INTO feeds (id, name, url, user_id, created_at, updated_at) "
                "VALUES (?, ?, ?, ?, ?, ?)",
                (
                    _encode_id(id),
                    name,
                    url,
                    _encode_id(user_id),
                    _encode_time(created_at),
                    _encode_time(updated_at),
                ),
            )
            return self._feed_by_id(id)

    def _feed_by_id(self, feed_id: UUID) -> Feed:
        return self._one(
            f"SELECT {_FEED_COLUMNS} FROM feeds WHERE id = ?",
            (_encode_id(feed_id),),
            Feed.from_row,
            "feed",
        )

    def get_feed_by_url(self, url: str) -> Feed:
        return self._one(
            f"SELECT {_FEED_COLUMNS} FROM feeds WHERE url = ?",
            (url,),
            Feed.from_row,
            f"feed {url!r}",
        )

    def get_feeds(self) -> list[FeedSummary]:
        return self._many(
            "SELECT f.name, f.url, u.name AS username "
            "FROM feeds f JOIN users u ON f.user_id = u.id",
            (),
            FeedSummary.from_row,
        )

    def get_next_feed_to_fetch(self) -> Feed:
        """Return the feed fetched longest ago, never-fetched feeds first."""
        return self._one(
            f"SELECT {_FEED_COLUMNS} FROM feeds "
            "ORDER BY last_fetched_at IS NOT NULL, last_fetched_at ASC LIMIT 1",
            (),
            Feed.from_row,
            "feed",
        )

    def mark_feed_fetched(self, feed_id: UUID) -> Feed:
        now = _encode_time(datetime.now(timezone.utc))
        with self.transaction():
            cursor = self._conn.execute(
                "UPDATE feeds SET last_fetched_at = ?, updated_at = ? WHERE id = ?",
                (now, now, _encode_id(feed_id)),
            )
            if cursor.rowcount == 0:
                raise NotFoundError("feed not found")
            return self._feed_by_id(feed_id)

    # feed follows

    def create_feed_follow(
        self,
        id: UUID,
        user_id: UUID,
        feed_id: UUID,
        created_at: datetime,
        updated_at: datetime,
    ) -> FeedFollowDetail:
        with self.transaction(), _constraint_errors():
            self._conn.execute(
                "INSERT INTO feed_follows (id, user_id, feed_id, created_at, updated_at) "
                "VALUES (?, ?, ?, ?, ?)",
                (
                    _encode_id(id),
                    _encode_id(user_id),
                    _encode_id(feed_id),
                    _encode_time(created_at),
                    _encode_time(updated_at),
                ),
            )
            return self._one(
                _FOLLOW_SELECT + "WHERE feed_follows.id = ?",
                (_encode_id(id),),
                FeedFollowDetail.from_row,
                "feed follow",
            )

    def delete_feed_follow(self, user_id: UUID, url: str) -> None:
        with self.transaction():
            self._conn.execute(
                "DELETE FROM feed_follows WHERE user_id = ? AND feed_id = "
                "(SELECT id FROM feeds WHERE url = ?)",
                (_encode_id(user_id), url),
            )

    def get_feed_follows_for_user(self, user_id: UUID) -> list[FeedFollowDetail]:
        return self._many(
            _FOLLOW_SELECT + "WHERE feed_follows.user_id = ?",
            (_encode_id(user_id),),
            FeedFollowDetail.from_row,
        )

    # posts

    def create_post(
        self,
        id: UUID,
        created_at: datetime,
        updated_at: datetime,
        title: str,
        description: str | None,
        url: str,
        published_at: datetime | None,
        feed_id: UUID,
    ) -> Post:
        with self.transaction(), _constraint_errors():
            self._conn.execute(
                "INSERT INTO posts (id, created_at, updated_at, title, description, "
                "url, published_at, feed_id) VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    _encode_id(id),
                    _encode_time(created_at),
                    _encode_time(updated_at),
                    title,
                    description,
                    url,
                    _encode_time(published_at),
                    _encode_id(feed_id),
                ),
            )
            return self._one(
                f"SELECT {_POST_COLUMNS} FROM posts WHERE id = ?",
                (_encode_id(id),),
                Post.from_row,
                "post",
            )

    def get_posts_for_user(self, user_id: UUID, limit: int) -> list[PostForUser]:
        """Return the newest posts from feeds the user follows; undated posts first."""
        if limit < 0:
            raise ValueError("limit must not be negative")
        return self._many(
            f"SELECT {_POST_COLUMNS}, feeds.name AS feed_name FROM posts "
            "JOIN feeds ON posts.feed_id = feeds.id "
            "JOIN feed_follows ON feeds.id = feed_follows.feed_id "
            "WHERE feed_follows.user_id = ? "
            "ORDER BY posts.published_at IS NULL DESC, posts.published_at DESC "
            "LIMIT ?",
            (_encode_id(user_id), limit),
            PostForUser.from_row,
        )