"""Records stored in and returned from the database."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Mapping
from uuid import UUID


def _as_uuid(value: Any) -> UUID:
    return value if isinstance(value, UUID) else UUID(str(value))


def _as_time(value: Any) -> datetime:
    if isinstance(value, datetime):
        moment = value
    else:
        text = str(value)
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        moment = datetime.fromisoformat(text)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment


def _as_optional_time(value: Any) -> datetime | None:
    return None if value is None else _as_time(value)


@dataclass(frozen=True)
class User:
    id: UUID
    created_at: datetime
    updated_at: datetime
    name: str

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> User:
        return cls(
            id=_as_uuid(row["id"]),
            created_at=_as_time(row["created_at"]),
            updated_at=_as_time(row["updated_at"]),
            name=row["name"],
        )


@dataclass(frozen=True)
class Feed:
    id: UUID
    name: str
    url: str
    user_id: UUID
    created_at: datetime
    updated_at: datetime
    last_fetched_at: datetime | None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> Feed:
        return cls(
            id=_as_uuid(row["id"]),
            name=row["name"],
            url=row["url"],
            user_id=_as_uuid(row["user_id"]),
            created_at=_as_time(row["created_at"]),
            updated_at=_as_time(row["updated_at"]),
            last_fetched_at=_as_optional_time(row["last_fetched_at"]),
        )


@dataclass(frozen=True)
class FeedFollow:
    id: UUID
    feed_id: UUID
    user_id: UUID
    created_at: datetime
    updated_at: datetime


@dataclass(frozen=True)
class Post:
    id: UUID
    created_at: datetime
    updated_at: datetime
    title: str
    url: str
    description: str | None
    published_at: datetime | None
    feed_id: UUID

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> Post:
        return cls(**_post_fields(row))


@dataclass(frozen=True)
class FeedFollowDetail:
    """A feed follow together with the names of the feed and the user."""

    id: UUID
    feed_id: UUID
    user_id: UUID
    created_at: datetime
    updated_at: datetime
    feed_name: str
    user_name: str

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> FeedFollowDetail:
        return cls(
            id=_as_uuid(row["id"]),
            feed_id=_as_uuid(row["feed_id"]),
            user_id=_as_uuid(row["user_id"]),
            created_at=_as_time(row["created_at"]),
            updated_at=_as_time(row["updated_at"]),
            feed_name=row["feed_name"],
            user_name=row["user_name"],
        )


@dataclass(frozen=True)
class FeedSummary:
    """A feed's name and URL with the name of the user who added it."""

    name: str
    url: str
    username: str

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> FeedSummary:
        return cls(name=row["name"], url=row["url"], username=row["username"])


@dataclass(frozen=True)
class PostForUser:
    """A post from a followed feed, with the feed's name."""

    id: UUID
    created_at: datetime
    updated_at: datetime
    title: str
    url: str
    description: str | None
    published_at: datetime | None
    feed_id: UUID
    feed_name: str

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> PostForUser:
        return cls(feed_name=row["feed_name"], **_post_fields(row))


def _post_fields(row: Mapping[str, Any]) -> dict[str, Any]:
    return {
        "id": _as_uuid(row["id"]),
        "created_at": _as_time(row["created_at"]),
        "updated_at": _as_time(row["updated_at"]),
        "title": row["title"],
        "url": row["url"],
        "description": row["description"],
        "published_at": _as_optional_time(row["published_at"]),
        "feed_id": _as_uuid(row["feed_id"]),
    }