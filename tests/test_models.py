import dataclasses
from datetime import datetime, timezone
from uuid import uuid4

import pytest

from gatorfeed.models import (
    Feed,
    FeedFollowDetail,
    FeedSummary,
    Post,
    PostForUser,
    User,
)

WHEN = datetime(2024, 3, 4, 5, 6, 7, tzinfo=timezone.utc)


def test_user_from_text_row():
    uid = uuid4()
    user = User.from_row(
        {
            "id": str(uid),
            "created_at": WHEN.isoformat(),
            "updated_at": WHEN.isoformat(),
            "name": "alice",
        }
    )
    assert user == User(id=uid, created_at=WHEN, updated_at=WHEN, name="alice")


def test_user_from_typed_row():
    uid = uuid4()
    row = {"id": uid, "created_at": WHEN, "updated_at": WHEN, "name": "bob"}
    assert User.from_row(row).id == uid
    assert User.from_row(row).created_at == WHEN


def test_naive_time_taken_as_utc():
    user = User.from_row(
        {
            "id": str(uuid4()),
            "created_at": "2024-03-04T05:06:07",
            "updated_at": "2024-03-04T05:06:07Z",
            "name": "n",
        }
    )
    assert user.created_at == WHEN
    assert user.updated_at == WHEN
    assert user.created_at.tzinfo is not None


def test_feed_null_last_fetched():
    fid, uid = uuid4(), uuid4()
    feed = Feed.from_row(
        {
            "id": str(fid),
            "name": "news",
            "url": "https://example.com/rss",
            "user_id": str(uid),
            "created_at": WHEN.isoformat(),
            "updated_at": WHEN.isoformat(),
            "last_fetched_at": None,
        }
    )
    assert feed.last_fetched_at is None
    assert feed.user_id == uid


def test_feed_with_last_fetched():
    feed = Feed.from_row(
        {
            "id": str(uuid4()),
            "name": "news",
            "url": "https://example.com/rss",
            "user_id": str(uuid4()),
            "created_at": WHEN.isoformat(),
            "updated_at": WHEN.isoformat(),
            "last_fetched_at": WHEN.isoformat(),
        }
    )
    assert feed.last_fetched_at == WHEN


def _post_row(**extra):
    row = {
        "id": str(uuid4()),
        "created_at": WHEN.isoformat(),
        "updated_at": WHEN.isoformat(),
        "title": "Hello",
        "url": "https://example.com/p/1",
        "description": None,
        "published_at": None,
        "feed_id": str(uuid4()),
    }
    row.update(extra)
    return row


def test_post_nullable_fields():
    post = Post.from_row(_post_row())
    assert post.description is None
    assert post.published_at is None
    assert post.title == "Hello"


def test_post_for_user_carries_feed_name():
    row = _post_row(description="body", published_at=WHEN.isoformat(), feed_name="news")
    post = PostForUser.from_row(row)
    assert post.feed_name == "news"
    assert post.description == "body"
    assert post.published_at == WHEN


def test_feed_follow_detail():
    fid, uid = uuid4(), uuid4()
    detail = FeedFollowDetail.from_row(
        {
            "id": str(uuid4()),
            "feed_id": str(fid),
            "user_id": str(uid),
            "created_at": WHEN.isoformat(),
            "updated_at": WHEN.isoformat(),
            "feed_name": "news",
            "user_name": "alice",
        }
    )
    assert (detail.feed_id, detail.user_id) == (fid, uid)
    assert (detail.feed_name, detail.user_name) == ("news", "alice")


def test_feed_summary():
    summary = FeedSummary.from_row({"name": "n", "url": "u", "username": "x"})
    assert summary == FeedSummary(name="n", url="u", username="x")


def test_invalid_uuid_raises():
    with pytest.raises(ValueError):
        User.from_row(
            {"id": "nope", "created_at": WHEN, "updated_at": WHEN, "name": "n"}
        )


def test_records_are_frozen():
    user = User.from_row(
        {"id": str(uuid4()), "created_at": WHEN, "updated_at": WHEN, "name": "a"}
    )
    with pytest.raises(dataclasses.FrozenInstanceError):
        user.name = "b"
    assert user.name == "a"