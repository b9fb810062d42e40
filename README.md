# gatorfeed

A small command-line RSS aggregator that keeps its data in SQLite. Users
register, add and follow feeds, run a collector that fetches feeds on a fixed
interval and stores their items as posts, and then browse the newest posts
from the feeds they follow.

It needs nothing beyond the Python standard library.

## Installation

```
pip install .
```

This installs the `gator` command.

## Configuration

`gator` reads its settings from `.gatorconfig.json` in your home directory.
The file must exist before the first run; create it by hand:

```json
{"db_url": "gator.db", "current_user_name": ""}
```

- `db_url` names the SQLite database. It may be a plain file path
  (`gator.db`, `/var/lib/gator/gator.db`), `sqlite:///relative.db`,
  `sqlite:////absolute/path.db`, or `sqlite://` for an in-memory database.
  An empty value also means an in-memory database, which is lost when the
  command ends. Any other URL scheme is rejected. The tables are created
  automatically on first use.
- `current_user_name` is the logged-in user; `gator login` and
  `gator register` rewrite the file to update it.

## Commands

```
gator register <name>        create a user and log in as them
gator login <name>           switch to an existing user
gator users                  list users, marking the current one
gator reset                  delete all users, with their feeds, follows and posts

gator addfeed <name> <url>   add a feed and follow it (logged in)
gator feeds                  list all feeds with the user who added them
gator follow <url>           follow an existing feed (logged in)
gator following              list the feeds you follow (logged in)
gator unfollow <url>         stop following a feed (logged in)

gator agg <interval>         fetch feeds forever, one every interval
gator browse [limit]         show the newest posts you follow (default 2)
```

Commands marked "logged in" act as the user named by `current_user_name`
and fail if that user does not exist. User names and feed URLs are unique;
a user can follow a feed only once.

`agg` takes an interval in duration syntax such as `500ms`, `30s`, `1.5m`
or `1h30m` (units `ns`, `us`, `ms`, `s`, `m`, `h`); it must be positive. It
scrapes one feed straight away and then once per interval. Each time it picks
the feed that was fetched longest ago (feeds never fetched come first), marks
it fetched, downloads it over HTTP or HTTPS (10 second timeout, User-Agent
`gator`) and stores each item as a post. Items whose link is already stored
are skipped. Publication dates are read in the RFC 1123 form with a numeric
zone, e.g. `Mon, 02 Jan 2006 15:04:05 -0700`; other dates are stored as
unknown. Progress is logged to standard error. Stop it with Ctrl-C.

`browse` lists posts from followed feeds, posts without a date first, then
newest first. For each post it prints the date, the feed name, the title,
the description and the link.

On any error `gator` logs the message and exits with status 1; it exits
with 130 when interrupted.

## Example

```
gator register alice
gator addfeed "Example Blog" https://blog.example.com/index.xml
gator agg 1m
gator browse 5
```

## Using it as a library

The pieces are importable on their own:

- `gatorfeed.config` — `Config` (with `set_user` and `to_dict`),
  `read_config`, `write_config`, `config_file_path`
- `gatorfeed.models` — the records `User`, `Feed`, `FeedFollow`, `Post`,
  `FeedFollowDetail`, `FeedSummary`, `PostForUser`
- `gatorfeed.database` — `connect`, `Queries`, `NotFoundError`,
  `DuplicateError`
- `gatorfeed.rss` — `RSSFeed`, `RSSItem`, `parse_feed`, `fetch_feed`,
  `parse_pub_date`
- `gatorfeed.handlers` — `Command`, `State`, `CommandError`,
  `parse_duration`, `scrape_feed`, `scrape_feeds` and one `handler_*`
  function per command
- `gatorfeed.cli` — `Commands`, `middleware_logged_in`, `build_commands`,
  `main`

```python
from gatorfeed.rss import parse_feed

with open("feed.xml", "rb") as handle:
    feed = parse_feed(handle.read())
for item in feed.items:
    print(item.title, item.link)
```

```python
from datetime import datetime, timezone
from uuid import uuid4

from gatorfeed.database import connect

db = connect("sqlite://")
now = datetime.now(timezone.utc)
user = db.create_user(id=uuid4(), created_at=now, updated_at=now, name="alice")
print(db.get_user("alice") == user)
```

## What it does not do

- Storage is SQLite only; there is no support for other database servers.
- There are no schema migrations: tables are created if missing and never
  altered.
- Only RSS documents are read; Atom feeds yield no items.
- The collector fetches one feed per interval, one at a time.

## Running the tests

```
pip install .[test]
pytest
```