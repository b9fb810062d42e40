import threading
from datetime import datetime, timedelta, timezone
from http.server import BaseHTTPRequestHandler, HTTPServer

import pytest

from gatorfeed.rss import RSSFeed, RSSItem, fetch_feed, parse_feed, parse_pub_date

SAMPLE = b"""<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0">
<channel>
  <title>Example &amp;amp; Co</title>
  <link>https://example.com/</link>
  <description>News &amp;lt;daily&amp;gt;</description>
  <item>
    <title>First</title>
    <link>https://example.com/1</link>
    <description>One</description>
    <pubDate>Mon, 02 Jan 2006 15:04:05 -0700</pubDate>
  </item>
  <item>
    <title>Second</title>
    <link>https://example.com/2</link>
  </item>
</channel>
</rss>"""


def test_parse_feed_channel_fields_are_unescaped():
    feed = parse_feed(SAMPLE)
    assert feed.title == "Example & Co"
    assert feed.link == "https://example.com/"
    assert feed.description == "News <daily>"


def test_parse_feed_items():
    feed = parse_feed(SAMPLE)
    assert [item.title for item in feed.items] == ["First", "Second"]
    assert feed.items[0] == RSSItem(
        title="First",
        link="https://example.com/1",
        description="One",
        pub_date="Mon, 02 Jan 2006 15:04:05 -0700",
    )
    assert feed.items[1].description == ""
    assert feed.items[1].pub_date == ""


def test_parse_feed_accepts_text():
    assert parse_feed(SAMPLE.decode("utf-8").split("\n", 1)[1]) == parse_feed(SAMPLE)


def test_parse_feed_cdata_description():
    doc = (
        "<rss><channel><item><title>T</title>"
        "<description><![CDATA[<p>Hi</p>]]></description></item></channel></rss>"
    )
    assert parse_feed(doc).items[0].description == "<p>Hi</p>"


def test_parse_feed_last_link_wins_across_namespaces():
    doc = (
        '<rss xmlns:atom="http://www.w3.org/2005/Atom"><channel>'
        '<atom:link href="https://example.com/self" rel="self"/>'
        "<link>https://example.com/home</link></channel></rss>"
    )
    assert parse_feed(doc).link == "https://example.com/home"


def test_parse_feed_without_channel_is_empty():
    assert parse_feed("<rss></rss>") == RSSFeed()


def test_parse_feed_invalid_xml():
    with pytest.raises(ValueError):
        parse_feed(b"<rss><channel>")


def test_parse_pub_date_reference_date():
    parsed = parse_pub_date("Mon, 02 Jan 2006 15:04:05 -0700")
    assert parsed == datetime(2006, 1, 2, 15, 4, 5, tzinfo=timezone(timedelta(hours=-7)))


@pytest.mark.parametrize(
    "text",
    ["", "garbage", "2006-01-02T15:04:05Z", "Mon, 2 Jan 2006 15:04:05 -0700", "Mon, 02 Jan 2006 15:04:05 MST"],
)
def test_parse_pub_date_rejects_other_formats(text):
    assert parse_pub_date(text) is None


@pytest.fixture
def feed_server():
    seen = {}

    class Handler(BaseHTTPRequestHandler):
        def do_GET(self):
            seen["agent"] = self.headers.get("User-Agent")
            self.send_response(200)
            self.send_header("Content-Type", "application/rss+xml")
            self.send_header("Content-Length", str(len(SAMPLE)))
            self.end_headers()
            self.wfile.write(SAMPLE)

        def log_message(self, *args):
            pass

    httpd = HTTPServer(("127.0.0.1", 0), Handler)
    thread = threading.Thread(target=httpd.serve_forever, daemon=True)
    thread.start()
    yield f"http://127.0.0.1:{httpd.server_address[1]}/feed.xml", seen
    httpd.shutdown()
    httpd.server_close()


def test_fetch_feed_sends_user_agent_and_parses(feed_server):
    url, seen = feed_server
    feed = fetch_feed(url, timeout=5)
    assert seen["agent"] == "gator"
    assert feed == parse_feed(SAMPLE)


def test_fetch_feed_rejects_non_http_scheme(tmp_path):
    path = tmp_path / "feed.xml"
    path.write_bytes(SAMPLE)
    with pytest.raises(ValueError):
        fetch_feed(path.as_uri())