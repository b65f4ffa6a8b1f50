"""
Tests for feed normalization and fetching.
"""
from unittest.mock import Mock, patch

import pytest

from errors import OriginUnavailable
from feed import normalize_feed, fetch_feed, make_excerpt, parse_date


def rss(items: str) -> bytes:
    return ("""<?xml version="1.0" encoding="UTF-8"?>
    <rss version="2.0" xmlns:dc="http://purl.org/dc/elements/1.1/">
        <channel>
            <title>Test Publication</title>
            <link>https://example.substack.com</link>
            %s
        </channel>
    </rss>
    """ % items).encode('utf-8')


class TestMakeExcerpt:
    """Tests for excerpt truncation."""

    def test_short_description_untouched(self):
        assert make_excerpt("short") == "short"

    def test_exactly_limit_not_truncated(self):
        text = "x" * 200
        assert make_excerpt(text) == text

    def test_over_limit_truncated_with_ellipsis(self):
        result = make_excerpt("x" * 201)
        assert result == "x" * 200 + "..."


class TestParseDate:
    """Tests for date parsing."""

    def test_rfc2822(self):
        dt = parse_date("Thu, 05 Dec 2024 10:00:00 GMT")
        assert dt is not None
        assert (dt.year, dt.month, dt.day, dt.hour) == (2024, 12, 5, 10)
        assert dt.tzinfo is not None

    def test_iso_format(self):
        assert parse_date("2024-12-05T10:30:00Z") is not None
        assert parse_date("2024-12-05T10:30:00.123456+00:00") is not None
        assert parse_date("2024-12-05") is not None

    def test_invalid_dates(self):
        assert parse_date("") is None
        assert parse_date("not a date") is None

    def test_comparable_across_formats(self):
        assert parse_date("2024-12-06") > parse_date("Thu, 05 Dec 2024 10:00:00 GMT")


class TestNormalizeFeed:
    """Tests for RSS normalization."""

    def test_full_item(self):
        content = rss("""
            <item>
                <title>Best Practices for AI Governance</title>
                <link>https://example.substack.com/p/governance</link>
                <pubDate>Thu, 05 Dec 2024 10:00:00 GMT</pubDate>
                <description>How to govern models.</description>
                <dc:creator>Dr. Sarah Johnson</dc:creator>
                <category>Governance</category>
                <category>Policy</category>
            </item>
        """)

        articles = normalize_feed(content)

        assert len(articles) == 1
        article = articles[0]
        assert article['id'] == 'article-1'
        assert article['title'] == "Best Practices for AI Governance"
        assert article['url'] == "https://example.substack.com/p/governance"
        assert article['author'] == "Dr. Sarah Johnson"
        assert article['publishedDate'] == "Thu, 05 Dec 2024 10:00:00 GMT"
        assert article['excerpt'] == "How to govern models."
        assert article['topics'] == ["Governance", "Policy"]

    def test_topics_classified_without_categories(self):
        content = rss("""
            <item>
                <title>A new roadmap</title>
                <link>https://example.substack.com/p/roadmap</link>
                <description>Nothing else here.</description>
            </item>
        """)

        articles = normalize_feed(content)

        assert articles[0]['topics'] == ["AI Strategy"]

    def test_general_topic_when_nothing_matches(self):
        content = rss("""
            <item>
                <title>Hello</title>
                <link>https://example.substack.com/p/hello</link>
            </item>
        """)

        assert normalize_feed(content)[0]['topics'] == ["General"]

    def test_missing_author_uses_sentinel(self):
        content = rss("""
            <item>
                <title>Anonymous post</title>
                <link>https://example.substack.com/p/anon</link>
            </item>
        """)

        assert normalize_feed(content)[0]['author'] == "Unknown Author"

    def test_long_description_truncated(self):
        content = rss("""
            <item>
                <title>Long post</title>
                <link>https://example.substack.com/p/long</link>
                <description>%s</description>
            </item>
        """ % ("y" * 250))

        excerpt = normalize_feed(content)[0]['excerpt']
        assert excerpt == "y" * 200 + "..."

    def test_items_without_title_or_link_dropped(self):
        content = rss("""
            <item>
                <title>First</title>
                <link>https://example.substack.com/p/first</link>
            </item>
            <item>
                <link>https://example.substack.com/p/untitled</link>
            </item>
            <item>
                <title>No link here</title>
            </item>
            <item>
                <title>Fourth</title>
                <link>https://example.substack.com/p/fourth</link>
            </item>
        """)

        articles = normalize_feed(content)

        assert [a['title'] for a in articles] == ["First", "Fourth"]
        # Ids follow the item position in the document
        assert [a['id'] for a in articles] == ["article-1", "article-4"]
        assert all(a['title'] and a['url'] for a in articles)

    def test_document_order_preserved(self):
        content = rss("".join("""
            <item>
                <title>Post %d</title>
                <link>https://example.substack.com/p/%d</link>
            </item>
        """ % (i, i) for i in range(1, 6)))

        assert [a['title'] for a in normalize_feed(content)] == ["Post %d" % i for i in range(1, 6)]

    def test_empty_feed_is_not_an_error(self):
        assert normalize_feed(rss("")) == []

    def test_malformed_document_raises(self):
        with pytest.raises(OriginUnavailable):
            normalize_feed(b"this is not a feed <<<")


class TestFetchFeed:
    """Tests for fetching the origin feed."""

    @patch('feed.fetch_with_retry')
    def test_fetch_uses_feed_path(self, mock_fetch):
        mock_fetch.return_value = Mock(content=rss("""
            <item>
                <title>Fetched</title>
                <link>https://example.substack.com/p/fetched</link>
            </item>
        """))

        articles = fetch_feed("https://example.substack.com/")

        assert mock_fetch.call_args[0][0] == "https://example.substack.com/feed"
        assert articles[0]['title'] == "Fetched"

    @patch('feed.fetch_with_retry', return_value=None)
    def test_transport_failure_raises(self, mock_fetch):
        with pytest.raises(OriginUnavailable):
            fetch_feed("https://example.substack.com")
