"""
Feed ingestion: fetch the origin syndication feed and normalize its items
into article records.
"""
import time
import logging
from datetime import datetime, timezone
from functools import lru_cache
from typing import Dict, List, Optional

import feedparser

from config import feed_url, UNKNOWN_AUTHOR, EXCERPT_LENGTH, ELLIPSIS
from errors import OriginUnavailable
from fetching import fetch_with_retry
from observability import metrics
from topics import classify

logger = logging.getLogger('pubfeed.feed')

# =============================================================================
# DATE PARSING
# =============================================================================

DATE_FORMATS = [
    '%a, %d %b %Y %H:%M:%S %z',  # RFC 2822, the usual RSS pubDate
    '%a, %d %b %Y %H:%M:%S',
    '%d %b %Y %H:%M:%S %z',
    '%Y-%m-%dT%H:%M:%S%z',
    '%Y-%m-%dT%H:%M:%S.%f%z',
    '%Y-%m-%dT%H:%M:%S',
    '%Y-%m-%d %H:%M:%S',
    '%Y-%m-%d',
    '%d %b %Y',
    '%B %d, %Y',
    '%b %d, %Y',
]


@lru_cache(maxsize=1000)
def parse_date(date_str: str) -> Optional[datetime]:
    """Parse a feed date string into an aware datetime, or None."""
    if not date_str:
        return None

    date_str = date_str.strip()
    date_str = date_str.replace('GMT', '+0000').replace('UTC', '+0000')

    for fmt in DATE_FORMATS:
        try:
            dt = datetime.strptime(date_str, fmt)
        except ValueError:
            continue
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        return dt

    try:
        dt = datetime.fromisoformat(date_str.replace('Z', '+00:00'))
    except ValueError:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt

# =============================================================================
# NORMALIZATION
# =============================================================================

def make_excerpt(description: str, length: int = EXCERPT_LENGTH) -> str:
    """Truncate a description, marking the cut with an ellipsis."""
    if len(description) > length:
        return description[:length] + ELLIPSIS
    return description


def _entry_author(entry) -> str:
    # feedparser maps dc:creator onto 'author'; author_detail covers <author> blocks
    author = (entry.get('author') or '').strip()
    if not author:
        author = ((entry.get('author_detail') or {}).get('name') or '').strip()
    return author or UNKNOWN_AUTHOR


def _entry_categories(entry) -> List[str]:
    categories = []
    for tag in entry.get('tags') or []:
        term = (tag.get('term') or '').strip()
        if term:
            categories.append(term)
    return categories


def normalize_feed(content: bytes) -> List[Dict]:
    """
    Parse an RSS/Atom document into article records, in document order.

    Items without a title or link are dropped. Ids are positional
    ('article-<n>', n being the 1-based item index in this document), so
    they are only stable while the feed keeps the same item order.

    Raises OriginUnavailable when the document is not a parseable feed.
    """
    feed = feedparser.parse(content)

    if feed.bozo and not feed.entries:
        raise OriginUnavailable(
            "Malformed feed: %s" % getattr(feed, 'bozo_exception', 'unknown error'))

    articles = []
    for index, entry in enumerate(feed.entries, start=1):
        title = (entry.get('title') or '').strip()
        link = (entry.get('link') or '').strip()

        if not title or not link:
            logger.debug("Skipping feed item %d without title or link", index)
            continue

        description = (entry.get('summary') or entry.get('description') or '').strip()
        categories = _entry_categories(entry)

        articles.append({
            'id': 'article-%d' % index,
            'title': title,
            'author': _entry_author(entry),
            'publishedDate': (entry.get('published') or '').strip(),
            'url': link,
            'excerpt': make_excerpt(description),
            'topics': categories or classify(title + ' ' + description),
        })

    return articles


def fetch_feed(base_url: str = None) -> List[Dict]:
    """
    Fetch and normalize the origin feed.

    Raises OriginUnavailable on transport or parse failure. An empty but
    well-formed feed is a valid, empty result.
    """
    url = feed_url(base_url)
    start_time = time.time()

    # The configured origin is trusted, unlike article URLs taken from feed content
    response = fetch_with_retry(url, validate=False)
    if response is None:
        raise OriginUnavailable("Feed fetch failed: %s" % url)

    articles = normalize_feed(response.content)

    duration_ms = (time.time() - start_time) * 1000
    metrics.record_duration('feed_refresh_duration_ms', duration_ms)
    logger.info("Fetched %d articles from %s", len(articles), url,
                extra={'url': url, 'article_count': len(articles), 'duration_ms': duration_ms})

    return articles
