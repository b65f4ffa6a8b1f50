"""
Catalog cache: the single in-process copy of the article list.

Reads go through a TTL check. A stale or missing snapshot is replaced
wholesale by a fresh feed fetch, or by the fallback catalog when the origin
fails. The fallback is timestamped too, so an unreachable origin is retried
at most once per TTL.
"""
import time
import logging
import threading
from datetime import datetime, timezone, timedelta
from typing import Callable, Dict, List, NamedTuple, Optional, Tuple

from config import CACHE_TTL_SECONDS, FEED_BASE_URL
from feed import fetch_feed
from observability import metrics

logger = logging.getLogger('pubfeed.catalog')

SOURCE_ORIGIN = 'origin'
SOURCE_FALLBACK = 'fallback'


class CatalogSnapshot(NamedTuple):
    articles: Tuple[Dict, ...]
    fetched_at: float
    source: str


def fallback_articles(base_url: str = FEED_BASE_URL, now: Optional[datetime] = None) -> List[Dict]:
    """Representative articles served while the origin is unreachable."""
    now = now or datetime.now(timezone.utc)
    base_url = base_url.rstrip('/')

    return [
        {
            'id': 'mock-1',
            'title': 'Getting Started with AI Center of Excellence',
            'author': 'AI CoE Team',
            'publishedDate': now.isoformat(),
            'url': base_url + '/p/getting-started-with-ai-coe',
            'excerpt': 'Learn how to establish and run an effective AI Center of Excellence in your organization...',
            'topics': ['AI Strategy', 'Organization', 'Getting Started'],
        },
        {
            'id': 'mock-2',
            'title': 'Best Practices for AI Governance',
            'author': 'Dr. Sarah Johnson',
            'publishedDate': (now - timedelta(days=1)).isoformat(),
            'url': base_url + '/p/ai-governance-best-practices',
            'excerpt': 'Implementing robust AI governance frameworks to ensure responsible AI deployment...',
            'topics': ['AI Governance', 'Ethics', 'Compliance'],
        },
        {
            'id': 'mock-3',
            'title': 'Measuring ROI of AI Initiatives',
            'author': 'Michael Chen',
            'publishedDate': (now - timedelta(days=2)).isoformat(),
            'url': base_url + '/p/measuring-ai-roi',
            'excerpt': 'Key metrics and methodologies for tracking the return on investment of AI projects...',
            'topics': ['ROI', 'Metrics', 'Business Value'],
        },
    ]


class CatalogCache:
    """Thread-safe, TTL-bounded owner of the current catalog snapshot."""

    def __init__(self, base_url: str = FEED_BASE_URL,
                 ttl_seconds: int = CACHE_TTL_SECONDS,
                 fetcher: Callable[[], List[Dict]] = None,
                 clock: Callable[[], float] = time.time):
        self._lock = threading.Lock()
        self._snapshot: Optional[CatalogSnapshot] = None
        self._base_url = base_url
        self._ttl = ttl_seconds
        self._fetcher = fetcher or (lambda: fetch_feed(base_url))
        self._clock = clock

    def _is_fresh(self, snapshot: Optional[CatalogSnapshot], now: float) -> bool:
        return snapshot is not None and (now - snapshot.fetched_at) < self._ttl

    def get_snapshot(self) -> CatalogSnapshot:
        """Return the current snapshot, refreshing it first if stale."""
        snapshot = self._snapshot
        if self._is_fresh(snapshot, self._clock()):
            metrics.increment('cache_hits')
            logger.debug("Returning cached catalog")
            return snapshot

        metrics.increment('cache_misses')
        return self.refresh()

    def refresh(self) -> CatalogSnapshot:
        """Fetch the origin feed and replace the snapshot, falling back on failure."""
        try:
            articles = self._fetcher()
            source = SOURCE_ORIGIN
        except Exception as e:
            logger.warning("Origin unavailable, serving fallback catalog: %s", str(e),
                           extra={'error_type': type(e).__name__})
            metrics.increment('fallback_activations')
            articles = fallback_articles(self._base_url)
            source = SOURCE_FALLBACK

        snapshot = CatalogSnapshot(
            articles=tuple(articles),
            fetched_at=self._clock(),
            source=source,
        )

        # Concurrent refreshes race; an older fetch never replaces a newer one
        with self._lock:
            current = self._snapshot
            if current is not None and current.fetched_at > snapshot.fetched_at:
                return current
            self._snapshot = snapshot

        logger.info("Catalog refreshed from %s with %d articles", source, len(articles),
                    extra={'source': source, 'article_count': len(articles)})
        return snapshot

    def clear(self) -> None:
        with self._lock:
            self._snapshot = None

    def stats(self) -> Dict:
        snapshot = self._snapshot
        if snapshot is None:
            return {'articleCount': 0, 'source': None, 'fetchedAt': None,
                    'ageSeconds': None, 'ttlSeconds': self._ttl}

        return {
            'articleCount': len(snapshot.articles),
            'source': snapshot.source,
            'fetchedAt': datetime.fromtimestamp(snapshot.fetched_at, timezone.utc).isoformat(),
            'ageSeconds': round(self._clock() - snapshot.fetched_at, 3),
            'ttlSeconds': self._ttl,
        }
