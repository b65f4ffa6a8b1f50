"""
Shared fixtures: a synthetic three-article catalog and dispatchers built on
caches that never touch the network.
"""
import os
import sys

import pytest

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from catalog import CatalogCache
from queries import ToolDispatcher
from tools import TOOL_SET_CATALOG, TOOL_SET_SEARCH


class FakeClock:
    """Manually advanced clock for TTL tests."""

    def __init__(self, now: float = 1_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def sample_articles():
    return [
        {
            "id": "a1",
            "title": "Best Practices for AI Governance",
            "author": "Dr. Sarah Johnson",
            "publishedDate": "Mon, 02 Jun 2025 09:00:00 GMT",
            "url": "https://example.substack.com/p/ai-governance",
            "excerpt": "Implementing robust AI governance frameworks to ensure responsible AI deployment...",
            "topics": ["AI Governance"],
        },
        {
            "id": "a2",
            "title": "Measuring ROI of AI Initiatives",
            "author": "Michael Chen",
            "publishedDate": "Sun, 01 Jun 2025 09:00:00 GMT",
            "url": "https://example.substack.com/p/measuring-ai-roi",
            "excerpt": "Key metrics and methodologies for tracking the return on investment of AI projects...",
            "topics": ["ROI"],
        },
        {
            "id": "a3",
            "title": "Getting Started with AI Center of Excellence",
            "author": "AI CoE Team",
            "publishedDate": "Sat, 31 May 2025 09:00:00 GMT",
            "url": "https://example.substack.com/p/getting-started",
            "excerpt": "How machine learning teams organise an AI Center of Excellence...",
            "topics": ["AI Strategy"],
        },
    ]


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(sample_articles, clock):
    return CatalogCache(base_url="https://example.substack.com",
                        fetcher=lambda: sample_articles, clock=clock)


@pytest.fixture
def dispatcher(cache):
    return ToolDispatcher(cache, TOOL_SET_CATALOG)


@pytest.fixture
def search_dispatcher(cache):
    return ToolDispatcher(cache, TOOL_SET_SEARCH)
