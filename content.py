"""
Article body extraction.

Two policies serve different tools:

* extract_full_text - ordered selector strategies with a paragraph fallback,
  used by read_article.
* fetch_text_excerpt - whole-page tag stripping with a fixed length budget,
  used by fetch.

Neither raises: origin failures degrade to a placeholder or to the excerpt.
"""
import re
import logging
from typing import Callable, List, Optional

from bs4 import BeautifulSoup

from config import (
    REQUEST_TIMEOUT_SECONDS,
    MIN_SUBSTANTIAL_LENGTH,
    FETCH_TEXT_LENGTH,
    MIN_FETCH_TEXT_LENGTH,
    ELLIPSIS,
    UNAVAILABLE_PLACEHOLDER,
    NOT_EXTRACTED_PLACEHOLDER,
)
from fetching import fetch_with_retry
from observability import metrics

logger = logging.getLogger('pubfeed.content')

# Narrowest first: publication body markers, then generic containers
ARTICLE_CONTENT_SELECTORS = [
    '.markup',
    '.post-content',
    'article',
    '.available-content',
    'main',
]


def _selector_strategy(selector: str) -> Callable[[BeautifulSoup], str]:
    def strategy(soup: BeautifulSoup) -> str:
        elements = soup.select(selector)
        return '\n\n'.join(el.get_text().strip() for el in elements).strip()
    strategy.__name__ = 'select(%s)' % selector
    return strategy


EXTRACTION_STRATEGIES = [_selector_strategy(s) for s in ARTICLE_CONTENT_SELECTORS]


def is_substantial(text: str) -> bool:
    return len(text) > MIN_SUBSTANTIAL_LENGTH


def paragraph_text(soup: BeautifulSoup) -> str:
    """Join every paragraph's text, in document order."""
    paragraphs = [p.get_text().strip() for p in soup.find_all('p')]
    return '\n\n'.join(p for p in paragraphs if p)


def extract_body_text(html, strategies: List[Callable] = None) -> str:
    """
    Extract a best-effort plain-text body from an article page.

    The first strategy producing substantial text wins; otherwise all
    paragraphs are concatenated. Returns '' when the page has no text.
    """
    soup = BeautifulSoup(html, 'lxml')

    for strategy in strategies or EXTRACTION_STRATEGIES:
        text = strategy(soup)
        if is_substantial(text):
            logger.debug("Content extracted by %s (%d chars)", strategy.__name__, len(text))
            return text

    return paragraph_text(soup).strip()


def extract_full_text(url: str, timeout: float = REQUEST_TIMEOUT_SECONDS) -> str:
    """Fetch an article page and return its body text, or a placeholder."""
    response = fetch_with_retry(url, timeout)
    if response is None:
        metrics.increment('content_unavailable')
        return UNAVAILABLE_PLACEHOLDER

    try:
        text = extract_body_text(response.content)
    except Exception as e:
        logger.warning("Failed to extract content from %s: %s", url, str(e),
                       extra={'url': url})
        text = ''

    if not text:
        metrics.increment('content_not_extracted')
        return NOT_EXTRACTED_PLACEHOLDER

    return text

# =============================================================================
# TRUNCATION POLICY
# =============================================================================

def strip_markup(html) -> str:
    """Drop script/style blocks and all tags, collapsing whitespace."""
    soup = BeautifulSoup(html, 'lxml')
    for tag in soup(['script', 'style']):
        tag.decompose()
    return re.sub(r'\s+', ' ', soup.get_text(' ')).strip()


def truncate(text: str, length: int = FETCH_TEXT_LENGTH) -> str:
    if len(text) > length:
        return text[:length] + ELLIPSIS
    return text


def fetch_text_excerpt(url: str, excerpt: str,
                       timeout: float = REQUEST_TIMEOUT_SECONDS) -> str:
    """
    Fetch an article page as bounded plain text.

    Keeps the feed excerpt when the page is unreachable or its stripped
    text is not longer than MIN_FETCH_TEXT_LENGTH.
    """
    response = fetch_with_retry(url, timeout)
    if response is None:
        metrics.increment('content_unavailable')
        return excerpt

    text: Optional[str] = None
    try:
        text = strip_markup(response.text)
    except Exception as e:
        logger.warning("Failed to strip markup from %s: %s", url, str(e),
                       extra={'url': url})

    if not text or len(text) <= MIN_FETCH_TEXT_LENGTH:
        return excerpt

    return truncate(text)
