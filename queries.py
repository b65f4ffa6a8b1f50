"""
Query engine: the semantics of every tool, over a read-only catalog snapshot.

The ToolDispatcher is the single operation table shared by all transports:
name -> validated arguments -> result dict, raising ToolError subclasses.
"""
import re
import time
import logging
from typing import Callable, Dict, Iterable, List, Optional

from catalog import CatalogCache
from config import TOOL_SET, DEFAULT_LIST_LIMIT, SEARCH_RESULT_LIMIT
from content import extract_full_text, fetch_text_excerpt
from errors import InvalidArgument, NotFound, ToolError, ToolExecutionError, UnknownTool
from feed import parse_date
from observability import metrics
from tools import get_tool_definitions, validate_arguments

logger = logging.getLogger('pubfeed.queries')

ARTICLE_NOT_FOUND = 'Article not found. Please provide a valid articleId, url, or title.'

# =============================================================================
# FILTERING HELPERS
# =============================================================================

def normalize_filter(s: Optional[str]) -> str:
    """Lower-case a filter keyword and strip control characters."""
    if not s:
        return ''
    s = re.sub(r'[\x00-\x08\x0b\x0c\x0e-\x1f\x7f-\x9f]', '', s)
    return s.strip().lower()


def _public(article: Dict) -> Dict:
    return {
        'id': article['id'],
        'title': article['title'],
        'author': article['author'],
        'publishedDate': article['publishedDate'],
        'url': article['url'],
        'excerpt': article['excerpt'],
        'topics': list(article['topics']),
    }

# =============================================================================
# OPERATIONS
# =============================================================================

def list_articles(articles: Iterable[Dict], limit: int = DEFAULT_LIST_LIMIT,
                  author: Optional[str] = None, topic: Optional[str] = None) -> Dict:
    """Filter by author, then topic, then cut to limit, keeping catalog order."""
    filtered = list(articles)

    author_lower = normalize_filter(author)
    if author_lower:
        filtered = [a for a in filtered if author_lower in a['author'].lower()]

    topic_lower = normalize_filter(topic)
    if topic_lower:
        filtered = [a for a in filtered
                    if any(topic_lower in t.lower() for t in a['topics'])]

    limited = filtered[:limit]

    return {
        'articles': [_public(a) for a in limited],
        'total': len(filtered),
        'showing': len(limited),
    }


def _is_later(candidate: str, current: str) -> bool:
    candidate_dt = parse_date(candidate)
    if candidate_dt is None:
        return False
    current_dt = parse_date(current)
    return current_dt is None or candidate_dt > current_dt


def list_authors(articles: Iterable[Dict]) -> Dict:
    """
    Aggregate articles per author.

    Sorted by article count, descending. Equal counts keep first-seen order.
    """
    by_author: Dict[str, Dict] = {}

    for article in articles:
        entry = by_author.get(article['author'])
        if entry is None:
            by_author[article['author']] = {
                'name': article['author'],
                'articleCount': 1,
                'latestArticle': article['publishedDate'],
            }
            continue

        entry['articleCount'] += 1
        if _is_later(article['publishedDate'], entry['latestArticle']):
            entry['latestArticle'] = article['publishedDate']

    authors = sorted(by_author.values(), key=lambda a: a['articleCount'], reverse=True)
    return {'authors': authors}


def list_topics(articles: Iterable[Dict]) -> Dict:
    """
    Aggregate articles per topic label; an article counts once per topic.

    Sorted by article count, descending. Equal counts keep first-seen order.
    """
    by_topic: Dict[str, Dict] = {}

    for article in articles:
        for topic in article['topics']:
            entry = by_topic.setdefault(topic, {'name': topic, 'articleCount': 0, 'articles': []})
            entry['articleCount'] += 1
            entry['articles'].append(article['title'])

    topics = sorted(by_topic.values(), key=lambda t: t['articleCount'], reverse=True)
    return {'topics': topics}


def find_article(articles: Iterable[Dict], article_id: Optional[str] = None,
                 url: Optional[str] = None, title: Optional[str] = None) -> Dict:
    """
    Resolve one article by id, else url, else title substring.

    Raises InvalidArgument when no selector is given, NotFound when the
    chosen selector matches nothing.
    """
    articles = list(articles)

    if article_id:
        match = next((a for a in articles if a['id'] == article_id), None)
    elif url:
        match = next((a for a in articles if a['url'] == url), None)
    elif title:
        title_lower = title.lower()
        match = next((a for a in articles if title_lower in a['title'].lower()), None)
    else:
        raise InvalidArgument("One of 'articleId', 'url' or 'title' is required")

    if match is None:
        raise NotFound(ARTICLE_NOT_FOUND)
    return match


def read_article(articles: Iterable[Dict], article_id: Optional[str] = None,
                 url: Optional[str] = None, title: Optional[str] = None) -> Dict:
    """Resolve an article and attach its extracted full text."""
    article = find_article(articles, article_id=article_id, url=url, title=title)

    return {
        'article': {
            'id': article['id'],
            'title': article['title'],
            'author': article['author'],
            'publishedDate': article['publishedDate'],
            'url': article['url'],
            'topics': list(article['topics']),
            'content': extract_full_text(article['url']),
        }
    }


def search(articles: Iterable[Dict], query: str) -> Dict:
    """
    Match articles where any query term occurs in title, excerpt or author.

    No ranking: results keep catalog order, capped at SEARCH_RESULT_LIMIT.
    """
    terms = [t.lower() for t in query.split()]
    if not terms:
        raise InvalidArgument("'query' must contain at least one search term")

    results = []
    for article in articles:
        haystack = ' '.join((article['title'], article['excerpt'], article['author'])).lower()
        if any(term in haystack for term in terms):
            results.append({
                'id': article['id'],
                'title': article['title'],
                'text': article['excerpt'],
                'url': article['url'],
            })
            if len(results) >= SEARCH_RESULT_LIMIT:
                break

    return {'results': results}


def fetch(articles: Iterable[Dict], article_id: str) -> Dict:
    """Return one article by exact id with bounded page text."""
    article = next((a for a in articles if a['id'] == article_id), None)
    if article is None:
        raise NotFound("Article not found: %s" % article_id)

    return {
        'id': article['id'],
        'title': article['title'],
        'text': fetch_text_excerpt(article['url'], article['excerpt']),
        'url': article['url'],
        'metadata': {
            'author': article['author'],
            'publishedDate': article['publishedDate'],
            'excerpt': article['excerpt'],
        },
    }

# =============================================================================
# DISPATCH
# =============================================================================

class ToolDispatcher:
    """Validates and runs tool calls against one shared catalog cache."""

    def __init__(self, cache: CatalogCache, tool_set: str = TOOL_SET):
        self.cache = cache
        self.tool_set = tool_set
        self._definitions = {d['name']: d for d in get_tool_definitions(tool_set)}

        handlers: Dict[str, Callable[[Dict], Dict]] = {
            'list_articles': self._list_articles,
            'list_authors': lambda args: list_authors(self._articles()),
            'list_topics': lambda args: list_topics(self._articles()),
            'read_article': self._read_article,
            'search': lambda args: search(self._articles(), args['query']),
            'fetch': lambda args: fetch(self._articles(), args['id']),
        }
        self._handlers = {name: handlers[name] for name in self._definitions}

    def _articles(self):
        return self.cache.get_snapshot().articles

    def _list_articles(self, args: Dict) -> Dict:
        return list_articles(self._articles(), limit=args['limit'],
                             author=args.get('author'), topic=args.get('topic'))

    def _read_article(self, args: Dict) -> Dict:
        return read_article(self._articles(), article_id=args.get('articleId'),
                            url=args.get('url'), title=args.get('title'))

    def list_tools(self) -> List[Dict]:
        return get_tool_definitions(self.tool_set)

    def call(self, name: str, arguments: Optional[Dict] = None) -> Dict:
        """
        Run one tool call.

        Raises UnknownTool, InvalidArgument, NotFound, or ToolExecutionError
        wrapping any unexpected failure.
        """
        definition = self._definitions.get(name)
        if definition is None:
            metrics.increment('tool_unknown')
            raise UnknownTool("Unknown tool: %s" % name)

        args = validate_arguments(definition, arguments)

        start_time = time.time()
        metrics.increment('tool_calls.%s' % name)
        try:
            return self._handlers[name](args)
        except ToolError as e:
            metrics.increment('tool_errors.%s' % name)
            logger.info("Tool %s rejected: %s", name, e.message, extra={'tool': name})
            raise
        except Exception:
            metrics.increment('tool_errors.%s' % name)
            logger.exception("Tool execution error", extra={'tool': name})
            raise ToolExecutionError("Error executing tool %s" % name)
        finally:
            duration_ms = (time.time() - start_time) * 1000
            metrics.record_duration('tool_duration_ms.%s' % name, duration_ms)
