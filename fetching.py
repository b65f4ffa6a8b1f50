"""
Outbound HTTP for the origin feed and article pages.
"""
import time
import ipaddress
import logging
import threading
from typing import Optional, Tuple
from urllib.parse import urlparse

import requests
from requests.adapters import HTTPAdapter
from requests.exceptions import Timeout, RequestException, SSLError, ConnectionError as ReqConnectionError

from config import USER_AGENT, REQUEST_TIMEOUT_SECONDS, MAX_RETRIES, RETRY_BACKOFF
from observability import metrics

logger = logging.getLogger('pubfeed.fetching')

# Article URLs come from feed content, so page fetches refuse these hosts
BLOCKED_HOSTNAMES = ('localhost', 'localhost.localdomain')


def _is_blocked_host(hostname: str) -> bool:
    if hostname in BLOCKED_HOSTNAMES or hostname.endswith('.localhost'):
        return True
    try:
        ip = ipaddress.ip_address(hostname)
    except ValueError:
        return False
    return ip.is_private or ip.is_loopback or ip.is_link_local or ip.is_unspecified


def validate_url(url: str) -> Tuple[bool, str]:
    """Validate URL for security issues."""
    if not url:
        return False, "URL is required"

    try:
        parsed = urlparse(url)
        hostname = parsed.hostname
    except ValueError:
        return False, "URL parsing failed"

    if parsed.scheme not in ('http', 'https'):
        return False, "Only HTTP(S) URLs allowed"
    if not hostname:
        return False, "Invalid URL structure"
    if _is_blocked_host(hostname):
        return False, "Private or loopback host"

    return True, ""

# =============================================================================
# SESSION
# =============================================================================

_session = None
_session_lock = threading.Lock()


def get_session() -> requests.Session:
    """Shared pooled session for feed and page fetches."""
    global _session

    with _session_lock:
        if _session is None:
            _session = requests.Session()
            _session.headers.update({
                'User-Agent': USER_AGENT,
                'Accept': 'application/rss+xml, application/xml, text/html, */*',
            })
            # Retries are counted by fetch_with_retry
            adapter = HTTPAdapter(pool_maxsize=20, max_retries=0)
            _session.mount('http://', adapter)
            _session.mount('https://', adapter)
        return _session


def _error_type(error: RequestException) -> str:
    if isinstance(error, SSLError):
        return 'ssl_error'
    if isinstance(error, Timeout):
        return 'timeout'
    if isinstance(error, ReqConnectionError):
        return 'connection_error'
    return 'request_error'


def fetch_with_retry(url: str, timeout: float = REQUEST_TIMEOUT_SECONDS,
                     retries: int = MAX_RETRIES, validate: bool = True) -> Optional[requests.Response]:
    """
    GET a URL with a bounded timeout and exponential backoff between attempts.

    Page URLs are checked with validate_url first; the configured feed URL
    is passed with validate=False. Returns None when every attempt failed.
    """
    if validate:
        valid, error = validate_url(url)
        if not valid:
            logger.warning("Refusing to fetch %s: %s", url, error, extra={'url': url})
            metrics.increment('fetch_rejected')
            return None

    start_time = time.time()
    error_type = None

    for attempt in range(retries + 1):
        try:
            response = get_session().get(url, timeout=timeout)
            response.raise_for_status()
        except RequestException as e:
            error_type = _error_type(e)
            metrics.increment('fetch_%s' % error_type)
            logger.warning("Fetch of %s failed (attempt %d/%d): %s", url, attempt + 1, retries + 1, e,
                           extra={'url': url, 'error_type': error_type})
            if error_type == 'ssl_error':
                break
            if attempt < retries:
                time.sleep(RETRY_BACKOFF * (2 ** attempt))
            continue

        duration_ms = (time.time() - start_time) * 1000
        metrics.record_duration('fetch_duration_ms', duration_ms)
        logger.debug("Fetched %s in %.1fms", url, duration_ms,
                     extra={'url': url, 'duration_ms': duration_ms})
        return response

    metrics.increment('fetch_failed')
    logger.error("Giving up on %s: %s", url, error_type,
                 extra={'url': url, 'error_type': error_type})
    return None
