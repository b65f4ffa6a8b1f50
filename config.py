"""
PubFeed configuration.

All settings are read from the environment once, at import time.
"""
import os

# =============================================================================
# ENVIRONMENT
# =============================================================================

FEED_BASE_URL = os.environ.get('PUBFEED_FEED_URL', 'https://trilogyai.substack.com').rstrip('/')
FEED_PATH = '/feed'

DEBUG = os.environ.get('PUBFEED_DEBUG', 'false').lower() == 'true'
LOG_LEVEL = 'DEBUG' if DEBUG else os.environ.get('PUBFEED_LOG_LEVEL', 'INFO')

# 'stdio' for a local MCP client, 'http' for the REST and JSON-RPC facades
MODE = os.environ.get('PUBFEED_MODE', 'http').lower()
HOST = os.environ.get('PUBFEED_HOST', '0.0.0.0')
PORT = int(os.environ.get('PUBFEED_PORT', '3000'))

# 'catalog' serves list/read tools, 'search' serves search/fetch tools
TOOL_SET = os.environ.get('PUBFEED_TOOL_SET', 'catalog').lower()

CACHE_TTL_SECONDS = int(os.environ.get('PUBFEED_CACHE_TTL', '300'))
REQUEST_TIMEOUT_SECONDS = float(os.environ.get('PUBFEED_TIMEOUT', '10'))
MAX_RETRIES = int(os.environ.get('PUBFEED_MAX_RETRIES', '0'))
RETRY_BACKOFF = 0.3

SERVER_NAME = 'pubfeed-mcp'
SERVER_VERSION = '1.0.0'
PROTOCOL_VERSION = '2024-11-05'
USER_AGENT = 'Mozilla/5.0 (compatible; PubFeed-MCP/1.0)'

# =============================================================================
# CATALOG CONSTANTS
# =============================================================================

UNKNOWN_AUTHOR = 'Unknown Author'
GENERAL_TOPIC = 'General'
EXCERPT_LENGTH = 200
ELLIPSIS = '...'

DEFAULT_LIST_LIMIT = 10
SEARCH_RESULT_LIMIT = 10

# Content extraction thresholds
MIN_SUBSTANTIAL_LENGTH = 100
FETCH_TEXT_LENGTH = 2000
MIN_FETCH_TEXT_LENGTH = 500

UNAVAILABLE_PLACEHOLDER = 'Unable to fetch article content. Please visit the URL directly.'
NOT_EXTRACTED_PLACEHOLDER = 'Content could not be extracted from this article.'


def feed_url(base_url: str = None) -> str:
    """Return the syndication feed address for a publication base URL."""
    return (base_url or FEED_BASE_URL).rstrip('/') + FEED_PATH
