"""
Tool registry: the one declaration of every operation's name, description
and input schema. All transports list and validate against it.
"""
import copy
from typing import Any, Dict, List

from config import DEFAULT_LIST_LIMIT
from errors import InvalidArgument

TOOL_SET_CATALOG = 'catalog'
TOOL_SET_SEARCH = 'search'

CATALOG_TOOLS = [
    {
        "name": "list_articles",
        "description": "List articles from the publication feed, optionally filtered by author and topic",
        "inputSchema": {
            "type": "object",
            "properties": {
                "limit": {
                    "type": "integer",
                    "description": "Maximum number of articles to return (default: 10)",
                    "minimum": 1,
                    "default": DEFAULT_LIST_LIMIT
                },
                "author": {
                    "type": "string",
                    "description": "Filter articles by author name (case-insensitive substring)"
                },
                "topic": {
                    "type": "string",
                    "description": "Filter articles by topic (case-insensitive substring)"
                }
            },
            "required": []
        }
    },
    {
        "name": "list_authors",
        "description": "List all authors who have written articles, most prolific first",
        "inputSchema": {
            "type": "object",
            "properties": {},
            "required": []
        }
    },
    {
        "name": "list_topics",
        "description": "List all topics/categories covered in articles, most covered first",
        "inputSchema": {
            "type": "object",
            "properties": {},
            "required": []
        }
    },
    {
        "name": "read_article",
        "description": "Read the full content of a specific article, selected by ID, URL or title",
        "inputSchema": {
            "type": "object",
            "properties": {
                "articleId": {
                    "type": "string",
                    "description": "The ID of the article to read"
                },
                "url": {
                    "type": "string",
                    "description": "The URL of the article to read"
                },
                "title": {
                    "type": "string",
                    "description": "The title of the article to read (will search for matching title)"
                }
            },
            "required": []
        }
    },
]

SEARCH_TOOLS = [
    {
        "name": "search",
        "description": "Search articles by keywords. Any term matching the title, excerpt or author selects an article. Returns at most 10 results in feed order.",
        "inputSchema": {
            "type": "object",
            "properties": {
                "query": {
                    "type": "string",
                    "description": "Whitespace-separated search terms"
                }
            },
            "required": ["query"]
        }
    },
    {
        "name": "fetch",
        "description": "Fetch the text of an article by the ID returned from search",
        "inputSchema": {
            "type": "object",
            "properties": {
                "id": {
                    "type": "string",
                    "description": "Article ID"
                }
            },
            "required": ["id"]
        }
    },
]

TOOL_SETS = {
    TOOL_SET_CATALOG: CATALOG_TOOLS,
    TOOL_SET_SEARCH: SEARCH_TOOLS,
}


def get_tool_definitions(tool_set: str) -> List[Dict]:
    """Return a copy of the definitions served by one deployment variant."""
    if tool_set not in TOOL_SETS:
        raise ValueError("Unknown tool set: %s (expected one of %s)"
                         % (tool_set, ', '.join(sorted(TOOL_SETS))))
    return copy.deepcopy(TOOL_SETS[tool_set])

# =============================================================================
# ARGUMENT VALIDATION
# =============================================================================

def _check_type(name: str, value: Any, prop: Dict) -> None:
    expected = prop.get('type')

    if expected == 'string':
        if not isinstance(value, str):
            raise InvalidArgument("'%s' must be a string" % name)

    elif expected in ('integer', 'number'):
        # bool is an int subclass but never a valid count
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise InvalidArgument("'%s' must be a number" % name)
        if expected == 'integer' and isinstance(value, float) and not value.is_integer():
            raise InvalidArgument("'%s' must be an integer" % name)
        if 'minimum' in prop and value < prop['minimum']:
            raise InvalidArgument("'%s' must be at least %s" % (name, prop['minimum']))


def validate_arguments(definition: Dict, arguments: Any) -> Dict:
    """
    Check arguments against a tool's input schema.

    Unknown properties are dropped, null values count as absent and schema
    defaults are filled in. Raises InvalidArgument on the first violation.
    """
    if arguments is None:
        arguments = {}
    if not isinstance(arguments, dict):
        raise InvalidArgument("Arguments must be a JSON object")

    schema = definition['inputSchema']
    properties = schema.get('properties', {})
    cleaned = {}

    for name, prop in properties.items():
        value = arguments.get(name)
        if value is None:
            if 'default' in prop:
                cleaned[name] = prop['default']
            continue

        _check_type(name, value, prop)
        if prop.get('type') == 'integer':
            value = int(value)
        cleaned[name] = value

    for name in schema.get('required', []):
        if name not in cleaned:
            raise InvalidArgument("Missing required argument: '%s'" % name)

    return cleaned
