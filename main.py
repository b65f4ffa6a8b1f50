"""
PubFeed MCP Server
Exposes a publication feed as MCP tools over STDIO, or over HTTP (REST and
JSON-RPC facades) when started in http mode.

Usage:
    python main.py --mode stdio              # Local MCP client (Claude Desktop, Cursor, ...)
    python main.py --mode http --port 3000   # Remote REST + JSON-RPC server
"""
import sys
import io
import json
import argparse
import threading
from datetime import datetime, timezone
from enum import IntEnum
from typing import Dict, Optional

import config
from catalog import CatalogCache
from errors import ToolError, UnknownTool, InvalidArgument, NotFound, ToolExecutionError
from observability import configure_logging, metrics
from queries import ToolDispatcher

logger = configure_logging()

# =============================================================================
# MCP ERRORS
# =============================================================================

class ErrorCode(IntEnum):
    PARSE_ERROR = -32700
    INVALID_REQUEST = -32600
    METHOD_NOT_FOUND = -32601
    INVALID_PARAMS = -32602
    INTERNAL_ERROR = -32603


class McpError(Exception):
    """A protocol-level failure carried back as a JSON-RPC error object."""

    def __init__(self, code: ErrorCode, message: str):
        super().__init__(message)
        self.code = code
        self.message = message

    def to_dict(self) -> Dict:
        return {"code": int(self.code), "message": self.message}


# Not-found resolves to InvalidParams: a bad id and a missing article are one condition here
MCP_ERROR_CODES = {
    UnknownTool: ErrorCode.METHOD_NOT_FOUND,
    InvalidArgument: ErrorCode.INVALID_PARAMS,
    NotFound: ErrorCode.INVALID_PARAMS,
    ToolExecutionError: ErrorCode.INTERNAL_ERROR,
}


def to_mcp_error(error: ToolError) -> McpError:
    code = MCP_ERROR_CODES.get(type(error), ErrorCode.INTERNAL_ERROR)
    return McpError(code, error.message)

# =============================================================================
# SERVER STATE
# =============================================================================

_dispatcher = None
_dispatcher_lock = threading.Lock()


def get_dispatcher() -> ToolDispatcher:
    """The process-wide dispatcher and catalog cache, built on first use."""
    global _dispatcher

    with _dispatcher_lock:
        if _dispatcher is None:
            _dispatcher = ToolDispatcher(CatalogCache(), config.TOOL_SET)
        return _dispatcher


def get_health() -> Dict:
    """Liveness probe: static status plus the current time."""
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat()
    }


def get_metrics(tool_dispatcher: ToolDispatcher = None) -> Dict:
    """Get detailed metrics for observability."""
    tool_dispatcher = tool_dispatcher or get_dispatcher()
    return {
        "metrics": metrics.get_stats(),
        "cache": tool_dispatcher.cache.stats(),
        "config": {
            "feedUrl": config.feed_url(),
            "toolSet": tool_dispatcher.tool_set,
            "cacheTtl": config.CACHE_TTL_SECONDS,
            "timeoutSeconds": config.REQUEST_TIMEOUT_SECONDS,
        },
        "timestamp": datetime.now(timezone.utc).isoformat()
    }


def get_server_info() -> Dict:
    return {
        "protocolVersion": config.PROTOCOL_VERSION,
        "capabilities": {
            "tools": {}
        },
        "serverInfo": {
            "name": config.SERVER_NAME,
            "version": config.SERVER_VERSION
        }
    }


def tool_result(result: Dict) -> Dict:
    """Wrap a tool result as a single MCP text content block."""
    return {
        "content": [
            {
                "type": "text",
                "text": json.dumps(result, indent=2, ensure_ascii=False)
            }
        ]
    }

# =============================================================================
# MCP REQUEST HANDLER
# =============================================================================

def _dispatch(request: Dict, tool_dispatcher: ToolDispatcher) -> Optional[Dict]:
    if not isinstance(request, dict) or not isinstance(request.get('method'), str):
        raise McpError(ErrorCode.INVALID_REQUEST, "Invalid request: missing method")

    method = request['method']
    params = request.get('params') or {}

    if method == 'initialize':
        return get_server_info()

    if method.startswith('notifications/'):
        return None

    if method == 'ping':
        return get_health()

    if method == 'tools/list':
        return {"tools": tool_dispatcher.list_tools()}

    if method == 'tools/call':
        if not isinstance(params, dict):
            raise McpError(ErrorCode.INVALID_PARAMS, "params must be an object")
        try:
            result = tool_dispatcher.call(params.get('name'), params.get('arguments'))
        except ToolError as e:
            raise to_mcp_error(e)
        return tool_result(result)

    raise McpError(ErrorCode.METHOD_NOT_FOUND, "Method not found: %s" % method)


def handle_request(request: Dict, tool_dispatcher: ToolDispatcher = None) -> Optional[Dict]:
    """Handle one MCP JSON-RPC message. Notifications yield None."""
    tool_dispatcher = tool_dispatcher or get_dispatcher()
    id_ = request.get('id') if isinstance(request, dict) else None

    try:
        result = _dispatch(request, tool_dispatcher)
    except McpError as e:
        return {"jsonrpc": "2.0", "id": id_, "error": e.to_dict()}

    if result is None:
        return None
    return {"jsonrpc": "2.0", "id": id_, "result": result}

# =============================================================================
# MAIN ENTRY POINT
# =============================================================================

def _write(message: Dict) -> None:
    print(json.dumps(message, ensure_ascii=False), flush=True)


def serve_stdio(tool_dispatcher: ToolDispatcher = None) -> None:
    """STDIO MCP server loop: one JSON-RPC message per line."""
    sys.stdout = io.TextIOWrapper(sys.stdout.buffer, encoding='utf-8', errors='replace')

    logger.info("PubFeed MCP Server %s started (stdio mode), feed: %s",
                config.SERVER_VERSION, config.feed_url())

    for line in sys.stdin:
        line = line.strip()
        if not line:
            continue

        try:
            request = json.loads(line)
        except json.JSONDecodeError as e:
            logger.error("Invalid JSON received: %s", str(e))
            _write({
                "jsonrpc": "2.0",
                "id": None,
                "error": {"code": int(ErrorCode.PARSE_ERROR), "message": "Parse error: Invalid JSON"}
            })
            continue

        try:
            response = handle_request(request, tool_dispatcher)
        except Exception:
            logger.exception("Unexpected error processing request")
            metrics.increment('server_errors')
            response = {
                "jsonrpc": "2.0",
                "id": request.get('id') if isinstance(request, dict) else None,
                "error": {"code": int(ErrorCode.INTERNAL_ERROR), "message": "Internal server error"}
            }

        if response is not None:
            _write(response)


def main():
    parser = argparse.ArgumentParser(description="PubFeed MCP Server")
    parser.add_argument("--mode", choices=["stdio", "http"], default=config.MODE,
                        help="Transport: stdio (MCP) or http (REST + JSON-RPC)")
    parser.add_argument("--host", default=config.HOST, help="Host to bind to (http mode)")
    parser.add_argument("--port", type=int, default=config.PORT, help="Port to run on (http mode)")
    args = parser.parse_args()

    if args.mode == 'stdio':
        serve_stdio()
        return

    import uvicorn
    from http_server import create_app

    logger.info("PubFeed MCP Remote Server running on %s:%d", args.host, args.port)
    uvicorn.run(create_app(get_dispatcher()), host=args.host, port=args.port,
                log_level="debug" if config.DEBUG else "info")


if __name__ == '__main__':
    main()
