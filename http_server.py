"""
PubFeed HTTP Server
REST and JSON-RPC facades over the same tool dispatcher the STDIO server uses.

Usage:
    python main.py --mode http --port 3000
    uvicorn http_server:app --host 0.0.0.0   # Production with uvicorn

Endpoints:
    GET  /                   Server descriptor
    GET  /health             Liveness probe
    GET  /metrics            Metrics and cache stats
    GET  /tools              Tool registry
    POST /tools/{toolName}   Run a tool, JSON body = arguments
    POST /mcp                MCP JSON-RPC 2.0
"""
import json
from datetime import datetime, timezone
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

import config
from errors import ToolError, UnknownTool, InvalidArgument, NotFound, ToolExecutionError
from main import ErrorCode, get_dispatcher, handle_request, get_health, get_metrics, logger
from queries import ToolDispatcher

REST_STATUS_CODES = {
    UnknownTool: 404,
    InvalidArgument: 400,
    NotFound: 404,
    ToolExecutionError: 500,
}


def jsonrpc_error(code: ErrorCode, message: str, id_=None, status_code: int = 200) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"jsonrpc": "2.0", "id": id_, "error": {"code": int(code), "message": message}}
    )


def create_app(tool_dispatcher: ToolDispatcher = None) -> FastAPI:
    """Build the FastAPI app around one dispatcher (and so one catalog cache)."""
    tool_dispatcher = tool_dispatcher or get_dispatcher()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("PubFeed HTTP Server starting (tool set: %s)", tool_dispatcher.tool_set)
        yield
        logger.info("PubFeed HTTP Server shutting down")

    app = FastAPI(
        title="PubFeed MCP Remote Server",
        description="REST and JSON-RPC access to a publication feed's articles",
        version=config.SERVER_VERSION,
        lifespan=lifespan
    )

    # Enable CORS for external app access
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # =========================================================================
    # INFO ENDPOINTS
    # =========================================================================

    @app.get("/")
    async def root():
        """Root endpoint with server info."""
        return {
            "name": "PubFeed MCP Remote Server",
            "version": config.SERVER_VERSION,
            "description": "A remote Model Context Protocol server for publication feed content",
            "endpoints": {
                "health": "/health",
                "metrics": "/metrics",
                "tools": "/tools",
                "execute": "/tools/:toolName",
                "mcp": "/mcp"
            },
            "feed_url": config.feed_url(),
            "tool_set": tool_dispatcher.tool_set,
            "timestamp": datetime.now(timezone.utc).isoformat()
        }

    @app.get("/health")
    async def health_endpoint():
        return get_health()

    @app.get("/metrics")
    async def metrics_endpoint():
        return get_metrics(tool_dispatcher)

    # =========================================================================
    # REST TOOL ENDPOINTS
    # =========================================================================

    @app.get("/tools")
    async def tools_endpoint():
        return {"tools": tool_dispatcher.list_tools()}

    @app.post("/tools/{tool_name}")
    async def execute_tool_endpoint(tool_name: str, request: Request):
        """
        Run a tool with the JSON request body as its arguments.

        Usage:
            curl -X POST http://localhost:3000/tools/list_articles \
                -H "Content-Type: application/json" -d '{"limit": 5}'
        """
        raw = await request.body()
        try:
            arguments = json.loads(raw) if raw.strip() else {}
        except ValueError:
            return JSONResponse(status_code=400, content={"error": "Invalid JSON body"})

        try:
            return await run_in_threadpool(tool_dispatcher.call, tool_name, arguments)
        except ToolError as e:
            status_code = REST_STATUS_CODES.get(type(e), 500)
            return JSONResponse(status_code=status_code, content={"error": e.message})

    # =========================================================================
    # MCP JSON-RPC ENDPOINT
    # =========================================================================

    @app.post("/mcp")
    async def mcp_endpoint(request: Request):
        """
        MCP JSON-RPC 2.0 over plain HTTP POST.

        Usage:
            curl -X POST http://localhost:3000/mcp \
                -H "Content-Type: application/json" \
                -d '{"jsonrpc":"2.0","id":1,"method":"tools/list"}'
        """
        try:
            body = await request.json()
        except ValueError:
            return jsonrpc_error(ErrorCode.PARSE_ERROR, "Parse error", status_code=400)

        if not isinstance(body, dict):
            return jsonrpc_error(ErrorCode.INVALID_REQUEST, "Invalid Request")

        id_ = body.get('id')
        if body.get('jsonrpc') != '2.0':
            return jsonrpc_error(ErrorCode.INVALID_REQUEST, "Invalid Request", id_)

        try:
            response = await run_in_threadpool(handle_request, body, tool_dispatcher)
        except Exception:
            logger.exception("Error handling MCP request")
            return jsonrpc_error(ErrorCode.INTERNAL_ERROR, "Internal error", id_)

        if response is None:
            return Response(status_code=202)
        return JSONResponse(content=response)

    return app


def __getattr__(name):
    # `uvicorn http_server:app` builds the default app on first access only
    if name == 'app':
        globals()['app'] = create_app()
        return globals()['app']
    raise AttributeError("module %r has no attribute %r" % (__name__, name))
