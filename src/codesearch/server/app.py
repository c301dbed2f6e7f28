"""MCP server: exposes the engine's operations as MCP tools.

Transports:
  stdio  one client over stdin/stdout (default)
  sse    HTTP server with the MCP SSE endpoint plus plain JSON routes:
           GET  /health       liveness and configuration summary
           GET  /             endpoint discovery
           POST /tools/list   tool definitions
           POST /tools/call   {"name" | "tool": ..., "arguments": {...}}

Tools run in worker threads so a long indexing run does not block the loop.
"""

# No `from __future__ import annotations`: FastMCP inspects the tool
# signatures at registration time.

import asyncio
from typing import Literal

from mcp.server.fastmcp import FastMCP
from starlette.requests import Request
from starlette.responses import JSONResponse

from codesearch import __version__
from codesearch.engine import TOOL_DEFINITIONS, CodeSearchEngine
from codesearch.logging import get_logger

SERVER_NAME = "codesearch"

_DESCRIPTIONS = {tool["name"]: tool["description"] for tool in TOOL_DEFINITIONS}


def create_server(
    engine: CodeSearchEngine,
    host: str = "127.0.0.1",
    port: int = 3001,
    logger=None,
) -> FastMCP:
    """Build a FastMCP server whose tools delegate to *engine*.

    The engine stays owned by the caller.
    """
    log = logger or get_logger("server")
    mcp = FastMCP(
        SERVER_NAME,
        instructions=(
            "Semantic search over indexed source code. Index a project with "
            "index_local_project, then query it with search_codebase."
        ),
        host=host,
        port=port,
    )

    async def _call(name: str, arguments: dict) -> str:
        result = await asyncio.to_thread(engine.call_tool, name, arguments)
        return result.text

    # ------------------------------------------------------------------
    # Tools
    # ------------------------------------------------------------------

    @mcp.tool(description=_DESCRIPTIONS["index_local_project"])
    async def index_local_project(
        project_path: str,
        project_name: str,
        include_patterns: list[str] | None = None,
        exclude_patterns: list[str] | None = None,
    ) -> str:
        return await _call(
            "index_local_project",
            {
                "project_path": project_path,
                "project_name": project_name,
                "include_patterns": include_patterns,
                "exclude_patterns": exclude_patterns,
            },
        )

    @mcp.tool(description=_DESCRIPTIONS["search_codebase"])
    async def search_codebase(
        query: str, limit: int = 10, project_filter: str | None = None
    ) -> str:
        return await _call(
            "search_codebase",
            {"query": query, "limit": limit, "project_filter": project_filter},
        )

    @mcp.tool(description=_DESCRIPTIONS["search_code"])
    async def search_code(query: str, n_results: int = 10) -> str:
        return await _call("search_code", {"query": query, "n_results": n_results})

    @mcp.tool(description=_DESCRIPTIONS["search_by_file_type"])
    async def search_by_file_type(
        file_type: str, query: str | None = None, n_results: int = 10
    ) -> str:
        return await _call(
            "search_by_file_type",
            {"file_type": file_type, "query": query, "n_results": n_results},
        )

    @mcp.tool(description=_DESCRIPTIONS["get_file_content"])
    async def get_file_content(file_path: str) -> str:
        return await _call("get_file_content", {"file_path": file_path})

    @mcp.tool(description=_DESCRIPTIONS["list_indexed_projects"])
    async def list_indexed_projects() -> str:
        return await _call("list_indexed_projects", {})

    @mcp.tool(description=_DESCRIPTIONS["get_embedding_provider_info"])
    async def get_embedding_provider_info() -> str:
        return await _call("get_embedding_provider_info", {})

    # ------------------------------------------------------------------
    # Plain HTTP routes (sse transport only)
    # ------------------------------------------------------------------

    @mcp.custom_route("/health", methods=["GET"])
    async def health(request: Request) -> JSONResponse:
        _ = request  # unused
        return JSONResponse(
            {
                "status": "healthy",
                "service": SERVER_NAME,
                "version": __version__,
                "embedding_provider": engine.provider.name,
                "collection": engine.collection.name,
            }
        )

    @mcp.custom_route("/", methods=["GET"])
    async def discovery(request: Request) -> JSONResponse:
        _ = request  # unused
        return JSONResponse(
            {
                "name": SERVER_NAME,
                "version": __version__,
                "protocol": "mcp",
                "capabilities": ["tools"],
                "endpoints": {
                    "tools/list": "POST - List available tools",
                    "tools/call": "POST - Call a specific tool",
                    "health": "GET - Health check",
                    "sse": "GET - MCP SSE transport",
                },
            }
        )

    @mcp.custom_route("/tools/list", methods=["POST"])
    async def tools_list(request: Request) -> JSONResponse:
        _ = request  # unused
        return JSONResponse({"tools": TOOL_DEFINITIONS})

    @mcp.custom_route("/tools/call", methods=["POST"])
    async def tools_call(request: Request) -> JSONResponse:
        try:
            body = await request.json()
        except ValueError:
            # Invalid JSON or a body that is not UTF-8.
            return JSONResponse({"error": "Request body must be JSON"}, status_code=400)
        if not isinstance(body, dict):
            return JSONResponse({"error": "Request body must be a JSON object"}, status_code=400)

        name = body.get("name") or body.get("tool")
        if not name:
            return JSONResponse(
                {"error": 'Tool name is required (use "name" or "tool" field)'},
                status_code=400,
            )
        arguments = body.get("arguments") or {}
        if not isinstance(arguments, dict):
            return JSONResponse({"error": '"arguments" must be an object'}, status_code=400)

        log.info("http_tool_call", tool=name)
        result = await asyncio.to_thread(engine.call_tool, name, arguments)
        return JSONResponse(result.to_dict())

    return mcp


def run_server(
    engine: CodeSearchEngine,
    transport: Literal["stdio", "sse"] = "stdio",
    host: str = "127.0.0.1",
    port: int = 3001,
) -> None:
    """Serve *engine* over *transport* until the process is stopped."""
    log = get_logger("server")
    mcp = create_server(engine, host=host, port=port)
    log.info("server_starting", transport=transport, host=host, port=port)
    mcp.run(transport=transport)
