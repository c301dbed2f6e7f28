"""codesearch serve: run the MCP server."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer

from codesearch.cli.common import console, load_cli_config, open_engine
from codesearch.cli.errors import err_invalid_transport
from codesearch.config import TRANSPORTS
from codesearch.server.app import run_server


def serve_cmd(
    transport: Annotated[
        str | None,
        typer.Option("--transport", "-t", help="stdio or sse (default: server.transport)."),
    ] = None,
    host: Annotated[
        str | None,
        typer.Option("--host", help="Bind address for sse (default: server.host)."),
    ] = None,
    port: Annotated[
        int | None,
        typer.Option("--port", help="Port for sse (default: server.port)."),
    ] = None,
    db: Annotated[
        Path | None,
        typer.Option("--db", help="Path to the index database (default: from config)."),
    ] = None,
) -> None:
    """Serve the index as MCP tools over stdio or HTTP/SSE."""
    cfg = load_cli_config()
    transport = (transport or cfg.server.transport).lower()
    if transport not in TRANSPORTS:
        console.print(err_invalid_transport(transport, sorted(TRANSPORTS)))
        raise typer.Exit(1)

    engine = open_engine(db, cfg=cfg, log_level=cfg.logging.level)
    try:
        run_server(
            engine,
            transport=transport,
            host=host or cfg.server.host,
            port=port or cfg.server.port,
        )
    finally:
        engine.close()
