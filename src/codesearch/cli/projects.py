"""codesearch projects / provider: inspect the index and embedding setup."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer

from codesearch.cli.common import open_engine, print_result


def projects_cmd(
    db: Annotated[
        Path | None,
        typer.Option("--db", help="Path to the index database (default: from config)."),
    ] = None,
) -> None:
    """List indexed projects with their chunk counts."""
    engine = open_engine(db)
    try:
        result = engine.call_tool("list_indexed_projects")
    finally:
        engine.close()
    print_result(result)


def provider_cmd(
    db: Annotated[
        Path | None,
        typer.Option("--db", help="Path to the index database (default: from config)."),
    ] = None,
) -> None:
    """Show the embedding provider and check that it is reachable."""
    engine = open_engine(db)
    try:
        result = engine.call_tool("get_embedding_provider_info")
    finally:
        engine.close()
    print_result(result)
