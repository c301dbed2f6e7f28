"""codesearch search / search-type / file: query the index."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer

from codesearch.cli.common import open_engine, print_result

_DbOption = Annotated[
    Path | None,
    typer.Option("--db", help="Path to the index database (default: from config)."),
]


def search_cmd(
    query: Annotated[str, typer.Argument(help="Natural-language or code query.")],
    limit: Annotated[
        int | None,
        typer.Option("--limit", "-l", min=1, help="Maximum results (default: search.default_limit)."),
    ] = None,
    project: Annotated[
        str | None,
        typer.Option("--project", "-p", help="Only search this project ID."),
    ] = None,
    db: _DbOption = None,
) -> None:
    """Semantic search across all indexed projects."""
    engine = open_engine(db)
    try:
        result = engine.call_tool(
            "search_codebase",
            {"query": query, "limit": limit, "project_filter": project},
        )
    finally:
        engine.close()
    print_result(result)


def search_type_cmd(
    file_type: Annotated[str, typer.Argument(help="File extension, with or without the dot (py, .ts).")],
    query: Annotated[
        str | None,
        typer.Option("--query", "-q", help="Query text (default: the file type itself)."),
    ] = None,
    limit: Annotated[
        int | None,
        typer.Option("--limit", "-l", min=1, help="Maximum results (default: search.default_limit)."),
    ] = None,
    db: _DbOption = None,
) -> None:
    """Semantic search restricted to one file type."""
    engine = open_engine(db)
    try:
        result = engine.call_tool(
            "search_by_file_type",
            {"file_type": file_type, "query": query, "n_results": limit},
        )
    finally:
        engine.close()
    print_result(result)


def file_cmd(
    file_path: Annotated[str, typer.Argument(help="Stored path, relative to its project root.")],
    db: _DbOption = None,
) -> None:
    """Print a file reconstructed from its indexed chunks."""
    engine = open_engine(db)
    try:
        result = engine.call_tool("get_file_content", {"file_path": file_path})
    finally:
        engine.close()
    print_result(result)
