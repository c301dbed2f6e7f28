"""Shared CLI plumbing: config loading, engine construction, result output."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console
from rich.text import Text

from codesearch.cli.errors import err_collection_mismatch, err_config, err_no_api_key
from codesearch.config import CodeSearchConfig, ConfigError, load_config
from codesearch.engine import CodeSearchEngine, ToolResult
from codesearch.logging import configure_logging

console = Console()


def load_cli_config() -> CodeSearchConfig:
    """Load config or exit with an actionable message."""
    try:
        return load_config()
    except ConfigError as exc:
        console.print(err_config(str(exc)))
        raise typer.Exit(1) from exc


def open_engine(
    db: Path | None,
    cfg: CodeSearchConfig | None = None,
    log_level: str = "WARNING",
) -> CodeSearchEngine:
    """Build an engine for the store at *db* (config default when None).

    Commands log at WARNING so progress output stays readable; ``serve``
    passes the configured level.
    """
    cfg = cfg or load_cli_config()
    configure_logging(level=log_level, json_format=cfg.logging.json)
    try:
        return CodeSearchEngine.from_config(cfg, db_path=db)
    except ConfigError as exc:
        if "OPENAI_API_KEY" in str(exc):
            console.print(err_no_api_key())
        else:
            console.print(err_config(str(exc)))
        raise typer.Exit(1) from exc
    except ValueError as exc:
        console.print(err_collection_mismatch(str(exc)))
        raise typer.Exit(1) from exc


def print_result(result: ToolResult) -> None:
    """Print *result* verbatim; an error result exits with status 1."""
    if result.is_error:
        console.print(Text(result.text, style="red"), soft_wrap=True)
        raise typer.Exit(1)
    console.print(result.text, markup=False, highlight=False, soft_wrap=True)
