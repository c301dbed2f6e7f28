"""codesearch rich error messages: actionable feedback.

Every error shown to the user must contain:
  1. What went wrong (clear cause)
  2. The exact action the user should take to fix it

Usage:
    from codesearch.cli.errors import err_config
    console.print(err_config(str(exc)))
    raise typer.Exit(1)
"""

from __future__ import annotations

from rich.markup import escape


def err_config(message: str) -> str:
    """Configuration could not be loaded or is invalid."""
    return (
        f"[red]Error:[/] {escape(message)}\n"
        "  Check codesearch.yaml, ~/.codesearch/config.yaml and the "
        "EMBEDDING_PROVIDER / OLLAMA_* / OPENAI_* environment variables."
    )


def err_no_api_key() -> str:
    """Hosted provider selected without a credential."""
    return (
        "[red]Error:[/] EMBEDDING_PROVIDER is 'openai' but no API key is set.\n"
        "  Set:  export OPENAI_API_KEY=sk-...\n"
        "  Or use the local provider:  export EMBEDDING_PROVIDER=ollama"
    )


def err_collection_mismatch(message: str) -> str:
    """Stored vectors have a different size than the current provider produces."""
    return (
        f"[red]Error:[/] {escape(message)}\n"
        "  Set ollama_dimensions / hosted_dimensions to match the model, or\n"
        "  index into a new collection:  export COLLECTION_NAME=<new-name>"
    )


def err_project_path(path: str, reason: str) -> str:
    """Project path is missing or not a directory."""
    return (
        f"[red]Error:[/] {escape(reason)}\n"
        f"  Pass an existing project directory, e.g.  codesearch index {escape(path)} --name my-project"
    )


def err_invalid_transport(transport: str, choices: list[str]) -> str:
    return (
        f"[red]Error:[/] Unknown transport '{escape(transport)}'.\n"
        f"  Use one of: {', '.join(choices)}"
    )


def err_batch_write(message: str) -> str:
    """A batch failed; earlier batches are already stored."""
    return (
        f"[red]Error:[/] {escape(message)}\n"
        "  Batches stored before the failure remain in the index.\n"
        "  Fix the cause (see the log above) and re-run the same command to overwrite them."
    )


def err_index_failed(message: str) -> str:
    """Indexing stopped before any batch was attempted."""
    return (
        f"[red]Error:[/] {escape(message)}\n"
        "  Check the --name and pattern options, then re-run the command."
    )
