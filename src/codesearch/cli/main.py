"""codesearch CLI entry point."""

from __future__ import annotations

import importlib.metadata
from typing import Annotated

import typer

from codesearch import __version__
from codesearch.cli.index import index_cmd
from codesearch.cli.projects import projects_cmd, provider_cmd
from codesearch.cli.search import file_cmd, search_cmd, search_type_cmd
from codesearch.cli.serve import serve_cmd


def _installed_version() -> str:
    try:
        return importlib.metadata.version("codesearch")
    except importlib.metadata.PackageNotFoundError:
        return __version__


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"codesearch {_installed_version()}")
        raise typer.Exit()


app = typer.Typer(
    name="codesearch",
    help=(
        "codesearch: semantic search over local source trees.\n\n"
        "  codesearch index PATH --name NAME   Index a project.\n"
        "  codesearch search QUERY             Search every indexed project.\n"
        "  codesearch serve                    Expose the index as MCP tools."
    ),
    add_completion=False,
)


@app.callback()
def main_callback(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            callback=_version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = False,
) -> None:
    """codesearch: semantic search over local source trees."""


app.command("index")(index_cmd)
app.command("search")(search_cmd)
app.command("search-type")(search_type_cmd)
app.command("file")(file_cmd)
app.command("projects")(projects_cmd)
app.command("provider")(provider_cmd)
app.command("serve")(serve_cmd)


@app.command("version")
def version_cmd() -> None:
    """Show the installed codesearch version."""
    typer.echo(f"codesearch {_installed_version()}")


if __name__ == "__main__":
    app()
