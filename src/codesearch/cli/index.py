"""codesearch index: index a local project directory."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.progress import Progress, SpinnerColumn, TextColumn

from codesearch.cli.common import console, open_engine, print_result
from codesearch.cli.errors import err_batch_write, err_index_failed, err_project_path
from codesearch.errors import BatchWriteError, CodeSearchError, PathAccessError


def index_cmd(
    path: Annotated[
        Path,
        typer.Argument(help="Project directory to index (relative paths are resolved)."),
    ],
    name: Annotated[
        str,
        typer.Option("--name", "-n", help="Project name; its slug becomes the project ID."),
    ],
    include: Annotated[
        list[str] | None,
        typer.Option("--include", help="Include pattern (repeatable). Default: common source extensions."),
    ] = None,
    exclude: Annotated[
        list[str] | None,
        typer.Option("--exclude", help="Exclude pattern (repeatable). Default: build/VCS/dependency dirs."),
    ] = None,
    db: Annotated[
        Path | None,
        typer.Option("--db", help="Path to the index database (default: from config)."),
    ] = None,
) -> None:
    """Index a local project into the shared code index."""
    project_path = str(path.expanduser().resolve())
    engine = open_engine(db)

    try:
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            transient=True,
            console=console,
        ) as prog:
            task = prog.add_task("Discovering files…", total=None)

            def _on_file(relative: str) -> None:
                prog.update(task, description=f"Chunking {relative}")

            def _on_batch(number: int, total: int) -> None:
                prog.update(task, description=f"Stored batch {number}/{total}")

            result = engine.index_local_project(
                project_path,
                name,
                include_patterns=include or None,
                exclude_patterns=exclude or None,
                on_file=_on_file,
                on_batch=_on_batch,
            )
    except PathAccessError as exc:
        console.print(err_project_path(str(path), str(exc)))
        raise typer.Exit(1) from exc
    except BatchWriteError as exc:
        console.print(err_batch_write(str(exc)))
        raise typer.Exit(1) from exc
    except (CodeSearchError, ValueError) as exc:
        console.print(err_index_failed(str(exc)))
        raise typer.Exit(1) from exc
    finally:
        engine.close()

    console.print("[green]✓[/] Indexing complete")
    print_result(result)
