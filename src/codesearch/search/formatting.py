"""Markdown rendering of query, listing and provider results."""

from __future__ import annotations

from codesearch.embeddings.base import ProviderInfo
from codesearch.search.query import FileContent, SearchHit, SearchResults
from codesearch.search.registry import ProjectSummary

_HIT_SEPARATOR = "\n---\n\n"


def _fence(lang: str | None, body: str) -> str:
    return f"```{lang}\n{body}\n```\n"


def _render_hit(rank: int, hit: SearchHit, *, with_type: bool) -> str:
    meta = hit.metadata
    out = f"## Result {rank} (Similarity: {hit.similarity_text})\n"
    out += f"**File:** {meta.file_path}\n"
    out += f"**Project:** {meta.project_name}\n"
    if with_type:
        out += f"**Type:** {meta.file_type}\n"
    out += "\n" + _fence(meta.file_type, hit.document)
    return out


def render_search(results: SearchResults) -> str:
    if not results.hits:
        return "No results found for your query."
    body = _HIT_SEPARATOR.join(
        _render_hit(i, hit, with_type=False) for i, hit in enumerate(results.hits, start=1)
    )
    return f'Found {len(results)} results for: "{results.query}"\n\n{body}'


def render_file_type_search(results: SearchResults) -> str:
    if not results.hits:
        return f"No results found for file type: {results.file_type}"
    body = _HIT_SEPARATOR.join(
        _render_hit(i, hit, with_type=True) for i, hit in enumerate(results.hits, start=1)
    )
    return f'Found {len(results)} results for file type "{results.file_type}":\n\n{body}'


def render_file_content(file_path: str, file: FileContent | None) -> str:
    if file is None:
        return f"File not found: {file_path}"
    return (
        f"# File: {file.file_path}\n"
        f"**Project:** {file.project_name}\n"
        f"**Type:** {file.file_type}\n"
        f"**Chunks:** {file.chunk_count}\n\n"
        + _fence(file.file_type, file.content)
    )


def render_projects(projects: list[ProjectSummary]) -> str:
    if not projects:
        return "No projects indexed yet."
    out = f"# Indexed Projects ({len(projects)})\n\n"
    for p in projects:
        out += f"## {p.project_name}\n"
        out += f"- **ID:** {p.project_id}\n"
        out += f"- **Path:** {p.project_path}\n"
        out += f"- **Source:** {p.source_type}\n"
        out += f"- **Chunks:** {p.chunk_count}\n\n"
    return out


def render_provider_info(provider_name: str, info: ProviderInfo) -> str:
    out = "# Embedding Provider Information\n\n"
    out += f"**Current Provider:** {provider_name}\n\n"
    out += f"## {info.title}\n"
    for label, value in info.fields:
        out += f"- **{label}:** {value}\n"
    return out


def render_index_summary(
    *,
    project_name: str,
    project_id: str,
    project_path: str,
    files_processed: int,
    chunks_created: int,
    provider_name: str,
    files_skipped: int = 0,
) -> str:
    out = (
        f"Successfully indexed local project: {project_name}\n"
        f"Project ID: {project_id}\n"
        f"Project Path: {project_path}\n"
        f"Files processed: {files_processed}\n"
        f"Chunks created: {chunks_created}\n"
        f"Embedding provider: {provider_name}"
    )
    if files_skipped:
        out += f"\nFiles skipped: {files_skipped}"
    return out
