"""Project listing: aggregate stored records by project id."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from codesearch.db.store import Collection
from codesearch.logging import get_logger


@dataclass
class ProjectSummary:
    project_id: str
    project_name: str | None
    project_path: str | None
    source_type: str | None
    indexed_at: str | None
    chunk_count: int = 0


class ProjectRegistry:
    """Summarise the projects present in a collection.

    Args:
        scan_cap: Maximum number of records read per listing. Projects whose
            records all lie beyond the cap are not reported.
        logger: structlog logger; defaults to the ``search.registry`` logger.
    """

    def __init__(self, scan_cap: int = 100_000, logger: Any = None) -> None:
        if scan_cap < 1:
            raise ValueError("scan_cap must be >= 1")
        self.scan_cap = scan_cap
        self._log = logger or get_logger("search.registry")

    def list_projects(self, collection: Collection) -> list[ProjectSummary]:
        """Group records by ``project_id`` in first-seen order.

        The first record seen for a project supplies its display fields.
        Records without a ``project_id`` are skipped.
        """
        result = collection.get(limit=self.scan_cap, include=("metadatas",))
        metadatas = result.metadatas or []
        if len(metadatas) >= self.scan_cap:
            self._log.warning("project_scan_capped", cap=self.scan_cap)

        projects: dict[str, ProjectSummary] = {}
        for meta in metadatas:
            if not meta.project_id:
                continue
            summary = projects.get(meta.project_id)
            if summary is None:
                summary = projects[meta.project_id] = ProjectSummary(
                    project_id=meta.project_id,
                    project_name=meta.project_name,
                    project_path=meta.project_path,
                    source_type=meta.source_type,
                    indexed_at=meta.indexed_at,
                )
            summary.chunk_count += 1
        return list(projects.values())
