# messaging_api/core/interfaces/project_directory.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol


@dataclass(frozen=True)
class ProjectSummary:
    id: int
    title: str
    description: str | None


class ProjectDirectory(Protocol):
    def get_summary(self, project_id: int) -> ProjectSummary | None:
        ...
