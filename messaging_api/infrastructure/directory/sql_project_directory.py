# messaging_api/infrastructure/directory/sql_project_directory.py
from __future__ import annotations

from messaging_api.core.interfaces.project_directory import ProjectDirectory, ProjectSummary
from messaging_api.repositories.project_repository import ProjectRepository


class SqlProjectDirectory(ProjectDirectory):
    def __init__(self, project_repository: ProjectRepository) -> None:
        self._repo = project_repository

    def get_summary(self, project_id: int) -> ProjectSummary | None:
        p = self._repo.get_by_id(project_id)
        if p is None:
            return None
        return ProjectSummary(id=int(p.id), title=p.title, description=p.description)
