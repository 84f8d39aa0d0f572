# messaging_api/repositories/project_repository.py

from sqlalchemy import select
from sqlalchemy.orm import Session

from messaging_api.core.base_repository import BaseRepository
from messaging_api.infrastructure.database.models.project_model import ProjectModel


class ProjectRepository(BaseRepository[ProjectModel]):
    def __init__(self, session: Session) -> None:
        super().__init__(session)

    def get_by_id(self, project_id: int) -> ProjectModel | None:
        stmt = select(ProjectModel).where(ProjectModel.id == project_id, ProjectModel.is_deleted.is_(False))
        return self._session.execute(stmt).scalar_one_or_none()

    def add(self, model: ProjectModel) -> ProjectModel:
        self._session.add(model)
        self._session.flush()
        return model
