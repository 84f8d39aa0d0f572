# messaging_api/core/base_repository.py
from typing import Generic, TypeVar

from sqlalchemy.orm import Session, SessionTransaction

TModel = TypeVar("TModel")


class BaseRepository(Generic[TModel]):
    def __init__(self, session: Session) -> None:
        self._session = session

    def atomic(self) -> SessionTransaction:
        # SAVEPOINT inside the request transaction
        return self._session.begin_nested()
