# tests/conftest.py
from __future__ import annotations

import io
from datetime import datetime, timedelta
from pathlib import Path

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session
from sqlalchemy.pool import StaticPool

from messaging_api.core.exceptions import StorageError
from messaging_api.infrastructure.database.base_model import BaseModel
from messaging_api.infrastructure.database.models import ProjectModel, UserModel
from messaging_api.infrastructure.database.session import _enable_sqlite_savepoints
from messaging_api.infrastructure.storage.file_storage import StoredAttachment
from messaging_api.services.container import build_services
from messaging_api.services.message_service import AttachmentUpload

ALICE = 1  # freelancer
BOB = 2  # client
CAROL = 3  # freelancer, outsider to alice/bob conversations
DAVE = 4  # role without a slot preference

PROJECT = 10


class FakeClock:
    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


class InMemoryAttachmentStore:
    def __init__(self, public_base_url: str = "/uploads") -> None:
        self.files: dict[str, bytes] = {}
        self.fail_next_save = False
        self._public_base_url = public_base_url
        self._seq = 0

    def save(self, *, fileobj, original_name, content_type, folder) -> StoredAttachment:
        if self.fail_next_save:
            self.fail_next_save = False
            raise StorageError("storage unavailable")

        self._seq += 1
        data = fileobj.read()
        stored_name = f"{folder}/{self._seq}-{original_name}"
        self.files[stored_name] = data
        return StoredAttachment(
            url=f"{self._public_base_url}/{stored_name}",
            stored_name=stored_name,
            original_name=original_name,
            content_type=content_type,
            size_bytes=len(data),
            sha256="0" * 64,
        )

    def open(self, *, stored_name: str) -> Path:
        raise FileNotFoundError(stored_name)

    def delete(self, *, stored_name: str) -> None:
        self.files.pop(stored_name, None)


def seed_directory(session: Session) -> None:
    session.add_all(
        [
            UserModel(id=ALICE, username="alice", first_name="Alice", last_name="Silva", role="Freelancer"),
            UserModel(id=BOB, username="bob", first_name="Bob", last_name="Costa", role="client"),
            UserModel(id=CAROL, username="carol", role="freelancer"),
            UserModel(id=DAVE, username="dave", role="admin"),
            UserModel(id=99, username="gone", role="client", is_deleted=True),
            ProjectModel(id=PROJECT, title="Website redesign", description="Landing page and blog"),
        ]
    )
    session.flush()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2024, 3, 1, 12, 0, 0))


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    _enable_sqlite_savepoints(engine)
    BaseModel.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session(engine):
    session = Session(bind=engine, autoflush=False, expire_on_commit=False)
    seed_directory(session)
    yield session
    session.rollback()
    session.close()


@pytest.fixture
def store() -> InMemoryAttachmentStore:
    return InMemoryAttachmentStore()


@pytest.fixture
def services(session, store, clock):
    return build_services(session, attachment_store=store, clock=clock)


@pytest.fixture
def conversation(services):
    """Alice -> Bob conversation holding the initial 'hello'."""
    return services.conversations.start_conversation(
        initiator_id=ALICE,
        participant_id=BOB,
        initial_message="hello",
    )


def upload(data: bytes, filename: str, content_type: str) -> AttachmentUpload:
    return AttachmentUpload(fileobj=io.BytesIO(data), filename=filename, content_type=content_type)
