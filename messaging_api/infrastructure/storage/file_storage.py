# messaging_api/infrastructure/storage/file_storage.py
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Protocol, BinaryIO


@dataclass(frozen=True)
class StoredAttachment:
    url: str
    stored_name: str
    original_name: str
    content_type: str | None
    size_bytes: int
    sha256: str


class AttachmentStore(Protocol):
    def save(
        self,
        *,
        fileobj: BinaryIO,
        original_name: str,
        content_type: str | None,
        folder: str,
    ) -> StoredAttachment:
        """Persist the payload under a logical folder and return a retrievable URL plus metadata."""
        raise NotImplementedError

    def open(self, *, stored_name: str) -> Path:
        """Local path of a stored payload; FileNotFoundError when absent."""
        raise NotImplementedError

    def delete(self, *, stored_name: str) -> None:
        """Best-effort removal; never raises."""
        raise NotImplementedError
