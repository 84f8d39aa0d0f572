# messaging_api/infrastructure/storage/local_file_storage.py
from __future__ import annotations

import hashlib
import logging
import os
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import BinaryIO
from uuid import uuid4

from messaging_api.core.exceptions import StorageError
from messaging_api.infrastructure.storage.file_storage import AttachmentStore, StoredAttachment

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 1024


@dataclass(frozen=True)
class LocalFileStorageConfig:
    base_path: str
    public_base_url: str = "/uploads"


class LocalFileStorage(AttachmentStore):
    def __init__(self, *, config: LocalFileStorageConfig) -> None:
        raw = (config.base_path or "").strip()
        if not raw:
            raise StorageError("Attachment storage is not configured (FILES_BASE_PATH is empty).")

        self._base = Path(raw).expanduser().resolve()
        self._public_base_url = (config.public_base_url or "").rstrip("/")

        try:
            self._base.mkdir(parents=True, exist_ok=True)
        except PermissionError:
            raise StorageError(f"No permission to create the upload folder '{self._base}'.")
        except OSError as e:
            raise StorageError(f"Failed to initialize local storage at '{self._base}': {e}")

        if not self._base.is_dir():
            raise StorageError(f"Upload folder '{self._base}' is not a directory.")

        if not os.access(self._base, os.W_OK):
            raise StorageError(f"Upload folder '{self._base}' is not writable.")

    def _abs_path_from_stored(self, stored_name: str) -> Path:
        # stored_name is relative, e.g. messages/12/<uuid>.png
        abs_path = (self._base / Path(stored_name)).resolve()

        base_str = str(self._base)
        abs_str = str(abs_path)
        if not (abs_str == base_str or abs_str.startswith(base_str + os.sep)):
            raise ValueError("Invalid stored_name (path traversal).")

        return abs_path

    def _safe_suffix(self, original_name: str) -> str:
        suffix = PurePosixPath(original_name.replace("\\", "/")).suffix.lower()
        if len(suffix) > 10 or not suffix[1:].isalnum():
            return ""
        return suffix

    def save(
        self,
        *,
        fileobj: BinaryIO,
        original_name: str,
        content_type: str | None,
        folder: str,
    ) -> StoredAttachment:
        rel_dir = PurePosixPath(*[p for p in folder.replace("\\", "/").split("/") if p not in ("", ".", "..")])
        stored_filename = f"{uuid4().hex}{self._safe_suffix(original_name)}"
        rel_path = (rel_dir / stored_filename).as_posix()
        abs_path = self._abs_path_from_stored(rel_path)

        try:
            abs_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError(f"Failed to prepare upload folder '{abs_path.parent}': {e}")

        sha = hashlib.sha256()
        size = 0

        try:
            with open(abs_path, "wb") as out:
                while True:
                    chunk = fileobj.read(CHUNK_SIZE)
                    if not chunk:
                        break
                    out.write(chunk)
                    sha.update(chunk)
                    size += len(chunk)
        except OSError as e:
            self.delete(stored_name=rel_path)
            raise StorageError(f"Failed to store attachment: {e}")

        return StoredAttachment(
            url=f"{self._public_base_url}/{rel_path}",
            stored_name=rel_path,
            original_name=original_name,
            content_type=content_type,
            size_bytes=size,
            sha256=sha.hexdigest(),
        )

    def open(self, *, stored_name: str) -> Path:
        abs_path = self._abs_path_from_stored(stored_name)
        if not abs_path.is_file():
            raise FileNotFoundError(stored_name)
        return abs_path

    def delete(self, *, stored_name: str) -> None:
        try:
            abs_path = self._abs_path_from_stored(stored_name)
            if abs_path.is_file():
                abs_path.unlink()
        except (OSError, ValueError):
            logger.warning("Could not delete stored attachment %s", stored_name, exc_info=True)
