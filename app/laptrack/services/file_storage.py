from __future__ import annotations

from dataclasses import dataclass
import logging
import os
from pathlib import Path
import uuid

from app.laptrack.core.config import settings

logger = logging.getLogger(__name__)

_ALLOWED_EXTENSIONS = {"jpg", "jpeg", "png", "webp", "gif", "heic"}
_CONTENT_TYPE_TO_EXT = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
    "image/gif": "gif",
    "image/heic": "heic",
}


class FileStorageError(Exception):
    pass


@dataclass(frozen=True)
class UploadPayload:
    field_name: str
    filename: str | None
    content_type: str | None
    data: bytes


@dataclass(frozen=True)
class StagedFile:
    field_name: str
    staging_path: str
    relative_url: str


class LocalFileStorage:
    """Photo storage on the local filesystem.

    Uploads are written to a staging directory first and only moved under
    the public uploads directory by ``promote``; callers promote after their
    database commit and ``discard`` on failure. A crash between the two
    steps leaves at most an orphaned staging file.
    """

    def __init__(
        self,
        base_path: str | None = None,
        staging_path: str | None = None,
        url_prefix: str | None = None,
        max_bytes: int | None = None,
    ) -> None:
        self.base_path = base_path or settings.UPLOADS_STORAGE_PATH
        self.staging_path = staging_path or settings.UPLOADS_STAGING_PATH
        self.url_prefix = (url_prefix or settings.UPLOADS_URL_PREFIX).rstrip("/")
        self.max_bytes = max_bytes or settings.UPLOAD_MAX_BYTES
        os.makedirs(self.base_path, exist_ok=True)
        os.makedirs(self.staging_path, exist_ok=True)

    def stage_upload(self, upload: UploadPayload, *, category: str) -> StagedFile:
        if not upload.data:
            raise FileStorageError(f"{upload.field_name} is empty")
        if len(upload.data) > self.max_bytes:
            raise FileStorageError(f"{upload.field_name} exceeds {self.max_bytes} bytes")
        extension = self._resolve_extension(upload)
        filename = f"{uuid.uuid4().hex}.{extension}"
        staging_file = os.path.join(self.staging_path, filename)
        self._write_atomic(staging_file, upload.data)
        return StagedFile(
            field_name=upload.field_name,
            staging_path=staging_file,
            relative_url=f"{self.url_prefix}/{category}/{filename}",
        )

    def promote(self, staged: StagedFile) -> str:
        final_path = self.resolve_path(staged.relative_url)
        os.makedirs(os.path.dirname(final_path), exist_ok=True)
        os.replace(staged.staging_path, final_path)
        return staged.relative_url

    def discard(self, staged: StagedFile) -> None:
        self._remove(staged.staging_path)

    def save_upload(self, upload: UploadPayload, *, category: str) -> str:
        return self.promote(self.stage_upload(upload, category=category))

    def delete_file(self, relative_url: str) -> None:
        self._remove(self.resolve_path(relative_url))

    def resolve_path(self, relative_url: str) -> str:
        if not relative_url.startswith(f"{self.url_prefix}/"):
            raise FileStorageError(f"not a storage url: {relative_url}")
        relative = relative_url[len(self.url_prefix) + 1 :]
        base = Path(self.base_path).resolve()
        resolved = (base / relative).resolve()
        if base not in resolved.parents:
            raise FileStorageError(f"path escapes storage root: {relative_url}")
        return str(resolved)

    def _resolve_extension(self, upload: UploadPayload) -> str:
        from_filename = Path(upload.filename or "").suffix.lower().lstrip(".")
        if from_filename in _ALLOWED_EXTENSIONS:
            return "jpg" if from_filename == "jpeg" else from_filename
        from_content_type = _CONTENT_TYPE_TO_EXT.get((upload.content_type or "").lower())
        if from_content_type:
            return from_content_type
        raise FileStorageError(f"{upload.field_name} must be an image")

    @staticmethod
    def _write_atomic(path: str, data: bytes) -> None:
        tmp_path = f"{path}.tmp"
        with open(tmp_path, "wb") as handle:
            handle.write(data)
        os.replace(tmp_path, path)

    @staticmethod
    def _remove(path: str) -> None:
        try:
            os.remove(path)
        except FileNotFoundError:
            return
        except OSError:
            logger.exception("Failed to remove upload", extra={"path": path})


def get_file_storage() -> LocalFileStorage:
    return LocalFileStorage()
