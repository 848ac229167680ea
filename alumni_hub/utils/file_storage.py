# alumni_hub/utils/file_storage.py
"""Disk storage for message attachments and group avatars."""
from pathlib import Path
from typing import List, Optional, Sequence
from uuid import uuid4
import logging
import os

from fastapi import UploadFile
from pydantic import BaseModel

from ..core.config import settings
from ..core.exceptions import InvalidArgumentError

logger = logging.getLogger(__name__)

MESSAGE_DIR = "messages"
GROUP_AVATAR_DIR = "groups"
GROUP_MESSAGE_DIR = "group-messages"

ATTACHMENT_MIME_TYPES = {
    # Images
    "image/jpeg", "image/png", "image/gif", "image/webp", "image/svg+xml",
    # Documents
    "application/pdf",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "application/vnd.ms-excel",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "application/vnd.ms-powerpoint",
    "application/vnd.openxmlformats-officedocument.presentationml.presentation",
    "text/plain",
    # Audio
    "audio/mpeg", "audio/wav", "audio/ogg", "audio/aac",
    # Video
    "video/mp4", "video/mpeg", "video/webm", "video/avi", "video/quicktime",
}

ATTACHMENT_EXTENSIONS = {
    ".jpg", ".jpeg", ".png", ".gif", ".webp", ".svg",
    ".pdf", ".doc", ".docx", ".xls", ".xlsx", ".ppt", ".pptx", ".txt",
    ".mp3", ".wav", ".ogg", ".aac",
    ".mp4", ".mpeg", ".webm", ".avi", ".mov",
}

IMAGE_MIME_TYPES = {"image/jpeg", "image/png", "image/gif", "image/webp"}


def get_file_type(mime_type: str) -> str:
    """Map a MIME type onto the attachment categories shown by clients."""
    mime_type = mime_type or ""
    if mime_type.startswith("image/"):
        return "image"
    if mime_type.startswith("video/"):
        return "video"
    if mime_type.startswith("audio/"):
        return "audio"
    return "document"


class StoredFile(BaseModel):
    file_name: str
    file_path: str
    file_type: str
    file_size: int
    mime_type: str


class FileStorage:
    """Writes uploads under base_dir and hands back public /uploads/... paths."""

    def __init__(self, base_dir: Optional[str] = None):
        self.base_dir = Path(base_dir or settings.upload_dir)

    def _public_path(self, subdir: str, stored_name: str) -> str:
        return f"/uploads/{subdir}/{stored_name}"

    def _disk_path(self, public_path: str) -> Path:
        relative = public_path[len("/uploads/"):] if public_path.startswith("/uploads/") else public_path
        return self.base_dir / relative

    async def save_attachments(self, files: Sequence[UploadFile], subdir: str) -> List[StoredFile]:
        """Validate every file first, then write them all.

        Nothing is written when any file fails validation.
        """
        files = [f for f in files or [] if f is not None and f.filename]
        if len(files) > settings.max_attachments:
            raise InvalidArgumentError(
                f"Too many files. Maximum is {settings.max_attachments} files per upload"
            )

        pending = []
        for upload in files:
            extension = os.path.splitext(upload.filename)[1].lower()
            mime_type = upload.content_type or ""
            if mime_type not in ATTACHMENT_MIME_TYPES or extension not in ATTACHMENT_EXTENSIONS:
                raise InvalidArgumentError("File type not allowed")
            content = await upload.read()
            if len(content) > settings.max_attachment_size:
                raise InvalidArgumentError(
                    f"File too large. Maximum size is {settings.max_attachment_size // (1024 * 1024)}MB"
                )
            pending.append((upload.filename, extension, mime_type, content))

        stored = []
        try:
            for file_name, extension, mime_type, content in pending:
                public_path = self._write(subdir, extension, content)
                stored.append(StoredFile(
                    file_name=file_name,
                    file_path=public_path,
                    file_type=get_file_type(mime_type),
                    file_size=len(content),
                    mime_type=mime_type,
                ))
        except OSError:
            self.remove([s.file_path for s in stored])
            raise
        return stored

    async def save_avatar(self, upload: Optional[UploadFile], subdir: str = GROUP_AVATAR_DIR) -> Optional[str]:
        if upload is None or not upload.filename:
            return None
        if upload.content_type not in IMAGE_MIME_TYPES:
            raise InvalidArgumentError("Only image files are allowed (jpeg, png, gif, webp)")
        content = await upload.read()
        if len(content) > settings.max_avatar_size:
            raise InvalidArgumentError(
                f"File too large. Maximum size is {settings.max_avatar_size // (1024 * 1024)}MB"
            )
        return self._write(subdir, os.path.splitext(upload.filename)[1].lower(), content)

    def _write(self, subdir: str, extension: str, content: bytes) -> str:
        directory = self.base_dir / subdir
        directory.mkdir(parents=True, exist_ok=True)
        stored_name = f"{uuid4().hex}{extension}"
        (directory / stored_name).write_bytes(content)
        return self._public_path(subdir, stored_name)

    def remove(self, public_paths: Sequence[str]):
        """Delete stored files; missing files are ignored."""
        for public_path in public_paths:
            if not public_path:
                continue
            try:
                self._disk_path(public_path).unlink(missing_ok=True)
            except OSError as e:
                logger.warning(f"Could not delete {public_path}: {e}")


def get_file_storage() -> FileStorage:
    return FileStorage()
