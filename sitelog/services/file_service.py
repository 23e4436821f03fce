"""
SiteLog Backend: Attachment Storage Service
==============================================

What:  Validates, stores and cleans up report photo uploads.
Why:   Centralizes all file system operations for the attachment sink.
How:   Checks file count and per-file size before writing anything, then
       writes each file under a sanitized, timestamp-prefixed name.
Who:   Called by ReportService while submitting a report.
When:  After report fields validate, before the database transaction.

Naming:
    <epoch-millis>-<sanitized original name>, e.g. 1709280000000-cell_4_north.jpg
    Every character outside [A-Za-z0-9.-] is replaced with "_", so user input
    can never introduce a path separator. If the name is already taken the
    timestamp is bumped until a free name is found (files are opened with
    O_EXCL, so two concurrent writers never share a name).

Cleanup:
    If the database transaction that should reference the files fails, the
    caller removes every file written for that request.
"""

import logging
import os
import re
import time
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence

import aiofiles
from fastapi import UploadFile

from sitelog.config import Settings, settings as default_settings
from sitelog.exceptions import FileStorageError, ValidationError

logger = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r"[^a-zA-Z0-9.\-]")

DEFAULT_MIME_TYPE = "application/octet-stream"


@dataclass
class StoredFile:
    """A file that has been written to the upload directory."""

    original_name: str
    filename: str
    mime_type: str
    path: str
    size: int


class FileService:
    """
    Manages the upload directory that backs report attachments.

    Lifecycle of an upload:
        1. save_uploads() checks the file count
        2. Each upload is read with a bounded read and size-checked
        3. Only when every file passes are they written, in submission order
        4. If a write fails, files already written by this call are removed
    """

    def __init__(self, storage_root: Optional[str] = None, config: Optional[Settings] = None):
        """
        Args:
            storage_root: Override the upload directory (used in tests).
                          If None, uses config.upload_dir.
            config:       Source of the directory, URL prefix and limits.
                          If None, uses the module-level settings.
        """
        self.config = config or default_settings
        self.storage_root = Path(storage_root or self.config.upload_dir).resolve()
        self.url_prefix = self.config.upload_url_prefix
        self.storage_root.mkdir(parents=True, exist_ok=True)
        logger.info("FileService initialized with storage_root=%s", self.storage_root)

    @staticmethod
    def sanitize_filename(filename: str) -> str:
        """Replace every character outside [A-Za-z0-9.-] with an underscore."""
        safe = _UNSAFE_CHARS.sub("_", filename or "")
        return safe or "upload"

    def public_url(self, filename: str) -> str:
        return f"{self.url_prefix}/{filename}"

    def validate_count(self, count: int) -> None:
        if count > self.config.max_upload_files:
            raise ValidationError(
                message=f"At most {self.config.max_upload_files} photos can be attached to a report.",
                field="photos",
                context={"max_files": self.config.max_upload_files, "received": count},
            )

    def validate_size(self, filename: str, size: int) -> None:
        """
        Reject files above the per-file limit.

        Raises:
            ValidationError with a human-readable size limit message
        """
        if size > self.config.max_upload_size:
            max_mb = self.config.max_upload_size / (1024 * 1024)
            raise ValidationError(
                message=f"File '{filename}' exceeds the maximum size of {max_mb:.0f}MB.",
                field="photos",
                context={"max_size_mb": max_mb, "filename": filename},
            )

    async def read_upload(self, upload: UploadFile) -> bytes:
        """
        Read an upload, never pulling more than the limit plus one byte.

        The extra byte is enough to tell an at-limit file from an oversized one.
        """
        content = await upload.read(self.config.max_upload_size + 1)
        self.validate_size(upload.filename or "upload", len(content))
        return content

    async def store_file(
        self,
        original_name: str,
        content: bytes,
        mime_type: Optional[str] = None,
    ) -> StoredFile:
        """
        Write validated content to the upload directory.

        Raises:
            FileStorageError if the write fails.
        """
        safe_name = self.sanitize_filename(original_name)
        stamp = int(time.time() * 1000)

        while True:
            filename = f"{stamp}-{safe_name}"
            absolute_path = self.storage_root / filename
            try:
                async with aiofiles.open(absolute_path, "xb") as f:
                    await f.write(content)
                break
            except FileExistsError:
                stamp += 1
            except OSError as e:
                logger.error("Failed to store file at %s: %s", absolute_path, str(e))
                raise FileStorageError(
                    message="Failed to save uploaded photo. Please try again.",
                    context={"path": str(absolute_path), "os_error": str(e)},
                )

        logger.info("File stored: %s (%d bytes)", filename, len(content))
        return StoredFile(
            original_name=original_name,
            filename=filename,
            mime_type=mime_type or DEFAULT_MIME_TYPE,
            path=str(absolute_path),
            size=len(content),
        )

    async def save_uploads(self, uploads: Sequence[UploadFile]) -> List[StoredFile]:
        """
        Validate then store a request's uploads, preserving submission order.

        Nothing is written unless every upload passes validation.
        """
        self.validate_count(len(uploads))

        contents = [await self.read_upload(upload) for upload in uploads]

        stored: List[StoredFile] = []
        try:
            for upload, content in zip(uploads, contents):
                stored.append(
                    await self.store_file(
                        original_name=upload.filename or "upload",
                        content=content,
                        mime_type=upload.content_type,
                    )
                )
        except FileStorageError:
            await self.cleanup_files(stored)
            raise
        return stored

    async def cleanup_file(self, file_path: str) -> None:
        """
        Remove a file from storage (used after a failed report transaction).

        Best-effort: a missing file is ignored and other failures are logged,
        since the caller is already propagating the original error.
        """
        try:
            path = Path(file_path)
            if path.exists():
                os.remove(path)
                logger.info("Cleaned up file: %s", path.name)
            else:
                logger.debug("Cleanup: file already gone: %s", path.name)
        except OSError as e:
            logger.warning("Failed to clean up file %s: %s", file_path, str(e))

    async def cleanup_files(self, files: Sequence[StoredFile]) -> None:
        for stored_file in files:
            await self.cleanup_file(stored_file.path)


file_service = FileService()
