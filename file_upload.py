import logging
import os
import secrets
from dataclasses import dataclass

from fastapi import UploadFile

from config import settings

logger = logging.getLogger(__name__)

UPLOAD_SUBDIR = "uploads"
CHUNK_SIZE = 1024 * 1024

ALLOWED_MIME_TYPES = {
    "application/pdf",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "application/vnd.ms-powerpoint",
    "application/vnd.openxmlformats-officedocument.presentationml.presentation",
    "application/vnd.ms-excel",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "text/plain",
    "text/csv",
    "application/zip",
    "application/vnd.rar",
    "application/x-7z-compressed",
    "image/jpeg",
    "image/png",
    "image/gif",
}


class UploadError(Exception):
    pass

class UploadTypeNotAllowed(UploadError):
    pass

class UploadTooLarge(UploadError):
    pass


@dataclass
class StoredFile:
    filename: str
    file_path: str  # relative to the mount, e.g. uploads/file-<hex>.pdf
    original_name: str
    file_type: str
    file_size: int


def base_upload_path() -> str:
    mount = settings.DISK_MOUNT_PATH
    if not mount:
        logger.warning("DISK_MOUNT_PATH is not set, falling back to ./persistent_uploads")
        mount = os.path.join(os.getcwd(), "persistent_uploads")
    return mount

def upload_dir() -> str:
    path = os.path.join(base_upload_path(), UPLOAD_SUBDIR)
    os.makedirs(path, exist_ok=True)
    return path

def resolve_path(relative_path: str) -> str:
    """Map a stored relative path to disk, refusing anything outside the mount."""
    base = os.path.realpath(base_upload_path())
    full = os.path.realpath(os.path.join(base, relative_path))
    if os.path.commonpath([base, full]) != base:
        raise ValueError(f"Path escapes upload mount: {relative_path}")
    return full

def generate_filename(original_name: str) -> str:
    extension = os.path.splitext(original_name or "")[1]
    return f"file-{secrets.token_hex(16)}{extension}"


def save_upload(upload: UploadFile) -> StoredFile:
    """
    Stream an uploaded file to the upload directory under a generated name.

    Raises UploadTypeNotAllowed before anything is written, and
    UploadTooLarge after removing the partial file.
    """
    content_type = upload.content_type or ""
    if content_type not in ALLOWED_MIME_TYPES:
        logger.warning(f"Rejected file upload: {upload.filename} (Type: {content_type})")
        raise UploadTypeNotAllowed("File type not allowed. Check allowed formats.")

    filename = generate_filename(upload.filename)
    full_path = os.path.join(upload_dir(), filename)
    size = 0
    try:
        with open(full_path, "wb") as buffer:
            while True:
                chunk = upload.file.read(CHUNK_SIZE)
                if not chunk:
                    break
                size += len(chunk)
                if size > settings.MAX_UPLOAD_SIZE:
                    raise UploadTooLarge(
                        f"File exceeds the maximum size of {settings.MAX_UPLOAD_SIZE} bytes"
                    )
                buffer.write(chunk)
    except BaseException:
        _remove_quietly(full_path)
        raise

    return StoredFile(
        filename=filename,
        file_path=f"{UPLOAD_SUBDIR}/{filename}",
        original_name=upload.filename or filename,
        file_type=content_type,
        file_size=size,
    )


def delete_file(relative_path: str) -> None:
    """Delete a stored file. A missing file only logs; other OS errors propagate."""
    if not relative_path:
        logger.warning("Attempted to delete file with empty path.")
        return
    full_path = resolve_path(relative_path)
    try:
        os.remove(full_path)
        logger.info(f"Deleted file: {full_path}")
    except FileNotFoundError:
        logger.warning(f"File not found for deletion: {full_path}")


def _remove_quietly(full_path: str) -> None:
    try:
        os.remove(full_path)
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.error(f"Could not remove partial upload {full_path}: {e}")
