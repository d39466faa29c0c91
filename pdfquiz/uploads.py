import asyncio
import logging
import time
from pathlib import PurePath
from typing import Optional

from .config import Config
from .errors import InvalidUpload, PersistenceError, UploadError
from .models import SourceDocument
from .stores import ObjectStore, RowStore

log = logging.getLogger(__name__)


def validate_upload(mime_type: Optional[str], size: Optional[int], settings=Config) -> None:
    if mime_type not in settings.ALLOWED_FILE_TYPES:
        raise InvalidUpload("Please select a valid PDF file.")
    if not size:
        raise InvalidUpload("Unable to determine file size.")
    if size > settings.MAX_FILE_SIZE:
        raise InvalidUpload("File size exceeds 10MB limit. Please choose a smaller PDF.")


async def upload_document(object_store: ObjectStore, row_store: RowStore, user_id: str,
                          file_name: str, data: bytes, mime_type: Optional[str],
                          settings=Config) -> SourceDocument:
    """Store a PDF under the user's prefix and register it as an unprocessed document."""
    validate_upload(mime_type, len(data), settings)

    ext = PurePath(file_name).suffix.lstrip(".").lower() or "pdf"
    path = f"{user_id}/{int(time.time() * 1000)}.{ext}"
    try:
        path = await asyncio.to_thread(object_store.upload, path, data, mime_type)
    except Exception as e:
        log.error("Upload failed for %s: %s", path, e)
        raise UploadError(str(e)) from e

    row = {
        "user_id": user_id,
        "file_name": file_name,
        "file_path": path,
        "file_size": len(data),
        "processed": False,
    }
    try:
        saved = await asyncio.to_thread(row_store.insert, "documents", row)
    except Exception as e:
        log.error("Failed to save document row for %s: %s", path, e)
        await asyncio.to_thread(object_store.remove, [path])
        raise PersistenceError(str(e)) from e

    log.info("Uploaded %s as %s", file_name, path)
    return SourceDocument.model_validate(saved[0])
