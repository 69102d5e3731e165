"""
================================================================================
LINKWORK - BLOB STORE
================================================================================

@file        blobs.py
@description Content-addressed binary storage on top of Django's file storage

The bytes live in the configured default storage (Cloudinary in production,
local MEDIA_ROOT in development, in-memory under tests). Metadata lives in
StoredFile. A StoredFile row exists only for bytes that were written in full.

OPERATIONS
================================================================================
store(content, content_type)  -> StoredFile      (StorageError on failure)
open(blob_id)                 -> BlobReader      (NotFound / InvalidArgument)
delete(blob_id)               -> bool            (False when already absent)
discard(blob_id)              -> None            (logs and swallows failures)
================================================================================
"""

import logging
import uuid

from django.conf import settings
from django.core.files.base import ContentFile, File
from django.core.files.storage import default_storage
from django.db import DatabaseError

from .errors import NotFound, StorageError
from .models import StoredFile
from .utils import parse_id


logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "application/octet-stream"


class BlobReader:
    """
    Open handle on a stored blob.

    Iterating yields the content in chunks. A read failure part way through
    is raised as StorageError so the response is aborted instead of being
    completed with truncated bytes.
    """

    def __init__(self, record, handle, chunk_size):
        self.record = record
        self.handle = handle
        self.chunk_size = chunk_size

    @property
    def content_type(self):
        return self.record.content_type or DEFAULT_CONTENT_TYPE

    @property
    def size(self):
        return self.record.size

    def __iter__(self):
        try:
            while True:
                chunk = self.handle.read(self.chunk_size)
                if not chunk:
                    break
                yield chunk
        except OSError as e:
            logger.error(f"Read failed for blob {self.record.id}: {e}")
            raise StorageError("Failed to read file") from e
        finally:
            self.close()

    def read(self):
        return b"".join(self)

    def close(self):
        try:
            self.handle.close()
        except OSError as e:
            logger.warning(f"Could not close blob {self.record.id}: {e}")


class BlobStore:
    def __init__(self, storage=None, prefix="uploads"):
        self._storage = storage
        self.prefix = prefix

    @property
    def storage(self):
        return self._storage or default_storage

    @property
    def chunk_size(self):
        return getattr(settings, "BLOB_CHUNK_SIZE", 64 * 1024)

    def store(self, content, content_type=None, filename=""):
        """
        Persist bytes (or an uploaded file) and return its StoredFile.

        Nothing is registered unless both the write and the metadata insert
        succeed.
        """
        if isinstance(content, (bytes, bytearray)):
            content = ContentFile(bytes(content))
        elif not isinstance(content, File):
            content = File(content)

        content_type = content_type or getattr(content, "content_type", None) or DEFAULT_CONTENT_TYPE
        filename = filename or getattr(content, "name", "") or ""
        blob_id = uuid.uuid4()
        target = f"{self.prefix}/{blob_id.hex}"

        # Storage backends raise their own exception types.
        try:
            saved_name = self.storage.save(target, content)
        except Exception as e:
            logger.error(f"Failed to write blob {blob_id}: {e}")
            raise StorageError("Failed to store file") from e

        try:
            size = self.storage.size(saved_name)
        except Exception:
            size = getattr(content, "size", 0) or 0

        try:
            record = StoredFile.objects.create(
                id=blob_id,
                name=saved_name,
                content_type=content_type,
                size=size,
                original_name=filename[:255],
            )
        except DatabaseError as e:
            logger.error(f"Failed to register blob {blob_id}: {e}")
            self._remove(saved_name)
            raise StorageError("Failed to store file") from e

        logger.info(f"Stored blob {blob_id} ({content_type}, {size} bytes)")
        return record

    def open(self, blob_id):
        blob_id = parse_id(blob_id, "file id")
        record = StoredFile.objects.filter(pk=blob_id).first()
        if record is None:
            raise NotFound("File not found")
        try:
            handle = self.storage.open(record.name, "rb")
        except FileNotFoundError:
            raise NotFound("File not found")
        except Exception as e:
            logger.error(f"Failed to open blob {blob_id}: {e}")
            raise StorageError("Failed to read file") from e
        return BlobReader(record, handle, self.chunk_size)

    def delete(self, blob_id):
        """Remove a blob. Returns False when it was already absent."""
        blob_id = parse_id(blob_id, "file id")
        record = StoredFile.objects.filter(pk=blob_id).first()
        if record is None:
            return False
        try:
            self.storage.delete(record.name)
        except Exception as e:
            logger.error(f"Failed to delete blob {blob_id}: {e}")
            raise StorageError("Failed to delete file") from e
        StoredFile.objects.filter(pk=blob_id).delete()
        logger.info(f"Deleted blob {blob_id}")
        return True

    def discard(self, blob_id):
        """Best-effort delete used by replace and cascade flows."""
        if not blob_id:
            return
        try:
            self.delete(blob_id)
        except StorageError as e:
            logger.warning(f"Could not remove blob {blob_id}: {e}")

    def _remove(self, name):
        try:
            self.storage.delete(name)
        except Exception as e:
            logger.warning(f"Could not remove orphaned file {name}: {e}")


blob_store = BlobStore()
