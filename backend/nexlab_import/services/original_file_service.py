"""Storage of the uploaded source document alongside its extracted material"""
import logging
import os
import uuid
from typing import Optional

from ..exceptions import StorageError
from ..models.response import OriginalFileRecord
from .storage import ObjectStorageClient

logger = logging.getLogger(__name__)


def build_original_file_key(course_id: str, filename: str, material_id: Optional[str] = None) -> str:
    """``original-files/{course_id}/{stem}_{id}.{ext}``; the id is random when no material id is given"""
    stem, ext = os.path.splitext(os.path.basename(filename))
    unique_id = material_id or uuid.uuid4().hex
    return f"original-files/{course_id}/{stem}_{unique_id}{ext}"


class OriginalFileService:
    """Upload, delete and replace original documents in object storage"""

    def __init__(self, storage: ObjectStorageClient):
        self.storage = storage

    async def upload_original_file(
        self,
        data: bytes,
        filename: str,
        content_type: Optional[str],
        course_id: str,
        material_id: Optional[str] = None
    ) -> OriginalFileRecord:
        """
        Upload the source document

        Raises:
            StorageError: If the storage client rejects the upload
        """
        key = build_original_file_key(course_id, filename, material_id)
        logger.info(f"Uploading original file {filename} as {key} ({len(data)} bytes)")
        try:
            url = await self.storage.put(key, data, content_type)
        except StorageError:
            raise
        except Exception as e:
            logger.error(f"Original file upload failed: {e}")
            raise StorageError(f"Failed to upload original file: {e}") from e

        return OriginalFileRecord(
            name=filename,
            content_type=content_type or "application/octet-stream",
            size=len(data),
            url=url,
            storage_key=key
        )

    async def delete_original_file(self, storage_key: str) -> bool:
        """Delete a previously uploaded original; failures are logged and reported as False"""
        try:
            deleted = await self.storage.delete(storage_key)
        except Exception as e:
            logger.error(f"Original file deletion failed for {storage_key}: {e}")
            return False

        if deleted:
            logger.info(f"Original file deleted: {storage_key}")
        else:
            logger.warning(f"Original file not deleted, continuing: {storage_key}")
        return deleted

    async def replace_original_file(
        self,
        data: bytes,
        filename: str,
        content_type: Optional[str],
        course_id: str,
        material_id: str,
        old_storage_key: Optional[str] = None
    ) -> OriginalFileRecord:
        """Delete the old original (if any) and upload the new one"""
        if old_storage_key:
            await self.delete_original_file(old_storage_key)
        return await self.upload_original_file(data, filename, content_type, course_id, material_id)
