"""Cloudinary object storage client"""
import cloudinary
import cloudinary.uploader
import asyncio
import io
import logging
import posixpath
from typing import Optional

from ..exceptions import StorageError
from ..utils.helpers import file_extension

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS = {".png", ".jpg", ".jpeg", ".gif", ".bmp", ".webp", ".tiff", ".svg"}


class CloudinaryStorageClient:
    """Upload and delete objects in Cloudinary under a common folder"""

    def __init__(
        self,
        cloud_name: Optional[str],
        api_key: Optional[str],
        api_secret: Optional[str],
        folder: str = "nexlab"
    ):
        """Initialize Cloudinary configuration"""
        self.folder = folder.strip("/")
        self._configured = False
        if cloud_name and api_key and api_secret:
            cloudinary.config(
                cloud_name=cloud_name,
                api_key=api_key,
                api_secret=api_secret,
                secure=True
            )
            self._configured = True
            logger.info("Cloudinary configured successfully")
        else:
            logger.warning("Cloudinary not configured - missing credentials.")

    @property
    def is_configured(self) -> bool:
        """Check if Cloudinary is configured"""
        return self._configured

    def _locate(self, key: str):
        """
        Map an object key to Cloudinary's (public_id, resource_type)

        Images are stored without their extension (Cloudinary tracks the
        format itself); everything else is a raw resource and keeps it.
        """
        ext = file_extension(key)
        public_id = posixpath.join(self.folder, key) if self.folder else key
        if ext in IMAGE_EXTENSIONS:
            return public_id[: -len(ext)], "image"
        return public_id, "raw"

    async def put(self, key: str, data: bytes, content_type: Optional[str] = None) -> str:
        """
        Upload bytes under the given key

        Args:
            key: Object key such as ``materials/<id>/<filename>``
            data: Bytes to upload
            content_type: MIME type, recorded as context metadata

        Returns:
            Secure URL of the uploaded object

        Raises:
            StorageError: If Cloudinary is not configured or the upload fails
        """
        if not self._configured:
            raise StorageError("Cloudinary not configured")

        public_id, resource_type = self._locate(key)
        try:
            logger.debug(f"Uploading {key} to Cloudinary ({len(data)} bytes)")
            result = await asyncio.to_thread(
                cloudinary.uploader.upload,
                io.BytesIO(data),
                resource_type=resource_type,
                public_id=public_id,
                overwrite=False,
                unique_filename=False,
                context={"content_type": content_type or "application/octet-stream"}
            )
        except Exception as e:
            logger.error(f"Error uploading {key} to Cloudinary: {e}")
            raise StorageError(f"Cloudinary upload failed for {key}: {e}") from e

        url = result.get("secure_url")
        if not url:
            raise StorageError(f"Cloudinary returned no URL for {key}")
        return url

    async def delete(self, key: str) -> bool:
        """
        Delete an object by key

        Returns:
            True if deletion was successful
        """
        if not self._configured:
            return False

        public_id, resource_type = self._locate(key)
        try:
            logger.info(f"Deleting {public_id} from Cloudinary")
            result = await asyncio.to_thread(
                cloudinary.uploader.destroy,
                public_id,
                resource_type=resource_type
            )
        except Exception as e:
            logger.error(f"Error deleting from Cloudinary: {e}")
            return False

        success = result.get("result") == "ok"
        if not success:
            logger.warning(f"Cloudinary deletion returned: {result}")
        return success
