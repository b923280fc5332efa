"""Object storage interface and the local filesystem fallback"""
import asyncio
import logging
import os
from typing import Optional, Protocol, runtime_checkable

from ..exceptions import StorageError

logger = logging.getLogger(__name__)


@runtime_checkable
class ObjectStorageClient(Protocol):
    """Blob store used for extracted images and original documents

    Implementations must be safe to share across concurrent uploads; each
    call writes its own uniquely named object.
    """

    async def put(self, key: str, data: bytes, content_type: Optional[str] = None) -> str: ...

    async def delete(self, key: str) -> bool: ...


class LocalStorageClient:
    """Store objects under a local directory and return URLs below a base path"""

    def __init__(self, root_dir: str, base_url: str = "/files"):
        self.root_dir = os.path.abspath(root_dir)
        self.base_url = base_url.rstrip("/")
        logger.info(f"Local storage initialized at {self.root_dir}")

    def _path_for(self, key: str) -> str:
        path = os.path.abspath(os.path.join(self.root_dir, key))
        if os.path.commonpath([path, self.root_dir]) != self.root_dir:
            raise StorageError(f"Key escapes storage root: {key}")
        return path

    async def put(self, key: str, data: bytes, content_type: Optional[str] = None) -> str:
        path = self._path_for(key)
        try:
            await asyncio.to_thread(self._write, path, data)
        except OSError as e:
            logger.error(f"Error writing {key} to local storage: {e}")
            raise StorageError(f"Failed to store {key}: {e}") from e
        logger.debug(f"Stored {key} locally ({len(data)} bytes)")
        return f"{self.base_url}/{key}"

    async def delete(self, key: str) -> bool:
        path = self._path_for(key)
        if not os.path.exists(path):
            return False
        try:
            await asyncio.to_thread(os.remove, path)
        except OSError as e:
            logger.error(f"Error deleting {key} from local storage: {e}")
            return False
        return True

    @staticmethod
    def _write(path: str, data: bytes) -> None:
        os.makedirs(os.path.dirname(path), exist_ok=True)
        with open(path, "wb") as f:
            f.write(data)
