"""Image recompression and vector rasterization using Pillow"""
from PIL import Image
import asyncio
import io
import logging
from typing import Tuple

from ..utils.helpers import format_bytes

logger = logging.getLogger(__name__)


class ImageOptimizer:
    """Shrink oversized images before upload and rasterize legacy vector formats"""

    def __init__(self, jpeg_quality: int = 70, png_compress_level: int = 9):
        self.jpeg_quality = jpeg_quality
        self.png_compress_level = png_compress_level

    async def optimize(
        self,
        data: bytes,
        mime_type: str,
        compression_threshold: int,
        max_dimension: int
    ) -> Tuple[bytes, str]:
        """
        Recompress an image if it is larger than the threshold

        PNG and GIF sources are written back as PNG, everything else as JPEG.
        If Pillow cannot decode the bytes the original is returned unchanged.

        Args:
            data: Raw image bytes
            mime_type: MIME type of data
            compression_threshold: Size in bytes at or under which nothing is done
            max_dimension: Longest side after resizing, in pixels

        Returns:
            (bytes, mime_type) to upload
        """
        if len(data) <= compression_threshold:
            return data, mime_type

        if "png" in mime_type or "gif" in mime_type:
            output_format, output_mime = "PNG", "image/png"
        else:
            output_format, output_mime = "JPEG", "image/jpeg"

        logger.info(f"Optimizing large image ({format_bytes(len(data))})")
        try:
            optimized = await asyncio.to_thread(self.resize, data, max_dimension, output_format)
        except Exception as e:
            logger.warning(f"Image optimization failed, using original: {e}")
            return data, mime_type

        logger.info(f"Image optimized: {format_bytes(len(data))} -> {format_bytes(len(optimized))}")
        return optimized, output_mime

    async def rasterize(self, data: bytes, mime_type: str) -> Tuple[bytes, str]:
        """
        Convert EMF/WMF bytes to PNG

        Pillow can only render these formats on Windows. Elsewhere the original
        bytes are returned with their vector MIME type so they are never
        mislabelled as PNG.
        """
        try:
            converted = await asyncio.to_thread(self._to_png, data)
        except Exception as e:
            logger.warning(f"Cannot rasterize {mime_type} on this platform, uploading as-is: {e}")
            return data, mime_type
        return converted, "image/png"

    def resize(self, data: bytes, max_dimension: int, output_format: str) -> bytes:
        """Bound the image to max_dimension on its longest side and re-encode it"""
        with Image.open(io.BytesIO(data)) as image:
            image.thumbnail((max_dimension, max_dimension))
            if output_format == "JPEG" and image.mode != "RGB":
                image = image.convert("RGB")
            buffered = io.BytesIO()
            if output_format == "JPEG":
                image.save(buffered, format="JPEG", quality=self.jpeg_quality, optimize=True)
            else:
                image.save(buffered, format="PNG", compress_level=self.png_compress_level)
            return buffered.getvalue()

    @staticmethod
    def _to_png(data: bytes) -> bytes:
        with Image.open(io.BytesIO(data)) as image:
            image.load()
            buffered = io.BytesIO()
            image.save(buffered, format="PNG")
            return buffered.getvalue()
