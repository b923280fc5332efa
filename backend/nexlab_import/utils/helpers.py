"""Helper utility functions"""
import uuid
import os
import re
from typing import Optional


MIME_EXTENSIONS = {
    "image/png": "png",
    "image/jpeg": "jpg",
    "image/gif": "gif",
    "image/bmp": "bmp",
    "image/webp": "webp",
    "image/tiff": "tiff",
    "image/x-emf": "emf",
    "image/x-wmf": "wmf",
    "image/svg+xml": "svg",
}


def generate_material_id() -> str:
    """Generate unique material ID"""
    return f"mat_{uuid.uuid4().hex[:16]}"


def generate_image_filename(slide_number: int, index: int, mime_type: str) -> str:
    """
    Generate a collision-proof object name for an extracted image

    Args:
        slide_number: Slide or page the image came from
        index: Zero-based position of the image in the upload list
        mime_type: MIME type of the bytes being uploaded

    Returns:
        Filename like ``slide_3_image_2_<hex>.png``
    """
    return f"slide_{slide_number}_image_{index + 1}_{uuid.uuid4().hex}.{extension_for_mime(mime_type)}"


def build_material_key(material_id: str, filename: str) -> str:
    """Object key for an image belonging to a material"""
    return f"materials/{material_id}/{filename}"


def extension_for_mime(mime_type: Optional[str]) -> str:
    return MIME_EXTENSIONS.get((mime_type or "").lower(), "jpg")


def file_extension(filename: Optional[str]) -> str:
    """Lower-case extension including the dot, or '' when there is none"""
    return os.path.splitext(filename or "")[1].lower()


def count_words(text: str) -> int:
    """Whitespace-split word count"""
    return len(text.split())


def truncate(text: str, max_length: int) -> str:
    """Cut text to max_length characters, marking the cut with an ellipsis"""
    if len(text) <= max_length:
        return text
    return text[:max_length].rstrip() + "..."


def clean_text(text: str) -> str:
    """Collapse runs of whitespace inside a line"""
    return re.sub(r'\s+', ' ', text).strip()


def format_bytes(size: int) -> str:
    return f"{size / 1024:.1f}KB"
