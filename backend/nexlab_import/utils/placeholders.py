"""Inline SVG placeholders for images whose upload failed"""
import base64
import re
from xml.sax.saxutils import escape

from .helpers import truncate

PLACEHOLDER_PREFIX = "data:image/svg+xml;base64,"

# Anything outside printable Latin-1 is replaced before encoding
_UNSAFE_CHARS = re.compile(r'[^\x20-\x7e\xa0-\xff]')

_FALLBACK_SVG = (
    '<svg width="400" height="300" xmlns="http://www.w3.org/2000/svg">'
    '<rect width="400" height="300" fill="#f5f5f5" stroke="#ddd" stroke-width="2"/>'
    '<circle cx="200" cy="120" r="20" fill="none" stroke="#ccc" stroke-width="2"/>'
    '<path d="M190 120 L200 110 L210 120 L200 130 Z" fill="#ccc"/>'
    '<text x="200" y="170" text-anchor="middle" font-family="Arial, sans-serif" '
    'font-size="14" fill="#666">Image Upload Failed</text>'
    '<text x="200" y="190" text-anchor="middle" font-family="Arial, sans-serif" '
    'font-size="12" fill="#999">{label}</text>'
    '</svg>'
)


def sanitize_label(text: str, max_length: int = 60) -> str:
    """Restrict a label to printable Latin-1 and escape it for XML"""
    cleaned = _UNSAFE_CHARS.sub("?", text or "")
    return escape(truncate(cleaned, max_length))


def create_fallback_placeholder(description: str) -> str:
    """
    Build the data URI shown in place of an image that could not be uploaded

    The output depends only on the description.
    """
    svg = _FALLBACK_SVG.format(label=sanitize_label(description))
    encoded = base64.b64encode(svg.encode("latin-1")).decode("ascii")
    return f"{PLACEHOLDER_PREFIX}{encoded}"


def is_placeholder_url(url: str) -> bool:
    return url.startswith("data:image/svg+xml")
