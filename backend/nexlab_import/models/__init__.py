"""Data models for the application"""
from .document import ExtractedDocument, ExtractionMetadata, ImageReference, ImagePosition
from .upload import UploadedImage, UploadOptions, UploadProgress, UploadStage, UploadStrategy
from .response import (
    ValidationResult,
    ExtractionErrorResponse,
    ExtractionResponse,
    OriginalFileRecord,
    ImportedMaterial,
)

__all__ = [
    "ExtractedDocument",
    "ExtractionMetadata",
    "ImageReference",
    "ImagePosition",
    "UploadedImage",
    "UploadOptions",
    "UploadProgress",
    "UploadStage",
    "UploadStrategy",
    "ValidationResult",
    "ExtractionErrorResponse",
    "ExtractionResponse",
    "OriginalFileRecord",
    "ImportedMaterial",
]
