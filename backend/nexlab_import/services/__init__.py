"""Service layer for extraction and upload"""
from .text_extraction import (
    extract_text_from_file,
    validate_file_for_extraction,
    get_file_type_description,
    estimate_processing_time,
)
from .storage import ObjectStorageClient, LocalStorageClient
from .cloudinary_service import CloudinaryStorageClient
from .image_optimizer import ImageOptimizer
from .image_upload import ImageUploadOrchestrator
from .original_file_service import OriginalFileService
from .material_import import MaterialImportService

__all__ = [
    "extract_text_from_file",
    "validate_file_for_extraction",
    "get_file_type_description",
    "estimate_processing_time",
    "ObjectStorageClient",
    "LocalStorageClient",
    "CloudinaryStorageClient",
    "ImageOptimizer",
    "ImageUploadOrchestrator",
    "OriginalFileService",
    "MaterialImportService",
]
