"""End-to-end import of a course material: validate, extract, upload"""
import asyncio
import logging
from typing import Optional

from ..exceptions import FileValidationError
from ..models.response import ImportedMaterial, OriginalFileRecord
from ..models.upload import UploadOptions
from ..utils.helpers import generate_material_id
from .image_upload import ImageUploadOrchestrator, ProgressCallback
from .original_file_service import OriginalFileService
from .text_extraction import extract_text_from_file, validate_file_for_extraction

logger = logging.getLogger(__name__)


class MaterialImportService:
    """Turns one uploaded document into text, metadata and hosted images"""

    def __init__(
        self,
        uploader: ImageUploadOrchestrator,
        original_files: Optional[OriginalFileService] = None
    ):
        self.uploader = uploader
        self.original_files = original_files

    async def import_material(
        self,
        data: bytes,
        filename: str,
        content_type: Optional[str],
        material_id: Optional[str] = None,
        course_id: Optional[str] = None,
        keep_original: bool = False,
        options: Optional[UploadOptions] = None,
        on_progress: Optional[ProgressCallback] = None
    ) -> ImportedMaterial:
        """
        Import a document

        Steps:
        1. Validate size and format
        2. Extract text and image references in a worker thread
        3. Upload images under the material namespace
        4. Optionally store the original document under the course

        Raises:
            FileValidationError: The file failed validation
            ExtractionError: Text extraction failed
        """
        validation = validate_file_for_extraction(filename, content_type, len(data))
        if not validation.is_valid:
            raise FileValidationError(validation.error or "Invalid file")

        material_id = material_id or generate_material_id()
        logger.info(f"Importing {filename} as material {material_id} ({validation.file_type})")

        document = await asyncio.to_thread(extract_text_from_file, data, content_type, filename)
        image_refs = document.metadata.images
        logger.info(
            f"Extracted {document.metadata.word_count} words and {len(image_refs)} images from {filename}"
        )

        images = []
        if image_refs:
            images = await self.uploader.upload_batch(image_refs, material_id, options, on_progress)

        original_file: Optional[OriginalFileRecord] = None
        if keep_original and self.original_files is not None:
            if not course_id:
                logger.warning(f"keep_original requested without course_id, skipping original upload for {filename}")
            else:
                try:
                    original_file = await self.original_files.upload_original_file(
                        data, filename, content_type, course_id, material_id
                    )
                except Exception as e:
                    logger.error(f"Original file upload failed for {filename}, continuing without it: {e}")

        return ImportedMaterial(
            material_id=material_id,
            filename=filename,
            text=document.text,
            metadata=document.metadata,
            images=images,
            original_file=original_file
        )
