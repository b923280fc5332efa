"""Course material validation, extraction and import endpoints"""
from fastapi import APIRouter, UploadFile, File, HTTPException, Depends, Form
from fastapi.responses import JSONResponse
from typing import Optional
import asyncio
import logging
from ...exceptions import ExtractionError, FileValidationError
from ...models.response import (
    ExtractionErrorResponse,
    ExtractionResponse,
    ImportedMaterial,
    ValidationResult,
)
from ...services import (
    MaterialImportService,
    extract_text_from_file,
    validate_file_for_extraction,
)
from ...api.dependencies import get_material_import_service

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/materials", tags=["materials"])


def _extraction_error_response(error: ExtractionError) -> JSONResponse:
    return JSONResponse(status_code=422, content=error.to_dict())


@router.post("/validate", response_model=ValidationResult)
async def validate_material(file: UploadFile = File(...)):
    """Check size and format without parsing the document"""
    data = await file.read()
    result = validate_file_for_extraction(file.filename, file.content_type, len(data))
    logger.info(f"Validated {file.filename}: valid={result.is_valid}")
    return result


@router.post(
    "/extract",
    response_model=ExtractionResponse,
    responses={422: {"model": ExtractionErrorResponse}}
)
async def extract_material(file: UploadFile = File(...)):
    """
    Extract normalized text and image metadata from a PDF, DOCX, PPTX or TXT file

    Images are not uploaded; image bytes are never included in the response.
    """
    try:
        data = await file.read()
        document = await asyncio.to_thread(extract_text_from_file, data, file.content_type, file.filename)
        return ExtractionResponse(
            filename=file.filename or "",
            text=document.text,
            metadata=document.metadata
        )
    except ExtractionError as e:
        logger.warning(f"Extraction failed for {file.filename}: {e.code.value} {e.message}")
        return _extraction_error_response(e)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error extracting material: {str(e)}")
        raise HTTPException(status_code=500, detail=f"Error extracting material: {str(e)}")


@router.post(
    "/{material_id}/import",
    response_model=ImportedMaterial,
    responses={422: {"model": ExtractionErrorResponse}}
)
async def import_material(
    material_id: str,
    file: UploadFile = File(...),
    course_id: Optional[str] = Form(None),
    keep_original: bool = Form(False),
    import_service: MaterialImportService = Depends(get_material_import_service)
):
    """
    Extract a document and upload its images under the material namespace

    Images that cannot be uploaded come back as placeholder data URIs, so the
    response always has one entry per extracted image.
    """
    try:
        data = await file.read()
        logger.info(f"Importing {file.filename} into material {material_id} (course: {course_id})")
        return await import_service.import_material(
            data=data,
            filename=file.filename or "",
            content_type=file.content_type,
            material_id=material_id,
            course_id=course_id,
            keep_original=keep_original
        )
    except FileValidationError as e:
        raise HTTPException(status_code=400, detail=e.message)
    except ExtractionError as e:
        logger.warning(f"Import failed for {file.filename}: {e.code.value} {e.message}")
        return _extraction_error_response(e)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error importing material: {str(e)}")
        raise HTTPException(status_code=500, detail=f"Error importing material: {str(e)}")
