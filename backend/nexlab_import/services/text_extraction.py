"""Format dispatch and pre-extraction validation for uploaded documents"""
import logging
from typing import Optional

from ..config import settings
from ..exceptions import ExtractionError, ExtractionErrorCode
from ..models.document import ExtractedDocument, ExtractionMetadata
from ..models.response import ValidationResult
from ..utils.helpers import count_words, file_extension
from .docx_extractor import extract_docx
from .pdf_extractor import PDFExtractor
from .pptx_extractor import PPTXExtractor

logger = logging.getLogger(__name__)

PDF_MIME = "application/pdf"
DOCX_MIME = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
PPTX_MIME = "application/vnd.openxmlformats-officedocument.presentationml.presentation"
TXT_MIME = "text/plain"

# format key -> (mime type, extension, human readable description)
SUPPORTED_FORMATS = {
    "pdf": (PDF_MIME, ".pdf", "PDF Document"),
    "docx": (DOCX_MIME, ".docx", "Word Document"),
    "pptx": (PPTX_MIME, ".pptx", "PowerPoint Presentation"),
    "txt": (TXT_MIME, ".txt", "Text File"),
}
ALLOWED_EXTENSIONS = [ext for _, ext, _ in SUPPORTED_FORMATS.values()]

SUPPORTED_FORMATS_LABEL = "PDF (.pdf), Word (.docx), PowerPoint (.pptx), Text (.txt)"

# Rough seconds of processing per MB, and the floor, per format
PROCESSING_RATES = {
    "pdf": (0.5, 2.0),
    "docx": (0.3, 1.0),
    "pptx": (0.4, 2.0),
    "txt": (0.1, 0.5),
}


def detect_format(content_type: Optional[str], filename: Optional[str]) -> Optional[str]:
    """
    Resolve the document format from the declared MIME type, then the extension

    Returns:
        One of "pdf", "docx", "pptx", "txt", or None if neither matches
    """
    mime = (content_type or "").split(";")[0].strip().lower()
    for key, (format_mime, _, _) in SUPPORTED_FORMATS.items():
        if mime == format_mime:
            return key

    ext = file_extension(filename)
    for key, (_, format_ext, _) in SUPPORTED_FORMATS.items():
        if ext == format_ext:
            return key
    return None


def extract_text_from_file(
    data: Optional[bytes],
    content_type: Optional[str],
    filename: Optional[str],
    include_images: bool = True
) -> ExtractedDocument:
    """
    Extract normalized text (and image references) from an uploaded document

    Args:
        data: Raw file bytes
        content_type: Declared MIME type
        filename: Original filename, used when the MIME type is not recognized
        include_images: Whether to collect embedded images (PDF and PPTX)

    Returns:
        ExtractedDocument with non-empty text

    Raises:
        ExtractionError: Always carries one of the ExtractionErrorCode values
    """
    if not data:
        raise ExtractionError(ExtractionErrorCode.NO_FILE, "No file provided")

    doc_format = detect_format(content_type, filename)
    if doc_format is None:
        raise ExtractionError(
            ExtractionErrorCode.UNSUPPORTED_FORMAT,
            f"Unsupported file format: {content_type or 'unknown'}. "
            f"Supported formats: {SUPPORTED_FORMATS_LABEL}"
        )

    logger.info(f"Extracting text from {filename} as {doc_format} ({len(data)} bytes)")

    try:
        if doc_format == "pdf":
            return PDFExtractor(include_images=include_images and settings.extract_pdf_images).extract(data)
        if doc_format == "docx":
            return extract_docx(data)
        if doc_format == "pptx":
            document = PPTXExtractor().extract(data)
            if not include_images:
                document.metadata.images = []
            return document
        return extract_txt(data)
    except ExtractionError:
        raise
    except Exception as e:
        logger.error(f"Unexpected error extracting {filename}: {e}")
        raise ExtractionError(
            ExtractionErrorCode.GENERIC,
            f"Failed to extract text from {filename or 'file'}",
            e
        )


def extract_txt(data: bytes) -> ExtractedDocument:
    """Read plain text as UTF-8"""
    try:
        text = data.decode("utf-8-sig").strip()
    except UnicodeDecodeError as e:
        raise ExtractionError(ExtractionErrorCode.TXT, "Failed to extract text from text file", e)

    if not text:
        raise ExtractionError(ExtractionErrorCode.TXT, "Failed to extract text from text file: file is empty")

    return ExtractedDocument(
        text=text,
        metadata=ExtractionMetadata(
            word_count=count_words(text),
            file_size=len(data),
            extraction_method="Native"
        )
    )


def validate_file_for_extraction(
    filename: Optional[str],
    content_type: Optional[str],
    size: int
) -> ValidationResult:
    """
    Cheap synchronous check run before any parsing

    Rejects files over the configured size ceiling and files whose MIME type
    and extension both fall outside the supported formats.
    """
    if size > settings.max_file_size:
        limit_mb = settings.max_file_size / 1024 / 1024
        return ValidationResult(
            is_valid=False,
            error=f"File size ({size / 1024 / 1024:.1f}MB) exceeds the maximum limit of {limit_mb:.0f}MB."
        )

    doc_format = detect_format(content_type, filename)
    if doc_format is None:
        return ValidationResult(
            is_valid=False,
            error=f"Unsupported file format. Please upload files with extensions: {', '.join(ALLOWED_EXTENSIONS)}"
        )

    return ValidationResult(
        is_valid=True,
        file_type=SUPPORTED_FORMATS[doc_format][2],
        estimated_processing_seconds=estimate_processing_time(doc_format, size)
    )


def get_file_type_description(content_type: Optional[str], filename: Optional[str]) -> str:
    doc_format = detect_format(content_type, filename)
    if doc_format is None:
        return "Unknown Format"
    return SUPPORTED_FORMATS[doc_format][2]


def estimate_processing_time(doc_format: str, size: int) -> int:
    """Estimated extraction time in whole seconds"""
    per_mb, floor = PROCESSING_RATES.get(doc_format, (0.1, 0.5))
    return round(max(floor, (size / (1024 * 1024)) * per_mb))
