"""DOCX raw text extraction using python-docx"""
import io
import logging
import warnings
from typing import List, Optional

from docx import Document

from ..exceptions import ExtractionError, ExtractionErrorCode
from ..models.document import ExtractedDocument, ExtractionMetadata
from ..utils.helpers import count_words

logger = logging.getLogger(__name__)

DOCX_ERROR_MESSAGE = (
    "Failed to extract text from Word document. Please ensure the file is not corrupted."
)


def extract_docx(data: bytes, file_size: Optional[int] = None) -> ExtractedDocument:
    """
    Extract raw text from DOCX bytes

    Paragraphs are separated by blank lines; each table row becomes one line
    with cells joined by " | ". Warnings raised while parsing are logged.

    Raises:
        ExtractionError: DOCX_EXTRACTION_ERROR on corruption or when no text is found
    """
    try:
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always")
            doc = Document(io.BytesIO(data))
            text_parts = _collect_text(doc)
        if caught:
            logger.warning(f"DOCX extraction warnings: {[str(w.message) for w in caught]}")
    except Exception as e:
        logger.error(f"Error reading DOCX: {e}")
        raise ExtractionError(ExtractionErrorCode.DOCX, DOCX_ERROR_MESSAGE, e)

    text = "\n\n".join(text_parts).strip()
    if not text:
        raise ExtractionError(
            ExtractionErrorCode.DOCX,
            DOCX_ERROR_MESSAGE,
            ValueError("No text found in Word document")
        )

    return ExtractedDocument(
        text=text,
        metadata=ExtractionMetadata(
            word_count=count_words(text),
            file_size=file_size if file_size is not None else len(data),
            extraction_method="python-docx"
        )
    )


def _collect_text(doc) -> List[str]:
    text_parts: List[str] = []

    for para in doc.paragraphs:
        text = para.text.strip()
        if text:
            text_parts.append(text)

    for table in doc.tables:
        table_rows: List[str] = []
        for row in table.rows:
            cells = [cell.text.strip() for cell in row.cells]
            if any(cells):
                table_rows.append(" | ".join(cells))
        if table_rows:
            text_parts.append("\n".join(table_rows))

    return text_parts
