"""Format dispatch, error codes and validation"""
import pytest

from nexlab_import.config import settings
from nexlab_import.exceptions import ExtractionError, ExtractionErrorCode
from nexlab_import.services.text_extraction import (
    detect_format,
    estimate_processing_time,
    extract_text_from_file,
    get_file_type_description,
    validate_file_for_extraction,
)

from conftest import DOCX_MIME, PPTX_MIME, build_docx, build_pdf, build_pptx, slide_xml


class TestFormatDetection:

    def test_mime_type_wins(self):
        assert detect_format("application/pdf", "notes.txt") == "pdf"

    def test_extension_fallback(self):
        assert detect_format("application/octet-stream", "Lecture.PPTX") == "pptx"
        assert detect_format(None, "syllabus.docx") == "docx"

    def test_unknown(self):
        assert detect_format("image/png", "photo.png") is None

    def test_file_type_description(self):
        assert get_file_type_description(PPTX_MIME, None) == "PowerPoint Presentation"
        assert get_file_type_description(None, "archive.zip") == "Unknown Format"


class TestExtraction:

    def test_plain_text(self):
        doc = extract_text_from_file("Hello course\nSecond line".encode("utf-8"), "text/plain", "a.txt")
        assert doc.text == "Hello course\nSecond line"
        assert doc.metadata.word_count == 4
        assert doc.metadata.extraction_method == "Native"

    def test_pdf_pages_in_order(self):
        data = build_pdf(["First page words", "Second page words"])
        doc = extract_text_from_file(data, "application/pdf", "lecture.pdf")
        assert doc.text.index("First page words") < doc.text.index("Second page words")
        assert doc.metadata.page_count == 2
        assert doc.metadata.extraction_method == "PyMuPDF"

    def test_docx_paragraphs_and_tables(self):
        data = build_docx(["Intro paragraph", "Second paragraph"], table=[["Week", "Topic"], ["1", "Kinematics"]])
        doc = extract_text_from_file(data, DOCX_MIME, "syllabus.docx")
        assert "Intro paragraph\n\nSecond paragraph" in doc.text
        assert "Week | Topic" in doc.text
        assert "1 | Kinematics" in doc.text

    def test_pptx_dispatch_by_extension(self):
        data = build_pptx([slide_xml(body=["Slide content here"])])
        doc = extract_text_from_file(data, "application/octet-stream", "deck.pptx")
        assert "--- Slide 1 ---" in doc.text

    def test_pptx_without_images(self):
        from conftest import png_bytes

        data = build_pptx(
            [slide_xml(body=["Slide content here"], pictures=[("rId1", "Logo", None)])],
            media={1: {"rId1": ("image1.png", png_bytes())}}
        )
        doc = extract_text_from_file(data, PPTX_MIME, "deck.pptx", include_images=False)
        assert doc.metadata.images == []


class TestExtractionErrors:

    @pytest.mark.parametrize("data", [b"", None])
    def test_no_file(self, data):
        with pytest.raises(ExtractionError) as exc_info:
            extract_text_from_file(data, "text/plain", "a.txt")
        assert exc_info.value.code == ExtractionErrorCode.NO_FILE

    def test_unsupported_format(self):
        with pytest.raises(ExtractionError) as exc_info:
            extract_text_from_file(b"\x89PNG", "image/png", "photo.png")
        assert exc_info.value.code == ExtractionErrorCode.UNSUPPORTED_FORMAT
        assert "Supported formats" in exc_info.value.message

    def test_corrupt_pdf(self):
        with pytest.raises(ExtractionError) as exc_info:
            extract_text_from_file(b"%PDF-garbage", "application/pdf", "broken.pdf")
        assert exc_info.value.code == ExtractionErrorCode.PDF
        assert "selectable text" in exc_info.value.message

    def test_corrupt_docx(self):
        with pytest.raises(ExtractionError) as exc_info:
            extract_text_from_file(b"not a docx", DOCX_MIME, "broken.docx")
        assert exc_info.value.code == ExtractionErrorCode.DOCX

    def test_empty_text_file(self):
        with pytest.raises(ExtractionError) as exc_info:
            extract_text_from_file(b"   \n ", "text/plain", "blank.txt")
        assert exc_info.value.code == ExtractionErrorCode.TXT

    def test_error_serializes_code_and_message(self):
        error = ExtractionError(ExtractionErrorCode.TXT, "bad text")
        assert error.to_dict() == {"code": "TXT_EXTRACTION_ERROR", "message": "bad text"}


class TestValidation:

    def test_valid_file(self):
        result = validate_file_for_extraction("lecture.pdf", "application/pdf", 3 * 1024 * 1024)
        assert result.is_valid
        assert result.file_type == "PDF Document"
        assert result.estimated_processing_seconds == 2

    def test_too_large(self):
        result = validate_file_for_extraction("big.pdf", "application/pdf", settings.max_file_size + 1)
        assert not result.is_valid
        assert "exceeds the maximum limit" in result.error

    def test_unsupported(self):
        result = validate_file_for_extraction("photo.png", "image/png", 1024)
        assert not result.is_valid
        assert ".pdf" in result.error

    def test_validation_is_idempotent(self):
        first = validate_file_for_extraction("deck.pptx", PPTX_MIME, 12345)
        second = validate_file_for_extraction("deck.pptx", PPTX_MIME, 12345)
        assert first == second

    def test_processing_estimate_scales_with_size(self):
        assert estimate_processing_time("txt", 10) == 0
        assert estimate_processing_time("pdf", 100 * 1024 * 1024) == 50
