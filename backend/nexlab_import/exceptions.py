"""Error types shared by the extraction engine and the upload pipeline"""
from enum import Enum
from typing import Optional


class ExtractionErrorCode(str, Enum):
    """Stable codes reported to callers for every extraction failure"""
    PDF = "PDF_EXTRACTION_ERROR"
    DOCX = "DOCX_EXTRACTION_ERROR"
    PPTX = "PPTX_EXTRACTION_ERROR"
    TXT = "TXT_EXTRACTION_ERROR"
    UNSUPPORTED_FORMAT = "UNSUPPORTED_FORMAT_ERROR"
    NO_FILE = "NO_FILE_ERROR"
    GENERIC = "GENERIC_EXTRACTION_ERROR"


class ExtractionError(Exception):
    """Structured extraction failure: a code, a user-facing message and the cause"""

    def __init__(
        self,
        code: ExtractionErrorCode,
        message: str,
        original_error: Optional[BaseException] = None
    ):
        super().__init__(message)
        self.code = code
        self.message = message
        self.original_error = original_error

    def to_dict(self) -> dict:
        return {"code": self.code.value, "message": self.message}

    def __repr__(self) -> str:
        return f"ExtractionError(code={self.code.value!r}, message={self.message!r})"


class StorageError(Exception):
    """Object storage put/delete failed"""


class UploadTimeoutError(Exception):
    """A timer won the race against an upload or a batch of uploads"""


class FileValidationError(Exception):
    """File rejected before extraction (size or format)"""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message
