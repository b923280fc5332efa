"""API response models"""
from datetime import datetime
from pydantic import BaseModel, Field
from typing import List, Optional
from .document import ExtractionMetadata
from .upload import UploadedImage


class ValidationResult(BaseModel):
    """Outcome of the pre-extraction file check"""
    is_valid: bool
    error: Optional[str] = None
    file_type: Optional[str] = None
    estimated_processing_seconds: Optional[int] = None


class ExtractionErrorResponse(BaseModel):
    """Error body returned when extraction fails"""
    code: str
    message: str


class ExtractionResponse(BaseModel):
    """Response for text extraction without image upload"""
    filename: str
    text: str
    metadata: ExtractionMetadata


class OriginalFileRecord(BaseModel):
    """Stored copy of the uploaded source document"""
    name: str
    content_type: str
    size: int
    url: str
    storage_key: str
    uploaded_at: datetime = Field(default_factory=datetime.utcnow)


class ImportedMaterial(BaseModel):
    """Extracted text plus uploaded images, ready for the caller to persist"""
    material_id: str
    filename: str
    text: str
    metadata: ExtractionMetadata
    images: List[UploadedImage] = Field(default_factory=list)
    original_file: Optional[OriginalFileRecord] = None
