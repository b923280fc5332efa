"""Document extraction data models"""
from pydantic import BaseModel, Field
from typing import List, Optional


class ImagePosition(BaseModel):
    """Placement of an image on its slide or page (EMU for PPTX, points for PDF)"""
    x: float
    y: float
    width: float
    height: float


class ImageReference(BaseModel):
    """Image discovered during extraction, held in memory until it is uploaded"""
    slide_number: int
    description: str
    alt_text: Optional[str] = None
    filename: str
    embed_id: Optional[str] = None
    image_bytes: bytes = Field(default=b"", exclude=True, repr=False)
    mime_type: str = "image/jpeg"
    needs_conversion: bool = False  # EMF/WMF sources
    position: Optional[ImagePosition] = None

    @property
    def size(self) -> int:
        return len(self.image_bytes)

    @property
    def has_bytes(self) -> bool:
        return bool(self.image_bytes)


class ExtractionMetadata(BaseModel):
    """Metadata describing one extraction run"""
    page_count: Optional[int] = None  # pages for PDF, slides for PPTX
    word_count: int = 0
    file_size: int = 0
    extraction_method: str
    images: List[ImageReference] = Field(default_factory=list)


class ExtractedDocument(BaseModel):
    """Normalized text and image references extracted from one uploaded file"""
    text: str
    metadata: ExtractionMetadata
