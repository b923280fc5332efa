"""PDF text and image extraction using PyMuPDF"""
import fitz  # PyMuPDF
from PIL import Image
import io
import logging
from typing import List, Optional

from ..exceptions import ExtractionError, ExtractionErrorCode
from ..models.document import ExtractedDocument, ExtractionMetadata, ImagePosition, ImageReference
from ..utils.helpers import count_words

logger = logging.getLogger(__name__)

PDF_ERROR_MESSAGE = (
    "Failed to extract text from PDF file. Please ensure the PDF contains selectable text."
)

PDF_IMAGE_MIME_TYPES = {
    "png": "image/png",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "gif": "image/gif",
    "bmp": "image/bmp",
    "tiff": "image/tiff",
    "webp": "image/webp",
}


class PDFExtractor:
    """Extract page text and embedded raster images from PDF bytes"""

    # Images smaller than this on either side are treated as icons/bullets
    MIN_IMAGE_SIDE = 50

    def __init__(self, include_images: bool = True):
        self.include_images = include_images

    def extract(self, data: bytes, file_size: Optional[int] = None) -> ExtractedDocument:
        """
        Extract text page by page, in page order

        Text spans on a page are joined with single spaces; pages are joined
        with a blank line.

        Args:
            data: Raw PDF bytes
            file_size: Size reported for the upload (defaults to len(data))

        Returns:
            ExtractedDocument with page count, word count and image references

        Raises:
            ExtractionError: PDF_EXTRACTION_ERROR for encrypted, corrupt or text-less files
        """
        try:
            doc = fitz.open(stream=data, filetype="pdf")
        except Exception as e:
            logger.error(f"Error opening PDF: {e}")
            raise ExtractionError(ExtractionErrorCode.PDF, PDF_ERROR_MESSAGE, e)

        try:
            if doc.needs_pass:
                raise ExtractionError(
                    ExtractionErrorCode.PDF,
                    PDF_ERROR_MESSAGE,
                    ValueError("PDF is encrypted")
                )

            total_pages = len(doc)
            page_texts: List[str] = []
            images: List[ImageReference] = []

            for page_num, page in enumerate(doc, start=1):
                page_text = self._extract_page_text(page)
                if page_text:
                    page_texts.append(page_text)
                if self.include_images:
                    images.extend(self._extract_page_images(doc, page, page_num))

            text = "\n\n".join(page_texts).strip()
        except ExtractionError:
            raise
        except Exception as e:
            logger.error(f"Error extracting PDF text: {e}")
            raise ExtractionError(ExtractionErrorCode.PDF, PDF_ERROR_MESSAGE, e)
        finally:
            doc.close()

        if not text:
            raise ExtractionError(
                ExtractionErrorCode.PDF,
                PDF_ERROR_MESSAGE,
                ValueError("No selectable text found in PDF")
            )

        logger.info(f"PDF extracted: {total_pages} pages, {len(images)} images")
        return ExtractedDocument(
            text=text,
            metadata=ExtractionMetadata(
                page_count=total_pages,
                word_count=count_words(text),
                file_size=file_size if file_size is not None else len(data),
                extraction_method="PyMuPDF",
                images=images
            )
        )

    def _extract_page_text(self, page: fitz.Page) -> str:
        """Join every text span on the page with single spaces"""
        runs = []
        page_dict = page.get_text("dict")
        for block in page_dict.get("blocks", []):
            if block.get("type") != 0:  # Not a text block
                continue
            for line in block.get("lines", []):
                for span in line.get("spans", []):
                    run = span.get("text", "").strip()
                    if run:
                        runs.append(run)
        return " ".join(runs).strip()

    def _extract_page_images(
        self,
        doc: fitz.Document,
        page: fitz.Page,
        page_num: int
    ) -> List[ImageReference]:
        """Collect embedded raster images on a page; a bad image is skipped"""
        references = []
        for img_index, img_info in enumerate(page.get_images(full=True)):
            xref = img_info[0]
            try:
                base_image = doc.extract_image(xref)
                if not base_image:
                    continue
                image_bytes = base_image["image"]
                ext = base_image.get("ext", "jpeg").lower()

                width = base_image.get("width", 0)
                height = base_image.get("height", 0)
                if not width or not height:
                    with Image.open(io.BytesIO(image_bytes)) as pil_image:
                        width, height = pil_image.size
                if width < self.MIN_IMAGE_SIDE or height < self.MIN_IMAGE_SIDE:
                    logger.debug(f"Skipping small image {img_index} on page {page_num} ({width}x{height})")
                    continue

                position = None
                image_rects = page.get_image_rects(xref)
                if image_rects:
                    rect = image_rects[0]
                    position = ImagePosition(x=rect.x0, y=rect.y0, width=rect.width, height=rect.height)

                references.append(ImageReference(
                    slide_number=page_num,
                    description=f"Image on page {page_num}",
                    filename=f"page{page_num}_image{img_index + 1}.{ext}",
                    embed_id=str(xref),
                    image_bytes=image_bytes,
                    mime_type=PDF_IMAGE_MIME_TYPES.get(ext, "image/jpeg"),
                    position=position
                ))
            except Exception as e:
                logger.warning(f"Failed to extract image {img_index} on page {page_num}: {e}")
        return references
