"""PPTX text and image extraction by walking the slide XML inside the zip container"""
import io
import logging
import posixpath
import re
import zipfile
import zlib
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple
from xml.etree import ElementTree as ET

from ..exceptions import ExtractionError, ExtractionErrorCode
from ..models.document import ExtractedDocument, ExtractionMetadata, ImagePosition, ImageReference
from ..utils.helpers import clean_text, count_words, file_extension, truncate

logger = logging.getLogger(__name__)

PPTX_ERROR_MESSAGE = (
    "Failed to extract text from PowerPoint file. Please ensure the file is not corrupted "
    "and contains text content."
)

NS_A = "http://schemas.openxmlformats.org/drawingml/2006/main"
NS_P = "http://schemas.openxmlformats.org/presentationml/2006/main"
NS_R = "http://schemas.openxmlformats.org/officeDocument/2006/relationships"
NS_PKG_RELS = "http://schemas.openxmlformats.org/package/2006/relationships"

SLIDE_ENTRY = re.compile(r"^ppt/slides/slide(\d+)\.xml$")
NOTES_ENTRY = re.compile(r"^ppt/notesSlides/notesSlide(\d+)\.xml$")

TITLE_PLACEHOLDER_TYPES = {"title", "ctrTitle"}
# Placeholders on a notes page that are not the speaker notes themselves
NOTES_SKIPPED_PLACEHOLDERS = {"sldImg", "sldNum", "hdr", "ftr", "dt"}
GENERIC_SHAPE_NAME = "Picture 1"
IMAGE_SHAPE_TAGS = ("pic", "sp", "graphicFrame")
# Zip member reads that fail on a damaged entry
UNREADABLE_ENTRY_ERRORS = (KeyError, zipfile.BadZipFile, zlib.error, EOFError)

BULLET_MARKER = re.compile(r"^[•◦▪▫‣∙·\-\*–]\s*")
NUMBERED_MARKER = re.compile(r"^(\d+|[a-zA-Z])[.)]\s+")

IMAGE_MIME_TYPES = {
    ".png": "image/png",
    ".svg": "image/svg+xml",
    ".gif": "image/gif",
    ".bmp": "image/bmp",
    ".webp": "image/webp",
}
VECTOR_MIME_TYPES = {
    ".emf": "image/x-emf",
    ".wmf": "image/x-wmf",
}


def _local(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def classify_image_mime(path: str) -> Tuple[str, bool]:
    """
    Map an archive path to (mime_type, needs_conversion)

    Legacy vector formats are tagged for conversion rather than rejected;
    unknown raster extensions default to JPEG.
    """
    ext = file_extension(path)
    if ext in VECTOR_MIME_TYPES:
        return VECTOR_MIME_TYPES[ext], True
    return IMAGE_MIME_TYPES.get(ext, "image/jpeg"), False


def describe_image(
    slide_number: int,
    shape_name: Optional[str],
    alt_text: Optional[str],
    title: Optional[str],
    body_lines: List[str]
) -> str:
    """
    Pick a human-readable label for an image; the first rule that applies wins

    1. the shape name, unless it is the generic "Picture 1"
    2. the alt text
    3. the slide title
    4. the first body line longer than 10 characters (cut to 50)
    5. a generic "Image on slide N"
    """
    if shape_name and shape_name != GENERIC_SHAPE_NAME:
        return shape_name
    if alt_text:
        return alt_text
    if title:
        return f'Image from "{title}" (Slide {slide_number})'
    for line in body_lines:
        if len(line) > 10:
            return f"Image: {truncate(line, 50)} (Slide {slide_number})"
    return f"Image on slide {slide_number}"


@dataclass
class _SlideContent:
    number: int
    title: Optional[str] = None
    body_lines: List[str] = field(default_factory=list)  # as rendered, with list markers
    plain_lines: List[str] = field(default_factory=list)  # raw paragraph text
    images: List[ImageReference] = field(default_factory=list)

    def render(self) -> str:
        parts = []
        if self.title and not (self.plain_lines and self.plain_lines[0] == self.title):
            parts.append(f"TITLE: {self.title}")
        if self.body_lines:
            parts.append("\n".join(self.body_lines))
        if self.images:
            labels = ", ".join(f'"{img.description}"' for img in self.images)
            parts.append(f"[IMAGES ON SLIDE {self.number}]: {labels}")
        return "\n\n".join(parts)


class PPTXExtractor:
    """
    Extract slide text, speaker notes and embedded images from a PPTX archive

    This is a tolerant scan of the slide XML rather than a full OOXML model:
    a slide that fails to parse is logged and skipped, and extraction only
    fails if nothing readable is left at the end.
    """

    def extract(self, data: bytes, file_size: Optional[int] = None) -> ExtractedDocument:
        """
        Extract text and images from PPTX bytes

        Args:
            data: Raw PPTX file bytes
            file_size: Size reported for the upload (defaults to len(data))

        Returns:
            ExtractedDocument whose text contains one "--- Slide N ---" block per
            slide with content, followed by "--- Notes for Slide N ---" blocks

        Raises:
            ExtractionError: PPTX_EXTRACTION_ERROR if the archive cannot be opened
                or no text was found in any slide or notes page
        """
        try:
            archive = zipfile.ZipFile(io.BytesIO(data))
        except (zipfile.BadZipFile, ValueError) as e:
            logger.error(f"Error opening PPTX archive: {e}")
            raise ExtractionError(ExtractionErrorCode.PPTX, PPTX_ERROR_MESSAGE, e)

        with archive:
            names = archive.namelist()
            slide_numbers = sorted(
                int(m.group(1)) for m in (SLIDE_ENTRY.match(n) for n in names) if m
            )
            logger.info(f"PPTX contains {len(slide_numbers)} slides")

            blocks: List[str] = []
            images: List[ImageReference] = []
            notes_owner: Dict[str, int] = {}

            for slide_number in slide_numbers:
                rels = self._load_slide_rels(archive, slide_number)
                for target, rel_type in rels.values():
                    if rel_type.endswith("/notesSlide"):
                        notes_owner[target] = slide_number
                try:
                    content = self._parse_slide(archive, slide_number, rels)
                except Exception as e:
                    logger.warning(f"Skipping slide {slide_number}: {e}")
                    continue
                rendered = content.render()
                if rendered:
                    blocks.append(f"--- Slide {slide_number} ---\n{rendered}")
                images.extend(content.images)

            blocks.extend(self._extract_notes(archive, names, notes_owner))

        text = "\n\n".join(blocks).strip()
        if not text:
            raise ExtractionError(
                ExtractionErrorCode.PPTX,
                PPTX_ERROR_MESSAGE,
                ValueError("No text content found in any slide")
            )

        logger.info(f"PPTX extracted: {len(slide_numbers)} slides, {len(images)} images")
        return ExtractedDocument(
            text=text,
            metadata=ExtractionMetadata(
                page_count=len(slide_numbers),
                word_count=count_words(text),
                file_size=file_size if file_size is not None else len(data),
                extraction_method="zip-xml",
                images=images
            )
        )

    def _load_slide_rels(self, archive: zipfile.ZipFile, slide_number: int) -> Dict[str, Tuple[str, str]]:
        """Map relationship id -> (archive path, relationship type) for one slide"""
        rels_path = f"ppt/slides/_rels/slide{slide_number}.xml.rels"
        try:
            root = ET.fromstring(archive.read(rels_path))
        except KeyError:
            return {}
        except (ET.ParseError, zipfile.BadZipFile, zlib.error, EOFError) as e:
            logger.warning(f"Unreadable relationships for slide {slide_number}: {e}")
            return {}

        rels = {}
        for rel in root.iter(f"{{{NS_PKG_RELS}}}Relationship"):
            if rel.get("TargetMode") == "External":
                continue
            target = rel.get("Target", "")
            if target.startswith("/"):
                path = target.lstrip("/")
            else:
                path = posixpath.normpath(posixpath.join("ppt/slides", target))
            rels[rel.get("Id", "")] = (path, rel.get("Type", ""))
        return rels

    def _parse_slide(
        self,
        archive: zipfile.ZipFile,
        slide_number: int,
        rels: Dict[str, Tuple[str, str]]
    ) -> _SlideContent:
        root = ET.fromstring(archive.read(f"ppt/slides/slide{slide_number}.xml"))
        parents = {child: parent for parent in root.iter() for child in parent}
        content = _SlideContent(number=slide_number)
        title_parts: List[str] = []

        for elem in root.iter():
            if _local(elem.tag) != "txBody":
                continue
            rendered, plain = self._paragraph_lines(elem)
            shape = parents.get(elem)
            if shape is not None and self._placeholder_type(shape) in TITLE_PLACEHOLDER_TYPES:
                title_parts.extend(plain)
            else:
                content.body_lines.extend(rendered)
                content.plain_lines.extend(plain)

        if title_parts:
            content.title = " ".join(title_parts)

        # one reference per shape; the first embed of an SVG icon is its raster fallback
        resolved_shapes = set()
        for elem in root.iter():
            embed_id = elem.get(f"{{{NS_R}}}embed")
            if not embed_id:
                continue
            shape = elem
            while shape is not None and _local(shape.tag) not in IMAGE_SHAPE_TAGS:
                shape = parents.get(shape)
            if shape is not None and shape in resolved_shapes:
                continue
            reference = self._resolve_image(archive, content, embed_id, shape, rels)
            if reference is not None:
                content.images.append(reference)
                if shape is not None:
                    resolved_shapes.add(shape)

        return content

    def _paragraph_lines(self, tx_body: ET.Element) -> Tuple[List[str], List[str]]:
        """Return (rendered, plain) lines for every non-empty paragraph of a text body"""
        rendered: List[str] = []
        plain: List[str] = []
        auto_number = 0

        for para in tx_body.findall(f"{{{NS_A}}}p"):
            text = clean_text("".join(t.text or "" for t in para.iter(f"{{{NS_A}}}t")))
            if not text:
                continue
            plain.append(text)

            ppr = para.find(f"{{{NS_A}}}pPr")
            if ppr is not None and ppr.find(f"{{{NS_A}}}buAutoNum") is not None:
                auto_number += 1
                rendered.append(f"{auto_number}. {NUMBERED_MARKER.sub('', text, count=1)}")
            elif ppr is not None and ppr.find(f"{{{NS_A}}}buChar") is not None:
                rendered.append(f"• {BULLET_MARKER.sub('', text, count=1)}")
            elif BULLET_MARKER.match(text):
                rendered.append(f"• {BULLET_MARKER.sub('', text, count=1)}")
            else:
                # numbered text ("1. ...") is already readable as-is
                rendered.append(text)

        return rendered, plain

    def _placeholder_type(self, shape: ET.Element) -> Optional[str]:
        ph = shape.find(f"./{{{NS_P}}}nvSpPr/{{{NS_P}}}nvPr/{{{NS_P}}}ph")
        if ph is None:
            return None
        return ph.get("type", "body")

    def _resolve_image(
        self,
        archive: zipfile.ZipFile,
        content: _SlideContent,
        embed_id: str,
        shape: Optional[ET.Element],
        rels: Dict[str, Tuple[str, str]]
    ) -> Optional[ImageReference]:
        if embed_id not in rels:
            logger.warning(f"Slide {content.number}: relationship {embed_id} not found")
            return None
        path, rel_type = rels[embed_id]
        if rel_type and not rel_type.endswith("/image"):
            return None

        try:
            image_bytes = archive.read(path)
        except UNREADABLE_ENTRY_ERRORS as e:
            logger.warning(f"Slide {content.number}: cannot read image {path}: {e!r}")
            return None

        shape_name = alt_text = None
        position = None
        if shape is not None:
            c_nv_pr = next((e for e in shape.iter() if _local(e.tag) == "cNvPr"), None)
            if c_nv_pr is not None:
                shape_name = (c_nv_pr.get("name") or "").strip() or None
                alt_text = (c_nv_pr.get("descr") or "").strip() or None
            position = self._shape_position(shape)

        mime_type, needs_conversion = classify_image_mime(path)
        return ImageReference(
            slide_number=content.number,
            description=describe_image(
                content.number, shape_name, alt_text, content.title, content.plain_lines
            ),
            alt_text=alt_text,
            filename=posixpath.basename(path),
            embed_id=embed_id,
            image_bytes=image_bytes,
            mime_type=mime_type,
            needs_conversion=needs_conversion,
            position=position
        )

    def _shape_position(self, shape: ET.Element) -> Optional[ImagePosition]:
        xfrm = shape.find(f".//{{{NS_A}}}xfrm")
        if xfrm is None:
            return None
        off = xfrm.find(f"{{{NS_A}}}off")
        ext = xfrm.find(f"{{{NS_A}}}ext")
        if off is None or ext is None:
            return None
        try:
            return ImagePosition(
                x=float(off.get("x", 0)),
                y=float(off.get("y", 0)),
                width=float(ext.get("cx", 0)),
                height=float(ext.get("cy", 0))
            )
        except ValueError:
            return None

    def _extract_notes(
        self,
        archive: zipfile.ZipFile,
        names: List[str],
        notes_owner: Dict[str, int]
    ) -> List[str]:
        """Render speaker notes, ordered by the slide they belong to"""
        notes: List[Tuple[int, str]] = []
        for name in names:
            match = NOTES_ENTRY.match(name)
            if not match:
                continue
            slide_number = notes_owner.get(name, int(match.group(1)))
            try:
                root = ET.fromstring(archive.read(name))
            except Exception as e:
                logger.warning(f"Skipping notes for slide {slide_number}: {e}")
                continue

            lines: List[str] = []
            for shape in root.iter(f"{{{NS_P}}}sp"):
                if self._placeholder_type(shape) in NOTES_SKIPPED_PLACEHOLDERS:
                    continue
                tx_body = shape.find(f"{{{NS_P}}}txBody")
                if tx_body is not None:
                    lines.extend(self._paragraph_lines(tx_body)[1])
            if lines:
                notes.append((slide_number, "\n".join(lines)))

        return [
            f"--- Notes for Slide {slide_number} ---\n{text}"
            for slide_number, text in sorted(notes, key=lambda item: item[0])
        ]
