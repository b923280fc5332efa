"""
Test configuration and fixtures

Office documents are built in memory so no binary fixtures are checked in.
"""
import asyncio
import io
import zipfile
from typing import Dict, List, Optional, Sequence, Tuple

import pytest
from PIL import Image

from nexlab_import.config import Settings
from nexlab_import.exceptions import StorageError
from nexlab_import.models.document import ImageReference
from nexlab_import.services.image_upload import ImageUploadOrchestrator

NS_DECL = (
    'xmlns:a="http://schemas.openxmlformats.org/drawingml/2006/main" '
    'xmlns:p="http://schemas.openxmlformats.org/presentationml/2006/main" '
    'xmlns:r="http://schemas.openxmlformats.org/officeDocument/2006/relationships"'
)
REL_IMAGE = "http://schemas.openxmlformats.org/officeDocument/2006/relationships/image"
REL_NOTES = "http://schemas.openxmlformats.org/officeDocument/2006/relationships/notesSlide"

PPTX_MIME = "application/vnd.openxmlformats-officedocument.presentationml.presentation"
DOCX_MIME = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"


# ---------------------------------------------------------------------------
# Document builders
# ---------------------------------------------------------------------------

def png_bytes(size: Tuple[int, int] = (80, 60), color: str = "red") -> bytes:
    buffered = io.BytesIO()
    Image.new("RGB", size, color).save(buffered, format="PNG")
    return buffered.getvalue()


def large_jpeg_bytes(min_size: int = 2 * 1024 * 1024 + 1024) -> bytes:
    """JPEG-tagged payload over the large-image threshold"""
    return b"\xff\xd8\xff\xe0" + b"\x00" * min_size


def _paragraph(text: str, bullet: Optional[str] = None) -> str:
    ppr = ""
    if bullet == "char":
        ppr = '<a:pPr><a:buChar char="&#8226;"/></a:pPr>'
    elif bullet == "auto":
        ppr = '<a:pPr><a:buAutoNum type="arabicPeriod"/></a:pPr>'
    return f"<a:p>{ppr}<a:r><a:t>{text}</a:t></a:r></a:p>"


def _text_shape(shape_id: int, name: str, paragraphs: str, ph_type: Optional[str] = None) -> str:
    ph = f'<p:ph type="{ph_type}"/>' if ph_type else ""
    return (
        f'<p:sp><p:nvSpPr><p:cNvPr id="{shape_id}" name="{name}"/><p:cNvSpPr/>'
        f"<p:nvPr>{ph}</p:nvPr></p:nvSpPr><p:spPr/>"
        f"<p:txBody><a:bodyPr/>{paragraphs}</p:txBody></p:sp>"
    )


def _picture(shape_id: int, rel_id: str, name: str, descr: Optional[str]) -> str:
    descr_attr = f' descr="{descr}"' if descr is not None else ""
    return (
        f'<p:pic><p:nvPicPr><p:cNvPr id="{shape_id}" name="{name}"{descr_attr}/>'
        f"<p:cNvPicPr/><p:nvPr/></p:nvPicPr>"
        f'<p:blipFill><a:blip r:embed="{rel_id}"/></p:blipFill>'
        f'<p:spPr><a:xfrm><a:off x="100" y="200"/><a:ext cx="3000" cy="2000"/></a:xfrm></p:spPr>'
        f"</p:pic>"
    )


def slide_xml(
    title: Optional[str] = None,
    body: Sequence = (),
    pictures: Sequence[Tuple[str, str, Optional[str]]] = ()
) -> str:
    """
    Build one slide

    Args:
        title: Text of the title placeholder
        body: Paragraphs of a body text box; a (text, "char"|"auto") tuple adds a bullet
        pictures: (relationship id, shape name, alt text) per picture
    """
    shapes = []
    if title:
        shapes.append(_text_shape(2, "Title 1", _paragraph(title), ph_type="title"))
    if body:
        paragraphs = "".join(
            _paragraph(*item) if isinstance(item, tuple) else _paragraph(item) for item in body
        )
        shapes.append(_text_shape(3, "Content 2", paragraphs))
    for offset, (rel_id, name, descr) in enumerate(pictures):
        shapes.append(_picture(10 + offset, rel_id, name, descr))
    return (
        f'<?xml version="1.0" encoding="UTF-8" standalone="yes"?>'
        f"<p:sld {NS_DECL}><p:cSld><p:spTree>"
        f'<p:nvGrpSpPr><p:cNvPr id="1" name=""/><p:cNvGrpSpPr/><p:nvPr/></p:nvGrpSpPr><p:grpSpPr/>'
        f"{''.join(shapes)}"
        f"</p:spTree></p:cSld></p:sld>"
    )


def notes_xml(text: str) -> str:
    return (
        f'<?xml version="1.0" encoding="UTF-8" standalone="yes"?>'
        f"<p:notes {NS_DECL}><p:cSld><p:spTree>"
        f"{_text_shape(2, 'Slide Image 1', '', ph_type='sldImg')}"
        f"{_text_shape(3, 'Notes Placeholder 2', _paragraph(text), ph_type='body')}"
        f"{_text_shape(4, 'Slide Number 3', _paragraph('1'), ph_type='sldNum')}"
        f"</p:spTree></p:cSld></p:notes>"
    )


def _rels_xml(rels: Dict[str, Tuple[str, str]]) -> str:
    entries = "".join(
        f'<Relationship Id="{rel_id}" Type="{rel_type}" Target="{target}"/>'
        for rel_id, (rel_type, target) in rels.items()
    )
    return (
        '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>'
        '<Relationships xmlns="http://schemas.openxmlformats.org/package/2006/relationships">'
        f"{entries}</Relationships>"
    )


def build_pptx(
    slides: List[str],
    media: Optional[Dict[int, Dict[str, Tuple[str, bytes]]]] = None,
    notes: Optional[Dict[int, str]] = None
) -> bytes:
    """
    Zip slides into a minimal PPTX package

    Args:
        slides: Slide XML strings, numbered from 1
        media: slide number -> {relationship id: (media filename, bytes)}
        notes: slide number -> speaker notes text
    """
    media = media or {}
    notes = notes or {}
    buffered = io.BytesIO()
    with zipfile.ZipFile(buffered, "w", zipfile.ZIP_DEFLATED) as archive:
        archive.writestr("[Content_Types].xml", '<?xml version="1.0"?><Types/>')
        for number, xml in enumerate(slides, start=1):
            archive.writestr(f"ppt/slides/slide{number}.xml", xml)
            rels: Dict[str, Tuple[str, str]] = {}
            for rel_id, (media_name, data) in media.get(number, {}).items():
                archive.writestr(f"ppt/media/{media_name}", data)
                rels[rel_id] = (REL_IMAGE, f"../media/{media_name}")
            if number in notes:
                archive.writestr(f"ppt/notesSlides/notesSlide{number}.xml", notes_xml(notes[number]))
                rels["rIdNotes"] = (REL_NOTES, f"../notesSlides/notesSlide{number}.xml")
            if rels:
                archive.writestr(f"ppt/slides/_rels/slide{number}.xml.rels", _rels_xml(rels))
    return buffered.getvalue()


def corrupt_zip_entry(data: bytes, name: str) -> bytes:
    """Flip one byte inside the stored payload of a zip member so reading it fails"""
    with zipfile.ZipFile(io.BytesIO(data)) as archive:
        info = archive.getinfo(name)
    header = info.header_offset
    name_length = int.from_bytes(data[header + 26:header + 28], "little")
    extra_length = int.from_bytes(data[header + 28:header + 30], "little")
    target = header + 30 + name_length + extra_length + info.compress_size // 2
    corrupted = bytearray(data)
    corrupted[target] ^= 0xFF
    return bytes(corrupted)


def build_pdf(pages: List[str]) -> bytes:
    import fitz

    doc = fitz.open()
    for text in pages:
        page = doc.new_page()
        page.insert_text((72, 72), text)
    data = doc.tobytes()
    doc.close()
    return data


def build_docx(paragraphs: List[str], table: Optional[List[List[str]]] = None) -> bytes:
    from docx import Document

    document = Document()
    for text in paragraphs:
        document.add_paragraph(text)
    if table:
        grid = document.add_table(rows=len(table), cols=len(table[0]))
        for r, row in enumerate(table):
            for c, value in enumerate(row):
                grid.cell(r, c).text = value
    buffered = io.BytesIO()
    document.save(buffered)
    return buffered.getvalue()


def make_image_refs(count: int, data: Optional[bytes] = None, mime_type: str = "image/png") -> List[ImageReference]:
    payload = data if data is not None else png_bytes()
    return [
        ImageReference(
            slide_number=i + 1,
            description=f"Diagram {i + 1}",
            filename=f"image{i + 1}.png",
            image_bytes=payload,
            mime_type=mime_type
        )
        for i in range(count)
    ]


# ---------------------------------------------------------------------------
# Collaborator fakes
# ---------------------------------------------------------------------------

class FakeStorage:
    """In-memory object store with per-key failure and hang switches"""

    def __init__(
        self,
        fail_patterns: Sequence[str] = (),
        hang_patterns: Sequence[str] = (),
        fail_all: bool = False,
        hang_all: bool = False
    ):
        self.fail_patterns = list(fail_patterns)
        self.hang_patterns = list(hang_patterns)
        self.fail_all = fail_all
        self.hang_all = hang_all
        self.put_calls: List[str] = []
        self.objects: Dict[str, bytes] = {}
        self.deleted: List[str] = []

    async def put(self, key: str, data: bytes, content_type: Optional[str] = None) -> str:
        self.put_calls.append(key)
        if self.hang_all or any(p in key for p in self.hang_patterns):
            await asyncio.Event().wait()
        if self.fail_all or any(p in key for p in self.fail_patterns):
            raise StorageError(f"rejected {key}")
        self.objects[key] = data
        return f"https://storage.test/{key}"

    async def delete(self, key: str) -> bool:
        self.deleted.append(key)
        return self.objects.pop(key, None) is not None


class RecordingOptimizer:
    """Pass-through optimizer that records every call"""

    def __init__(self):
        self.optimize_calls: List[Tuple[str, int]] = []
        self.rasterize_calls: List[str] = []

    async def optimize(self, data, mime_type, compression_threshold, max_dimension):
        self.optimize_calls.append((mime_type, len(data)))
        return data, mime_type

    async def rasterize(self, data, mime_type):
        self.rasterize_calls.append(mime_type)
        return data, mime_type


class FakeClock:
    """
    Virtual clock that records every sleep

    Sleeps shorter than `timer_threshold` return at once and advance virtual
    time; longer ones (upload timers) never fire on their own.
    """

    def __init__(self, timer_threshold: float = 30.0):
        self.timer_threshold = timer_threshold
        self.now = 0.0
        self.sleeps: List[float] = []

    def monotonic(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        if seconds >= self.timer_threshold:
            await asyncio.Event().wait()
        self.now += seconds
        await asyncio.sleep(0)

    @property
    def backoffs(self) -> List[float]:
        return [s for s in self.sleeps if s < self.timer_threshold]


@pytest.fixture
def fast_settings():
    """Settings with no inter-batch or retry delays and short timeouts"""
    return Settings(
        simple_batch_delay_ms=0,
        enhanced_batch_delay_ms=0,
        simple_timeout_ms=1000,
        enhanced_timeout_ms=1000,
        retry_base_delay_ms=0,
        retry_max_delay_ms=0,
        retry_jitter_ms=0
    )


@pytest.fixture
def storage():
    return FakeStorage()


@pytest.fixture
def optimizer():
    return RecordingOptimizer()


@pytest.fixture
def make_orchestrator(fast_settings, optimizer):
    def _make(storage, config=None):
        return ImageUploadOrchestrator(
            storage=storage,
            optimizer=optimizer,
            config=config or fast_settings
        )
    return _make
