"""HTTP endpoint tests"""
import asyncio

import pytest
from fastapi.testclient import TestClient

from nexlab_import.api.dependencies import get_material_import_service
from nexlab_import.api.routes import materials as materials_routes
from nexlab_import.main import app
from nexlab_import.services.material_import import MaterialImportService

from conftest import PPTX_MIME, build_pptx, png_bytes, slide_xml


@pytest.fixture
def client(storage, make_orchestrator):
    app.dependency_overrides[get_material_import_service] = lambda: MaterialImportService(make_orchestrator(storage))
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def deck():
    return build_pptx(
        [slide_xml(title="Waves", body=["Sound is a longitudinal wave"], pictures=[("rId1", "Wave Plot", None)])],
        media={1: {"rId1": ("image1.png", png_bytes())}}
    )


class TestHealthEndpoints:

    def test_root(self, client):
        response = client.get("/")
        assert response.status_code == 200
        assert response.json()["status"] == "running"

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"


class TestValidateEndpoint:

    def test_valid(self, client):
        response = client.post("/api/materials/validate", files={"file": ("notes.txt", b"hello", "text/plain")})
        assert response.status_code == 200
        assert response.json()["is_valid"] is True
        assert response.json()["file_type"] == "Text File"

    def test_unsupported(self, client):
        response = client.post("/api/materials/validate", files={"file": ("a.png", b"\x89PNG", "image/png")})
        assert response.status_code == 200
        assert response.json()["is_valid"] is False


class TestExtractEndpoint:

    def test_extracts_without_image_bytes(self, client, deck):
        response = client.post("/api/materials/extract", files={"file": ("waves.pptx", deck, PPTX_MIME)})
        assert response.status_code == 200
        data = response.json()
        assert "--- Slide 1 ---" in data["text"]
        assert data["metadata"]["images"][0]["description"] == "Wave Plot"
        assert "image_bytes" not in data["metadata"]["images"][0]

    def test_extraction_runs_off_the_event_loop(self, client, deck, monkeypatch):
        offloaded = []
        real_to_thread = asyncio.to_thread

        async def recording_to_thread(func, *args, **kwargs):
            offloaded.append(func.__name__)
            return await real_to_thread(func, *args, **kwargs)

        monkeypatch.setattr(materials_routes.asyncio, "to_thread", recording_to_thread)
        response = client.post("/api/materials/extract", files={"file": ("waves.pptx", deck, PPTX_MIME)})

        assert response.status_code == 200
        assert "extract_text_from_file" in offloaded

    def test_extraction_error_body(self, client):
        response = client.post("/api/materials/extract", files={"file": ("empty.txt", b"   ", "text/plain")})
        assert response.status_code == 422
        assert response.json() == {
            "code": "TXT_EXTRACTION_ERROR",
            "message": "Failed to extract text from text file: file is empty"
        }


class TestImportEndpoint:

    def test_import(self, client, storage, deck):
        response = client.post(
            "/api/materials/mat_waves/import",
            files={"file": ("waves.pptx", deck, PPTX_MIME)},
            data={"course_id": "phys101"}
        )
        assert response.status_code == 200
        data = response.json()
        assert data["material_id"] == "mat_waves"
        assert data["images"][0]["url"].startswith("https://storage.test/materials/mat_waves/")
        assert len(storage.put_calls) == 1

    def test_invalid_file(self, client):
        response = client.post(
            "/api/materials/mat_x/import",
            files={"file": ("photo.png", b"\x89PNG", "image/png")}
        )
        assert response.status_code == 400

    def test_extraction_failure(self, client):
        response = client.post(
            "/api/materials/mat_x/import",
            files={"file": ("deck.pptx", b"not a zip", PPTX_MIME)}
        )
        assert response.status_code == 422
        assert response.json()["code"] == "PPTX_EXTRACTION_ERROR"
