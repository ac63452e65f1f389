"""
Tests for the HTTP layer.

The ModelManager dependency is overridden with one whose vendors are scripted
stubs, so requests run the real pipelines without network access.
"""

import json
from unittest.mock import AsyncMock, Mock

import httpx
import pytest
from fastapi.testclient import TestClient

from saltcore.api.dependencies.manager import get_model_manager
from saltcore.api.main import create_app
from saltcore.models.providers.base import ModelError
from saltcore.models.providers.openai_sdk import OpenAIProvider

ANGLES = json.dumps({"angles": [
    {"title": f"Angle {i}", "summary": "s", "journey": "j"} for i in range(3)
]})

FLAVOR = {"topic": "Hope", "scripture": "Romans 5", "length": "30 minutes", "audience": "adults"}


@pytest.fixture
def client_for(make_manager):
    """Test client whose ModelManager uses the given stub vendors."""
    def make(**providers):
        app = create_app()
        manager = make_manager(**providers)
        app.dependency_overrides[get_model_manager] = lambda: manager
        return TestClient(app)
    return make


class TestHealth:
    def test_root(self, client_for):
        response = client_for().get("/")
        assert response.status_code == 200
        assert response.json()["status"] == "operational"

    def test_health_reports_task_stats(self, client_for, stub_vendor):
        client = client_for(openrouter=stub_vendor(replies=["notes"]))
        client.post("/api/depth", json={"research_topic": "Grace"})

        body = client.get("/health/").json()
        assert body["status"] == "healthy"
        assert body["dependencies"] == {"research": "1/1 calls succeeded"}

    def test_ready(self, client_for):
        body = client_for().get("/health/ready").json()
        assert body["ready"] is True
        assert "poster_edit" in body["tasks"]


class TestGenerateFinal:
    def test_edit_strategy(self, client_for, stub_vendor, snapshot, downloads):
        downloads["https://cdn.example/typo.png"] = b"\x89PNG\r\n\x1a\n"
        vendor = stub_vendor(replies=["enhanced scene"], snapshots=[snapshot("succeeded", output="https://x/final.png")])

        response = client_for(openai=vendor).post("/api/generate-final", json={
            "typographyUrl": "https://cdn.example/typo.png",
            "imageDescription": "a sunset over mountains",
            "method": "edit",
        })

        assert response.status_code == 200
        body = response.json()
        assert body["imageUrl"] == "https://x/final.png"
        assert body["kind"] == "composite-image"
        assert body["stages"] == ["typography-download", "prompt-enhancement", "composite"]

    def test_missing_fields(self, client_for):
        response = client_for().post("/api/generate-final", json={"typographyUrl": "https://x/t.png"})
        assert response.status_code == 422

    def test_stage_failure_is_rendered(self, client_for, downloads):
        """
        Test: Responses strategy gets no image back
        How: respond() returns an empty list
        Ensures: 502 with the failing stage and the underlying error type
        """
        downloads["https://cdn.example/typo.png"] = b"\x89PNG\r\n\x1a\n"
        vendor = Mock(spec=OpenAIProvider)
        vendor.respond = AsyncMock(return_value=[])
        vendor.aclose = AsyncMock()

        response = client_for(openai=vendor).post("/api/generate-final", json={
            "typographyUrl": "https://cdn.example/typo.png",
            "imageDescription": "x",
            "method": "responses",
        })

        assert response.status_code == 502
        body = response.json()
        assert body["stage"] == "vision-generation"
        assert body["error_code"] == "NoImageProducedError"
        assert "No image generated in response" in body["error"]


class TestFlavor:
    def test_angles(self, client_for, stub_vendor):
        vendor = stub_vendor(replies=["{}", ANGLES])
        response = client_for(openrouter=vendor).post("/api/flavor", json=FLAVOR)

        assert response.status_code == 200
        body = response.json()
        assert body["attemptsUsed"] == 2
        assert [a["title"] for a in body["angles"]] == ["Angle 0", "Angle 1", "Angle 2"]

    def test_validation_exhausted(self, client_for, stub_vendor):
        vendor = stub_vendor(replies=["no"] * 3)
        response = client_for(openrouter=vendor).post("/api/flavor", json=FLAVOR)

        assert response.status_code == 502
        body = response.json()
        assert body["error"] == "validation exhausted"
        assert body["attempts"] == 3

    def test_outline_survives_image_failure(self, client_for, stub_vendor, snapshot):
        chat = stub_vendor(replies=["The outline", "image prompt"])
        images = stub_vendor(snapshots=[snapshot("failed", error="NSFW")])

        response = client_for(openrouter=chat, replicate=images).post(
            "/api/flavor", json={**FLAVOR, "chosenAngle": "Angle 1"},
        )

        assert response.status_code == 200
        assert response.json()["outline"] == "The outline"
        assert response.json()["imageUrl"] is None


class TestMediaAndWriting:
    def test_animate_requires_image(self, client_for):
        response = client_for().post("/api/animate", json={"prompt": "zoom"})
        assert response.status_code == 422

    def test_animate_timeout_maps_to_504(self, client_for, stub_vendor, snapshot):
        vendor = stub_vendor(snapshots=[snapshot("starting"), snapshot("processing")])
        response = client_for(replicate=vendor).post("/api/animate", json={"imageUrl": "data:image/png;base64,iVBORw0K"})

        assert response.status_code == 504
        assert response.json()["stage"] == "animation"

    def test_edit_image(self, client_for, stub_vendor, snapshot):
        vendor = stub_vendor(snapshots=[snapshot("succeeded", output="https://x/e.png")])
        response = client_for(replicate=vendor).post("/api/edit-image", json={"prompt": "winter", "input_image": "https://x/i.png"})
        assert response.json()["imageUrl"] == "https://x/e.png"

    def test_aroma_unknown_type_is_400(self, client_for, stub_vendor):
        response = client_for(openrouter=stub_vendor()).post("/api/aroma", json={
            "type": "fax", "topic": "t", "keyPoints": ["a"], "tone": "warm", "audience": "all",
        })
        assert response.status_code == 400
        assert response.json()["error_code"] == "invalid_request"

    def test_server_misconfiguration_is_not_a_client_error(self, make_manager, stub_vendor):
        """
        Test: A ValueError raised by configuration, not by the caller
        How: Drop the research task from the loaded config, then call /api/depth
        Ensures: The response is a 500, not a 400 blaming the request
        """
        manager = make_manager(openrouter=stub_vendor(replies=["notes"]))
        del manager.config["tasks"]["research"]
        app = create_app()
        app.dependency_overrides[get_model_manager] = lambda: manager

        response = TestClient(app, raise_server_exceptions=False).post("/api/depth", json={"research_topic": "Grace"})
        assert response.status_code == 500

    def test_upstream_error_is_502(self, client_for, stub_vendor):
        vendor = stub_vendor(replies=[ModelError("rate limited", status_code=429)])
        response = client_for(openrouter=vendor).post("/api/depth", json={"research_topic": "Grace"})

        assert response.status_code == 502
        assert response.json()["details"] == {"upstream_status": 429}

    def test_typography(self, client_for, stub_vendor, snapshot):
        vendor = stub_vendor(snapshots=[snapshot("succeeded", output=["https://i/a.png", "https://i/b.png"])])
        response = client_for(ideogram=vendor).post("/api/generate-typography", json={
            "headline": "Easter", "subHeadline": "He is risen", "style": "trendy",
        })
        assert response.json()["images"] == [{"url": "https://i/a.png"}, {"url": "https://i/b.png"}]


class TestCors:
    PREFLIGHT = {"Origin": "http://localhost:5173", "Access-Control-Request-Method": "POST"}

    def test_dev_origins_only_in_development(self, monkeypatch):
        monkeypatch.delenv("SALT_ENV", raising=False)
        assert TestClient(create_app()).options("/api/depth", headers=self.PREFLIGHT).status_code == 400

        monkeypatch.setenv("SALT_ENV", "development")
        response = TestClient(create_app()).options("/api/depth", headers=self.PREFLIGHT)
        assert response.status_code == 200
        assert response.headers["access-control-allow-origin"] == "http://localhost:5173"


class TestProxyImage:
    def test_streams_remote_image(self, client_for, downloads):
        downloads["https://replicate.delivery/out.webp"] = httpx.Response(
            200, content=b"RIFF....WEBP", headers={"Content-Type": "image/webp"},
        )
        response = client_for().get("/api/proxy-image", params={"url": "https://replicate.delivery/out.webp"})

        assert response.status_code == 200
        assert response.content == b"RIFF....WEBP"
        assert response.headers["content-type"] == "image/webp"
        assert response.headers["access-control-allow-origin"] == "*"

    @pytest.mark.parametrize("params", [{}, {"url": "  "}])
    def test_missing_url(self, client_for, params):
        response = client_for().get("/api/proxy-image", params=params)
        assert response.status_code == 400
        assert response.json()["error_code"] == "invalid_request"

    def test_upstream_status_error(self, client_for):
        response = client_for().get("/api/proxy-image", params={"url": "https://cdn.example/gone.png"})
        assert response.status_code == 502
        assert response.json()["details"] == {"upstream_status": 404}

    def test_upstream_transport_error(self, client_for, downloads):
        downloads["https://cdn.example/down.png"] = httpx.ConnectError("connection refused")
        response = client_for().get("/api/proxy-image", params={"url": "https://cdn.example/down.png"})
        assert response.status_code == 502
        assert "connection refused" in response.json()["error"]
