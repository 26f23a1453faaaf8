"""
API tests for the predictions proxy and upload routes.
"""

import base64

import pytest
from fastapi.testclient import TestClient

from avatarbooth.api.deps import (
    get_app_settings,
    get_optional_upload_service,
    get_replicate_client,
    get_upload_service,
)
from avatarbooth.core.config import Settings
from avatarbooth.main import create_app
from avatarbooth.services.errors import UploadError, UpstreamError


class FakeUploader:
    def __init__(self, result="https://res.cloudinary.com/demo/a.jpg"):
        self.result = result
        self.calls = []

    async def upload(self, data, mime_type="image/jpeg"):
        self.calls.append((data, mime_type))
        if isinstance(self.result, Exception):
            raise self.result
        return self.result


class BrokenBackend:
    async def create_prediction(self, input):
        raise RuntimeError("boom")

    async def get_prediction(self, prediction_id):
        raise RuntimeError("boom")


@pytest.fixture
def make_client():
    def factory(backend=None, uploader=None):
        app = create_app()
        app.dependency_overrides[get_app_settings] = lambda: Settings(_env_file=None)
        if backend is not None:
            app.dependency_overrides[get_replicate_client] = lambda: backend
        if uploader is not None:
            app.dependency_overrides[get_upload_service] = lambda: uploader
            app.dependency_overrides[get_optional_upload_service] = lambda: uploader
        return TestClient(app)
    return factory


class TestCreatePrediction:

    def test_created(self, make_client, scripted_backend, prediction):
        backend = scripted_backend(prediction("abc", "starting"))
        client = make_client(backend)

        response = client.post("/api/predictions", json={"image": "https://x/img.png"})

        assert response.status_code == 201
        assert response.json()["id"] == "abc"
        assert response.json()["status"] == "starting"
        (sent,) = backend.create_calls
        assert sent["image"] == "https://x/img.png"
        assert sent["negative_prompt"] == "blurry, low quality, distorted, deformed"
        assert sent["num_inference_steps"] == 25
        assert 0 <= sent["seed"] < 1_000_000

    def test_body_overrides_parameters(self, make_client, scripted_backend, prediction):
        backend = scripted_backend(prediction("abc", "starting"))
        client = make_client(backend)

        client.post("/api/predictions", json={"image": "https://x/img.png", "prompt": "anime", "seed": 9})

        (sent,) = backend.create_calls
        assert sent["prompt"] == "anime"
        assert sent["seed"] == 9

    def test_body_key_named_settings(self, make_client, scripted_backend, prediction):
        backend = scripted_backend(prediction("abc", "starting"))
        client = make_client(backend)

        response = client.post("/api/predictions", json={"image": "https://x/img.png", "settings": "vivid"})

        assert response.status_code == 201
        (sent,) = backend.create_calls
        assert sent["settings"] == "vivid"

    def test_data_url_capture_stored_first(self, make_client, scripted_backend, prediction):
        backend = scripted_backend(prediction("abc", "starting"))
        uploader = FakeUploader("https://res.cloudinary.com/demo/capture.jpg")
        client = make_client(backend, uploader)
        capture = "data:image/jpeg;base64," + base64.b64encode(b"jpegbytes").decode()

        response = client.post("/api/predictions", json={"image": capture})

        assert response.status_code == 201
        assert uploader.calls == [(b"jpegbytes", "image/jpeg")]
        (sent,) = backend.create_calls
        assert sent["image"] == "https://res.cloudinary.com/demo/capture.jpg"

    def test_undecodable_capture(self, make_client, scripted_backend, prediction):
        backend = scripted_backend(prediction("abc", "starting"))
        uploader = FakeUploader()
        client = make_client(backend, uploader)

        response = client.post("/api/predictions", json={"image": "data:image/png;base64,not*base64"})

        assert response.status_code == 400
        assert uploader.calls == []
        assert backend.create_calls == []

    def test_capture_upload_failure(self, make_client, scripted_backend, prediction):
        backend = scripted_backend(prediction("abc", "starting"))
        client = make_client(backend, FakeUploader(UploadError("Upload preset not found")))
        capture = "data:image/png;base64," + base64.b64encode(b"png").decode()

        response = client.post("/api/predictions", json={"image": capture})

        assert response.status_code == 502
        assert response.json() == {"detail": "Upload preset not found"}
        assert backend.create_calls == []

    def test_capture_without_upload_service(self, make_client, scripted_backend, prediction):
        backend = scripted_backend(prediction("abc", "starting"))
        capture = "data:image/png;base64," + base64.b64encode(b"png").decode()

        response = make_client(backend).post("/api/predictions", json={"image": capture})

        assert response.status_code == 503
        assert backend.create_calls == []

    @pytest.mark.parametrize("body", [{}, {"image": ""}, {"image": "  "}])
    def test_missing_image(self, make_client, scripted_backend, prediction, body):
        backend = scripted_backend(prediction("abc", "starting"))
        client = make_client(backend)

        response = client.post("/api/predictions", json=body)

        assert response.status_code == 400
        assert response.json() == {"detail": "image is required"}
        assert backend.create_calls == []

    def test_upstream_rejection(self, make_client, scripted_backend):
        client = make_client(scripted_backend(UpstreamError("Invalid token", status_code=401)))

        response = client.post("/api/predictions", json={"image": "https://x/img.png"})

        assert response.status_code == 401
        assert response.json() == {"detail": "Invalid token"}

    def test_upstream_unreachable(self, make_client, scripted_backend):
        client = make_client(scripted_backend(UpstreamError("Image service unreachable")))

        response = client.post("/api/predictions", json={"image": "https://x/img.png"})

        assert response.status_code == 502

    def test_unexpected_failure(self, make_client):
        client = make_client(BrokenBackend())

        response = client.post("/api/predictions", json={"image": "https://x/img.png"})

        assert response.status_code == 500
        assert response.json() == {"detail": "internal server error"}


class TestGetPrediction:

    def test_current_body(self, make_client, scripted_backend, prediction):
        backend = scripted_backend(
            prediction("abc", "starting"),
            [prediction("abc", "succeeded", output=["https://x/out.png"])],
        )
        client = make_client(backend)

        response = client.get("/api/predictions/abc")

        assert response.status_code == 200
        assert response.json()["status"] == "succeeded"
        assert response.json()["output"] == ["https://x/out.png"]
        assert backend.get_calls == ["abc"]

    def test_failed_without_error_is_200(self, make_client, scripted_backend, prediction):
        backend = scripted_backend(prediction("abc", "starting"), [prediction("abc", "failed")])
        client = make_client(backend)

        response = client.get("/api/predictions/abc")

        assert response.status_code == 200
        assert response.json()["status"] == "failed"

    def test_upstream_error_field(self, make_client, scripted_backend, prediction):
        backend = scripted_backend(
            prediction("abc", "starting"),
            [prediction("abc", "failed", error="NSFW content detected")],
        )
        client = make_client(backend)

        response = client.get("/api/predictions/abc")

        assert response.status_code == 500
        assert response.json() == {"detail": "NSFW content detected"}

    def test_upstream_failure(self, make_client, scripted_backend, prediction):
        backend = scripted_backend(
            prediction("abc", "starting"),
            [UpstreamError("Prediction not found", status_code=404)],
        )
        client = make_client(backend)

        response = client.get("/api/predictions/abc")

        assert response.status_code == 500
        assert response.json() == {"detail": "Prediction not found"}

    def test_unexpected_failure(self, make_client):
        response = make_client(BrokenBackend()).get("/api/predictions/abc")

        assert response.status_code == 500
        assert response.json() == {"detail": "internal server error"}

    @pytest.mark.parametrize("path", ["/api/predictions/", "/api/predictions/%20"])
    def test_missing_id(self, make_client, scripted_backend, prediction, path):
        backend = scripted_backend(prediction("abc", "starting"))

        response = make_client(backend).get(path)

        assert response.status_code == 400
        assert response.json() == {"detail": "id is required"}
        assert backend.get_calls == []


class TestUploads:

    def test_upload(self, make_client):
        uploader = FakeUploader()
        client = make_client(uploader=uploader)

        response = client.post("/api/uploads", files={"file": ("me.jpg", b"jpegbytes", "image/jpeg")})

        assert response.status_code == 201
        assert response.json() == {"secure_url": "https://res.cloudinary.com/demo/a.jpg"}
        assert uploader.calls == [(b"jpegbytes", "image/jpeg")]

    def test_rejects_non_images(self, make_client):
        uploader = FakeUploader()
        client = make_client(uploader=uploader)

        response = client.post("/api/uploads", files={"file": ("notes.txt", b"hello", "text/plain")})

        assert response.status_code == 400
        assert uploader.calls == []

    def test_upload_failure(self, make_client):
        client = make_client(uploader=FakeUploader(UploadError("Invalid image file")))

        response = client.post("/api/uploads", files={"file": ("me.png", b"png", "image/png")})

        assert response.status_code == 502
        assert response.json() == {"detail": "Invalid image file"}


class TestServiceInfo:

    def test_root(self, make_client):
        assert make_client().get("/").json()["health"] == "/health"

    def test_health_reports_configuration(self, make_client):
        body = make_client().get("/health").json()

        assert body["status"] in ("healthy", "degraded")
        assert set(body["services"]) == {"replicate", "cloudinary"}
        assert body["polling"]["interval_seconds"] > 0

    def test_clients_not_initialized(self, make_client):
        response = make_client().get("/api/predictions/abc")

        assert response.status_code == 503
