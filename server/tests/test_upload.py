"""Tests for media uploads and the S3 storage service."""

import pytest
from botocore.stub import Stubber

from tunevault.http_api import upload
from tunevault.storage.s3_service import MEDIA_PROFILES, MediaDeleteError, S3Service


class FakeStorage:
    def __init__(self):
        self.objects = {}
        self.uploads = []

    def upload_media(self, file_data, kind, metadata=None):
        key = f"musicplayer/{MEDIA_PROFILES[kind]['folder']}/{kind}_{len(self.objects)}.{MEDIA_PROFILES[kind]['format']}"
        self.objects[key] = file_data
        self.uploads.append((kind, metadata))
        return {"url": f"https://media.example.com/{key}", "public_id": key, "format": MEDIA_PROFILES[kind]["format"], "bytes": len(file_data)}

    def delete_media(self, key):
        if key not in self.objects:
            raise MediaDeleteError(f"Object not found: {key}")
        del self.objects[key]


@pytest.fixture
def storage(monkeypatch):
    fake = FakeStorage()
    monkeypatch.setattr(upload, "get_s3_service", lambda: fake)
    return fake


class TestUploadRoutes:
    def test_upload_track(self, client, admin, storage) -> None:
        response = client.post(
            "/api/upload/track",
            files={"track": ("drizzle.mp3", b"ID3 fake audio", "audio/mpeg")},
            data={"duration": "181.5"},
            headers=admin["headers"],
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["public_id"].startswith("musicplayer/tracks/")
        assert data["bytes"] == len(b"ID3 fake audio")
        assert storage.uploads == [("audio", {"duration": 181.5})]

    def test_upload_image(self, client, admin, storage) -> None:
        response = client.post(
            "/api/upload/image",
            files={"image": ("cover.png", b"\x89PNG", "image/png")},
            data={"width": "640", "height": "480"},
            headers=admin["headers"],
        )

        assert response.status_code == 200
        assert storage.uploads == [("image", {"width": 640, "height": 480})]

    def test_extension_accepted_without_mime_type(self, client, admin, storage) -> None:
        response = client.post(
            "/api/upload/track",
            files={"track": ("take.flac", b"fLaC", "application/octet-stream")},
            headers=admin["headers"],
        )
        assert response.status_code == 200

    def test_missing_file(self, client, admin, storage) -> None:
        response = client.post("/api/upload/track", data={"duration": "10"}, headers=admin["headers"])

        assert response.status_code == 400
        assert response.json() == {"success": False, "error": "No file uploaded"}

    def test_wrong_type(self, client, admin, storage) -> None:
        response = client.post(
            "/api/upload/image",
            files={"image": ("notes.txt", b"hello", "text/plain")},
            headers=admin["headers"],
        )

        assert response.status_code == 400
        assert response.json()["error"] == "Invalid file type. Only audio and image files are allowed."
        assert storage.uploads == []

    def test_too_large(self, client, admin, storage, monkeypatch) -> None:
        monkeypatch.setattr(upload, "MAX_IMAGE_BYTES", 4)

        response = client.post(
            "/api/upload/image",
            files={"image": ("cover.jpg", b"0123456789", "image/jpeg")},
            headers=admin["headers"],
        )

        assert response.status_code == 400
        assert response.json()["error"] == "File too large. Please upload a smaller file."

    def test_admin_only(self, client, listener, storage) -> None:
        response = client.post(
            "/api/upload/track",
            files={"track": ("drizzle.mp3", b"ID3", "audio/mpeg")},
            headers=listener["headers"],
        )
        assert response.status_code == 403

    def test_delete(self, client, admin, storage) -> None:
        storage.objects["musicplayer/tracks/track_1.mp3"] = b"ID3"

        response = client.delete("/api/upload/musicplayer/tracks/track_1.mp3", headers=admin["headers"])

        assert response.status_code == 200
        assert storage.objects == {}

    def test_delete_unknown(self, client, admin, storage) -> None:
        response = client.delete("/api/upload/musicplayer/tracks/missing.mp3", headers=admin["headers"])

        assert response.status_code == 400
        assert response.json()["error"] == "Failed to delete file from storage"


class TestIsAllowedMedia:
    @pytest.mark.parametrize("filename, content_type", [
        ("a.bin", "audio/ogg"),
        ("a.bin", "image/webp"),
        ("a.M4A", None),
        ("cover.JPEG", ""),
    ])
    def test_allowed(self, filename, content_type) -> None:
        assert upload.is_allowed_media(filename, content_type)

    @pytest.mark.parametrize("filename, content_type", [
        ("a.exe", "application/octet-stream"),
        ("video.mp4", "video/mp4"),
        (None, None),
    ])
    def test_rejected(self, filename, content_type) -> None:
        assert not upload.is_allowed_media(filename, content_type)


@pytest.fixture
def s3(monkeypatch):
    monkeypatch.setenv("S3_ENDPOINT_URL", "https://s3.example.com")
    monkeypatch.setenv("S3_REGION", "us-east-1")
    monkeypatch.setenv("S3_ACCESS_KEY", "test-key")
    monkeypatch.setenv("S3_SECRET_KEY", "test-secret")
    monkeypatch.setenv("S3_BUCKET_NAME", "media")
    monkeypatch.delenv("S3_FOLDER", raising=False)
    service = S3Service()
    with Stubber(service.client) as stubber:
        yield service, stubber


class TestS3Service:
    def test_missing_configuration(self, monkeypatch) -> None:
        monkeypatch.delenv("S3_BUCKET_NAME", raising=False)
        with pytest.raises(ValueError):
            S3Service()

    def test_build_key(self, s3) -> None:
        service, _ = s3
        key = service.build_key("image")
        assert key.startswith("musicplayer/images/image_")
        assert key.endswith(".jpg")

    def test_upload_audio(self, s3) -> None:
        service, stubber = s3
        stubber.add_response("put_object", {})
        stubber.add_response("head_object", {"ContentLength": 4, "Metadata": {"duration": "181", "quality": "auto"}})

        result = service.upload_media(b"ID3!", "audio", metadata={"duration": 181})

        assert result["url"].startswith("https://media.s3.example.com/musicplayer/tracks/track_")
        assert result["bytes"] == 4
        assert result["duration"] == 181
        assert result["format"] == "mp3"
        stubber.assert_no_pending_responses()

    def test_upload_image_without_dimensions(self, s3) -> None:
        service, stubber = s3
        stubber.add_response("put_object", {})
        stubber.add_response("head_object", {"ContentLength": 2, "Metadata": {}})

        result = service.upload_media(b"\xff\xd8", "image")

        assert (result["width"], result["height"]) == (None, None)

    def test_delete(self, s3) -> None:
        service, stubber = s3
        stubber.add_response("head_object", {"ContentLength": 4})
        stubber.add_response("delete_object", {})

        service.delete_media("musicplayer/tracks/track_1.mp3")

        stubber.assert_no_pending_responses()

    def test_delete_missing_object(self, s3) -> None:
        service, stubber = s3
        stubber.add_client_error("head_object", service_error_code="404", http_status_code=404)

        with pytest.raises(MediaDeleteError):
            service.delete_media("musicplayer/tracks/gone.mp3")

    def test_delete_refused(self, s3) -> None:
        service, stubber = s3
        stubber.add_response("head_object", {"ContentLength": 4})
        stubber.add_client_error("delete_object", service_error_code="AccessDenied", http_status_code=403)

        with pytest.raises(MediaDeleteError):
            service.delete_media("musicplayer/tracks/track_1.mp3")
