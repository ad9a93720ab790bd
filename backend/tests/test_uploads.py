"""Image upload and public file serving, with an in-memory storage adapter."""
import os
from unittest.mock import patch

import pytest

from dependencies import get_storage
from server import app
from services.storage_adapter import (
    StorageAdapter,
    StorageError,
    StoredFile,
    StoredFileNotFoundError,
    UnsupportedFileTypeError,
    build_upload_path,
)

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32


class _MemoryStorage(StorageAdapter):
    def __init__(self, fail=False):
        self.files = {}
        self.fail = fail

    async def upload_file(self, path, data, content_type, original_name, uploaded_by=None):
        if self.fail:
            raise StorageError("bucket unavailable")
        stored = StoredFile(path, original_name, content_type, len(data), uploaded_by)
        self.files[path] = (data, stored)
        return stored

    async def download_file(self, path):
        if path not in self.files:
            raise StoredFileNotFoundError(path)
        return self.files[path]


@pytest.fixture
def storage():
    return _MemoryStorage()


@pytest.fixture
def upload_client(client, storage):
    app.dependency_overrides[get_storage] = lambda: storage
    return client


class TestUpload:
    def test_requires_auth(self, upload_client):
        response = upload_client.post("/api/upload", files={"file": ("a.png", PNG_BYTES, "image/png")})
        assert response.status_code == 401

    def test_upload_image(self, upload_client, make_user, storage):
        user, headers = make_user()
        with patch.dict(os.environ, {"PUBLIC_API_URL": "https://api.folio.example.com"}):
            response = upload_client.post(
                "/api/upload",
                files={"file": ("avatar.PNG", PNG_BYTES, "image/png")},
                headers=headers,
            )
        assert response.status_code == 200
        body = response.json()
        assert body["originalName"] == "avatar.PNG"
        assert body["size"] == len(PNG_BYTES)
        assert body["type"] == "image/png"
        assert body["fileName"].endswith(".png")
        assert body["url"] == f"https://api.folio.example.com/api/files/{user['user_id']}/{body['fileName']}"
        assert list(storage.files) == [f"{user['user_id']}/{body['fileName']}"]

    def test_non_image_rejected(self, upload_client, make_user, storage):
        _, headers = make_user()
        response = upload_client.post(
            "/api/upload",
            files={"file": ("notes.pdf", b"%PDF-1.4", "application/pdf")},
            headers=headers,
        )
        assert response.status_code == 400
        assert storage.files == {}

    def test_missing_file_rejected(self, upload_client, make_user):
        _, headers = make_user()
        response = upload_client.post("/api/upload", headers=headers)
        assert response.status_code == 400

    def test_storage_failure_is_500(self, client, make_user):
        app.dependency_overrides[get_storage] = lambda: _MemoryStorage(fail=True)
        _, headers = make_user()
        response = client.post(
            "/api/upload",
            files={"file": ("a.jpg", b"jpeg-bytes", "image/jpeg")},
            headers=headers,
        )
        assert response.status_code == 500


class TestServeFile:
    def test_uploaded_file_is_public(self, upload_client, make_user):
        user, headers = make_user()
        body = upload_client.post(
            "/api/upload",
            files={"file": ("hero.webp", b"webp-bytes", "image/webp")},
            headers=headers,
        ).json()
        response = upload_client.get(f"/api/files/{user['user_id']}/{body['fileName']}")
        assert response.status_code == 200
        assert response.content == b"webp-bytes"
        assert response.headers["content-type"] == "image/webp"

    def test_missing_file_is_404(self, upload_client):
        assert upload_client.get("/api/files/someone/nothing.png").status_code == 404


class TestUploadPath:
    def test_owner_scoped_with_extension(self):
        path = build_upload_path("u1", "photo.JPG", "image/jpeg")
        owner, name = path.split("/")
        assert owner == "u1"
        assert name.endswith(".jpg")

    def test_extension_from_mime_when_filename_has_none(self):
        assert build_upload_path("u1", "blob", "image/gif").endswith(".gif")

    def test_rejects_other_types(self):
        with pytest.raises(UnsupportedFileTypeError):
            build_upload_path("u1", "x.svg", "image/svg+xml")
