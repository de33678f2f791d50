"""이미지 업로드 서비스 테스트"""
import pytest
from botocore.exceptions import ClientError
from fastapi import HTTPException

from app.modules.uploads.service import UploadService, file_extension, sanitize_filename, validate_image
from app.modules.uploads.storage import get_storage


class _FakeStorage:
    def __init__(self, error=None, delete_ok=True):
        self.error = error
        self.delete_ok = delete_ok
        self.keys = []

    def upload_file(self, content, key, content_type=None, bucket=None):
        if self.error:
            raise self.error
        self.keys.append(key)
        return f"https://cdn.example.com/{bucket or 'uploads'}/{key}"

    def delete_file(self, key, bucket=None):
        return self.delete_ok


def _client_error(message):
    return ClientError({"Error": {"Code": "NoSuchBucket", "Message": message}}, "PutObject")


@pytest.mark.parametrize("content_type, size", [("application/pdf", 10), ("image/png", 0), ("image/png", 5 * 1024 * 1024 + 1)])
def test_validate_image_rejects(content_type, size):
    with pytest.raises(HTTPException) as exc:
        validate_image(content_type, size)
    assert exc.value.status_code == 400


def test_filename_helpers():
    assert sanitize_filename("../../내 사진.png") == "____.png"
    assert sanitize_filename(None) == "upload"
    assert file_extension("photo.JPG", "image/jpeg") == "jpg"
    assert file_extension(None, "image/webp") == "webp"


def test_upload_image_builds_key_and_thumbnail():
    storage = _FakeStorage()
    result = UploadService(storage).upload_image("user-1", b"img", "a.png", "image/png")

    assert result["path"].split("/")[2].startswith("user-1_")
    assert result["path"].endswith(".png")
    assert result["thumbnail_url"] == f"{result['url']}?width=320&height=240&resize=cover"
    assert result["size"] == 3


def test_upload_missing_bucket_is_500():
    service = UploadService(_FakeStorage(error=_client_error("The specified bucket does not exist")))
    with pytest.raises(HTTPException) as exc:
        service.upload_image("user-1", b"img", "a.png", "image/png")
    assert exc.value.detail == "Storage bucket is not configured"


def test_delete_requires_own_path():
    service = UploadService(_FakeStorage())
    with pytest.raises(HTTPException) as exc:
        service.delete_image("user-1", "2025/1/user-2_1.png")
    assert exc.value.status_code == 403
    assert service.delete_image("user-1", "2025/1/user-1_1.png") == {"message": "Image deleted"}


def test_upload_route(client_factory, supabase):
    from app.main import app

    storage = _FakeStorage()
    client = client_factory()
    app.dependency_overrides[get_storage] = lambda: storage

    response = client.post("/api/v1/upload", files={"file": ("a.webp", b"webp-bytes", "image/webp")})

    assert response.status_code == 200
    assert response.json()["type"] == "image/webp"
    assert storage.keys == [response.json()["path"]]
