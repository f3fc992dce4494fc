# =============================================================================
# tests/test_storage.py - Object Storage + Upload Validation
# =============================================================================

import pytest

from roamplan.core.errors import UploadRejectedError, ValidationFailedError
from roamplan.services.storage_service import check_key, validate_image

PNG = b"\x89PNG\r\n\x1a\n" + b"\x00" * 16
JPEG = b"\xff\xd8\xff\xdb" + b"\x00" * 16
WEBP = b"RIFF\x00\x00\x00\x00WEBPVP8 " + b"\x00" * 8


class TestValidateImage:
    @pytest.mark.parametrize("data,content_type,ext", [
        (PNG, "image/png", "png"),
        (JPEG, "image/jpeg", "jpg"),
        (WEBP, "image/webp", "webp"),
        (PNG, "IMAGE/PNG; charset=binary", "png"),
    ])
    def test_accepts_images(self, data, content_type, ext):
        assert validate_image(data, content_type, max_bytes=1024) == ext

    def test_empty(self):
        with pytest.raises(UploadRejectedError) as exc:
            validate_image(b"", "image/png", 1024)
        assert exc.value.status_code == 422

    def test_too_big(self):
        with pytest.raises(UploadRejectedError) as exc:
            validate_image(PNG, "image/png", max_bytes=8)
        assert exc.value.status_code == 413

    def test_disallowed_type(self):
        with pytest.raises(UploadRejectedError) as exc:
            validate_image(b"GIF89a....", "image/gif", 1024)
        assert exc.value.status_code == 415

    def test_spoofed_type(self):
        with pytest.raises(UploadRejectedError) as exc:
            validate_image(b"<svg></svg>", "image/png", 1024)
        assert exc.value.status_code == 415


class TestLocalObjectStorage:
    def test_put_url_delete(self, storage):
        key = "itineraries/1/abc.png"
        storage.put(key, PNG, "image/png")

        assert storage.exists(key)
        assert storage.url(key) == "/static/itineraries/1/abc.png"

        storage.delete(key)
        assert not storage.exists(key)
        # deleting twice is a no-op
        storage.delete(key)

    @pytest.mark.parametrize("key", ["../escape.png", "/etc/passwd", "a/../../b", ""])
    def test_rejects_unsafe_keys(self, key):
        with pytest.raises(ValidationFailedError):
            check_key(key)
