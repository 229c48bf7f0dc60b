import io
from datetime import date, timedelta
from pathlib import Path

import pytest
from fastapi import HTTPException, UploadFile
from starlette.datastructures import Headers

from app.core.config import settings
from app.db.schema import Certificate, utc_now
from app.utils.file_storage import delete_stored_file, save_certificate_image
from app.utils.sanitize import sanitize_optional, sanitize_text


def upload(content: bytes, content_type: str, filename="atestado.png") -> UploadFile:
    return UploadFile(
        file=io.BytesIO(content),
        filename=filename,
        headers=Headers({"content-type": content_type}),
    )


class TestSanitize:
    def test_strips_tags(self):
        assert sanitize_text("<p>Consulta <em>médica</em></p>") == "Consulta médica"

    def test_drops_script_bodies(self):
        assert sanitize_text("<script>alert(1)</script>ok") == "ok"

    def test_non_string(self):
        assert sanitize_text(None) == ""
        assert sanitize_text(42) == ""

    def test_optional_blank_is_none(self):
        assert sanitize_optional(None) is None
        assert sanitize_optional("  <i></i> ") is None
        assert sanitize_optional(" 11 99999-0000 ") == "11 99999-0000"


class TestFileStorage:
    def test_save_and_delete(self, student):
        url, path = save_certificate_image(upload(b"png-bytes", "image/png"), student.id)
        assert path.startswith(f"certificates/{student.id}/")
        assert path.endswith(".png")
        assert url.endswith(path)

        stored = Path(settings.static_dir) / path
        assert stored.read_bytes() == b"png-bytes"

        delete_stored_file(path)
        assert not stored.exists()
        # Already gone
        delete_stored_file(path)

    def test_jpeg_extension(self, student):
        _, path = save_certificate_image(upload(b"jpg", "image/jpeg", "a.jpeg"), student.id)
        assert path.endswith(".jpg")

    def test_rejects_other_types(self, student):
        with pytest.raises(HTTPException) as exc:
            save_certificate_image(upload(b"GIF89a", "image/gif"), student.id)
        assert exc.value.status_code == 400

    def test_rejects_large_files(self, student, monkeypatch):
        monkeypatch.setattr(settings, "max_upload_size_bytes", 4)
        with pytest.raises(HTTPException) as exc:
            save_certificate_image(upload(b"12345", "image/png"), student.id)
        assert exc.value.status_code == 413


class TestTimestamps:
    def test_utc_now_is_timezone_aware(self):
        assert utc_now().utcoffset() == timedelta(0)

    def test_new_records_get_aware_timestamps(self, student):
        cert = Certificate(owner_id=student.id, start_date=date.today(),
                           end_date=date.today(), days_off=1)
        assert cert.created_at.tzinfo is not None
        assert cert.updated_at.tzinfo is not None
