import os
import shutil
import uuid
from pathlib import Path
from typing import Tuple

from fastapi import UploadFile, HTTPException, status
from loguru import logger

from app.core.config import settings


# Define storage location (using Path for OS agnostic handling)
CERTIFICATE_IMG_DIR = Path(settings.static_dir) / "certificates"
CERTIFICATE_URL_PREFIX = "/static/certificates"

# Proof images accepted for a certificate, keyed by MIME type
ALLOWED_IMAGE_TYPES = {
    "image/jpeg": "jpg",
    "image/jpg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
}


def _upload_size(upload_file: UploadFile) -> int:
    if upload_file.size is not None:
        return upload_file.size
    stream = upload_file.file
    stream.seek(0, os.SEEK_END)
    size = stream.tell()
    stream.seek(0)
    return size


def validate_certificate_image(upload_file: UploadFile) -> str:
    """
    Validates type and size of a certificate proof image.
    Returns the file extension to store it under.
    Raises HTTPException if the file is not acceptable.
    """
    ext = ALLOWED_IMAGE_TYPES.get((upload_file.content_type or "").lower())
    if not ext:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Accepted file types: JPEG, JPG, PNG, WEBP."
        )

    max_mb = settings.max_upload_size_bytes // (1024 * 1024)
    if _upload_size(upload_file) > settings.max_upload_size_bytes:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"The file must be at most {max_mb}MB."
        )

    return ext


def save_certificate_image(upload_file: UploadFile, owner_id: uuid.UUID) -> Tuple[str, str]:
    """
    Saves a certificate proof image under the owner's folder in the static
    directory and returns (public_url, storage_path).
    """
    # 1. Validate type and size
    ext = validate_certificate_image(upload_file)

    # 2. Ensure directory exists
    owner_dir = CERTIFICATE_IMG_DIR / str(owner_id)
    os.makedirs(owner_dir, exist_ok=True)

    # 3. Generate unique filename
    unique_name = f"{uuid.uuid4()}.{ext}"
    file_path = owner_dir / unique_name

    try:
        # 4. Write binary stream
        with open(file_path, "wb") as buffer:
            shutil.copyfileobj(upload_file.file, buffer)
    except OSError:
        logger.exception(f"Error saving certificate image for {owner_id}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to store the certificate image."
        )

    # 5. Return Web-Accessible URL and relative storage path
    storage_path = f"certificates/{owner_id}/{unique_name}"
    return f"{settings.public_url}{CERTIFICATE_URL_PREFIX}/{owner_id}/{unique_name}", storage_path


def delete_stored_file(storage_path: str) -> None:
    """Removes a previously stored file; used to undo an upload whose record failed to persist."""
    if not storage_path:
        return
    try:
        (Path(settings.static_dir) / storage_path).unlink(missing_ok=True)
    except OSError:
        logger.warning(f"Could not remove orphaned upload {storage_path}")
