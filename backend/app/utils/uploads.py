"""Persist uploaded images under settings.UPLOAD_DIR and hand back their public URL."""
import logging
import uuid
from pathlib import Path

from fastapi import HTTPException, UploadFile, status

from app.core.config import settings

logger = logging.getLogger(__name__)

UPLOAD_URL_PREFIX = "/uploads"

ALLOWED_EXTENSIONS = {".jpg", ".jpeg", ".png", ".gif", ".webp"}

CONTENT_TYPE_EXTENSIONS = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "image/gif": ".gif",
    "image/webp": ".webp",
}


def _pick_extension(file: UploadFile) -> str:
    suffix = Path(file.filename or "").suffix.lower()
    if suffix in ALLOWED_EXTENSIONS:
        return suffix
    return CONTENT_TYPE_EXTENSIONS.get(file.content_type or "", ".img")


async def save_image(file: UploadFile) -> str:
    """
    Validate and store an uploaded image, returning its URL path.

    Raises HTTPException(400) for non-image content and HTTPException(413)
    for files larger than settings.MAX_UPLOAD_BYTES.
    """
    if not (file.content_type or "").startswith("image/"):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Please upload an image file (JPEG, PNG, GIF, WebP).",
        )

    contents = await file.read()
    if len(contents) > settings.MAX_UPLOAD_BYTES:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"Image must be {settings.MAX_UPLOAD_BYTES // (1024 * 1024)}MB or smaller.",
        )
    if not contents:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Uploaded file is empty.")

    upload_dir = Path(settings.UPLOAD_DIR)
    upload_dir.mkdir(parents=True, exist_ok=True)
    filename = f"{uuid.uuid4().hex}{_pick_extension(file)}"
    (upload_dir / filename).write_bytes(contents)

    logger.info(f"Stored upload {file.filename!r} as {filename} ({len(contents)} bytes)")
    return f"{UPLOAD_URL_PREFIX}/{filename}"


def discard_image(image_url: str) -> None:
    """Remove a file stored by save_image(); unknown or foreign URLs are ignored."""
    prefix = f"{UPLOAD_URL_PREFIX}/"
    if not image_url.startswith(prefix):
        return
    path = Path(settings.UPLOAD_DIR) / Path(image_url[len(prefix):]).name
    path.unlink(missing_ok=True)
    logger.info(f"Discarded upload {path.name}")
