"""Disk storage for item images uploaded with lost/found reports."""

import os
import uuid
from pathlib import Path

from fastapi import UploadFile
from fastapi.concurrency import run_in_threadpool

from .config import settings
from .errors import ValidationError
from .logger import logger

ALLOWED_EXTENSIONS = {".jpg", ".jpeg", ".png", ".gif", ".webp"}


def upload_dir() -> Path:
    path = Path(settings.UPLOAD_DIR)
    path.mkdir(parents=True, exist_ok=True)
    return path


def _public_url(filename: str) -> str:
    return f"{settings.UPLOAD_URL_PREFIX.rstrip('/')}/{filename}"


def _write_file(path: Path, data: bytes) -> None:
    with open(path, "wb") as fh:
        fh.write(data)


def validate_images(files: list[UploadFile]) -> None:
    """Reject uploads that are too many or not images, before anything is written."""
    if len(files) > settings.MAX_UPLOAD_FILES:
        raise ValidationError(
            f"Too many images: at most {settings.MAX_UPLOAD_FILES} files are allowed",
            details={"provided": len(files), "maximum": settings.MAX_UPLOAD_FILES},
        )
    for file in files:
        suffix = Path(file.filename or "").suffix.lower()
        content_type = file.content_type or ""
        if not content_type.startswith("image/") or suffix not in ALLOWED_EXTENSIONS:
            raise ValidationError(
                "Only image files are allowed",
                details={"filename": file.filename, "content_type": content_type},
            )
        if file.size is not None and file.size > settings.MAX_UPLOAD_SIZE_BYTES:
            raise _too_large(file)


def _too_large(file: UploadFile) -> ValidationError:
    return ValidationError(
        "Image exceeds maximum size",
        details={"filename": file.filename, "maximum_bytes": settings.MAX_UPLOAD_SIZE_BYTES},
    )


async def save_images(files: list[UploadFile]) -> list[str]:
    """Write uploads under UPLOAD_DIR with random names and return their URLs in upload order."""
    validate_images(files)
    target_dir = upload_dir()
    urls: list[str] = []
    try:
        for file in files:
            # Bounded read; the declared size may be missing
            data = await file.read(settings.MAX_UPLOAD_SIZE_BYTES + 1)
            if len(data) > settings.MAX_UPLOAD_SIZE_BYTES:
                raise _too_large(file)
            filename = f"{uuid.uuid4().hex}{Path(file.filename).suffix.lower()}"
            await run_in_threadpool(_write_file, target_dir / filename, data)
            urls.append(_public_url(filename))
    except Exception:
        remove_images(urls)
        raise
    logger.debug(f"Stored {len(urls)} uploaded image(s)")
    return urls


def remove_images(urls: list[str]) -> None:
    """Delete stored files for the given URLs. Missing files are ignored."""
    target_dir = Path(settings.UPLOAD_DIR)
    for url in urls:
        path = target_dir / os.path.basename(url)
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning(f"Could not remove uploaded image {path}: {e}")
