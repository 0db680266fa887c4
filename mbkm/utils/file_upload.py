"""
File Upload Utility - Store uploaded files under settings.upload_dir.

Files are served back by the app's /uploads static mount, so the stored
path is the public URL path (e.g. /uploads/report_3_laporan.pdf).

Max file size: settings.max_upload_mb
"""

import os
import re
from typing import Optional

from fastapi import UploadFile

from mbkm.core.config import get_settings
from mbkm.core.errors import ValidationError
from mbkm.core.logging import get_logger

settings = get_settings()
logger = get_logger(__name__)

ALLOWED_EXTENSIONS = {'.pdf', '.doc', '.docx', '.txt', '.png', '.jpg', '.jpeg', '.csv'}
PUBLIC_PREFIX = "/uploads"


def get_file_extension(filename: str) -> str:
    """Get lowercase file extension."""
    if '.' not in filename:
        return ''
    return '.' + filename.rsplit('.', 1)[1].lower()


def safe_filename(filename: str) -> str:
    """Strip directories and anything outside [A-Za-z0-9._-]."""
    base = os.path.basename(filename.replace("\\", "/"))
    return re.sub(r"[^A-Za-z0-9._-]", "_", base) or "file"


def max_upload_bytes() -> int:
    return settings.max_upload_mb * 1024 * 1024


async def read_upload(file: UploadFile, allowed_extensions: Optional[set] = None) -> bytes:
    """
    Validate and read an uploaded file.

    Raises:
        ValidationError on missing name, bad extension or oversized file
    """
    if not file.filename:
        raise ValidationError("No filename provided", errors={"file": "required"})

    ext = get_file_extension(file.filename)
    allowed = allowed_extensions or ALLOWED_EXTENSIONS
    if ext not in allowed:
        raise ValidationError(
            f"Unsupported file type '{ext}'",
            errors={"file": f"allowed: {', '.join(sorted(allowed))}"}
        )

    content = await file.read()
    if len(content) > max_upload_bytes():
        raise ValidationError(
            f"File too large. Maximum size: {settings.max_upload_mb}MB",
            errors={"file": "too large"}
        )
    return content


def save_upload(content: bytes, stored_name: str) -> str:
    """Write content under upload_dir and return its public path."""
    os.makedirs(settings.upload_dir, exist_ok=True)
    name = safe_filename(stored_name)
    with open(os.path.join(settings.upload_dir, name), "wb") as fh:
        fh.write(content)
    logger.info("Saved upload %s (%d bytes)", name, len(content))
    return f"{PUBLIC_PREFIX}/{name}"


def delete_upload(public_path: Optional[str]) -> None:
    """Remove a file previously returned by save_upload. Missing files are ignored."""
    if not public_path or not public_path.startswith(PUBLIC_PREFIX + "/"):
        return
    path = os.path.join(settings.upload_dir, os.path.basename(public_path))
    try:
        os.remove(path)
        logger.info("Deleted upload %s", path)
    except FileNotFoundError:
        pass
