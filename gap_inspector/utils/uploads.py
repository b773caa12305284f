"""
Transient local storage for files on their way to the flow engine
"""
import logging
import random
import re
import time
from pathlib import Path
from typing import Optional

from fastapi import UploadFile

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 1024

ALLOWED_MIME_TYPES = frozenset({
    "text/plain",
    "application/pdf",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "text/markdown",
    "application/json",
})


def temp_name(original_name: str) -> str:
    """Unique local name: `<epoch-ms>-<random>-<basename>`"""
    base = Path(original_name or "upload").name
    base = re.sub(r"[^A-Za-z0-9._-]", "_", base) or "upload"
    return f"{int(time.time() * 1000)}-{random.randint(0, 10**9)}-{base}"


def upload_path(upload_dir: Path, filename: Optional[str]) -> Path:
    """Reserve a fresh temp path in the upload directory"""
    upload_dir.mkdir(parents=True, exist_ok=True)
    return upload_dir / temp_name(filename)


async def save_upload(file: UploadFile, path: Path) -> int:
    """
    Write an incoming multipart file to `path`

    Returns:
        size in bytes
    """
    size = 0
    with open(path, "wb") as out:
        while True:
            chunk = await file.read(CHUNK_SIZE)
            if not chunk:
                break
            out.write(chunk)
            size += len(chunk)
    return size


def discard_upload(path: Path) -> bool:
    """
    Delete a temporary upload. Failures are logged, never raised.

    Returns:
        True if the file was removed
    """
    try:
        path.unlink()
        return True
    except FileNotFoundError:
        logger.warning("Temporary upload already gone: %s", path)
    except OSError as e:
        logger.error("Could not delete temporary upload %s: %s", path, e)
    return False
