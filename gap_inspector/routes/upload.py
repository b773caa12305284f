"""
Upload endpoints
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Request, UploadFile

from gap_inspector.config import Settings
from gap_inspector.dependencies import get_settings, make_client, require_flow_id, resolve_api_key
from gap_inspector.errors import RelayError
from gap_inspector.services.langflow_client import UpstreamError
from gap_inspector.utils.uploads import ALLOWED_MIME_TYPES, discard_upload, save_upload, upload_path

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/api/upload-file")
async def upload_file(
    request: Request,
    file: Optional[UploadFile] = File(None),
    settings: Settings = Depends(get_settings),
):
    """
    Relay a requirements document to the flow's file store

    Returns:
        success: True
        file_path: Upstream storage handle, to be passed to /api/analyze
        original_name: Filename as uploaded
    """
    logger.info("📄 Uploading requirements file...")

    if file is None or not file.filename:
        raise RelayError(400, "No file uploaded")

    local_path = upload_path(settings.upload_dir, file.filename)
    try:
        try:
            size = await save_upload(file, local_path)
        except OSError as e:
            logger.error("✗ Could not store upload locally: %s", e)
            raise RelayError(500, "File upload failed", str(e)) from e

        content_type = file.content_type or ""
        logger.info("  File: %s (%d bytes)", file.filename, size)
        logger.info("  Type: %s", content_type)

        if content_type not in ALLOWED_MIME_TYPES:
            raise RelayError(
                400,
                "Invalid file type",
                "Only txt, pdf, doc, docx, md, and json files are allowed.",
            )
        if size > settings.max_upload_bytes:
            raise RelayError(
                400,
                "File too large",
                f"Maximum upload size is {settings.max_upload_bytes // (1024 * 1024)} MB",
            )

        api_key = resolve_api_key(request, settings)
        if not api_key:
            raise RelayError(401, "API key required")
        flow_id = require_flow_id(settings)

        try:
            async with make_client(request, settings, api_key) as client:
                data = await client.upload_file(flow_id, local_path, file.filename, content_type)
        except UpstreamError as e:
            logger.error("✗ File upload error: %s", e.message)
            raise RelayError(500, "File upload failed", e.details) from e

        logger.info("✓ File uploaded successfully: %s", data["file_path"])
        return {
            "success": True,
            "file_path": data["file_path"],
            "original_name": file.filename,
            "message": "Requirements file uploaded successfully",
        }
    finally:
        discard_upload(local_path)
