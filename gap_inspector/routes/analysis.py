"""
Analysis endpoints
"""
import logging
import time
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, StreamingResponse
from starlette.background import BackgroundTask

from gap_inspector.config import Settings
from gap_inspector.dependencies import get_settings, make_client, require_api_key, require_flow_id
from gap_inspector.errors import RelayError
from gap_inspector.models.requests import AnalyzeRequest
from gap_inspector.services.langflow_client import UpstreamError
from gap_inspector.services.stream_relay import AnalysisStream, ndjson_lines
from gap_inspector.utils.query import build_analysis_query
from gap_inspector.utils.report import extract_output_text
from gap_inspector.utils.sections import parse_sections

logger = logging.getLogger(__name__)

router = APIRouter()

NDJSON_MEDIA_TYPE = "application/x-ndjson"


def new_session_id() -> str:
    return f"analysis_{int(time.time() * 1000)}"


def file_tweaks(settings: Settings, file_path: Optional[str]) -> Optional[Dict[str, Any]]:
    """Component override attaching an uploaded file to the flow's File component"""
    if not file_path:
        return None
    return {settings.file_component_id: {settings.file_component_field: [file_path]}}


def resolve_input_value(body: AnalyzeRequest) -> str:
    input_value = (body.input_value or "").strip()
    if not input_value and body.github_url:
        input_value = build_analysis_query(
            body.github_url,
            confluence_url=body.confluence_url,
            branch_name=body.branch_name,
            instructions=body.instructions,
            has_file=bool(body.file_path),
        )
    if not input_value:
        raise RelayError(400, "input_value is required")
    return input_value


@router.post("/api/analyze")
async def analyze(
    request: Request,
    body: Optional[AnalyzeRequest] = None,
    stream: bool = False,
    api_key: str = Depends(require_api_key),
    settings: Settings = Depends(get_settings),
):
    """
    Run the analysis flow

    With ?stream=true the answer is relayed as NDJSON events
    (start, keepalive, add_message, token, end | error); otherwise one JSON
    body with the full upstream payload is returned.
    """
    logger.info("🔍 Running requirement analysis...")

    if body is None:
        body = AnalyzeRequest()
    input_value = resolve_input_value(body)
    flow_id = require_flow_id(settings)
    session_id = body.session_id or new_session_id()
    tweaks = file_tweaks(settings, body.file_path)

    logger.info("  Query: %s...", input_value[:150])
    if body.file_path:
        logger.info("  ✓ File path added to tweaks: %s", body.file_path)

    client = make_client(request, settings, api_key)

    if stream:
        relay = AnalysisStream(
            client,
            flow_id,
            input_value,
            session_id,
            tweaks=tweaks,
            keepalive_interval=settings.keepalive_interval,
        )
        try:
            await relay.open()
        except UpstreamError as e:
            await relay.aclose()
            logger.error("✗ Analysis error: %s", e.message)
            return JSONResponse(
                status_code=500,
                content={"error": "Analysis failed", "details": e.details},
            )

        return StreamingResponse(
            ndjson_lines(relay),
            media_type=NDJSON_MEDIA_TYPE,
            headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
            background=BackgroundTask(relay.aclose),
        )

    logger.info("🚀 Running main analysis flow...")
    start_time = time.monotonic()
    try:
        async with client:
            response = await client.run(flow_id, input_value, session_id, tweaks)
    except UpstreamError as e:
        logger.error("✗ Analysis error: %s", e.message)
        raise RelayError(500, "Analysis failed", e.details) from e

    elapsed_ms = int((time.monotonic() - start_time) * 1000)
    logger.info("✓ Analysis completed (%dms)", elapsed_ms)

    return {
        "success": True,
        "session_id": session_id,
        "elapsed_ms": elapsed_ms,
        "response": response,
        "sections": parse_sections(extract_output_text(response)).to_dict(),
    }
