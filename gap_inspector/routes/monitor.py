"""
Build monitoring passthrough
"""
import logging

from fastapi import APIRouter, Depends, Request

from gap_inspector.config import Settings
from gap_inspector.dependencies import get_settings, make_client, require_api_key
from gap_inspector.errors import RelayError
from gap_inspector.services.langflow_client import UpstreamError
from gap_inspector.utils.progress import summarize_builds

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/api/monitor/flow/{flow_id}")
async def monitor_flow(
    flow_id: str,
    request: Request,
    api_key: str = Depends(require_api_key),
    settings: Settings = Depends(get_settings),
):
    """
    Current build state of a flow, for progress display only

    Returns:
        builds: Upstream monitor payload, unmodified
        progress: Most recent component and whether it has finished
    """
    try:
        async with make_client(request, settings, api_key) as client:
            builds = await client.get_builds(flow_id)
    except UpstreamError as e:
        logger.warning("⚠️ Monitor request failed for %s: %s", flow_id, e.message)
        raise RelayError(500, "Monitor request failed", e.details) from e

    return {
        "success": True,
        "builds": builds,
        "progress": summarize_builds(builds),
    }
