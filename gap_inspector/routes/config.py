"""
Client configuration endpoint
"""
from fastapi import APIRouter, Depends

from gap_inspector.config import Settings
from gap_inspector.dependencies import get_settings

router = APIRouter()


@router.get("/api/config")
async def get_config(settings: Settings = Depends(get_settings)):
    """Server-side settings the browser needs to address the flow"""
    return {
        "success": True,
        "flow_id": settings.flow_id,
        "langflow_base_url": settings.langflow_base_url,
        "monitor_interval_ms": int(settings.monitor_interval * 1000),
    }
