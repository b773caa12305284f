"""
FastAPI dependency providers.

Settings and the optional upstream transport live on app.state, set once
by create_app(); routes get them (and a per-request credential) from here.
"""
from typing import Optional

import httpx
from fastapi import Depends, Request

from gap_inspector.config import Settings
from gap_inspector.errors import RelayError
from gap_inspector.services.langflow_client import LangflowClient


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def resolve_api_key(request: Request, settings: Settings) -> Optional[str]:
    """Server key first, then the `x-api-key` header, then `?api_key=`"""
    return settings.api_key or request.headers.get("x-api-key") or request.query_params.get("api_key") or None


def require_api_key(request: Request, settings: Settings = Depends(get_settings)) -> str:
    api_key = resolve_api_key(request, settings)
    if not api_key:
        raise RelayError(401, "API key required")
    return api_key


def require_flow_id(settings: Settings) -> str:
    if not settings.flow_id:
        raise RelayError(500, "Flow ID not configured", "Set MAIN_ANALYSIS_FLOW_ID in the environment")
    return settings.flow_id


def make_client(request: Request, settings: Settings, api_key: str) -> LangflowClient:
    """A fresh upstream client for one request"""
    transport: Optional[httpx.AsyncBaseTransport] = request.app.state.upstream_transport
    return LangflowClient(
        settings.langflow_base_url,
        api_key,
        timeout=settings.upstream_timeout,
        transport=transport,
    )
