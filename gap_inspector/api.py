"""
FastAPI backend for the Requirement Gap Inspector relay
"""
import logging
import time
from contextlib import asynccontextmanager
from typing import Optional

import httpx
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from gap_inspector import __version__
from gap_inspector.config import Settings
from gap_inspector.errors import register_error_handlers
from gap_inspector.routes import analysis, config, monitor, report, upload
from gap_inspector.services.langflow_client import LangflowClient, UpstreamError, flow_component_ids

logger = logging.getLogger(__name__)

SERVICE_NAME = "Requirement Gap Inspector"


def log_startup(settings: Settings) -> None:
    logger.info("📋 Configuration:")
    logger.info("   Langflow URL: %s", settings.langflow_base_url)
    logger.info("   Main Analysis Flow: %s", settings.flow_id or "✗ Not set")
    logger.info("   File component: %s.%s", settings.file_component_id, settings.file_component_field)
    logger.info("   API Key: %s", settings.api_key_preview)

    if not settings.api_key:
        logger.warning("⚠️  No API_KEY set in environment. API calls will fail.")
        logger.warning("   Please add API_KEY=your-key to .env file")
    if not settings.flow_id:
        logger.warning("⚠️  No MAIN_ANALYSIS_FLOW_ID set in environment.")


async def validate_file_component(settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None) -> bool:
    """
    Check that the configured file component exists in the analysis flow.

    Only logs; a mismatch means uploaded files are ignored by the flow,
    not that the relay cannot start.
    """
    if not (settings.api_key and settings.flow_id):
        return False

    try:
        async with LangflowClient(settings.langflow_base_url, settings.api_key,
                                  timeout=30.0, transport=transport) as client:
            flow = await client.get_flow(settings.flow_id)
    except UpstreamError as e:
        logger.warning("⚠️  Could not fetch flow %s for validation: %s", settings.flow_id, e.message)
        return False

    if settings.file_component_id not in flow_component_ids(flow):
        logger.warning(
            "⚠️  File component %s not found in flow %s; uploaded files will not reach the flow",
            settings.file_component_id, settings.flow_id,
        )
        return False

    logger.info("✓ File component %s found in flow", settings.file_component_id)
    return True


def create_app(
    settings: Optional[Settings] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FastAPI:
    """
    Build the relay application

    Args:
        settings: Configuration; read from the environment when omitted
        transport: httpx transport for upstream calls (tests inject a stub)
    """
    settings = settings or Settings.from_env()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        log_startup(settings)
        if settings.validate_flow_on_startup:
            await validate_file_component(settings, transport)
        yield

    app = FastAPI(
        title=f"{SERVICE_NAME} API",
        description="Relays requirement gap analysis requests to a Langflow flow",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.upstream_transport = transport

    # CORS middleware - allow all origins, the browser UI may be served elsewhere
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        logger.info("→ %s %s", request.method, request.url.path)
        start = time.monotonic()
        response = await call_next(request)
        elapsed = int((time.monotonic() - start) * 1000)
        logger.info("← %s %dms", response.status_code, elapsed)
        return response

    register_error_handlers(app)

    # Include routers
    app.include_router(upload.router, tags=["Upload"])
    app.include_router(analysis.router, tags=["Analysis"])
    app.include_router(monitor.router, tags=["Monitor"])
    app.include_router(config.router, tags=["Config"])
    app.include_router(report.router, tags=["Report"])

    @app.get("/", tags=["Health"])
    async def root():
        """Health check endpoint"""
        return {
            "status": "ok",
            "service": SERVICE_NAME,
            "version": __version__,
        }

    return app
