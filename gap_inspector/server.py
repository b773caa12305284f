"""
Main server file that combines the API and static file serving
"""
import os

import uvicorn
from fastapi.responses import FileResponse
from fastapi.staticfiles import StaticFiles

from gap_inspector.api import create_app
from gap_inspector.config import Settings, configure_logging

configure_logging()
settings = Settings.from_env()
app = create_app(settings)

# Mount static files directory
static_dir = os.path.join(os.path.dirname(__file__), "static")
if os.path.exists(static_dir):
    app.mount("/static", StaticFiles(directory=static_dir), name="static")

    # Serve index.html at /app
    @app.get("/app", response_class=FileResponse)
    async def serve_app():
        """Serve the frontend application"""
        return os.path.join(static_dir, "index.html")


def main() -> None:
    uvicorn.run(app, host=settings.host, port=settings.port, log_level="info")


if __name__ == "__main__":
    main()
