"""
Settings and logging configuration
"""
import logging
import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_float(name: str, default: float) -> float:
    value = os.environ.get(name)
    if not value:
        return default
    return float(value)


@dataclass(frozen=True)
class Settings:
    """
    Process-wide configuration, read once at startup and shared read-only
    between requests.
    """
    langflow_base_url: str = "http://localhost:7860"
    api_key: Optional[str] = None
    flow_id: Optional[str] = None
    file_component_id: str = "File-hqkLd"
    file_component_field: str = "path"
    upload_dir: Path = Path("uploads")
    max_upload_bytes: int = 10 * 1024 * 1024
    keepalive_interval: float = 30.0
    monitor_interval: float = 3.0
    upstream_timeout: float = 600.0
    validate_flow_on_startup: bool = False
    host: str = "0.0.0.0"
    port: int = 3000

    @classmethod
    def from_env(cls, env_file: Optional[str] = None) -> "Settings":
        """
        Build settings from the environment, loading a .env file first

        Args:
            env_file: Explicit .env path; defaults to dotenv's own lookup

        Returns:
            Frozen Settings instance
        """
        if env_file:
            load_dotenv(env_file)
        else:
            load_dotenv()

        return cls(
            langflow_base_url=os.environ.get("LANGFLOW_BASE_URL", cls.langflow_base_url).rstrip("/"),
            api_key=os.environ.get("API_KEY") or None,
            flow_id=os.environ.get("MAIN_ANALYSIS_FLOW_ID") or None,
            file_component_id=os.environ.get("FILE_COMPONENT_ID", cls.file_component_id),
            file_component_field=os.environ.get("FILE_COMPONENT_FIELD", cls.file_component_field),
            upload_dir=Path(os.environ.get("UPLOAD_DIR", "uploads")),
            max_upload_bytes=int(_env_float("MAX_UPLOAD_MB", 10) * 1024 * 1024),
            keepalive_interval=_env_float("KEEPALIVE_INTERVAL", cls.keepalive_interval),
            monitor_interval=_env_float("MONITOR_INTERVAL", cls.monitor_interval),
            upstream_timeout=_env_float("UPSTREAM_TIMEOUT", cls.upstream_timeout),
            validate_flow_on_startup=_env_bool("VALIDATE_FLOW_ON_STARTUP"),
            host=os.environ.get("HOST", cls.host),
            port=int(os.environ.get("PORT", cls.port)),
        )

    @property
    def api_key_preview(self) -> str:
        if not self.api_key:
            return "✗ Not set"
        return f"✓ Set ({self.api_key[:10]}...)"


def configure_logging(level: int = logging.INFO) -> None:
    """
    Configure Python logging for the relay.

    Idempotent: does nothing if the root logger already has handlers
    (uvicorn and pytest install their own).
    """
    root_logger = logging.getLogger()
    if root_logger.handlers:
        return

    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )

    # Reduce noise
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
