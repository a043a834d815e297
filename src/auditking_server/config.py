"""Server configuration — reads settings from environment variables.

All settings have sensible defaults for local development.
"""

import os
from dataclasses import dataclass, field

from auditking.constants import OPENAI_BASE_URL, OPENAI_MODEL

# Read at import time so FastAPI Query() defaults can reference them
DEFAULT_PAGE_LIMIT = int(os.getenv("DEFAULT_PAGE_LIMIT", "20"))
MAX_PAGE_LIMIT = int(os.getenv("MAX_PAGE_LIMIT", "100"))


@dataclass(frozen=True)
class ServerSettings:
    """Immutable server configuration read from environment at startup."""

    # Network
    host: str = "0.0.0.0"
    port: int = 8080

    # CORS: comma-separated origins, or "*" for wide-open dev mode
    cors_origins: list[str] = field(default_factory=lambda: ["*"])

    # Starter template directory (None → the templates bundled with the SDK)
    library_dir: str | None = None

    # Logging
    log_level: str = "INFO"

    # AI template import; disabled when no API key is configured
    openai_api_key: str | None = None
    openai_model: str = OPENAI_MODEL
    openai_base_url: str = OPENAI_BASE_URL
    ai_timeout_seconds: float = 60.0

    # Trusted proxy secret; when set, every request that carries
    # X-User-ID must also carry a matching X-Proxy-Secret.
    trusted_proxy_secret: str | None = None


def load_settings() -> ServerSettings:
    """Build settings from ``SERVER_*`` and related environment variables."""
    raw_origins = os.getenv("SERVER_CORS_ORIGINS", "*")
    origins = [o.strip() for o in raw_origins.split(",") if o.strip()]

    return ServerSettings(
        host=os.getenv("SERVER_HOST", "0.0.0.0"),
        port=int(os.getenv("SERVER_PORT", "8080")),
        cors_origins=origins,
        library_dir=os.getenv("SERVER_LIBRARY_DIR") or None,
        log_level=os.getenv("SERVER_LOG_LEVEL", "INFO").upper(),
        openai_api_key=os.getenv("OPENAI_API_KEY") or None,
        openai_model=os.getenv("OPENAI_MODEL", OPENAI_MODEL),
        openai_base_url=os.getenv("OPENAI_BASE_URL", OPENAI_BASE_URL),
        ai_timeout_seconds=float(os.getenv("AI_TIMEOUT_SECONDS", "60")),
        trusted_proxy_secret=os.getenv("TRUSTED_PROXY_SECRET") or None,
    )
