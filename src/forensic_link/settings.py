from __future__ import annotations

from pydantic import Field

try:
    from pydantic_settings import BaseSettings, SettingsConfigDict
except Exception as e:  # pragma: no cover
    raise RuntimeError(
        "pydantic-settings is required. Install with: pip install pydantic-settings"
    ) from e


class ForensicLinkSettings(BaseSettings):
    """Unified configuration for forensic-link.

    Environment variables are prefixed with FORENSIC_LINK_.
    """

    model_config = SettingsConfigDict(env_prefix="FORENSIC_LINK_", extra="ignore")

    # --- Core ---
    log_level: str = Field(default="INFO", description="Python logging level")

    # --- System of record (REST) ---
    api_url: str = Field(default="http://localhost:3000/api/v1")
    api_key: str | None = Field(default=None, description="Sent as X-API-Key when set")
    http_timeout_s: float = Field(default=30.0)
    http_retries: int = Field(default=3, description="Attempts for transient HTTP errors")

    # --- Offline data ---
    snapshot_path: str | None = Field(default=None, description="JSON snapshot file")

    # --- Queries ---
    default_page_size: int = 20
    max_page_size: int = 100
    max_depth: int = Field(default=3, description="Largest neighborhood depth accepted")
    network_min_strength: float = 0.8
    network_limit: int = 50

    # --- HTTP service ---
    bind_host: str = "0.0.0.0"
    bind_port: int = 8090


settings = ForensicLinkSettings()


def configure_logging(level: str | None = None) -> None:
    import logging

    level = (level or settings.log_level or "INFO").upper()
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
