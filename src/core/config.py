"""Settings — service identity and upstream location.

Centralized configuration for the event-gateway service.
All settings are loaded from environment variables with the EVENT_GATEWAY_ prefix.

Resilience thresholds (retry bound, failure window, probe interval) are
fixed constants in ``src.resilience`` and intentionally absent here.
"""

from __future__ import annotations

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Event Gateway configuration.

    All fields can be overridden by environment variables prefixed with
    ``EVENT_GATEWAY_``.  For example, ``EVENT_GATEWAY_PORT=9999`` overrides
    the default port.
    """

    # ── Service identity ────────────────────────────────────────────
    SERVICE_NAME: str = "event-gateway"
    SERVICE_VERSION: str = "0.1.0"
    HOST: str = "0.0.0.0"
    PORT: int = 3000

    # ── Upstream event service ──────────────────────────────────────
    EVENT_SERVICE_URL: str = "http://event.com"

    # ── Logging ─────────────────────────────────────────────────────
    LOG_LEVEL: str = "INFO"

    model_config = {
        "env_prefix": "EVENT_GATEWAY_",
    }
