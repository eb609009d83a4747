"""Configuration management for the VectorX client.

This module centralizes environment-driven configuration for the client
(credentials, service endpoints, request limits, logging). It builds on
``pydantic_settings.BaseSettings`` so configuration can be provided via
environment variables, ``.env`` files, or defaults.

Highlights
- Strongly-typed settings with sensible defaults
- One place to discover the ``VECTORX_*`` environment variables
- Limits enforced by the client (batch size, top-k) live here too

Usage
- Pass a config explicitly: ``VectorX(token, config=VectorXConfig())``
- Or read the environment: ``config = get_config()``
"""

from typing import Any, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class VectorXConfig(BaseSettings):
    """Client configuration.

    Parameters are read from the process environment with the ``VECTORX_``
    prefix (``VECTORX_TOKEN``, ``VECTORX_BASE_URL``, ...). Defaults target a
    locally running service.

    Notes
    - ``region_url_template`` is used when the token carries a region segment.
    - Limits are checked client-side before any request is sent.
    """

    model_config = SettingsConfigDict(
        env_prefix="VECTORX_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    # Credentials
    token: Optional[str] = Field(default=None)

    # Endpoints
    base_url: str = Field(default="http://127.0.0.1:8080/api/v1")
    region_url_template: str = Field(default="https://{region}.vectorxdb.ai/api/v1")

    # Transport
    request_timeout: float = Field(default=30.0, gt=0)
    connect_timeout: float = Field(default=10.0, gt=0)

    # Limits
    max_batch_size: int = Field(default=1000, gt=0)
    max_top_k: int = Field(default=256, gt=0)
    default_rrf_k: int = Field(default=60, ge=0)

    # Logging
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="json")

    def region_url(self, region: str) -> str:
        """Build the service URL for a region taken from a credential token."""
        return self.region_url_template.format(region=region)


def get_config(**overrides: Any) -> VectorXConfig:
    """Get client configuration.

    Parameters
    - overrides: Explicit values taking precedence over the environment

    Returns
    - A fresh ``VectorXConfig``; nothing is cached between calls.
    """
    return VectorXConfig(**overrides)

