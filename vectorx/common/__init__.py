"""Common utilities shared across the client.

Includes:
- ``config``: Pydantic-based client configuration from environment variables.
- ``logging``: structured logging setup with structlog.
- ``metrics``: Prometheus metrics helpers for client operations.

Import pattern:
- from vectorx.common.config import VectorXConfig
- from vectorx.common.logging import configure_logging
"""
