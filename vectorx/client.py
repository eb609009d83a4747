"""VectorX client entry point.

Parses the credential token, owns the HTTP connection pool, and hands out
index handles built from the service's ``info`` endpoints.
"""

from typing import Optional, Tuple
from urllib.parse import quote

import httpx
import structlog

from .common.config import VectorXConfig
from .common.metrics import MetricsCollector
from .hybrid.base import HybridIndexParams, IndexParams, VectorXTransportError
from .hybrid.index import HybridIndex
from .hybrid.serialization import parse_json_body
from .index import Index
from .transport import ServiceTransport

logger = structlog.get_logger("client")


def parse_token(token: Optional[str], config: VectorXConfig) -> Tuple[Optional[str], str, str]:
    """Split a ``key:secret:region`` token.

    Returns ``(credential, base_url, region)``. With a region segment only
    ``key:secret`` is kept as the credential and the region selects the host;
    shorter tokens are used verbatim against ``config.base_url``.
    """
    if token:
        parts = token.split(":")
        if len(parts) > 2:
            region = parts[2]
            return f"{parts[0]}:{parts[1]}", config.region_url(region), region
    return token, config.base_url, "local"


class VectorX:
    """Client for the VectorX service.

    Parameters
    - token: Credential ``key:secret:region``; falls back to ``config.token``
    - config: Client configuration; read from the environment when omitted
    - http_client: Pre-built ``httpx.Client`` (the caller keeps ownership)
    - metrics: Optional collector shared by all handles

    Use as a context manager, or call ``close()``, to release connections.
    """

    def __init__(
        self,
        token: Optional[str] = None,
        config: Optional[VectorXConfig] = None,
        http_client: Optional[httpx.Client] = None,
        metrics: Optional[MetricsCollector] = None,
    ):
        self.config = config or VectorXConfig()
        self.token, self.base_url, self.region = parse_token(
            token if token is not None else self.config.token,
            self.config,
        )
        self.metrics = metrics

        self._owns_client = http_client is None
        self.http_client = http_client or httpx.Client(
            timeout=httpx.Timeout(
                self.config.request_timeout,
                connect=self.config.connect_timeout,
            ),
        )
        self.transport = ServiceTransport(
            base_url=self.base_url,
            token=self.token,
            http_client=self.http_client,
            metrics=metrics,
        )
        logger.debug("VectorX client created", base_url=self.base_url, region=self.region)

    def _info(self, path: str, operation: str) -> dict:
        response = self.transport.request("GET", path, operation=operation)
        info = parse_json_body(response.content)
        if "dimension" not in info:
            raise VectorXTransportError(
                f"{operation} response is missing 'dimension'",
                status_code=response.status_code,
                body=response.text,
            )
        return info

    def get_hybrid_index(self, name: str) -> HybridIndex:
        """Fetch hybrid index configuration and return a handle."""
        info = self._info(f"hybrid/{quote(name, safe='')}/info", "hybrid_index_info")
        params = HybridIndexParams.from_info(info)
        logger.info(
            "Hybrid index loaded",
            index_name=name,
            dimension=params.dimension,
            vocab_size=params.vocab_size,
        )
        return HybridIndex(name, self.transport, params, config=self.config, metrics=self.metrics)

    def get_index(self, name: str) -> Index:
        """Fetch dense index configuration and return a handle."""
        info = self._info(f"index/{quote(name, safe='')}/info", "index_info")
        params = IndexParams.from_info(info)
        logger.info("Index loaded", index_name=name, dimension=params.dimension)
        return Index(name, self.transport, params, config=self.config, metrics=self.metrics)

    def close(self) -> None:
        if self._owns_client:
            self.http_client.close()

    def __enter__(self) -> "VectorX":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
