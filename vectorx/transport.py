"""HTTP plumbing shared by the index handles.

Wraps one ``httpx.Client`` with the service URL and credential, records
request metrics, and turns failed responses into ``VectorXTransportError``.
Retries are left to the caller.
"""

import time
from typing import Any, Optional

import httpx
import structlog

from .common.metrics import MetricsCollector
from .hybrid.base import VectorXTransportError

logger = structlog.get_logger("transport")


class ServiceTransport:
    """Sends authenticated requests to the VectorX service.

    Parameters
    - base_url: Service root, e.g. ``https://us-west.vectorxdb.ai/api/v1``
    - token: Value sent in the ``Authorization`` header
    - http_client: Client owning the connection pool
    - metrics: Optional collector for request counts and latency
    """

    def __init__(
        self,
        base_url: str,
        token: Optional[str],
        http_client: httpx.Client,
        metrics: Optional[MetricsCollector] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.http_client = http_client
        self.metrics = metrics

    def _headers(self, content_type: str) -> dict:
        headers = {"Content-Type": content_type}
        if self.token:
            headers["Authorization"] = self.token
        return headers

    def request(
        self,
        method: str,
        path: str,
        operation: str,
        content: Optional[bytes] = None,
        json: Any = None,
        content_type: str = "application/json",
    ) -> httpx.Response:
        """Send one request and return the response if it succeeded.

        Raises ``VectorXTransportError`` for non-2xx responses and for
        connection-level failures.
        """
        url = f"{self.base_url}/{path.lstrip('/')}"

        start_time = time.time()
        try:
            response = self.http_client.request(
                method,
                url,
                content=content,
                json=json,
                headers=self._headers(content_type),
            )
        except httpx.HTTPError as e:
            duration = time.time() - start_time
            if self.metrics:
                self.metrics.record_request(operation, "error", duration)
            logger.error("Request failed", operation=operation, url=url, error=str(e))
            raise VectorXTransportError(f"{operation} request failed: {e}") from e

        duration = time.time() - start_time
        if self.metrics:
            self.metrics.record_request(operation, str(response.status_code), duration)

        if not response.is_success:
            logger.error(
                "Request returned error status",
                operation=operation,
                url=url,
                status_code=response.status_code,
                body=response.text[:500],
            )
            raise VectorXTransportError(
                f"{operation} request failed",
                status_code=response.status_code,
                body=response.text,
            )

        logger.debug(
            "Request completed",
            operation=operation,
            status_code=response.status_code,
            duration_ms=duration * 1000,
        )
        return response
