"""Dense-only index handle.

Vectors are sent as positional MessagePack records
``[id, meta, filter, norm, vector]`` with deflate-compressed metadata.
"""

from typing import Any, Dict, List, Mapping, Optional, Sequence
from urllib.parse import quote

import numpy as np
import structlog

from .common.config import VectorXConfig
from .common.metrics import MetricsCollector
from .hybrid.base import IndexParams, VectorXValidationError
from .hybrid.codec import normalize, to_dense_vector, zip_metadata
from .hybrid.serialization import BatchEncoder
from .transport import ServiceTransport

logger = structlog.get_logger("index")


class Index:
    """Handle on one dense-only index."""

    def __init__(
        self,
        name: str,
        transport: ServiceTransport,
        params: IndexParams,
        config: Optional[VectorXConfig] = None,
        metrics: Optional[MetricsCollector] = None,
    ):
        self.name = name
        self.transport = transport
        self.params = params
        self.config = config or VectorXConfig()
        self.encoder = BatchEncoder(
            max_batch_size=self.config.max_batch_size,
            metrics=metrics,
        )

    def _build_record(self, position: int, item: Mapping[str, Any]) -> List[Any]:
        if not isinstance(item, Mapping):
            raise VectorXValidationError(f"Record {position} must be a mapping")

        vector = to_dense_vector(item.get("vector", []))
        if len(vector) != self.params.dimension:
            raise VectorXValidationError(
                f"Vector dimension mismatch: expected {self.params.dimension}, got {len(vector)}"
            )

        normalized = normalize(vector)

        return [
            str(item.get("id", "")),
            zip_metadata(item.get("meta")),
            dict(item.get("filter") or {}),
            float(np.float32(normalized.norm)),
            np.asarray(normalized.vector, dtype=np.float32).tolist(),
        ]

    def upsert(self, records: Sequence[Mapping[str, Any]]) -> str:
        """Insert or replace vectors; records are ``{"id", "vector", "meta", "filter"}``."""
        if len(records) > self.config.max_batch_size:
            raise VectorXValidationError(
                f"Cannot insert more than {self.config.max_batch_size} vectors at a time"
            )

        batch = [self._build_record(position, item) for position, item in enumerate(records)]
        encoded = self.encoder.encode(batch)

        response = self.transport.request(
            "POST",
            f"index/{quote(self.name, safe='')}/vector/insert",
            operation="index_upsert",
            content=encoded.payload,
            content_type=encoded.content_type,
        )
        logger.info("Vectors inserted", index_name=self.name, count=encoded.count)
        return response.text

    def describe(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "space_type": self.params.space_type,
            "dimension": self.params.dimension,
            "count": self.params.total_elements,
            "precision": self.params.precision,
            "M": self.params.m,
        }
