"""Hybrid index handle: upsert, separate dense/sparse search, and RRF fusion.

A search issues one ``search_separate`` request that returns the dense and
sparse rankings independently; the two are merged client-side with
Reciprocal Rank Fusion and hydrated with the decoded metadata.
"""

import time
from typing import Any, Dict, List, Mapping, Optional, Sequence
from urllib.parse import quote

import structlog

from ..common.config import VectorXConfig
from ..common.logging import log_performance
from ..common.metrics import MetricsCollector
from ..transport import ServiceTransport
from .base import HybridIndexParams, VectorXValidationError
from .codec import (
    decode_metadata,
    encode_metadata,
    from_sparse_pairs,
    normalize,
    split_sparse_vector,
    to_dense_vector,
    to_sparse_pairs,
)
from .fusion import ReciprocalRankFusion, validate_input
from .models import FusedResult, HybridRecord
from .serialization import (
    BatchEncoder,
    decode_search_response,
    normalize_search_payload,
    parse_json_body,
)

logger = structlog.get_logger("hybrid.index")


class HybridIndex:
    """Handle on one hybrid (dense + sparse) index.

    Parameters
    - name: Index name
    - transport: Authenticated transport to the service
    - params: Immutable index configuration fetched from the service
    - config: Client limits (batch size, top-k, default ``rrf_k``)
    - metrics: Optional collector
    """

    def __init__(
        self,
        name: str,
        transport: ServiceTransport,
        params: HybridIndexParams,
        config: Optional[VectorXConfig] = None,
        metrics: Optional[MetricsCollector] = None,
    ):
        self.name = name
        self.transport = transport
        self.params = params
        self.config = config or VectorXConfig()
        self.metrics = metrics
        self.encoder = BatchEncoder(
            max_batch_size=self.config.max_batch_size,
            metrics=metrics,
        )

    @property
    def _path(self) -> str:
        return f"hybrid/{quote(self.name, safe='')}"

    def _build_record(self, position: int, item: Mapping[str, Any]) -> HybridRecord:
        if not isinstance(item, Mapping):
            raise VectorXValidationError(f"Record {position} must be a mapping")

        dense_vector = to_dense_vector(item.get("dense_vector", []))
        if self.params.dimension and len(dense_vector) != self.params.dimension:
            raise VectorXValidationError(
                f"Record {position}: dense vector dimension mismatch: "
                f"expected {self.params.dimension}, got {len(dense_vector)}"
            )

        normalized = normalize(dense_vector)
        indices, values = split_sparse_vector(item.get("sparse_vector"))

        return HybridRecord(
            id=str(item.get("id", "")),
            dense_vector=normalized.vector,
            indices=indices,
            values=values,
            dense_norm=normalized.norm,
            meta=encode_metadata(item.get("meta")),
        )

    def upsert(self, records: Sequence[Mapping[str, Any]]) -> str:
        """Insert or replace hybrid vectors.

        Each record is ``{"id", "dense_vector", "sparse_vector": {"indices",
        "values"}, "meta"}``. Every record is converted before anything is
        sent, so one bad record rejects the whole batch.
        """
        if len(records) > self.config.max_batch_size:
            raise VectorXValidationError(
                f"Cannot insert more than {self.config.max_batch_size} vectors at a time"
            )

        batch = [self._build_record(position, item) for position, item in enumerate(records)]
        encoded = self.encoder.encode(batch)

        start_time = time.time()
        self.transport.request(
            "POST",
            f"{self._path}/add",
            operation="hybrid_upsert",
            content=encoded.payload,
            content_type=encoded.content_type,
        )
        log_performance(
            "hybrid_upsert",
            (time.time() - start_time) * 1000,
            index_name=self.name,
            count=encoded.count,
            content_type=encoded.content_type,
        )
        logger.info(
            "Hybrid vectors inserted",
            index_name=self.name,
            count=encoded.count,
            content_type=encoded.content_type,
        )
        return "Hybrid vectors inserted successfully"

    def search(
        self,
        dense_vector: Any,
        sparse_vector: Optional[Mapping[str, Any]] = None,
        sparse_top_k: int = 50,
        dense_top_k: int = 50,
        include_vectors: bool = False,
        rrf_k: Optional[int] = None,
    ) -> List[FusedResult]:
        """Run a hybrid search and return RRF-fused results.

        Parameters
        - dense_vector: Query embedding (list/tuple of numbers or float ndarray)
        - sparse_vector: ``{"indices": [...], "values": [...]}``
        - sparse_top_k / dense_top_k: Per-list result counts, at most ``max_top_k``
        - include_vectors: Return stored dense vectors with each result
        - rrf_k: RRF smoothing constant; defaults to ``config.default_rrf_k``

        Returns
        - ``FusedResult`` list sorted by descending ``rrf_score``
        """
        max_top_k = self.config.max_top_k
        if sparse_top_k > max_top_k:
            raise VectorXValidationError(f"sparse_top_k cannot be greater than {max_top_k}")
        if dense_top_k > max_top_k:
            raise VectorXValidationError(f"dense_top_k cannot be greater than {max_top_k}")
        if sparse_top_k < 0 or dense_top_k < 0:
            raise VectorXValidationError("top_k values must be non-negative")

        fusion = ReciprocalRankFusion(k=self.config.default_rrf_k if rrf_k is None else rrf_k)

        normalized = normalize(to_dense_vector(dense_vector))
        indices, values = split_sparse_vector(sparse_vector)

        request_data = {
            "dense_vector": normalized.vector,
            "sparse_vector": to_sparse_pairs(indices, values),
            "sparse_top_k": sparse_top_k,
            "dense_top_k": dense_top_k,
            "include_vectors": include_vectors,
        }

        start_time = time.time()
        response = self.transport.request(
            "POST",
            f"{self._path}/search_separate",
            operation="hybrid_search",
            json=request_data,
        )

        payload = normalize_search_payload(response.content)
        validate_input(
            payload.get("dense_results"),
            payload.get("sparse_results"),
            payload.get("metadata"),
        )
        decoded = decode_search_response(payload, include_vectors=include_vectors, metrics=self.metrics)

        results = fusion.fuse_results(
            decoded.dense_results,
            decoded.sparse_results,
            decoded.metadata,
            include_vectors=include_vectors,
        )

        if not include_vectors:
            for result in results:
                result.vector = None

        if self.metrics:
            self.metrics.record_fusion(len(results))
        log_performance(
            "hybrid_search",
            (time.time() - start_time) * 1000,
            index_name=self.name,
            fused_count=len(results),
        )
        logger.info(
            "Hybrid search completed",
            index_name=self.name,
            dense_count=len(decoded.dense_results),
            sparse_count=len(decoded.sparse_results),
            fused_count=len(results),
            rrf_k=fusion.k,
        )
        return results

    def get_vector(self, vector_id: str) -> Dict[str, Any]:
        """Fetch one hybrid vector with decoded metadata.

        A list-form ``sparse_vector`` is returned as ``{"indices", "values"}``.
        """
        response = self.transport.request(
            "GET",
            f"{self._path}/vector/{quote(str(vector_id), safe='')}",
            operation="hybrid_get_vector",
        )
        result = parse_json_body(response.content)

        if result.get("meta") is not None:
            result["meta"] = decode_metadata(result["meta"], doc_id=str(vector_id))

        sparse_vector = result.get("sparse_vector")
        if isinstance(sparse_vector, list) and sparse_vector and isinstance(sparse_vector[0], Mapping):
            indices, values = from_sparse_pairs(sparse_vector)
            result["sparse_vector"] = {"indices": indices, "values": values}

        return result

    def delete_vector(self, vector_id: str) -> str:
        self.transport.request(
            "DELETE",
            f"{self._path}/vector/{quote(str(vector_id), safe='')}",
            operation="hybrid_delete_vector",
        )
        logger.info("Hybrid vector deleted", index_name=self.name, vector_id=vector_id)
        return f"Hybrid vector {vector_id} deleted successfully"

    def describe(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "space_type": self.params.space_type,
            "dimension": self.params.dimension,
            "count": self.params.total_elements,
            "precision": self.params.precision,
            "M": self.params.m,
            "vocab_size": self.params.vocab_size,
        }
