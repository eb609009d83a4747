"""Wire serialization for hybrid index requests and responses.

Upsert batches are sent as MessagePack when possible and as JSON otherwise;
the returned content type tells the caller which encoding was used. Search
responses arrive as JSON and are decoded into ``SearchResponse`` records.
"""

import json
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

import msgpack
import structlog

from ..common.metrics import MetricsCollector
from .base import VectorXEncodeError, VectorXValidationError
from .codec import try_decode_metadata
from .models import MetadataEntry, RankedDoc, SearchResponse

logger = structlog.get_logger("hybrid.serialization")

MSGPACK_CONTENT_TYPE = "application/msgpack"
JSON_CONTENT_TYPE = "application/json"
MAX_BATCH_SIZE = 1000


@dataclass(frozen=True)
class EncodedBatch:
    """Serialized batch plus the content type matching its encoding."""
    payload: bytes
    content_type: str
    count: int


class BatchEncoder:
    """Encodes upsert batches, preferring MessagePack over JSON.

    Parameters
    - max_batch_size: Largest batch accepted; larger batches are rejected
    - metrics: Optional collector counting JSON fallbacks
    """

    def __init__(
        self,
        max_batch_size: int = MAX_BATCH_SIZE,
        metrics: Optional[MetricsCollector] = None,
    ):
        self.max_batch_size = max_batch_size
        self.metrics = metrics

    @staticmethod
    def _to_wire(record: Any) -> Any:
        to_wire = getattr(record, "to_wire", None)
        return to_wire() if callable(to_wire) else record

    def encode(self, records: Sequence[Any]) -> EncodedBatch:
        """Encode a batch of records.

        Records exposing ``to_wire()`` are rendered through it; anything else
        is encoded as is.
        """
        if len(records) > self.max_batch_size:
            raise VectorXValidationError(
                f"Cannot insert more than {self.max_batch_size} vectors at a time"
            )

        batch = [self._to_wire(record) for record in records]

        try:
            payload = msgpack.packb(batch, use_bin_type=True, use_single_float=True)
            return EncodedBatch(payload, MSGPACK_CONTENT_TYPE, len(batch))
        except Exception as e:
            logger.warning(
                "MessagePack serialization failed, using JSON fallback",
                count=len(batch),
                error=str(e),
            )
            if self.metrics:
                self.metrics.record_serialization_fallback()

        try:
            payload = json.dumps(batch, allow_nan=False).encode("utf-8")
        except (TypeError, ValueError) as e:
            raise VectorXEncodeError(f"Batch could not be serialized: {e}") from e
        return EncodedBatch(payload, JSON_CONTENT_TYPE, len(batch))


def encode_batch(records: Sequence[Any], max_batch_size: int = MAX_BATCH_SIZE) -> EncodedBatch:
    """Convenience wrapper around ``BatchEncoder.encode``."""
    return BatchEncoder(max_batch_size=max_batch_size).encode(records)


def parse_json_body(raw: Union[bytes, str, Mapping[str, Any]]) -> Dict[str, Any]:
    """Parse a JSON response body into a dict."""
    if isinstance(raw, Mapping):
        return dict(raw)
    try:
        parsed = json.loads(raw)
    except ValueError as e:
        raise VectorXValidationError(f"Response is not valid JSON: {e}") from e
    if not isinstance(parsed, dict):
        raise VectorXValidationError(
            f"Response must be a JSON object, got {type(parsed).__name__}"
        )
    return parsed


def normalize_search_payload(raw: Union[bytes, str, Mapping[str, Any]]) -> Dict[str, Any]:
    """Parse a search response, turning absent or null result lists into ``[]``.

    A result key that is present with any other non-list value is left as is
    for ``validate_input`` to reject.
    """
    data = parse_json_body(raw)
    for key in ("dense_results", "sparse_results"):
        if data.get(key) is None:
            data[key] = []
    return data


def _decode_ranked(entries: Sequence[Mapping[str, Any]], include_vectors: bool) -> List[RankedDoc]:
    docs = []
    for entry in entries:
        vector = None
        if include_vectors and entry.get("vector") is not None:
            vector = [float(component) for component in entry["vector"]]
        docs.append(RankedDoc(
            id=str(entry["id"]),
            score=float(entry["score"]),
            rank=int(entry["rank"]),
            vector=vector,
        ))
    return docs


def decode_search_response(
    raw: Union[bytes, str, Mapping[str, Any]],
    include_vectors: bool = False,
    metrics: Optional[MetricsCollector] = None,
) -> SearchResponse:
    """Decode a ``search_separate`` response.

    Vectors are kept only when ``include_vectors`` is set. Metadata that
    cannot be decoded becomes an empty mapping for that entry alone.
    """
    data = normalize_search_payload(raw)

    try:
        dense_results = _decode_ranked(data["dense_results"], include_vectors)
        sparse_results = _decode_ranked(data["sparse_results"], include_vectors)
    except (KeyError, TypeError, ValueError) as e:
        raise VectorXValidationError(f"Malformed search result entry: {e!r}") from e

    metadata = []
    for position, entry in enumerate(data.get("metadata") or []):
        if not isinstance(entry, Mapping) or "id" not in entry:
            raise VectorXValidationError(f"metadata[{position}] missing required key: id")
        doc_id = str(entry["id"])
        result = try_decode_metadata(entry.get("meta"))
        if not result.ok:
            logger.warning("Failed to decode metadata", doc_id=doc_id, error=result.error)
            if metrics:
                metrics.record_metadata_decode_failure()
        metadata.append(MetadataEntry(id=doc_id, meta=result.value))

    return SearchResponse(
        dense_results=dense_results,
        sparse_results=sparse_results,
        metadata=metadata,
    )
