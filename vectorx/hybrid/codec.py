"""Vector and metadata codec.

Helpers shared by the upsert and search paths:
- dense vector conversion and L2 normalization
- sparse vector conversion between ``{indices, values}`` and
  ``[{index, value}]`` forms
- metadata encoding as base64 JSON, or as deflate-compressed JSON for the
  dense-only index

Every function here is pure, so it is safe to call from several threads.
"""

import base64
import binascii
import json
import math
import numbers
import zlib
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

import numpy as np
import structlog

from .base import VectorXValidationError
from .models import MetadataDecodeResult, NormalizedVector

logger = structlog.get_logger("hybrid.codec")

INFLATE_CHUNK_SIZE = 1024
MAX_SPARSE_INDEX = 2 ** 31 - 1

_FLOAT_DTYPES = (np.dtype(np.float32), np.dtype(np.float64))


def _is_real(value: Any) -> bool:
    return isinstance(value, numbers.Real) and not isinstance(value, bool)


def to_dense_vector(value: Any) -> List[float]:
    """Convert a caller-supplied dense vector to a list of float64 values.

    Accepted shapes
    - a list or tuple of real numbers
    - a 1-D ``numpy.ndarray`` with dtype float32 or float64

    Raises ``VectorXValidationError`` for anything else.
    """
    if isinstance(value, np.ndarray):
        if value.ndim != 1:
            raise VectorXValidationError(
                f"Dense vector must be one-dimensional, got shape {value.shape}"
            )
        if value.dtype not in _FLOAT_DTYPES:
            raise VectorXValidationError(
                f"Dense vector array must be float32 or float64, got {value.dtype}"
            )
        return value.astype(np.float64).tolist()

    if isinstance(value, (list, tuple)):
        converted = []
        for position, component in enumerate(value):
            if not _is_real(component):
                raise VectorXValidationError(
                    f"Dense vector component {position} is not a number: {component!r}"
                )
            converted.append(float(component))
        return converted

    raise VectorXValidationError(
        f"Unsupported dense vector type: {type(value).__name__}"
    )


def normalize(vector: Sequence[float]) -> NormalizedVector:
    """Scale a vector to unit L2 norm.

    The sum of squares is accumulated left to right so results are
    reproducible. A zero vector is returned unchanged with norm ``0.0``.
    """
    if len(vector) == 0:
        return NormalizedVector([], 0.0)

    total = 0.0
    for component in vector:
        total += component * component
    norm = math.sqrt(total)

    if norm == 0.0:
        return NormalizedVector(list(vector), 0.0)

    return NormalizedVector([component / norm for component in vector], norm)


def to_sparse_indices(indices: Optional[Sequence[Any]]) -> List[int]:
    """Validate sparse indices: non-negative integers that fit in int32."""
    if indices is None:
        return []
    if isinstance(indices, np.ndarray):
        indices = indices.tolist()
    result = []
    for position, index in enumerate(indices):
        if isinstance(index, bool) or not isinstance(index, numbers.Integral):
            raise VectorXValidationError(
                f"Sparse index {position} is not an integer: {index!r}"
            )
        if index < 0 or index > MAX_SPARSE_INDEX:
            raise VectorXValidationError(
                f"Sparse index {position} out of range: {index}"
            )
        result.append(int(index))
    return result


def to_sparse_values(values: Optional[Sequence[Any]]) -> List[float]:
    if values is None:
        return []
    if isinstance(values, np.ndarray):
        values = values.tolist()
    result = []
    for position, value in enumerate(values):
        if not _is_real(value):
            raise VectorXValidationError(
                f"Sparse value {position} is not a number: {value!r}"
            )
        result.append(float(value))
    return result


def split_sparse_vector(sparse_vector: Optional[Mapping[str, Any]]) -> Tuple[List[int], List[float]]:
    """Extract validated ``indices`` and ``values`` from a sparse vector mapping.

    The two sequences are truncated to their common length.
    """
    if not sparse_vector:
        return [], []
    indices = to_sparse_indices(sparse_vector.get("indices"))
    values = to_sparse_values(sparse_vector.get("values"))
    if len(indices) != len(values):
        logger.debug(
            "Sparse vector lengths differ, truncating",
            indices=len(indices),
            values=len(values),
        )
        size = min(len(indices), len(values))
        indices, values = indices[:size], values[:size]
    return indices, values


def to_sparse_pairs(indices: Sequence[int], values: Sequence[float]) -> List[Dict[str, Any]]:
    """Zip parallel sequences into ``[{index, value}]`` form.

    The longer sequence is silently truncated.
    """
    return [
        {"index": index, "value": value}
        for index, value in zip(indices, values)
    ]


def from_sparse_pairs(pairs: Sequence[Mapping[str, Any]]) -> Tuple[List[int], List[float]]:
    """Split ``[{index, value}]`` records back into parallel sequences.

    Records missing either key are skipped.
    """
    indices: List[int] = []
    values: List[float] = []
    for pair in pairs:
        if "index" in pair and "value" in pair:
            indices.append(int(pair["index"]))
            values.append(float(pair["value"]))
    return indices, values


def _dump_json(record: Mapping[str, Any]) -> bytes:
    return json.dumps(record, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


def _parse_mapping(payload: bytes) -> MetadataDecodeResult:
    try:
        text = payload.decode("utf-8").strip()
    except UnicodeDecodeError as e:
        return MetadataDecodeResult({}, f"metadata is not UTF-8: {e}")

    if not text or text == "null":
        return MetadataDecodeResult({})

    try:
        parsed = json.loads(text)
    except ValueError as e:
        return MetadataDecodeResult({}, f"metadata is not valid JSON: {e}")

    if not isinstance(parsed, dict):
        return MetadataDecodeResult({}, f"metadata is a {type(parsed).__name__}, not an object")
    return MetadataDecodeResult(parsed)


def encode_metadata(record: Optional[Mapping[str, Any]]) -> str:
    """Encode metadata as base64 JSON; empty or missing metadata becomes ``""``."""
    if not record:
        return ""
    try:
        payload = _dump_json(record)
    except (TypeError, ValueError) as e:
        raise VectorXValidationError(f"Metadata is not JSON serializable: {e}") from e
    return base64.b64encode(payload).decode("ascii")


def try_decode_metadata(text: Optional[str]) -> MetadataDecodeResult:
    """Decode base64 JSON metadata, reporting failures instead of raising."""
    if text is None:
        return MetadataDecodeResult({})
    if not isinstance(text, str):
        return MetadataDecodeResult({}, f"metadata is a {type(text).__name__}, not a string")

    text = text.strip()
    if not text:
        return MetadataDecodeResult({})

    try:
        payload = base64.b64decode(text, validate=True)
    except (binascii.Error, ValueError) as e:
        return MetadataDecodeResult({}, f"metadata is not valid base64: {e}")

    return _parse_mapping(payload)


def decode_metadata(text: Optional[str], doc_id: Optional[str] = None) -> Dict[str, Any]:
    """Decode base64 JSON metadata; malformed input yields ``{}``."""
    result = try_decode_metadata(text)
    if not result.ok:
        logger.warning("Failed to decode metadata", doc_id=doc_id, error=result.error)
    return result.value


def zip_metadata(record: Optional[Mapping[str, Any]]) -> bytes:
    """Deflate-compress metadata JSON; empty or missing metadata becomes ``b""``."""
    if not record:
        return b""
    try:
        payload = _dump_json(record)
    except (TypeError, ValueError) as e:
        raise VectorXValidationError(f"Metadata is not JSON serializable: {e}") from e
    return zlib.compress(payload)


def inflate(data: bytes, chunk_size: int = INFLATE_CHUNK_SIZE) -> bytes:
    """Inflate a zlib stream chunk by chunk.

    Stops when the stream ends, or when the decompressor produces nothing
    and has no input left; in the latter case the partial output is returned.
    """
    decompressor = zlib.decompressobj()
    output = bytearray()
    pending = data
    while not decompressor.eof:
        chunk = decompressor.decompress(pending, chunk_size)
        pending = decompressor.unconsumed_tail
        if not chunk and not pending:
            break
        output.extend(chunk)
    return bytes(output)


def try_unzip_metadata(data: Optional[bytes]) -> MetadataDecodeResult:
    if not data:
        return MetadataDecodeResult({})
    try:
        payload = inflate(data)
    except zlib.error as e:
        return MetadataDecodeResult({}, f"metadata is not a zlib stream: {e}")
    return _parse_mapping(payload)


def unzip_metadata(data: Optional[bytes], doc_id: Optional[str] = None) -> Dict[str, Any]:
    """Inverse of ``zip_metadata``; malformed input yields ``{}``."""
    result = try_unzip_metadata(data)
    if not result.ok:
        logger.warning("Failed to unzip metadata", doc_id=doc_id, error=result.error)
    return result.value
