"""Value types flowing through the hybrid search pipeline.

None of these outlive a single upsert or search call.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, NamedTuple, Optional

import numpy as np


class NormalizedVector(NamedTuple):
    """A dense vector scaled to unit L2 norm, paired with the original norm."""
    vector: List[float]
    norm: float


class MetadataDecodeResult(NamedTuple):
    """Outcome of decoding a metadata payload.

    ``error`` is ``None`` on success; on failure ``value`` is always empty.
    """
    value: Dict[str, Any]
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class RankedDoc:
    """One entry of the dense-ranked or sparse-ranked service results."""
    id: str
    score: float
    rank: int
    vector: Optional[List[float]] = None


@dataclass
class MetadataEntry:
    """Decoded metadata for one document id."""
    id: str
    meta: Dict[str, Any] = field(default_factory=dict)


@dataclass
class SearchResponse:
    """Decoded ``search_separate`` response."""
    dense_results: List[RankedDoc] = field(default_factory=list)
    sparse_results: List[RankedDoc] = field(default_factory=list)
    metadata: List[MetadataEntry] = field(default_factory=list)


@dataclass
class FusedResult:
    """One document of the fused ranking.

    Ranks are 1-based; ``0`` means the document was absent from that list.
    """
    id: str
    rrf_score: float
    dense_rank: int = 0
    sparse_rank: int = 0
    meta: Dict[str, Any] = field(default_factory=dict)
    vector: Optional[List[float]] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a plain dict; ``vector`` is only present when populated."""
        data = {
            "id": self.id,
            "rrf_score": self.rrf_score,
            "dense_rank": self.dense_rank,
            "sparse_rank": self.sparse_rank,
            "meta": self.meta,
        }
        if self.vector is not None:
            data["vector"] = self.vector
        return data


@dataclass
class HybridRecord:
    """A hybrid vector ready to be sent to ``/hybrid/<name>/add``."""
    id: str
    dense_vector: List[float]
    indices: List[int]
    values: List[float]
    dense_norm: float
    meta: str = ""

    def to_wire(self) -> Dict[str, Any]:
        """Render the record with the field order and precision the service expects."""
        return {
            "id": self.id,
            "dense_vector": np.asarray(self.dense_vector, dtype=np.float32).tolist(),
            "indices": np.asarray(self.indices, dtype=np.int32).tolist(),
            "values": np.asarray(self.values, dtype=np.float32).tolist(),
            "dense_norm": float(np.float32(self.dense_norm)),
            "meta": self.meta,
        }
