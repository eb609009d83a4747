"""Reciprocal Rank Fusion of dense and sparse search results."""

import numbers
from typing import Any, Dict, List, Mapping, Optional, Sequence

import structlog

from .base import VectorXValidationError
from .models import FusedResult, MetadataEntry, RankedDoc

logger = structlog.get_logger("hybrid.fusion")

RANKED_DOC_KEYS = ("id", "score", "rank")


def _validate_ranked_list(name: str, results: Any) -> None:
    if not isinstance(results, list):
        raise VectorXValidationError(f"{name} must be a list")

    for position, doc in enumerate(results):
        if not isinstance(doc, Mapping):
            raise VectorXValidationError(f"{name}[{position}] must be a map")
        for key in RANKED_DOC_KEYS:
            if key not in doc:
                raise VectorXValidationError(f"{name}[{position}] missing required key: {key}")
        rank = doc["rank"]
        if isinstance(rank, bool) or not isinstance(rank, numbers.Integral):
            raise VectorXValidationError(f"{name}[{position}] rank must be an integer")
        score = doc["score"]
        if isinstance(score, bool) or not isinstance(score, numbers.Real):
            raise VectorXValidationError(f"{name}[{position}] score must be a number")


def validate_input(
    dense_results: Any,
    sparse_results: Any,
    metadata: Optional[Any] = None,
) -> None:
    """Check the raw result lists before fusion.

    Dense and sparse entries need ``id``, ``score`` and ``rank``; metadata
    entries need ``id``. The first problem found raises
    ``VectorXValidationError``; nothing is silently dropped.
    """
    _validate_ranked_list("dense_results", dense_results)
    _validate_ranked_list("sparse_results", sparse_results)

    if metadata is None:
        return
    if not isinstance(metadata, list):
        raise VectorXValidationError("metadata must be a list")
    for position, entry in enumerate(metadata):
        if not isinstance(entry, Mapping):
            raise VectorXValidationError(f"metadata[{position}] must be a map")
        if "id" not in entry:
            raise VectorXValidationError(f"metadata[{position}] missing required key: id")


class ReciprocalRankFusion:
    """Reciprocal Rank Fusion (RRF) algorithm.

    Each list contributes ``1 / (k + rank)`` for the documents it contains;
    a document missing from a list gets nothing from it.
    """

    def __init__(self, k: int = 60):
        if k < 0:
            raise VectorXValidationError(f"rrf_k must be >= 0, got {k}")
        self.k = k

    def _contribution(self, rank: Optional[int]) -> float:
        if rank is None:
            return 0.0
        denominator = self.k + rank
        if denominator <= 0:
            return 0.0
        return 1.0 / denominator

    def fuse_results(
        self,
        dense_results: Sequence[RankedDoc],
        sparse_results: Sequence[RankedDoc],
        metadata: Optional[Sequence[MetadataEntry]] = None,
        include_vectors: bool = True,
    ) -> List[FusedResult]:
        """Fuse dense and sparse rankings into one deduplicated list."""

        # Last occurrence wins when an id is repeated within a list
        dense_map: Dict[str, RankedDoc] = {doc.id: doc for doc in dense_results}
        sparse_map: Dict[str, RankedDoc] = {doc.id: doc for doc in sparse_results}

        meta_map = {entry.id: entry.meta for entry in metadata or []}

        all_ids = set(dense_map) | set(sparse_map)

        fused_results = []
        for doc_id in all_ids:
            dense_doc = dense_map.get(doc_id)
            sparse_doc = sparse_map.get(doc_id)
            dense_rank = dense_doc.rank if dense_doc else None
            sparse_rank = sparse_doc.rank if sparse_doc else None

            rrf_score = self._contribution(dense_rank) + self._contribution(sparse_rank)

            # Prefer the dense vector when the document is in both lists
            vector = None
            if include_vectors:
                vector = dense_doc.vector if dense_doc else sparse_doc.vector

            fused_results.append(FusedResult(
                id=doc_id,
                rrf_score=rrf_score,
                dense_rank=dense_rank or 0,
                sparse_rank=sparse_rank or 0,
                meta=dict(meta_map.get(doc_id, {})),
                vector=vector,
            ))

        fused_results.sort(key=lambda result: (-result.rrf_score, result.id))

        logger.debug(
            "RRF fusion completed",
            dense_count=len(dense_results),
            sparse_count=len(sparse_results),
            fused_count=len(fused_results),
            k_parameter=self.k,
        )

        return fused_results


def fuse(
    dense_results: Sequence[RankedDoc],
    sparse_results: Sequence[RankedDoc],
    metadata: Optional[Sequence[MetadataEntry]] = None,
    k: int = 60,
    include_vectors: bool = True,
) -> List[FusedResult]:
    """Fuse two rankings with RRF; see ``ReciprocalRankFusion``."""
    return ReciprocalRankFusion(k=k).fuse_results(
        dense_results, sparse_results, metadata, include_vectors=include_vectors
    )
