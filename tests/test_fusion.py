"""Tests for Reciprocal Rank Fusion."""

import pytest

from vectorx.hybrid.base import VectorXValidationError
from vectorx.hybrid.fusion import ReciprocalRankFusion, fuse, validate_input
from vectorx.hybrid.models import MetadataEntry, RankedDoc


def ranked(doc_id, rank, vector=None):
    return RankedDoc(id=doc_id, score=1.0 / rank, rank=rank, vector=vector)


def test_rrf_scores_and_order():
    """Test RRF scores and ordering."""
    dense = [ranked("a", 1), ranked("b", 2)]
    sparse = [ranked("b", 1), ranked("c", 2)]

    results = fuse(dense, sparse, [], k=60)

    assert [r.id for r in results] == ["b", "a", "c"]
    scores = {r.id: r.rrf_score for r in results}
    assert scores["a"] == pytest.approx(1 / 61)
    assert scores["b"] == pytest.approx(1 / 62 + 1 / 61)
    assert scores["c"] == pytest.approx(1 / 62)


def test_rrf_ranks_default_to_zero_when_absent():
    """Test that absent ranks are reported as zero."""
    results = fuse([ranked("a", 1)], [ranked("c", 3)], k=2)
    by_id = {r.id: r for r in results}

    assert (by_id["a"].dense_rank, by_id["a"].sparse_rank) == (1, 0)
    assert (by_id["c"].dense_rank, by_id["c"].sparse_rank) == (0, 3)


def test_rrf_result_count_is_union_of_ids():
    """Test that fusion returns the union of ids."""
    dense = [ranked(f"d{i}", i + 1) for i in range(5)] + [ranked("shared", 6)]
    sparse = [ranked(f"s{i}", i + 1) for i in range(3)] + [ranked("shared", 4)]

    results = fuse(dense, sparse, k=10)

    assert len(results) == 9
    scores = [r.rrf_score for r in results]
    assert scores == sorted(scores, reverse=True)


def test_rrf_ties_break_on_id():
    """Test that equal scores are ordered by id."""
    results = fuse([ranked("z", 1)], [ranked("y", 1)], k=60)
    assert [r.id for r in results] == ["y", "z"]


def test_rrf_empty_inputs():
    """Test fusion of empty inputs."""
    assert fuse([], [], [], k=60) == []


def test_rrf_metadata_hydration():
    """Test metadata hydration of fused results."""
    metadata = [MetadataEntry(id="a", meta={"title": "A"})]
    results = fuse([ranked("a", 1)], [ranked("b", 1)], metadata, k=60)
    by_id = {r.id: r for r in results}

    assert by_id["a"].meta == {"title": "A"}
    assert by_id["b"].meta == {}


def test_rrf_prefers_dense_vector():
    """Test that the dense vector wins when both lists have one."""
    dense = [ranked("a", 1, vector=[1.0, 0.0])]
    sparse = [ranked("a", 2, vector=[0.0, 1.0]), ranked("b", 1, vector=[0.5, 0.5])]

    by_id = {r.id: r for r in fuse(dense, sparse, k=60)}

    assert by_id["a"].vector == [1.0, 0.0]
    assert by_id["b"].vector == [0.5, 0.5]


def test_rrf_strips_vectors_when_not_requested():
    """Test that vectors are stripped when not requested."""
    dense = [ranked("a", 1, vector=[1.0, 0.0])]
    results = fuse(dense, [], k=60, include_vectors=False)

    assert results[0].vector is None
    assert "vector" not in results[0].to_dict()


def test_rrf_zero_denominator_contributes_nothing():
    """Test that a zero denominator contributes nothing."""
    results = fuse([RankedDoc(id="a", score=1.0, rank=0)], [ranked("a", 1)], k=0)
    assert results[0].rrf_score == pytest.approx(1.0)


def test_rrf_rejects_negative_k():
    """Test that a negative k is rejected."""
    with pytest.raises(VectorXValidationError):
        ReciprocalRankFusion(k=-1)


def test_rrf_duplicate_ids_keep_last_rank():
    """Test that the last duplicate in a list wins."""
    results = fuse([ranked("a", 1), ranked("a", 5)], [ranked("b", 2), ranked("b", 3)], k=60)
    by_id = {r.id: r for r in results}

    assert len(results) == 2
    assert by_id["a"].dense_rank == 5
    assert by_id["a"].rrf_score == pytest.approx(1 / 65)
    assert by_id["b"].sparse_rank == 3


def test_validate_input_accepts_well_formed_lists():
    """Test validation of well-formed result lists."""
    validate_input(
        [{"id": "a", "score": 0.5, "rank": 1, "vector": [0.1]}],
        [{"id": "b", "score": 2.0, "rank": 1}],
        [{"id": "a", "meta": ""}],
    )
    validate_input([], [], None)


@pytest.mark.parametrize("dense,sparse,metadata,message", [
    (None, [], None, "dense_results must be a list"),
    ([], {"id": "a"}, None, "sparse_results must be a list"),
    (["a"], [], None, "dense_results[0] must be a map"),
    ([{"id": "a", "score": 1.0}], [], None, "dense_results[0] missing required key: rank"),
    ([], [{"id": "a", "rank": 1}], None, "sparse_results[0] missing required key: score"),
    ([{"id": "a", "score": 1.0, "rank": "1"}], [], None, "rank must be an integer"),
    ([], [], "meta", "metadata must be a list"),
    ([], [], [{"meta": ""}], "metadata[0] missing required key: id"),
])
def test_validate_input_rejects_malformed(dense, sparse, metadata, message):
    """Test validation of malformed result lists."""
    with pytest.raises(VectorXValidationError) as excinfo:
        validate_input(dense, sparse, metadata)
    assert message in str(excinfo.value)
