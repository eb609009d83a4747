"""Tests for the VectorX entry point and the dense-only index."""

import msgpack
import pytest

from vectorx.client import VectorX, parse_token
from vectorx.common.config import VectorXConfig
from vectorx.hybrid.base import VectorXTransportError, VectorXValidationError
from vectorx.hybrid.codec import unzip_metadata
from vectorx.hybrid.index import HybridIndex
from vectorx.index import Index

BASE_URL = "http://vectorx.test/api/v1"

HYBRID_INFO = {
    "lib_token": "lib",
    "M": 16,
    "use_fp16": True,
    "dimension": 3,
    "vocab_size": 1000,
    "ef_con": 128,
    "total_elements": 42,
    "space_type": "cosine",
}

INDEX_INFO = {
    "lib_token": "lib",
    "M": 32,
    "use_fp16": False,
    "dimension": 3,
    "ef_con": 128,
    "total_elements": 7,
    "space_type": "cosine",
}


def test_parse_token_with_region():
    """Test token parsing with a region suffix."""
    config = VectorXConfig(base_url=BASE_URL)
    token, base_url, region = parse_token("key:secret:us-west", config)

    assert token == "key:secret"
    assert base_url == "https://us-west.vectorxdb.ai/api/v1"
    assert region == "us-west"


def test_parse_token_without_region():
    """Test token parsing without a region."""
    config = VectorXConfig(base_url=BASE_URL)
    assert parse_token("key:secret", config) == ("key:secret", BASE_URL, "local")
    assert parse_token(None, config) == (None, BASE_URL, "local")


def test_client_uses_region_host(http_client):
    """Test that a regional token selects the regional host."""
    client = VectorX("key:secret:india-west-1", config=VectorXConfig(), http_client=http_client)

    assert client.token == "key:secret"
    assert client.region == "india-west-1"
    assert client.transport.base_url == "https://india-west-1.vectorxdb.ai/api/v1"


def test_client_owns_default_http_client():
    """Test that the client closes the HTTP client it created."""
    with VectorX("key:secret", config=VectorXConfig(base_url=BASE_URL)) as client:
        assert client.http_client is not None
    assert client.http_client.is_closed


def test_get_hybrid_index(client, stub_service):
    """Test fetching a hybrid index handle."""
    stub_service.respond_json(HYBRID_INFO)

    index = client.get_hybrid_index("docs")

    assert isinstance(index, HybridIndex)
    assert stub_service.last_request.url.path == "/api/v1/hybrid/docs/info"
    assert stub_service.last_request.headers["Authorization"] == "key:secret"
    assert index.describe() == {
        "name": "docs",
        "space_type": "cosine",
        "dimension": 3,
        "count": 42,
        "precision": "float16",
        "M": 16,
        "vocab_size": 1000,
    }


def test_get_hybrid_index_not_found(client, stub_service):
    """Test that a missing index raises a transport error."""
    stub_service.respond_text('{"error": "not found"}', status_code=404)

    with pytest.raises(VectorXTransportError) as excinfo:
        client.get_hybrid_index("missing")
    assert excinfo.value.status_code == 404


def test_get_hybrid_index_incomplete_info(client, stub_service):
    """Test that incomplete index info is rejected."""
    stub_service.respond_json({"lib_token": "lib"})

    with pytest.raises(VectorXTransportError):
        client.get_hybrid_index("docs")


def test_get_index(client, stub_service):
    """Test fetching a dense index handle."""
    stub_service.respond_json(INDEX_INFO)

    index = client.get_index("dense")

    assert isinstance(index, Index)
    assert stub_service.last_request.url.path == "/api/v1/index/dense/info"
    assert index.describe()["precision"] == "float32"
    assert index.describe()["M"] == 32


def test_index_upsert_wire_format(client, stub_service):
    """Test the positional wire records of a dense upsert."""
    stub_service.respond_json(INDEX_INFO)
    index = client.get_index("dense")
    stub_service.respond_json({"inserted": 1})

    index.upsert([{
        "id": "v1",
        "vector": [0.0, 3.0, 4.0],
        "meta": {"source": "unit-test"},
        "filter": {"lang": "en"},
    }])

    request = stub_service.last_request
    assert request.url.path == "/api/v1/index/dense/vector/insert"
    assert request.headers["Content-Type"] == "application/msgpack"

    [record] = msgpack.unpackb(request.content, raw=False)
    doc_id, meta, filters, norm, vector = record
    assert doc_id == "v1"
    assert unzip_metadata(meta) == {"source": "unit-test"}
    assert filters == {"lang": "en"}
    assert norm == pytest.approx(5.0)
    assert vector == pytest.approx([0.0, 0.6, 0.8], rel=1e-6)


def test_index_upsert_normalizes_for_every_space_type(client, stub_service):
    """Test that dense upserts normalize regardless of space type."""
    stub_service.respond_json(dict(INDEX_INFO, space_type="l2"))
    index = client.get_index("dense")
    stub_service.respond_json({})

    index.upsert([{"id": "v1", "vector": [0.0, 3.0, 4.0]}])

    [record] = msgpack.unpackb(stub_service.last_request.content, raw=False)
    assert record[1] == b""
    assert record[3] == pytest.approx(5.0)
    assert record[4] == pytest.approx([0.0, 0.6, 0.8], rel=1e-6)


def test_index_upsert_dimension_mismatch(client, stub_service):
    """Test that a wrong dimension fails before any request."""
    stub_service.respond_json(INDEX_INFO)
    index = client.get_index("dense")
    request_count = len(stub_service.requests)

    with pytest.raises(VectorXValidationError, match="dimension mismatch"):
        index.upsert([{"id": "v1", "vector": [1.0, 2.0]}])
    assert len(stub_service.requests) == request_count
