"""Shared fixtures: a configured client whose HTTP traffic is stubbed."""

import json
from typing import Any, Callable, Dict, List

import httpx
import pytest

from vectorx.client import VectorX
from vectorx.common.config import VectorXConfig
from vectorx.common.metrics import MetricsCollector
from vectorx.hybrid.base import HybridIndexParams
from vectorx.hybrid.index import HybridIndex
from vectorx.transport import ServiceTransport

BASE_URL = "http://vectorx.test/api/v1"


class StubService:
    """Records requests and answers them with a configurable handler."""

    def __init__(self):
        self.requests: List[httpx.Request] = []
        self.handler: Callable[[httpx.Request], httpx.Response] = (
            lambda request: httpx.Response(200, json={})
        )

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.handler(request)

    def respond_json(self, payload: Any, status_code: int = 200) -> None:
        self.handler = lambda request: httpx.Response(status_code, json=payload)

    def respond_text(self, text: str, status_code: int) -> None:
        self.handler = lambda request: httpx.Response(status_code, text=text)

    @property
    def last_request(self) -> httpx.Request:
        return self.requests[-1]

    def last_json(self) -> Dict[str, Any]:
        return json.loads(self.last_request.content)


@pytest.fixture
def config():
    return VectorXConfig(base_url=BASE_URL, token=None)


@pytest.fixture
def metrics():
    return MetricsCollector()


@pytest.fixture
def stub_service():
    return StubService()


@pytest.fixture
def http_client(stub_service):
    client = httpx.Client(transport=httpx.MockTransport(stub_service))
    yield client
    client.close()


@pytest.fixture
def client(config, http_client, metrics):
    return VectorX("key:secret", config=config, http_client=http_client, metrics=metrics)


@pytest.fixture
def hybrid_params():
    return HybridIndexParams(
        lib_token="lib",
        total_elements=10,
        space_type="cosine",
        dimension=4,
        use_fp16=False,
        m=16,
        vocab_size=30522,
    )


@pytest.fixture
def hybrid_index(config, http_client, metrics, hybrid_params):
    transport = ServiceTransport(BASE_URL, "key:secret", http_client, metrics=metrics)
    return HybridIndex("docs", transport, hybrid_params, config=config, metrics=metrics)
