"""Tests for the VectorX client.

HTTP traffic is served by ``httpx.MockTransport`` stubs (see ``conftest``),
so the suite runs without a live service.
"""
